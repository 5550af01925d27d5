"""Chat list client with caching, request de-duplication and an auth-failure cooldown"""
import asyncio
import time
import uuid
from typing import Any, Dict, List, Optional, Set

import requests

from ..db.database import DEFAULT_TITLE
from ..errors import AuthenticationFailed, HistoryApiError
from ..utils.structured_logger import get_logger
from .client_cache import ClientCache

logger = get_logger(__name__)

HISTORY_CACHE_KEY = "chat_history"
CACHE_TTL_SECONDS = 30 * 60
REFRESH_INTERVAL_SECONDS = 15 * 60
AUTH_FAILURE_COOLDOWN_SECONDS = 30
REQUEST_TIMEOUT = 10


class HistoryApiClient:
    """Thin requests wrapper around the /api/history and /api/chat/session endpoints"""

    def __init__(self, base_url: str, token: Optional[str] = None, timeout: float = REQUEST_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        headers = {"Cache-Control": "no-cache"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        try:
            response = requests.request(
                method, f"{self.base_url}{path}", headers=headers, timeout=self.timeout, **kwargs
            )
        except requests.exceptions.RequestException as e:
            raise HistoryApiError(f"{method} {path} failed: {e}") from e

        if response.status_code == 401:
            raise AuthenticationFailed("History API rejected the token")
        if not response.ok:
            raise HistoryApiError(f"{method} {path} returned {response.status_code}: {response.text[:200]}")
        return response

    async def fetch_history(self) -> List[Dict[str, Any]]:
        response = await asyncio.to_thread(self._request, "GET", "/api/history")
        return response.json()

    async def delete_chat(self, chat_id: str) -> bool:
        await asyncio.to_thread(self._request, "DELETE", "/api/history", params={"id": chat_id})
        return True

    async def create_session(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        response = await asyncio.to_thread(self._request, "POST", "/api/chat/session", json=payload)
        return response.json()


class HistoryService:
    """
    Cached access to a user's chat list

    Concurrent fetches for the same key share one in-flight task. Cached lists
    live for 30 minutes; a read served from cache starts a background refresh
    once 15 minutes have passed since the last fetch. A 401 from the API stores
    an auth-failed marker for 30 seconds, during which fetches return [] without
    calling the API.
    """

    def __init__(
        self,
        api: HistoryApiClient,
        cache: Optional[ClientCache] = None,
        clock=time.monotonic,
        refresh_interval: float = REFRESH_INTERVAL_SECONDS,
        auth_cooldown: float = AUTH_FAILURE_COOLDOWN_SECONDS,
        cache_key: str = HISTORY_CACHE_KEY,
    ):
        self.api = api
        self.cache = cache if cache is not None else ClientCache(default_ttl=CACHE_TTL_SECONDS, clock=clock)
        self.cache_key = cache_key
        self.refresh_interval = refresh_interval
        self.auth_cooldown = auth_cooldown
        self._clock = clock
        self._pending: Dict[str, asyncio.Task] = {}
        self._background: Set[asyncio.Task] = set()
        self.last_refresh: Optional[float] = None

    @property
    def auth_failed_key(self) -> str:
        return f"{self.cache_key}:auth_failed"

    async def _fetch_from_api(self) -> List[Dict[str, Any]]:
        start = time.perf_counter()
        try:
            chats = await self.api.fetch_history()
        except AuthenticationFailed:
            logger.warning("History API returned 401, pausing fetches", cooldown_s=self.auth_cooldown)
            self.cache.set(self.auth_failed_key, True, ttl=self.auth_cooldown)
            raise

        self.cache.set(self.cache_key, chats)
        self.last_refresh = self._clock()
        logger.info(
            "Fetched chat history from API",
            count=len(chats),
            duration_ms=round((time.perf_counter() - start) * 1000),
        )
        return chats

    def _start_fetch(self) -> asyncio.Task:
        task = asyncio.ensure_future(self._fetch_from_api())
        self._pending[self.cache_key] = task

        def _done(t: asyncio.Task):
            if self._pending.get(self.cache_key) is t:
                del self._pending[self.cache_key]

        task.add_done_callback(_done)
        return task

    def _refresh_due(self) -> bool:
        return self.last_refresh is None or self._clock() - self.last_refresh >= self.refresh_interval

    def _schedule_background_refresh(self):
        if self.cache_key in self._pending:
            return
        logger.debug("Starting background history refresh")
        task = self._start_fetch()
        self._background.add(task)

        def _finish(t: asyncio.Task):
            self._background.discard(t)
            if not t.cancelled() and t.exception() is not None:
                logger.warning("Background history refresh failed", error=str(t.exception()))

        task.add_done_callback(_finish)

    async def fetch_history(self, force_refresh: bool = False) -> List[Dict[str, Any]]:
        """
        Chat list for the current user

        Args:
            force_refresh: Skip the cache and fetch from the API

        Returns:
            List of chat dicts; [] on any failure
        """
        if self.cache.get(self.auth_failed_key):
            logger.debug("Skipping history fetch during auth cooldown")
            return []

        pending = self._pending.get(self.cache_key)
        if pending is not None:
            logger.debug("Reusing in-flight history request")
            try:
                return await pending
            except Exception as e:
                logger.warning("In-flight history request failed", error=str(e))
                return []

        if force_refresh:
            self.invalidate_cache()
        else:
            cached = self.cache.get(self.cache_key)
            if cached:
                if self._refresh_due():
                    self._schedule_background_refresh()
                logger.debug("Using cached chat history", count=len(cached))
                return cached

        try:
            return await self._start_fetch()
        except AuthenticationFailed:
            return []
        except Exception as e:
            logger.error("Failed to fetch chat history", error=str(e))
            return []

    async def delete_chat(self, chat_id: str) -> bool:
        """Remove a chat from the cached list first, then delete it on the server; rolls back on failure"""
        if not chat_id:
            return False

        cached = self.cache.get(self.cache_key)
        if cached is not None:
            self.cache.set(self.cache_key, [c for c in cached if c.get("id") != chat_id])

        try:
            deleted = await self.api.delete_chat(chat_id)
        except Exception as e:
            logger.error("Error deleting chat", chat_id=chat_id, error=str(e))
            deleted = False

        if not deleted:
            if cached is not None:
                self.cache.set(self.cache_key, cached)
            return False

        logger.info("Chat deleted", chat_id=chat_id)
        return True

    def invalidate_cache(self):
        self.cache.remove(self.cache_key)
        self._pending.pop(self.cache_key, None)
        logger.debug("Chat history cache invalidated")

    async def refresh_history(self) -> List[Dict[str, Any]]:
        return await self.fetch_history(force_refresh=True)

    async def chat_exists(self, chat_id: str, auto_refresh: bool = True) -> bool:
        """Whether chat_id is in the list; refetches once when missing and auto_refresh is set"""
        if not chat_id:
            return False

        chats = await self.fetch_history()
        exists = any(c.get("id") == chat_id for c in chats)
        if not exists and auto_refresh:
            chats = await self.refresh_history()
            exists = any(c.get("id") == chat_id for c in chats)
        return exists

    async def create_new_session(self) -> Dict[str, Any]:
        """
        Create an empty session on the server

        Returns:
            {"id", "success"} plus "error" when the server refused
        """
        session_id = str(uuid.uuid4())
        payload = {
            "id": session_id,
            "title": DEFAULT_TITLE,
            "agent_id": "default",
            "deep_search_enabled": False,
        }
        try:
            await self.api.create_session(payload)
        except Exception as e:
            logger.error("Error creating chat session", session=session_id, error=str(e))
            return {"id": session_id, "success": False, "error": str(e)}

        self.invalidate_cache()
        return {"id": session_id, "success": True}
