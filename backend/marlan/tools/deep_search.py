"""Deep search tool powered by Perplexity"""
import hashlib
import re
from typing import Optional

from pydantic import BaseModel, Field

from ..errors import DeepSearchError
from ..services.perplexity import PerplexityClient, PerplexitySearchResult
from ..utils.structured_logger import get_logger

logger = get_logger(__name__)

CACHE_TTL_SECONDS = 60 * 60
QUESTION_WORDS = {"what", "who", "where", "when", "why", "how", "is", "are", "can", "do", "does"}

DEEP_SEARCH_DISABLED_MESSAGE = (
    "I'm sorry, but web search capabilities are not enabled for this conversation. "
    "Please enable Deep Search in your user settings if you'd like me to search the web for information."
)


class DeepSearchInput(BaseModel):
    search_term: str = Field(
        description="The specific search term to look up on the web. Be as specific as possible."
    )


def format_search_query(query: str) -> str:
    """
    Normalise a query for Perplexity

    Short queries ask for comprehensive information; queries that start with a
    question word and have no closing punctuation get a question mark.
    """
    formatted = query.strip()

    if len(formatted) < 10:
        formatted = f"{formatted} - provide comprehensive information"

    if not re.search(r"[.?!]$", formatted):
        first_word = formatted.split(" ")[0].lower() if formatted else ""
        if first_word in QUESTION_WORDS:
            formatted += "?"

    return formatted


def cache_key(query: str) -> str:
    digest = hashlib.sha256(query.lower().encode("utf-8")).hexdigest()[:32]
    return f"deepsearch:{digest}"


class DeepSearchService:
    """Cached Perplexity research with status events"""

    def __init__(self, client: Optional[PerplexityClient] = None, cache=None, events=None):
        self.client = client or PerplexityClient()
        self.cache = cache
        self.events = events

    def _notify(self, user_id: Optional[str], status: str, details: str):
        if self.events is not None and user_id:
            self.events.send_event_to_user(user_id, {"type": "deepSearch", "status": status, "details": details})

    async def _cached(self, key: str):
        """Cached result for key; a store failure counts as a miss"""
        if self.cache is None:
            return None
        try:
            return await self.cache.get(key)
        except Exception as e:
            logger.warning("Deep search cache read failed", operation="perplexity_cache_error", error=str(e))
            return None

    async def _store(self, key: str, value: dict):
        if self.cache is None:
            return
        try:
            await self.cache.set(key, value, ex=CACHE_TTL_SECONDS)
        except Exception as e:
            logger.warning("Deep search cache write failed", operation="perplexity_cache_error", error=str(e))

    async def search(self, query: str, user_id: Optional[str] = None) -> PerplexitySearchResult:
        """
        Research a query, using the cache when possible

        Raises:
            DeepSearchError: the Perplexity call failed
        """
        formatted = format_search_query(query)
        key = cache_key(formatted)

        cached = await self._cached(key)
        if cached:
            logger.info("Using cached deep search results", operation="perplexity_cache_hit", query_length=len(formatted))
            return PerplexitySearchResult(**cached)

        logger.info("Deep search started", operation="deep_search_started", original_query=query, formatted_query=formatted)
        self._notify(user_id, "started", formatted[:100])

        try:
            result = await self.client.search(formatted)
        except DeepSearchError as e:
            logger.error("Deep search failed", operation="deep_search_failed", error=str(e))
            self._notify(user_id, "failed", str(e))
            raise

        await self._store(key, result.model_dump())

        logger.info(
            "Deep search completed",
            operation="deep_search_completed",
            response_length=len(result.content),
            model=result.model,
        )
        self._notify(user_id, "completed", f"{len(result.content)} characters")
        return result


async def deep_search(
    search_term: str,
    service: DeepSearchService,
    enabled: bool,
    user_id: Optional[str] = None,
) -> str:
    """Tool body: refuse unless deep search is enabled for the conversation"""
    if not enabled:
        logger.warning(
            "Deep search invoked without being enabled",
            operation="deep_search_disabled_attempt",
            search_term_preview=search_term[:50],
        )
        return DEEP_SEARCH_DISABLED_MESSAGE

    result = await service.search(search_term, user_id=user_id)
    return result.content
