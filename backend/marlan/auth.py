"""Supabase bearer-token authentication and FastAPI auth dependencies"""
import asyncio
from typing import Optional

import requests
from fastapi import Depends, Header, Request
from pydantic import BaseModel

from .cache.client_cache import ClientCache
from .config import config
from .db import database
from .errors import AuthenticationFailed, api_error
from .utils.structured_logger import get_logger

logger = get_logger(__name__)

TOKEN_CACHE_TTL_SECONDS = 15 * 60
VERIFY_TIMEOUT = 10


class AuthUser(BaseModel):
    """Authenticated caller"""
    id: str
    email: Optional[str] = None


class TokenVerifier:
    """
    Validates access tokens against the Supabase auth API

    Successful lookups are cached per token for 15 minutes.
    """

    def __init__(
        self,
        supabase_url: Optional[str] = None,
        anon_key: Optional[str] = None,
        cache: Optional[ClientCache] = None,
        timeout: float = VERIFY_TIMEOUT,
    ):
        self.supabase_url = (supabase_url or config.SUPABASE_URL or "").rstrip("/")
        self.anon_key = anon_key or config.SUPABASE_ANON_KEY
        self.cache = cache if cache is not None else ClientCache(default_ttl=TOKEN_CACHE_TTL_SECONDS)
        self.timeout = timeout

    def _fetch_user(self, token: str) -> AuthUser:
        if not self.supabase_url or not self.anon_key:
            raise AuthenticationFailed("Authentication provider is not configured")

        try:
            response = requests.get(
                f"{self.supabase_url}/auth/v1/user",
                headers={"apikey": self.anon_key, "Authorization": f"Bearer {token}"},
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise AuthenticationFailed(f"Token verification failed: {e}") from e

        if response.status_code != 200:
            raise AuthenticationFailed(f"Token rejected with status {response.status_code}")

        data = response.json()
        if not data.get("id"):
            raise AuthenticationFailed("Token response has no user id")
        return AuthUser(id=data["id"], email=data.get("email"))

    async def verify(self, token: str) -> AuthUser:
        """
        Raises:
            AuthenticationFailed: missing, invalid or rejected token
        """
        if not token:
            raise AuthenticationFailed("Missing token")

        cached = self.cache.get(token)
        if cached is not None:
            return cached

        user = await asyncio.to_thread(self._fetch_user, token)
        self.cache.set(token, user)
        logger.debug("Token verified", user_id=user.id)
        return user


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def get_token_verifier(request: Request) -> TokenVerifier:
    return request.app.state.token_verifier


async def authenticate_token(token: Optional[str], verifier: TokenVerifier) -> AuthUser:
    """Verify a raw token, mapping failures to a 401 response"""
    if not token:
        raise api_error(401, "Unauthorized", "Authentication required")
    try:
        return await verifier.verify(token)
    except AuthenticationFailed as e:
        logger.warning("Authentication failed", reason=str(e))
        raise api_error(401, "Unauthorized", "Authentication required")


async def get_current_user(
    authorization: Optional[str] = Header(default=None),
    verifier: TokenVerifier = Depends(get_token_verifier),
) -> AuthUser:
    return await authenticate_token(bearer_token(authorization), verifier)


async def require_admin(user: AuthUser = Depends(get_current_user)) -> AuthUser:
    if not await database.is_admin(user.id):
        logger.warning("Admin access denied", user_id=user.id)
        raise api_error(403, "Forbidden", "Admin access required")
    return user
