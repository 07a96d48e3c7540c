"""
User authentication for the officehub API.

Bearer tokens are issued by the hosted BaaS auth service; we verify them
against its ``/auth/v1/user`` endpoint and read the user's role from the
profile store.
"""

from __future__ import annotations

from dataclasses import dataclass

import httpx
from cachetools import TTLCache
from fastapi import Depends, HTTPException, Request, status
from fastapi.concurrency import run_in_threadpool

from officehub.config import AUTH_CACHE_MAX_SIZE, AUTH_CACHE_TTL_SECONDS, AUTH_TIMEOUT_SECONDS
from officehub.infrastructure import settings
from officehub.observability.logging import get_logger
from officehub.storage.models import ADMIN_ROLE
from officehub.storage.repository import StoreError

logger = get_logger(__name__)


@dataclass
class TokenIdentity:
    """Who a token belongs to, as reported by the auth service."""

    id: str
    email: str


@dataclass
class AuthenticatedUser:
    id: str
    email: str
    role: str = "employee"

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE

    def __str__(self) -> str:
        return f"User({self.id}, {self.email})"


# Entries expire well before BaaS access tokens do, so revoked tokens stop working
_token_cache: TTLCache[str, TokenIdentity] = TTLCache(
    maxsize=AUTH_CACHE_MAX_SIZE, ttl=AUTH_CACHE_TTL_SECONDS
)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _service_unavailable() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail="Authentication service unavailable",
    )


async def verify_token(token: str, client: httpx.AsyncClient | None = None) -> TokenIdentity:
    """
    Verify a BaaS access token.

    Args:
        token: The bearer token from the Authorization header
        client: Optional client to use instead of a fresh one

    Returns:
        TokenIdentity with the user's id and email

    Raises:
        HTTPException: 401 for invalid tokens, 503 when the auth service
            is unreachable or not configured
    """
    if token in _token_cache:
        return _token_cache[token]

    if not settings.BAAS_URL:
        logger.error("BAAS_URL not configured; cannot verify tokens")
        raise _service_unavailable()

    url = f"{settings.BAAS_URL.rstrip('/')}/auth/v1/user"
    headers = {"Authorization": f"Bearer {token}", "apikey": settings.BAAS_ANON_KEY}

    try:
        if client is None:
            async with httpx.AsyncClient() as own_client:
                response = await own_client.get(url, headers=headers, timeout=AUTH_TIMEOUT_SECONDS)
        else:
            response = await client.get(url, headers=headers, timeout=AUTH_TIMEOUT_SECONDS)
    except httpx.TimeoutException:
        logger.warning("Token validation timed out")
        raise _service_unavailable() from None
    except httpx.RequestError as e:
        logger.error("Token validation request failed: %s", e)
        raise _service_unavailable() from e

    if response.status_code != 200:
        logger.warning("Invalid token (auth service returned %s)", response.status_code)
        raise _unauthorized("Invalid or expired token")

    try:
        payload = response.json()
    except ValueError as e:
        logger.error("Auth service returned a non-JSON body: %s", e)
        raise _service_unavailable() from e

    if not isinstance(payload, dict) or not payload.get("id"):
        raise _unauthorized("Invalid or expired token")

    identity = TokenIdentity(id=payload["id"], email=payload.get("email", ""))
    _token_cache[token] = identity
    logger.info("Verified token for user %s (cache size: %d)", identity.id, len(_token_cache))
    return identity


def _extract_bearer_token(authorization: str | None) -> str:
    """Extract token from Authorization header."""
    if not authorization:
        raise _unauthorized("Missing authorization header")

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise _unauthorized("Invalid authorization header format. Expected: Bearer <token>")

    return parts[1]


async def get_current_user(request: Request) -> AuthenticatedUser:
    """
    FastAPI dependency to get the current authenticated user.

    Usage:
        @router.get("/endpoint")
        async def endpoint(user: AuthenticatedUser = Depends(get_current_user)):
            ...
    """
    token = _extract_bearer_token(request.headers.get("Authorization"))
    identity = await verify_token(token)

    try:
        profile = await run_in_threadpool(request.app.state.store.get_profile, identity.id)
    except StoreError as e:
        logger.error("Profile lookup failed for user %s: %s", identity.id, e)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="User profile service unavailable",
        ) from e
    if profile is None:
        raise _unauthorized("User profile not found")

    return AuthenticatedUser(id=identity.id, email=profile.email or identity.email, role=profile.role)


async def require_admin(user: AuthenticatedUser = Depends(get_current_user)) -> AuthenticatedUser:
    if not user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return user


async def optional_user_id(request: Request) -> str | None:
    """
    User id for the request, or None when unauthenticated.

    Never raises; used to key per-user caches outside the dependency system.
    """
    authorization = request.headers.get("Authorization")
    if not authorization:
        return None

    try:
        token = _extract_bearer_token(authorization)
        identity = await verify_token(token)
    except HTTPException:
        return None
    return identity.id


def clear_token_cache() -> None:
    """Clear the token cache. Useful for testing."""
    _token_cache.clear()
