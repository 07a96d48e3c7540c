"""Response cache for read-heavy GET endpoints

JSON bodies are cached per user and URL for a path-specific TTL.  Writes
call ``ResponseCache.invalidate`` with a key fragment to drop stale reads.
Expired entries are removed on read and by a periodic ``cleanup`` sweep.
"""

from __future__ import annotations

import json
import time
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from officehub.api.middleware.user_auth import optional_user_id
from officehub.config import CACHE_DEFAULT_TTL_SECONDS
from officehub.observability.logging import get_logger
from officehub.observability.telemetry import counter

logger = get_logger(__name__)

ANONYMOUS = "anonymous"


@dataclass
class CacheEntry:
    value: Any
    expires_at: float


class ResponseCache:
    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def set(self, key: str, value: Any, ttl: float = CACHE_DEFAULT_TTL_SECONDS) -> None:
        self._entries[key] = CacheEntry(value=value, expires_at=self._clock() + ttl)

    def lookup(self, key: str) -> CacheEntry | None:
        """Live entry for ``key`` or None; a cached JSON ``null`` is still an entry."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() >= entry.expires_at:
            del self._entries[key]
            return None
        return entry

    def get(self, key: str, default: Any = None) -> Any:
        entry = self.lookup(key)
        return default if entry is None else entry.value

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def cleanup(self) -> int:
        """Drop every expired entry; returns how many were removed."""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if now >= entry.expires_at]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug("Response cache sweep removed %d entries", len(expired))
        return len(expired)

    def invalidate(self, pattern: str) -> int:
        """Delete every key containing ``pattern``; returns how many were removed."""
        matched = [key for key in self._entries if pattern in key]
        for key in matched:
            del self._entries[key]
        return len(matched)

    def __len__(self) -> int:
        return len(self._entries)


def cache_key(user_id: str | None, request: Request) -> str:
    path = request.url.path
    if request.url.query:
        path = f"{path}?{request.url.query}"
    return f"{user_id or ANONYMOUS}:{path}"


class ResponseCacheMiddleware(BaseHTTPMiddleware):
    """
    Serves cached JSON for GET requests under ``cached_paths``.

    ``cached_paths`` maps a path prefix to its TTL in seconds.  Responses get
    ``X-Cache: HIT`` or ``X-Cache: MISS``; only 2xx JSON responses are stored.
    """

    def __init__(
        self,
        app: Any,
        cache: ResponseCache,
        cached_paths: Mapping[str, float],
        identify: Callable[[Request], Awaitable[str | None]] = optional_user_id,
    ) -> None:
        super().__init__(app)
        self.cache = cache
        self.cached_paths = dict(cached_paths)
        self.identify = identify

    def _ttl_for(self, path: str) -> float | None:
        for prefix, ttl in self.cached_paths.items():
            if path.startswith(prefix):
                return ttl
        return None

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.method != "GET":
            return await call_next(request)

        ttl = self._ttl_for(request.url.path)
        if ttl is None:
            return await call_next(request)

        key = cache_key(await self.identify(request), request)
        cached = self.cache.lookup(key)
        if cached is not None:
            counter("cache.hit")
            return JSONResponse(content=cached.value, headers={"X-Cache": "HIT"})

        counter("cache.miss")
        response = await call_next(request)

        body = b""
        async for chunk in response.body_iterator:  # type: ignore[attr-defined]
            body += chunk if isinstance(chunk, bytes) else chunk.encode("utf-8")

        content_type = response.headers.get("content-type", "")
        if 200 <= response.status_code < 300 and content_type.startswith("application/json"):
            try:
                self.cache.set(key, json.loads(body), ttl)
            except ValueError:
                logger.warning("Response for %s is not valid JSON; not cached", request.url.path)

        headers = dict(response.headers)
        headers["X-Cache"] = "MISS"
        return Response(
            content=body,
            status_code=response.status_code,
            headers=headers,
            media_type=response.media_type,
        )
