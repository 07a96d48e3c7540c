"""Rate limiting middleware for the officehub API

Per-client-IP request limits (per minute and per hour) built on
``RateLimitTracker``.

Security features:
- IP spoofing protection (X-Forwarded-For is ignored unless proxy headers are
  trusted explicitly or the app runs in development)
- Bounded memory: trackers cap the number of IPs and are swept periodically
"""

from __future__ import annotations

import ipaddress
from collections.abc import Callable
from typing import Any

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from officehub.config import RATE_LIMIT_RPH, RATE_LIMIT_RPM, TRUST_PROXY_HEADERS
from officehub.infrastructure.rate_limiter import RateLimitTracker
from officehub.infrastructure.settings import is_development
from officehub.observability.telemetry import log_event

EXEMPT_PATHS = ("/health", "/health/db", "/")


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Limits requests per IP address (default 60 req/min, 1000 req/hour).

    Pass ``minute_tracker``/``hour_tracker`` to share trackers with the code
    that sweeps them; otherwise the middleware builds its own.
    """

    def __init__(
        self,
        app: Any,
        requests_per_minute: int = RATE_LIMIT_RPM,
        requests_per_hour: int = RATE_LIMIT_RPH,
        minute_tracker: RateLimitTracker | None = None,
        hour_tracker: RateLimitTracker | None = None,
        trust_proxy_headers: bool = TRUST_PROXY_HEADERS,
    ) -> None:
        super().__init__(app)
        self.minute_tracker = minute_tracker or RateLimitTracker(
            window_seconds=60, max_requests=requests_per_minute
        )
        self.hour_tracker = hour_tracker or RateLimitTracker(
            window_seconds=3600, max_requests=requests_per_hour
        )

        self.trust_proxy_headers = trust_proxy_headers

    @property
    def requests_per_minute(self) -> int:
        return self.minute_tracker.max_requests

    @property
    def requests_per_hour(self) -> int:
        return self.hour_tracker.max_requests

    def _is_valid_ip(self, ip_str: str) -> bool:
        """Reject malformed X-Forwarded-For values so they cannot dodge the limit."""
        try:
            ipaddress.ip_address(ip_str)
            return True
        except ValueError:
            return False

    def _forwarded_ip(self, request: Request) -> str | None:
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            ip = forwarded.split(",")[0].strip()
            if self._is_valid_ip(ip):
                return ip
        return None

    def _get_client_ip(self, request: Request) -> str:
        """Extract client IP with spoofing protection."""
        # Forwarded headers are client-controlled unless a proxy rewrites them
        if self.trust_proxy_headers or is_development():
            ip = self._forwarded_ip(request)
            if ip:
                return ip

            real_ip = request.headers.get("X-Real-IP")
            if real_ip and self._is_valid_ip(real_ip):
                return real_ip

        # Default: direct connection IP (cannot be spoofed)
        return request.client.host if request.client else "unknown"

    def _limited(self, client_ip: str, window: str, limit: int, count: int, retry_after: int) -> Response:
        log_event(
            "api.rate_limit.request_exceeded",
            ip=client_ip,
            limit=window,
            count=count,
        )
        return JSONResponse(
            status_code=429,
            content={
                "detail": f"Rate limit exceeded. Maximum {limit} requests per {window}.",
                "retry_after": retry_after,
            },
            headers={"Retry-After": str(retry_after)},
        )

    def cleanup(self) -> int:
        return self.minute_tracker.cleanup() + self.hour_tracker.cleanup()

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in EXEMPT_PATHS:
            return await call_next(request)

        client_ip = self._get_client_ip(request)

        minute_requests = self.minute_tracker.count(client_ip)
        if minute_requests >= self.requests_per_minute:
            return self._limited(client_ip, "minute", self.requests_per_minute, minute_requests, 60)

        hour_requests = self.hour_tracker.count(client_ip)
        if hour_requests >= self.requests_per_hour:
            return self._limited(client_ip, "hour", self.requests_per_hour, hour_requests, 3600)

        # Both windows have room, so both records succeed
        self.minute_tracker.track(client_ip)
        self.hour_tracker.track(client_ip)

        response = await call_next(request)

        response.headers["X-RateLimit-Limit-Minute"] = str(self.requests_per_minute)
        response.headers["X-RateLimit-Remaining-Minute"] = str(
            self.requests_per_minute - minute_requests - 1
        )
        response.headers["X-RateLimit-Limit-Hour"] = str(self.requests_per_hour)
        response.headers["X-RateLimit-Remaining-Hour"] = str(
            self.requests_per_hour - hour_requests - 1
        )
        return response
