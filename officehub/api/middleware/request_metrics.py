"""Request logging and metrics middleware"""

from __future__ import annotations

import time
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from officehub.observability.logging import get_logger
from officehub.observability.metrics import MetricsCollector, RequestMetric
from officehub.observability.telemetry import counter, log_event

logger = get_logger(__name__)

SLOW_REQUEST_MS = 1000.0


class RequestMetricsMiddleware(BaseHTTPMiddleware):
    """
    Records method, path, status and duration of every request.

    5xx responses log at error, 4xx at warning, the rest at info.  A handler
    that raises is recorded as a 500 and the exception re-raised.
    """

    def __init__(
        self,
        app: Any,
        collector: MetricsCollector,
        clock: Callable[[], float] = time.perf_counter,
        slow_request_ms: float = SLOW_REQUEST_MS,
    ) -> None:
        super().__init__(app)
        self.collector = collector
        self._clock = clock
        self.slow_request_ms = slow_request_ms

    def _record(self, request: Request, status_code: int, elapsed_ms: float) -> None:
        method, path = request.method, request.url.path
        self.collector.add(
            RequestMetric(
                method=method,
                path=path,
                status_code=status_code,
                response_time_ms=round(elapsed_ms, 2),
                timestamp=datetime.now(UTC).isoformat(),
                client_ip=request.client.host if request.client else None,
                user_agent=request.headers.get("user-agent"),
            )
        )
        counter("api.requests")

        if status_code >= 500:
            counter("api.errors")
            logger.error("%s %s -> %d (%.0fms)", method, path, status_code, elapsed_ms)
        elif status_code >= 400:
            logger.warning("%s %s -> %d (%.0fms)", method, path, status_code, elapsed_ms)
        else:
            logger.info("%s %s -> %d (%.0fms)", method, path, status_code, elapsed_ms)

        if elapsed_ms > self.slow_request_ms:
            log_event("api.slow_request", method=method, path=path, duration_ms=round(elapsed_ms))

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        started = self._clock()
        try:
            response = await call_next(request)
        except Exception:
            self._record(request, 500, (self._clock() - started) * 1000)
            logger.exception("Unhandled error on %s %s", request.method, request.url.path)
            raise

        self._record(request, response.status_code, (self._clock() - started) * 1000)
        return response
