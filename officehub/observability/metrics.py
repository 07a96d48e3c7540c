"""
In-memory request metrics.

Keeps the last ``max_metrics`` requests and derives the numbers served by
``/api/monitoring/stats``.  Process-local: each worker reports its own.
"""

from __future__ import annotations

import time
from collections import Counter, deque
from collections.abc import Callable
from dataclasses import asdict, dataclass
from typing import Any

MAX_METRICS = 1000


@dataclass
class RequestMetric:
    method: str
    path: str
    status_code: int
    response_time_ms: float
    timestamp: str
    client_ip: str | None = None
    user_agent: str | None = None


class MetricsCollector:
    def __init__(
        self, max_metrics: int = MAX_METRICS, clock: Callable[[], float] = time.monotonic
    ) -> None:
        self._metrics: deque[RequestMetric] = deque(maxlen=max_metrics)
        self._clock = clock
        self.started_at = clock()

    def add(self, metric: RequestMetric) -> None:
        self._metrics.append(metric)

    def metrics(self) -> list[dict[str, Any]]:
        return [asdict(metric) for metric in self._metrics]

    def clear(self) -> int:
        cleared = len(self._metrics)
        self._metrics.clear()
        return cleared

    def uptime_seconds(self) -> int:
        return int(self._clock() - self.started_at)

    def stats(self) -> dict[str, Any]:
        """
        Aggregates over the retained window.

        ``error_rate`` is the percentage of responses with status >= 400,
        rounded to two decimals; ``average_response_time_ms`` is rounded to
        a whole millisecond.
        """
        total = len(self._metrics)
        if total == 0:
            return {
                "total_requests": 0,
                "average_response_time_ms": 0,
                "error_rate": 0.0,
                "requests_by_status": {},
                "requests_by_path": {},
            }

        errors = sum(1 for m in self._metrics if m.status_code >= 400)
        by_status = Counter(str(m.status_code) for m in self._metrics)
        by_path = Counter(m.path for m in self._metrics)

        return {
            "total_requests": total,
            "average_response_time_ms": round(
                sum(m.response_time_ms for m in self._metrics) / total
            ),
            "error_rate": round(errors / total * 100, 2),
            "requests_by_status": dict(by_status),
            "requests_by_path": dict(by_path),
        }

    def __len__(self) -> int:
        return len(self._metrics)


def format_uptime(seconds: float) -> str:
    """``93784`` -> ``1d 2h 3m 4s``; zero-valued leading units are left out."""
    seconds = int(seconds)
    days, rest = divmod(seconds, 86400)
    hours, rest = divmod(rest, 3600)
    minutes, secs = divmod(rest, 60)

    parts = []
    if days:
        parts.append(f"{days}d")
    if hours:
        parts.append(f"{hours}h")
    if minutes:
        parts.append(f"{minutes}m")
    parts.append(f"{secs}s")
    return " ".join(parts)
