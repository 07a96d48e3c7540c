"""Sliding-window request tracker used by the rate limiting middleware."""

from __future__ import annotations

import time
from collections.abc import Callable

from cachetools import TTLCache

from officehub.config import RATE_LIMIT_MAX_IDENTIFIERS


class RateLimitTracker:
    """
    Per-identifier list of request timestamps inside a trailing window.

    Lists are pruned lazily on every ``track`` call; ``cleanup`` prunes every
    identifier and drops the empty ones.  The TTLCache caps the number of
    tracked identifiers and forgets identifiers idle for two windows.
    """

    def __init__(
        self,
        window_seconds: float = 60.0,
        max_requests: int = 100,
        max_identifiers: int = RATE_LIMIT_MAX_IDENTIFIERS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.window_seconds = window_seconds
        self.max_requests = max_requests
        self._clock = clock
        self._windows: TTLCache[str, list[float]] = TTLCache(
            maxsize=max_identifiers, ttl=window_seconds * 2, timer=clock
        )

    def _prune(self, timestamps: list[float], now: float) -> list[float]:
        return [ts for ts in timestamps if now - ts < self.window_seconds]

    def track(self, identifier: str) -> bool:
        """Record a request; False when ``identifier`` already used its quota."""
        now = self._clock()
        recent = self._prune(self._windows.get(identifier, []), now)

        if len(recent) >= self.max_requests:
            self._windows[identifier] = recent
            return False

        recent.append(now)
        self._windows[identifier] = recent
        return True

    def count(self, identifier: str) -> int:
        return len(self._prune(self._windows.get(identifier, []), self._clock()))

    def remaining(self, identifier: str) -> int:
        return max(self.max_requests - self.count(identifier), 0)

    def reset(self, identifier: str) -> None:
        self._windows.pop(identifier, None)

    def cleanup(self) -> int:
        """Prune all windows and drop identifiers with nothing left. Returns how many were dropped."""
        now = self._clock()
        self._windows.expire()
        dropped = 0
        for identifier, timestamps in list(self._windows.items()):
            recent = self._prune(timestamps, now)
            if recent:
                self._windows[identifier] = recent
            else:
                del self._windows[identifier]
                dropped += 1
        return dropped

    def __len__(self) -> int:
        return len(self._windows)
