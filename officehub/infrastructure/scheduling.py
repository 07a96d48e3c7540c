"""
Timer port for background work.

The mail queue, the digest job and the in-memory sweeps never touch
``asyncio`` timers directly; they ask a ``Scheduler`` to run a coroutine
function later or periodically.  ``AsyncioScheduler`` is the production
implementation and is shut down with the application.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Protocol

from officehub.observability.logging import get_logger

logger = get_logger(__name__)

Job = Callable[[], Awaitable[None]]


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Job) -> None:
        """Run ``callback`` once after ``delay`` seconds (``0`` = as soon as possible)."""
        ...

    def call_every(self, interval: float, callback: Job) -> None:
        """Run ``callback`` every ``interval`` seconds until shutdown."""
        ...


class AsyncioScheduler:
    """
    Scheduler backed by tasks on the running event loop.

    Must be used from inside the loop (request handlers, lifespan hooks or
    other scheduled callbacks).  Exceptions raised by callbacks are logged and
    never stop a periodic timer.
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[None]] = set()
        self._closed = False

    def call_later(self, delay: float, callback: Job) -> None:
        self._spawn(self._run_later(delay, callback))

    def call_every(self, interval: float, callback: Job) -> None:
        self._spawn(self._run_every(interval, callback))

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def _spawn(self, coro: Awaitable[None]) -> None:
        if self._closed:
            logger.warning("Scheduler is shut down; dropping job")
            coro.close()  # type: ignore[attr-defined]
            return
        task = asyncio.get_running_loop().create_task(coro)  # type: ignore[arg-type]
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run_later(self, delay: float, callback: Job) -> None:
        if delay > 0:
            await asyncio.sleep(delay)
        await self._invoke(callback)

    async def _run_every(self, interval: float, callback: Job) -> None:
        while True:
            await asyncio.sleep(interval)
            await self._invoke(callback)

    async def _invoke(self, callback: Job) -> None:
        try:
            await callback()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Scheduled job %s failed", getattr(callback, "__qualname__", callback))

    async def shutdown(self) -> None:
        """Cancel every pending timer and wait for the tasks to finish."""
        self._closed = True
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
