"""
Daily digest timing.

First run at the next ``DIGEST_HOUR`` local time, then every 24 hours.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta

from officehub.config import DIGEST_HOUR, DIGEST_INTERVAL_SECONDS
from officehub.infrastructure.scheduling import Scheduler
from officehub.notifications.digest import DigestService
from officehub.observability.logging import get_logger

logger = get_logger(__name__)


def next_digest_time(now: datetime, hour: int = DIGEST_HOUR) -> datetime:
    """Today at ``hour`` if that is still ahead of ``now``, otherwise tomorrow."""
    target = now.replace(hour=hour, minute=0, second=0, microsecond=0)
    if now >= target:
        target += timedelta(days=1)
    return target


class DigestScheduler:
    def __init__(
        self,
        service: DigestService,
        scheduler: Scheduler,
        clock: Callable[[], datetime] = datetime.now,
        hour: int = DIGEST_HOUR,
        interval: float = DIGEST_INTERVAL_SECONDS,
    ) -> None:
        self.service = service
        self.scheduler = scheduler
        self._clock = clock
        self.hour = hour
        self.interval = interval

    def schedule(self) -> datetime:
        """Arm the first run; returns when it will fire."""
        now = self._clock()
        first_run = next_digest_time(now, self.hour)
        delay = (first_run - now).total_seconds()
        self.scheduler.call_later(delay, self._first_run)
        logger.info("Daily digest scheduled for %s", first_run.isoformat(sep=" "))
        return first_run

    async def _first_run(self) -> None:
        self.scheduler.call_every(self.interval, self.run)
        await self.run()

    async def run(self) -> None:
        try:
            await self.service.send_to_all()
        except Exception as e:
            logger.error("Scheduled daily digest failed: %s", e)
