"""
Daily digest assembly.

For each user: overdue tasks, tasks due today and (admins only) issues
waiting for assignment, rendered into one email and handed to the queue.
Users with nothing to report get no email.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta
from typing import Any

from fastapi.concurrency import run_in_threadpool

from officehub.config import DIGEST_ITEM_LIMIT, DIGEST_USER_PAUSE_SECONDS
from officehub.notifications import templates
from officehub.notifications.models import DigestPayload
from officehub.notifications.queue import EmailQueue
from officehub.observability.logging import get_logger
from officehub.observability.telemetry import counter, log_event
from officehub.storage.repository import DigestStore
from officehub.utils.dates import local_midnight

logger = get_logger(__name__)


def local_now() -> datetime:
    return datetime.now().astimezone()


class DigestService:
    def __init__(
        self,
        store: DigestStore,
        queue: EmailQueue,
        clock: Callable[[], datetime] = local_now,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        pause: float = DIGEST_USER_PAUSE_SECONDS,
        limit: int = DIGEST_ITEM_LIMIT,
    ) -> None:
        self.store = store
        self.queue = queue
        self._clock = clock
        self._sleep = sleep
        self.pause = pause
        self.limit = limit

    async def send_to_user(self, user_id: str) -> bool:
        """
        Build and queue the digest for one user.

        Returns:
            True if an email was queued.  Missing profiles, opted-out users,
            empty digests and store errors all return False; errors are
            logged, never raised.
        """
        try:
            return await self._send_to_user(user_id)
        except Exception as e:
            logger.error("Error sending daily digest to user %s: %s", user_id, e)
            counter("digest.error")
            return False

    async def _send_to_user(self, user_id: str) -> bool:
        profile = await run_in_threadpool(self.store.get_profile, user_id)
        if profile is None:
            logger.warning("Profile not found for user %s", user_id)
            return False

        if profile.email_opted_out:
            logger.debug("User %s has email notifications disabled", user_id)
            return False

        today = local_midnight(self._clock())
        tomorrow = today + timedelta(days=1)

        overdue = await run_in_threadpool(self.store.overdue_tasks, user_id, today, self.limit)
        due_today = await run_in_threadpool(
            self.store.tasks_due_between, user_id, today, tomorrow, self.limit
        )
        pending = (
            await run_in_threadpool(self.store.pending_issues, self.limit)
            if profile.is_admin
            else []
        )

        payload = DigestPayload(
            recipient_name=profile.full_name,
            overdue_tasks=overdue,
            today_tasks=due_today,
            pending_issues=pending,
        )
        if not payload.has_content:
            logger.debug("No digest content for user %s", user_id)
            return False

        self.queue.enqueue(profile.email, templates.digest_subject(today), templates.daily_digest(payload))
        logger.info("Daily digest queued for %s", profile.email)
        return True

    async def send_to_all(self) -> int:
        """
        Run the digest for every profile, one after another.

        Returns:
            Number of digests queued

        Raises:
            StoreError: The profile list could not be loaded
        """
        logger.info("Starting daily digest for all users...")
        profiles = await run_in_threadpool(self.store.list_profiles)

        queued = 0
        for index, profile in enumerate(profiles):
            if index and self.pause > 0:
                await self._sleep(self.pause)
            if await self.send_to_user(profile.id):
                queued += 1

        log_event("digest.completed", users=len(profiles), queued=queued)
        logger.info("Daily digest completed: %d/%d users", queued, len(profiles))
        return queued

    async def trigger_now(self) -> dict[str, Any]:
        """Manual run for the admin route; reports the batch, not each recipient."""
        try:
            await self.send_to_all()
        except Exception as e:
            logger.error("Manual daily digest failed: %s", e)
            return {"success": False, "message": str(e)}
        return {"success": True, "message": "Daily digest sent successfully"}
