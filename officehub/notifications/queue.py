"""
Email delivery queue with bounded retry.

Best effort by design: callers enqueue and move on, there is no per-job
result.  One consumer works on the head of the queue.  A failed job goes to
the tail so the jobs behind it are tried before its next attempt; after
``max_attempts`` failures it is dropped and logged.  Nothing survives a
process restart.
"""

from __future__ import annotations

from collections import deque
from typing import Any

from officehub.config import EMAIL_MAX_ATTEMPTS, EMAIL_RETRY_DELAY_SECONDS
from officehub.infrastructure.scheduling import Scheduler
from officehub.notifications.models import EmailJob
from officehub.notifications.transport import MailTransport
from officehub.observability.logging import get_logger
from officehub.observability.telemetry import counter, log_event

logger = get_logger(__name__)


class EmailQueue:
    def __init__(
        self,
        transport: MailTransport,
        scheduler: Scheduler,
        retry_delay: float = EMAIL_RETRY_DELAY_SECONDS,
        max_attempts: int = EMAIL_MAX_ATTEMPTS,
    ) -> None:
        self._transport = transport
        self._scheduler = scheduler
        self.retry_delay = retry_delay
        self.max_attempts = max_attempts
        self._jobs: deque[EmailJob] = deque()

    @property
    def pending(self) -> int:
        return len(self._jobs)

    def enqueue(self, recipient: str, subject: str, html: str) -> None:
        """Queue an email. Starts the consumer when the queue was idle."""
        self._jobs.append(
            EmailJob(recipient=recipient, subject=subject, html=html, max_attempts=self.max_attempts)
        )
        counter("email.queued")
        if len(self._jobs) == 1:
            self._scheduler.call_later(0, self.process_head)

    async def process_head(self) -> None:
        """Attempt the head job once, then schedule the next cycle if work remains."""
        if not self._jobs:
            return

        job = self._jobs[0]
        try:
            delivered = await self._transport.send(job.recipient, job.subject, job.html)
        except Exception as e:
            self._jobs.popleft()
            job.attempts += 1
            if job.exhausted:
                counter("email.dropped")
                logger.error(
                    "Max attempts reached for email to %s (%d/%d). Dropping it: %s",
                    job.recipient,
                    job.attempts,
                    job.max_attempts,
                    e,
                )
                log_event("email.dropped", recipient=job.recipient, attempts=job.attempts)
            else:
                counter("email.retry")
                logger.warning(
                    "Failed to send email to %s (attempt %d/%d), requeued: %s",
                    job.recipient,
                    job.attempts,
                    job.max_attempts,
                    e,
                )
                self._jobs.append(job)
        else:
            self._jobs.popleft()
            if delivered:
                counter("email.sent")
                logger.info("Email sent successfully to %s", job.recipient)
            else:
                counter("email.skipped")
                logger.warning("Email to %s skipped: transport not configured", job.recipient)

        if self._jobs:
            self._scheduler.call_later(self.retry_delay, self.process_head)

    def snapshot(self) -> list[dict[str, Any]]:
        """Recipients and attempt counts, head first (no bodies)."""
        return [
            {"recipient": job.recipient, "attempts": job.attempts, "max_attempts": job.max_attempts}
            for job in self._jobs
        ]
