"""
Pytest configuration for officehub tests

Provides fakes for the scheduler and mail transport plus a throwaway
SQLite store shared across all test files.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterator
from pathlib import Path

import pytest

from officehub.api.middleware.user_auth import clear_token_cache
from officehub.infrastructure.database import Database
from officehub.notifications.transport import MailDeliveryError
from officehub.observability.telemetry import reset_counters
from officehub.storage.models import Profile
from officehub.storage.repository import SQLiteDigestStore

Job = Callable[[], Awaitable[None]]


class ManualScheduler:
    """Records timers instead of running them; tests fire them with ``run_next``."""

    def __init__(self) -> None:
        self.later: list[tuple[float, Job]] = []
        self.every: list[tuple[float, Job]] = []
        self.shut_down = False

    def call_later(self, delay: float, callback: Job) -> None:
        self.later.append((delay, callback))

    def call_every(self, interval: float, callback: Job) -> None:
        self.every.append((interval, callback))

    @property
    def delays(self) -> list[float]:
        return [delay for delay, _ in self.later]

    async def run_next(self) -> float:
        """Pop the oldest one-shot timer, await it, return its delay."""
        delay, callback = self.later.pop(0)
        await callback()
        return delay

    async def run_until_idle(self, limit: int = 50) -> int:
        runs = 0
        while self.later and runs < limit:
            await self.run_next()
            runs += 1
        return runs

    async def shutdown(self) -> None:
        self.shut_down = True


class FakeTransport:
    """
    In-memory mail transport.

    ``fail_times`` maps a recipient to how many upcoming sends to it should
    fail; use a large number for "always fails".
    """

    def __init__(self, configured: bool = True, verified: bool = True) -> None:
        self.configured = configured
        self.verified = verified
        self.fail_times: dict[str, int] = {}
        self.calls: list[str] = []
        self.sent: list[tuple[str, str, str]] = []

    async def send(self, to: str, subject: str, html: str) -> bool:
        self.calls.append(to)
        remaining = self.fail_times.get(to, 0)
        if remaining > 0:
            self.fail_times[to] = remaining - 1
            raise MailDeliveryError(f"550 mailbox unavailable: {to}", recipient=to)
        if not self.configured:
            return False
        self.sent.append((to, subject, html))
        return True

    async def verify(self) -> bool:
        return self.verified


class RecordingQueue:
    """Stands in for EmailQueue when only the enqueued emails matter."""

    def __init__(self) -> None:
        self.emails: list[tuple[str, str, str]] = []

    def enqueue(self, recipient: str, subject: str, html: str) -> None:
        self.emails.append((recipient, subject, html))

    @property
    def pending(self) -> int:
        return len(self.emails)


@pytest.fixture(autouse=True)
def _reset_state() -> Iterator[None]:
    reset_counters()
    clear_token_cache()
    yield
    reset_counters()
    clear_token_cache()


@pytest.fixture
def manual_scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def recording_queue() -> RecordingQueue:
    return RecordingQueue()


@pytest.fixture
def db(tmp_path: Path) -> Iterator[Database]:
    database = Database(tmp_path / "officehub.db", pool_size=2)
    database.initialize()
    yield database
    database.close()


@pytest.fixture
def store(db: Database) -> SQLiteDigestStore:
    return SQLiteDigestStore(db)


@pytest.fixture
def employee(store: SQLiteDigestStore) -> Profile:
    return store.upsert_profile(
        Profile(id="user-1", email="ayse@example.com", full_name="Ayşe Yılmaz")
    )


@pytest.fixture
def admin(store: SQLiteDigestStore) -> Profile:
    return store.upsert_profile(
        Profile(id="admin-1", email="mehmet@example.com", full_name="Mehmet Demir", role="admin")
    )
