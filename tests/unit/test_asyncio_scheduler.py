"""Unit tests for the asyncio-backed scheduler"""

from __future__ import annotations

import asyncio

import pytest

from officehub.infrastructure.scheduling import AsyncioScheduler


@pytest.mark.asyncio
async def test_call_later_runs_once():
    scheduler = AsyncioScheduler()
    fired = asyncio.Event()
    runs = []

    async def job() -> None:
        runs.append(1)
        fired.set()

    scheduler.call_later(0, job)
    await asyncio.wait_for(fired.wait(), timeout=1.0)
    await asyncio.sleep(0.01)

    assert runs == [1]
    assert scheduler.pending == 0
    await scheduler.shutdown()


@pytest.mark.asyncio
async def test_call_every_survives_failing_callback(caplog):
    scheduler = AsyncioScheduler()
    runs = []

    async def flaky() -> None:
        runs.append(1)
        raise RuntimeError("boom")

    scheduler.call_every(0.01, flaky)
    await asyncio.sleep(0.1)
    await scheduler.shutdown()

    assert len(runs) >= 2
    assert "Scheduled job" in caplog.text


@pytest.mark.asyncio
async def test_shutdown_cancels_pending_timers():
    scheduler = AsyncioScheduler()
    runs = []

    async def job() -> None:
        runs.append(1)

    scheduler.call_later(60, job)
    assert scheduler.pending == 1

    await scheduler.shutdown()

    assert scheduler.pending == 0
    assert runs == []


@pytest.mark.asyncio
async def test_jobs_after_shutdown_are_dropped():
    scheduler = AsyncioScheduler()
    await scheduler.shutdown()

    async def job() -> None:
        raise AssertionError("should not run")

    scheduler.call_later(0, job)
    await asyncio.sleep(0)

    assert scheduler.pending == 0
