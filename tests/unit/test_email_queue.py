"""Unit tests for the email delivery queue

Tests cover:
- Auto-start when enqueuing onto an empty queue
- Retry to the tail of the queue with the fixed delay
- Drop after max attempts
- Unconfigured transport counted as skipped
"""

from __future__ import annotations

import pytest

from officehub.notifications.queue import EmailQueue
from officehub.observability.telemetry import get_counter


def make_queue(transport, scheduler, max_attempts: int = 3) -> EmailQueue:
    return EmailQueue(transport, scheduler, retry_delay=5.0, max_attempts=max_attempts)


def test_enqueue_on_empty_queue_starts_processing(fake_transport, manual_scheduler):
    queue = make_queue(fake_transport, manual_scheduler)

    queue.enqueue("a@example.com", "Subject", "<p>Body</p>")

    assert queue.pending == 1
    assert manual_scheduler.delays == [0]


def test_enqueue_on_busy_queue_does_not_start_second_consumer(fake_transport, manual_scheduler):
    queue = make_queue(fake_transport, manual_scheduler)

    queue.enqueue("a@example.com", "One", "<p>1</p>")
    queue.enqueue("b@example.com", "Two", "<p>2</p>")
    queue.enqueue("c@example.com", "Three", "<p>3</p>")

    assert queue.pending == 3
    assert manual_scheduler.delays == [0]


@pytest.mark.asyncio
async def test_successful_jobs_are_sent_in_order_with_delay(fake_transport, manual_scheduler):
    queue = make_queue(fake_transport, manual_scheduler)
    queue.enqueue("a@example.com", "One", "<p>1</p>")
    queue.enqueue("b@example.com", "Two", "<p>2</p>")

    await manual_scheduler.run_until_idle()

    assert [to for to, _, _ in fake_transport.sent] == ["a@example.com", "b@example.com"]
    assert manual_scheduler.delays == []
    assert queue.pending == 0
    assert get_counter("email.sent") == 2


@pytest.mark.asyncio
async def test_job_failing_twice_then_succeeding_is_delivered_once(fake_transport, manual_scheduler):
    fake_transport.fail_times["a@example.com"] = 2
    queue = make_queue(fake_transport, manual_scheduler)

    queue.enqueue("a@example.com", "Subject", "<p>Body</p>")
    await manual_scheduler.run_until_idle()

    assert fake_transport.calls == ["a@example.com"] * 3
    assert len(fake_transport.sent) == 1
    assert queue.pending == 0
    assert get_counter("email.retry") == 2
    assert get_counter("email.dropped") == 0


@pytest.mark.asyncio
async def test_job_failing_max_attempts_is_dropped(fake_transport, manual_scheduler):
    fake_transport.fail_times["a@example.com"] = 100
    queue = make_queue(fake_transport, manual_scheduler)

    queue.enqueue("a@example.com", "Subject", "<p>Body</p>")
    await manual_scheduler.run_until_idle()

    assert fake_transport.calls == ["a@example.com"] * 3
    assert fake_transport.sent == []
    assert queue.pending == 0
    assert get_counter("email.dropped") == 1


@pytest.mark.asyncio
async def test_failed_job_moves_behind_waiting_jobs(fake_transport, manual_scheduler):
    """A always fails, B always succeeds: A, B, A, A then empty."""
    fake_transport.fail_times["a@example.com"] = 100
    queue = make_queue(fake_transport, manual_scheduler)

    queue.enqueue("a@example.com", "A", "<p>A</p>")
    queue.enqueue("b@example.com", "B", "<p>B</p>")

    await manual_scheduler.run_next()
    assert [job["recipient"] for job in queue.snapshot()] == ["b@example.com", "a@example.com"]
    assert queue.snapshot()[1]["attempts"] == 1

    await manual_scheduler.run_next()
    assert [job["recipient"] for job in queue.snapshot()] == ["a@example.com"]

    await manual_scheduler.run_next()
    await manual_scheduler.run_next()

    assert fake_transport.calls == [
        "a@example.com",
        "b@example.com",
        "a@example.com",
        "a@example.com",
    ]
    assert [to for to, _, _ in fake_transport.sent] == ["b@example.com"]
    assert queue.pending == 0
    assert manual_scheduler.later == []
    assert get_counter("email.retry") == 2
    assert get_counter("email.dropped") == 1


@pytest.mark.asyncio
async def test_follow_up_cycles_wait_retry_delay(fake_transport, manual_scheduler):
    fake_transport.fail_times["a@example.com"] = 1
    queue = make_queue(fake_transport, manual_scheduler)
    queue.enqueue("a@example.com", "A", "<p>A</p>")

    first = await manual_scheduler.run_next()
    second = await manual_scheduler.run_next()

    assert (first, second) == (0, 5.0)
    assert queue.pending == 0


def test_enqueue_never_raises_for_failing_transport(fake_transport, manual_scheduler):
    fake_transport.fail_times["a@example.com"] = 100
    queue = make_queue(fake_transport, manual_scheduler)

    assert queue.enqueue("a@example.com", "A", "<p>A</p>") is None


@pytest.mark.asyncio
async def test_unconfigured_transport_completes_job_as_skipped(fake_transport, manual_scheduler):
    fake_transport.configured = False
    queue = make_queue(fake_transport, manual_scheduler)

    queue.enqueue("a@example.com", "A", "<p>A</p>")
    await manual_scheduler.run_until_idle()

    assert fake_transport.calls == ["a@example.com"]
    assert queue.pending == 0
    assert get_counter("email.skipped") == 1
    assert get_counter("email.sent") == 0


@pytest.mark.asyncio
async def test_process_head_on_empty_queue_is_noop(fake_transport, manual_scheduler):
    queue = make_queue(fake_transport, manual_scheduler)

    await queue.process_head()

    assert fake_transport.calls == []
    assert manual_scheduler.later == []
