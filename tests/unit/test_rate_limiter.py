"""Unit tests for the sliding-window rate tracker"""

from __future__ import annotations

import pytest

from officehub.infrastructure.rate_limiter import RateLimitTracker


class FakeClock:
    def __init__(self) -> None:
        self.now = 500.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


def test_allows_max_requests_then_rejects(clock):
    tracker = RateLimitTracker(window_seconds=60, max_requests=3, clock=clock)

    assert [tracker.track("ip-1") for _ in range(3)] == [True, True, True]
    assert tracker.track("ip-1") is False
    assert tracker.count("ip-1") == 3


def test_rejected_calls_are_not_recorded(clock):
    tracker = RateLimitTracker(window_seconds=60, max_requests=1, clock=clock)

    tracker.track("ip-1")
    for _ in range(5):
        tracker.track("ip-1")

    assert tracker.count("ip-1") == 1


def test_window_slides(clock):
    tracker = RateLimitTracker(window_seconds=60, max_requests=2, clock=clock)
    tracker.track("ip-1")
    clock.now += 30
    tracker.track("ip-1")
    assert tracker.track("ip-1") is False

    # First request leaves the window, one slot frees up
    clock.now += 30
    assert tracker.track("ip-1") is True
    assert tracker.track("ip-1") is False


def test_identifiers_are_independent(clock):
    tracker = RateLimitTracker(window_seconds=60, max_requests=1, clock=clock)

    assert tracker.track("ip-1") is True
    assert tracker.track("ip-2") is True
    assert tracker.track("ip-1") is False
    assert tracker.remaining("ip-2") == 0
    assert tracker.remaining("ip-3") == 1


def test_reset_clears_identifier(clock):
    tracker = RateLimitTracker(window_seconds=60, max_requests=1, clock=clock)
    tracker.track("ip-1")

    tracker.reset("ip-1")
    tracker.reset("never-seen")

    assert tracker.track("ip-1") is True


def test_cleanup_prunes_and_drops_empty(clock):
    tracker = RateLimitTracker(window_seconds=60, max_requests=5, clock=clock)
    tracker.track("old")
    clock.now += 45
    tracker.track("recent")
    clock.now += 30

    assert tracker.cleanup() == 1
    assert len(tracker) == 1
    assert tracker.count("recent") == 1


def test_identifier_count_is_bounded(clock):
    tracker = RateLimitTracker(window_seconds=60, max_requests=5, max_identifiers=3, clock=clock)

    for i in range(10):
        tracker.track(f"ip-{i}")

    assert len(tracker) == 3
