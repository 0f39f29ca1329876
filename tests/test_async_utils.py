"""Tests for async_utils.py: SlidingWindowRateLimiter and call_with_deadline."""

import asyncio

import pytest
from conftest import FakeClock

from animatch.shared.async_utils import SlidingWindowRateLimiter, call_with_deadline
from animatch.shared.exceptions import AdapterTimeoutError, InvalidParameterError

# ============================================================
# SlidingWindowRateLimiter
# ============================================================


class TestSlidingWindowRateLimiter:
    def test_allows_up_to_max_requests(self, clock):
        rl = SlidingWindowRateLimiter(max_requests=3, window=1.0, clock=clock)
        for _ in range(3):
            assert rl.can_proceed()
            assert rl.wait_time() == 0
            rl.record()
        assert rl.can_proceed() is False

    @pytest.mark.parametrize("kwargs", [{"max_requests": 0}, {"max_requests": -1}, {"window": 0}])
    def test_invalid_limits_rejected(self, kwargs):
        with pytest.raises(InvalidParameterError):
            SlidingWindowRateLimiter(**kwargs)

    def test_fourth_call_must_wait(self, clock):
        rl = SlidingWindowRateLimiter(max_requests=3, window=1.0, clock=clock)
        for _ in range(3):
            rl.record()
        assert rl.wait_time() > 0
        assert rl.wait_time() == pytest.approx(1.0)

    def test_window_slides(self, clock):
        rl = SlidingWindowRateLimiter(max_requests=3, window=1.0, clock=clock)
        rl.record()
        clock.advance(0.4)
        rl.record()
        rl.record()
        assert rl.wait_time() == pytest.approx(0.6)

        clock.advance(0.6)  # one second after the first call
        assert rl.can_proceed()
        assert rl.in_window == 2

    def test_old_entries_pruned(self, clock):
        rl = SlidingWindowRateLimiter(max_requests=2, window=60.0, clock=clock)
        rl.record()
        rl.record()
        clock.advance(61)
        assert rl.in_window == 0
        assert rl.wait_time() == 0

    async def test_acquire_waits_then_records(self, monkeypatch):
        clock = FakeClock()
        slept: list[float] = []

        async def fake_sleep(seconds):
            slept.append(seconds)
            clock.advance(seconds)

        monkeypatch.setattr(asyncio, "sleep", fake_sleep)
        rl = SlidingWindowRateLimiter(max_requests=2, window=1.0, clock=clock)

        await rl.acquire()
        await rl.acquire()
        assert slept == []

        await rl.acquire()
        assert slept == [pytest.approx(1.0)]
        assert rl.in_window == 1

    async def test_context_manager(self, clock):
        rl = SlidingWindowRateLimiter(max_requests=5, window=1.0, clock=clock)
        async with rl:
            pass
        assert rl.in_window == 1


# ============================================================
# call_with_deadline
# ============================================================


class TestCallWithDeadline:
    async def test_returns_result(self):
        async def fast():
            return [1, 2]

        assert await call_with_deadline(fast, 1.0, source="anilist") == [1, 2]

    async def test_timeout_cancels_call(self):
        state = {"cancelled": False}

        async def slow():
            try:
                await asyncio.sleep(5)
            except asyncio.CancelledError:
                state["cancelled"] = True
                raise

        with pytest.raises(AdapterTimeoutError) as exc_info:
            await call_with_deadline(slow, 0.05, source="jikan")

        assert exc_info.value.source == "jikan"
        assert state["cancelled"] is True

    async def test_errors_propagate(self):
        async def broken():
            raise ValueError("bad payload")

        with pytest.raises(ValueError, match="bad payload"):
            await call_with_deadline(broken, 1.0, source="kitsu")
