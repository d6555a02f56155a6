"""Unit tests for the sliding-window rate limiter."""
import asyncio

import pytest

from quotestream.chat import RateLimiter, ResetTimer


class TestRateLimiter:
    """Tests for RateLimiter."""

    def test_admits_up_to_limit(self, fake_clock):
        limiter = RateLimiter(max_requests=10, window_seconds=60, clock=fake_clock)

        results = [limiter.try_admit() for _ in range(10)]

        assert all(results)
        assert not limiter.is_blocked

    def test_eleventh_request_in_window_is_rejected(self, fake_clock):
        limiter = RateLimiter(max_requests=10, window_seconds=60, clock=fake_clock)
        for _ in range(10):
            fake_clock.advance(1)
            assert limiter.try_admit()

        fake_clock.advance(1)
        assert limiter.try_admit() is False
        assert limiter.is_blocked

    def test_block_lasts_one_window_from_rejection(self, fake_clock):
        limiter = RateLimiter(max_requests=2, window_seconds=60, clock=fake_clock)
        limiter.try_admit()
        limiter.try_admit()
        fake_clock.advance(30)
        assert limiter.try_admit() is False

        # The original requests have expired, but the block still holds
        fake_clock.advance(40)
        assert limiter.is_blocked
        assert limiter.try_admit() is False

    def test_unblocks_after_window(self, fake_clock):
        limiter = RateLimiter(max_requests=2, window_seconds=60, clock=fake_clock)
        limiter.try_admit()
        limiter.try_admit()
        assert limiter.try_admit() is False

        fake_clock.advance(60)
        assert not limiter.is_blocked
        assert limiter.try_admit() is True

    def test_old_requests_leave_the_window(self, fake_clock):
        limiter = RateLimiter(max_requests=2, window_seconds=60, clock=fake_clock)
        assert limiter.try_admit()
        fake_clock.advance(59)
        assert limiter.try_admit()
        fake_clock.advance(1)
        assert limiter.try_admit()

    def test_explicit_instant(self):
        limiter = RateLimiter(max_requests=1, window_seconds=10, clock=lambda: 0.0)
        assert limiter.try_admit(now=0.0)
        assert limiter.try_admit(now=5.0) is False
        assert limiter.try_admit(now=15.0) is True

    def test_rejects_invalid_configuration(self):
        with pytest.raises(ValueError):
            RateLimiter(max_requests=0)
        with pytest.raises(ValueError):
            RateLimiter(window_seconds=0)

    def test_rejection_without_loop_schedules_nothing(self, fake_clock):
        limiter = RateLimiter(max_requests=1, window_seconds=60, clock=fake_clock)
        limiter.try_admit()
        assert limiter.try_admit() is False
        limiter.close()

    @pytest.mark.asyncio
    async def test_unblock_callback_fires(self):
        unblocked = asyncio.Event()
        limiter = RateLimiter(max_requests=1, window_seconds=0.05, on_unblock=unblocked.set)

        assert limiter.try_admit()
        assert limiter.try_admit() is False

        await asyncio.wait_for(unblocked.wait(), timeout=2)
        assert not limiter.is_blocked
        limiter.close()

    @pytest.mark.asyncio
    async def test_close_cancels_pending_unblock(self):
        calls = []
        limiter = RateLimiter(max_requests=1, window_seconds=0.05, on_unblock=lambda: calls.append(1))
        limiter.try_admit()
        limiter.try_admit()

        limiter.close()
        await asyncio.sleep(0.1)

        assert calls == []


class TestResetTimer:
    """Tests for ResetTimer."""

    def test_schedule_without_loop_is_noop(self):
        timer = ResetTimer()
        timer.schedule(1.0, lambda: None)
        assert not timer.pending

    @pytest.mark.asyncio
    async def test_reschedule_replaces_pending_call(self):
        calls = []
        timer = ResetTimer()
        timer.schedule(0.01, lambda: calls.append("first"))
        timer.schedule(0.02, lambda: calls.append("second"))

        await asyncio.sleep(0.1)

        assert calls == ["second"]
        assert not timer.pending
