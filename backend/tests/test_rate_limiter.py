"""Tests for the rolling-window rate limiter."""

import asyncio

import pytest

from solescan.scrapers.utils.rate_limiter import SlidingWindowLimiter, SourceRateLimiter


def make_limiter(clock, requests=2, window_seconds=60.0, **kwargs) -> SlidingWindowLimiter:
    return SlidingWindowLimiter(
        requests=requests,
        window_seconds=window_seconds,
        clock=clock.time,
        sleep=clock.sleep,
        **kwargs,
    )


class TestSlidingWindowLimiter:
    """Tests for SlidingWindowLimiter."""

    async def test_within_budget_does_not_wait(self, clock):
        limiter = make_limiter(clock)

        assert await limiter.acquire() == 0.0
        assert await limiter.acquire() == 0.0
        assert limiter.remaining() == 0

    async def test_over_budget_is_deferred_not_dropped(self, clock):
        limiter = make_limiter(clock)
        await limiter.acquire()
        clock.now = 10.0
        await limiter.acquire()

        waited = await limiter.acquire()

        # Oldest slot (t=0) leaves the window at t=60
        assert waited == pytest.approx(50.0)
        assert clock.now == pytest.approx(60.0)

    async def test_window_rolls(self, clock):
        limiter = make_limiter(clock)
        await limiter.acquire()
        await limiter.acquire()

        clock.now = 61.0

        assert limiter.remaining() == 2
        assert await limiter.acquire() == 0.0

    async def test_concurrent_acquires_are_atomic(self, clock):
        limiter = make_limiter(clock, requests=5)

        waits = await asyncio.gather(*(limiter.acquire() for _ in range(6)))

        assert sorted(waits) == [0.0] * 5 + [60.0]
        assert limiter.remaining() == 4

    async def test_penalize_escalates_and_caps(self, clock):
        limiter = make_limiter(clock, backoff_base=2.0, backoff_max=10.0)

        cooldowns = [limiter.penalize() for _ in range(5)]

        assert cooldowns == [2.0, 4.0, 8.0, 10.0, 10.0]
        assert limiter.penalty_level == 5

    async def test_cooldown_delays_next_acquire(self, clock):
        limiter = make_limiter(clock, requests=10, backoff_base=2.0)
        limiter.penalize()

        waited = await limiter.acquire()

        assert waited == pytest.approx(2.0)

    async def test_reset_backoff(self, clock):
        limiter = make_limiter(clock, backoff_base=2.0)
        limiter.penalize()
        limiter.penalize()

        limiter.reset_backoff()

        assert limiter.penalty_level == 0
        assert limiter.penalize() == 2.0


class TestSourceRateLimiter:
    """Tests for per-source budgets."""

    def test_budgets_come_from_registry(self, clock):
        limiters = SourceRateLimiter(clock=clock.time, sleep=clock.sleep)

        assert limiters.get_limiter("stockx").requests == 10
        assert limiters.get_limiter("nrml").requests == 5
        assert limiters.get_limiter("nrml").window_seconds == 60

    def test_unknown_source(self, clock):
        limiters = SourceRateLimiter(clock=clock.time, sleep=clock.sleep)

        with pytest.raises(KeyError):
            limiters.get_limiter("not-a-source")

    async def test_sources_are_independent(self, clock):
        limiters = SourceRateLimiter(clock=clock.time, sleep=clock.sleep)
        for _ in range(5):
            await limiters.acquire("nrml")

        assert await limiters.acquire("haven") == 0.0
        assert limiters.get_limiter("nrml").remaining() == 0

    def test_penalize_and_reward(self, clock):
        limiters = SourceRateLimiter(backoff_base=1.0, backoff_max=30.0, clock=clock.time, sleep=clock.sleep)

        assert limiters.penalize("goat") == 1.0
        assert limiters.penalize("goat") == 2.0
        limiters.reward("goat")

        assert limiters.get_limiter("goat").penalty_level == 0
