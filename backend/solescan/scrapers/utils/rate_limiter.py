"""Rolling-window rate limiter with per-source budgets and 429/403 backoff."""

import asyncio
import time
from collections import deque
from typing import Awaitable, Callable, Deque, Dict, Optional

import structlog

from solescan.config import settings
from solescan.scrapers.registry import get_source

logger = structlog.get_logger(__name__)

Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[None]]


class SlidingWindowLimiter:
    """Allows at most ``requests`` acquisitions in any ``window_seconds`` span.

    Requests over budget are queued, not dropped: ``acquire`` holds the
    lock while it sleeps, so waiters are served in arrival order and the
    check-and-record step is atomic for concurrent queries.

    Upstream throttling (HTTP 429/403) is reported through ``penalize``,
    which imposes an exponentially growing cooldown on top of the window.
    """

    def __init__(
        self,
        requests: int,
        window_seconds: float,
        backoff_base: float = 2.0,
        backoff_max: float = 30.0,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ):
        """Initialize limiter.

        Args:
            requests: Maximum requests per window
            window_seconds: Rolling window length
            backoff_base: First cooldown after a throttling response
            backoff_max: Cooldown ceiling
            clock: Monotonic time source
            sleep: Coroutine used to wait
        """
        self.requests = requests
        self.window_seconds = window_seconds
        self.backoff_base = backoff_base
        self.backoff_max = backoff_max
        self._clock = clock
        self._sleep = sleep
        self._timestamps: Deque[float] = deque()
        self._lock = asyncio.Lock()
        self._penalty_level = 0
        self._cooldown_until = 0.0

    def _prune(self, now: float) -> None:
        while self._timestamps and now - self._timestamps[0] >= self.window_seconds:
            self._timestamps.popleft()

    def _delay(self, now: float) -> float:
        self._prune(now)
        delay = max(0.0, self._cooldown_until - now)
        if len(self._timestamps) >= self.requests:
            delay = max(delay, self._timestamps[0] + self.window_seconds - now)
        return delay

    async def acquire(self) -> float:
        """Wait for a slot and record it.

        Returns:
            Seconds spent waiting (0.0 when a slot was free)
        """
        waited = 0.0
        async with self._lock:
            while True:
                now = self._clock()
                delay = self._delay(now)
                if delay <= 0:
                    self._timestamps.append(now)
                    return waited
                await self._sleep(delay)
                waited += delay

    def penalize(self) -> float:
        """Register an upstream throttling response.

        Returns:
            Cooldown imposed, in seconds
        """
        self._penalty_level += 1
        cooldown = min(self.backoff_base * (2 ** (self._penalty_level - 1)), self.backoff_max)
        self._cooldown_until = max(self._cooldown_until, self._clock() + cooldown)
        return cooldown

    def reset_backoff(self) -> None:
        """Forget escalation after a successful response."""
        self._penalty_level = 0

    def remaining(self) -> int:
        """Free slots in the current window."""
        self._prune(self._clock())
        return max(0, self.requests - len(self._timestamps))

    @property
    def penalty_level(self) -> int:
        return self._penalty_level


class SourceRateLimiter:
    """Per-source limiter keyed by registry slug.

    Each source gets its own window sized from its registry budget, so a
    slow or throttled source never delays the others.
    """

    def __init__(
        self,
        backoff_base: Optional[float] = None,
        backoff_max: Optional[float] = None,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ):
        self.backoff_base = settings.RATE_LIMIT_BACKOFF_BASE if backoff_base is None else backoff_base
        self.backoff_max = settings.RATE_LIMIT_BACKOFF_MAX if backoff_max is None else backoff_max
        self._clock = clock
        self._sleep = sleep
        self._limiters: Dict[str, SlidingWindowLimiter] = {}

    def get_limiter(self, slug: str) -> SlidingWindowLimiter:
        """Get or create the limiter for a source.

        Raises:
            KeyError: If the slug is not in the registry
        """
        limiter = self._limiters.get(slug)
        if limiter is None:
            budget = get_source(slug).rate_limit
            limiter = SlidingWindowLimiter(
                requests=budget.requests,
                window_seconds=budget.window_seconds,
                backoff_base=self.backoff_base,
                backoff_max=self.backoff_max,
                clock=self._clock,
                sleep=self._sleep,
            )
            self._limiters[slug] = limiter
        return limiter

    async def acquire(self, slug: str) -> float:
        """Wait until ``slug`` has budget; returns seconds deferred."""
        waited = await self.get_limiter(slug).acquire()
        if waited > 0:
            logger.info("rate_limit_deferred", source=slug, waited_s=round(waited, 3))
        return waited

    def penalize(self, slug: str) -> float:
        cooldown = self.get_limiter(slug).penalize()
        logger.warning("rate_limit_backoff", source=slug, cooldown_s=cooldown)
        return cooldown

    def reward(self, slug: str) -> None:
        self.get_limiter(slug).reset_backoff()
