"""Pytest configuration and shared fixtures."""

from decimal import Decimal
from types import SimpleNamespace

import pytest

from solescan.scrapers.base import Listing
from solescan.scrapers.utils.currency import CurrencyConverter


class FakeClock:
    """Monotonic clock whose sleep advances time instantly."""

    def __init__(self, start: float = 0.0):
        self.now = start
        self.sleeps = []

    def time(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeRedis:
    """In-memory stand-in for redis.asyncio.Redis with EX expiry on a fake clock."""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.store = {}
        self.closed = False

    async def get(self, key):
        entry = self.store.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and self.clock.now >= expires_at:
            del self.store[key]
            return None
        return value

    async def set(self, key, value, ex=None):
        self.store[key] = (value, self.clock.now + ex if ex else None)
        return True

    async def ping(self):
        return True

    async def aclose(self):
        self.closed = True


class FakePage:
    """Scriptable Playwright page.

    ``title()`` reports a challenge interstitial for the first
    ``challenge_checks`` calls, then the real page title.
    """

    def __init__(
        self,
        url: str = "https://stockx.com/en-ca/search?s=dunk",
        html: str = "<html><body>results</body></html>",
        challenge_checks: int = 0,
        challenge_title: str = "Just a moment...",
        goto_error: Exception = None,
        status: int = 200,
    ):
        self.url = url
        self.html = html
        self.challenge_checks = challenge_checks
        self.challenge_title = challenge_title
        self.goto_error = goto_error
        self.status = status
        self.title_calls = 0
        self.goto_calls = []
        self.closed = False

    @property
    def challenged(self) -> bool:
        return self.title_calls <= self.challenge_checks

    async def goto(self, url, wait_until=None, timeout=None):
        self.goto_calls.append((url, wait_until))
        if self.goto_error is not None:
            raise self.goto_error
        return SimpleNamespace(status=self.status)

    async def title(self):
        self.title_calls += 1
        return self.challenge_title if self.challenged else "Search results"

    async def content(self):
        return self.html

    async def wait_for_selector(self, selector, timeout=None):
        return None

    async def click(self, selector, timeout=None):
        return None

    async def close(self):
        self.closed = True


@pytest.fixture
def anyio_backend():
    """Use asyncio as the async backend for tests."""
    return "asyncio"


@pytest.fixture(autouse=True)
def fallback_exchange_rates():
    """Every test converts with the fixed fallback rates (USD -> CAD 1.36)."""
    CurrencyConverter.reset()
    yield
    CurrencyConverter.reset()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_redis(clock: FakeClock) -> FakeRedis:
    return FakeRedis(clock)


@pytest.fixture
def make_listing():
    """Factory for CAD listings with sensible defaults."""

    def _make(
        source: str = "stockx",
        identifier: str = "1",
        name: str = "Nike Dunk Low Panda",
        brand: str = "Nike",
        price: str = "150",
        sku: str = "",
        **kwargs,
    ) -> Listing:
        return Listing(
            id=f"{source}-{identifier}",
            name=name,
            brand=brand,
            source=source,
            price=Decimal(price),
            currency="CAD",
            display_price=Decimal(price),
            url=f"https://example.com/{source}/{identifier}",
            sku=sku,
            **kwargs,
        )

    return _make
