"""Tests for the Redis-backed result cache."""

from decimal import Decimal

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from solescan.scrapers.aggregator import aggregate
from solescan.services.cache_service import SearchCacheService, normalize_query


@pytest.fixture
def aggregated(make_listing):
    return aggregate([
        make_listing(source="stockx", price="180", sku="DD1391-100", image_url="https://img.example/a.png"),
        make_listing(source="goat", price="165", sku="DD1391-100", size="10"),
    ])


@pytest.fixture
def cache(fake_redis) -> SearchCacheService:
    return SearchCacheService("redis://localhost:6379/0", ttl=60, client=fake_redis)


class BrokenRedis:
    async def get(self, key):
        raise RedisConnectionError("connection refused")

    async def set(self, key, value, ex=None):
        raise RedisConnectionError("connection refused")

    async def ping(self):
        raise RedisConnectionError("connection refused")


class TestNormalizeQuery:
    def test_trims_collapses_and_casefolds(self):
        assert normalize_query("  Jordan   4  BRED ") == "jordan 4 bred"


class TestSearchCacheService:
    """Tests for SearchCacheService."""

    async def test_round_trip(self, cache, aggregated):
        assert await cache.set("dunk panda", aggregated) is True

        cached = await cache.get("dunk panda")

        assert cached == aggregated
        assert cached[0].best_deal.display_price == Decimal("165")

    async def test_keys_ignore_case_and_whitespace(self, cache, aggregated):
        await cache.set("Dunk Panda", aggregated)

        assert await cache.get("  dunk   PANDA ") == aggregated

    async def test_entry_expires_after_ttl(self, cache, aggregated, clock):
        await cache.set("dunk panda", aggregated)

        clock.now += 59
        assert await cache.get("dunk panda") is not None

        clock.now += 1
        assert await cache.get("dunk panda") is None

    async def test_miss(self, cache):
        assert await cache.get("never searched") is None

    async def test_unconfigured_always_misses(self, aggregated):
        cache = SearchCacheService("")

        assert cache.enabled is False
        assert await cache.set("dunk", aggregated) is False
        assert await cache.get("dunk") is None
        assert await cache.health_check() is False

    async def test_redis_errors_are_absorbed(self, aggregated):
        cache = SearchCacheService("redis://localhost:6379/0", client=BrokenRedis())

        assert await cache.set("dunk", aggregated) is False
        assert await cache.get("dunk") is None
        assert await cache.health_check() is False

    async def test_malformed_url_disables_cache(self, aggregated):
        cache = SearchCacheService("localhost:6379")

        assert await cache.health_check() is False
        assert await cache.get("dunk") is None
        assert await cache.set("dunk", aggregated) is False
        assert cache.enabled is False

    async def test_corrupt_entry_is_a_miss(self, cache, fake_redis):
        await fake_redis.set(cache.key_for("dunk"), "not json", ex=60)

        assert await cache.get("dunk") is None

    async def test_close(self, cache, fake_redis):
        await cache.close()

        assert fake_redis.closed is True
