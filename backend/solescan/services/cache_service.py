"""Redis-backed result cache for search queries.

Entries hold the aggregated result array for a normalized query and
expire a fixed TTL after they were written. An unconfigured or
unreachable Redis never fails a search: reads miss and writes are
dropped.
"""

from typing import List, Optional

import structlog
from pydantic import TypeAdapter, ValidationError
from redis.asyncio import Redis, from_url
from redis.exceptions import RedisError

from solescan.scrapers.aggregator import AggregatedSneaker

logger = structlog.get_logger(__name__)

KEY_PREFIX = "solescan:search:"

_results_adapter = TypeAdapter(List[AggregatedSneaker])


def normalize_query(query: str) -> str:
    """Trim, collapse inner whitespace and case-fold a query."""
    return " ".join((query or "").split()).casefold()


class SearchCacheService:
    """Async Redis cache of aggregated search results.

    Args:
        redis_url: Redis connection URL; empty disables the cache
        ttl: Entry lifetime in seconds
        client: Pre-built client (tests), used instead of ``redis_url``
    """

    def __init__(self, redis_url: str, ttl: int = 60, client: Optional[Redis] = None):
        self.redis_url = redis_url
        self.ttl = ttl
        self._redis: Optional[Redis] = client
        self.logger = logger.bind(service="cache_service")

    @property
    def enabled(self) -> bool:
        return self._redis is not None or bool(self.redis_url)

    def _get_redis(self) -> Optional[Redis]:
        """Get or create the Redis client.

        A URL the client rejects disables the cache for the life of the
        service; None is returned from then on.
        """
        if self._redis is None and self.redis_url:
            try:
                self._redis = from_url(
                    self.redis_url,
                    encoding="utf-8",
                    decode_responses=True,
                    socket_connect_timeout=5,
                    socket_timeout=5,
                )
            except ValueError as e:
                self.logger.error("redis_url_invalid", error=str(e))
                self.redis_url = ""
                return None
            self.logger.info("redis_connection_created")
        return self._redis

    @staticmethod
    def key_for(query: str) -> str:
        return f"{KEY_PREFIX}{normalize_query(query)}"

    async def get(self, query: str) -> Optional[List[AggregatedSneaker]]:
        """Cached results for a query, or None on miss, expiry or error."""
        if not self.enabled:
            return None

        redis = self._get_redis()
        if redis is None:
            return None

        key = self.key_for(query)
        try:
            raw = await redis.get(key)
        except RedisError as e:
            self.logger.warning("cache_get_failed", key=key, error=str(e))
            return None

        if raw is None:
            self.logger.debug("cache_miss", key=key)
            return None

        try:
            results = _results_adapter.validate_json(raw)
        except ValidationError as e:
            self.logger.warning("cache_entry_invalid", key=key, errors=e.error_count())
            return None

        self.logger.debug("cache_hit", key=key, groups=len(results))
        return results

    async def set(self, query: str, results: List[AggregatedSneaker]) -> bool:
        """Store results for a query.

        Returns:
            True if written, False when disabled or on error
        """
        if not self.enabled:
            return False

        redis = self._get_redis()
        if redis is None:
            return False

        key = self.key_for(query)
        try:
            payload = _results_adapter.dump_json(results).decode("utf-8")
            await redis.set(key, payload, ex=self.ttl)
        except RedisError as e:
            self.logger.warning("cache_set_failed", key=key, error=str(e))
            return False

        self.logger.debug("cache_set", key=key, ttl=self.ttl, groups=len(results))
        return True

    async def health_check(self) -> bool:
        """Check Redis connectivity.

        Returns:
            True if Redis answered a ping, False if disabled or unreachable
        """
        redis = self._get_redis() if self.enabled else None
        if redis is None:
            return False
        try:
            await redis.ping()
            return True
        except (RedisError, OSError) as e:
            self.logger.error("redis_health_check_failed", error=str(e))
            return False

    async def close(self) -> None:
        """Close the Redis connection on application shutdown."""
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
            self.logger.info("redis_connection_closed")
