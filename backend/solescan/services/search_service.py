"""Search service: the cache-aware entry point the API shell calls.

Reads the result cache before fanning out, and writes successful
results back without making the caller wait for the write.
"""

import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Set

import structlog

from solescan.config import settings
from solescan.core.exceptions import InvalidQueryError
from solescan.scrapers.aggregator import AggregatedSneaker
from solescan.scrapers.orchestrator import SearchOrchestrator, SkuPricing
from solescan.services.cache_service import SearchCacheService

logger = structlog.get_logger(__name__)

MIN_SKU_LENGTH = 3
MAX_SKU_LENGTH = 40


@dataclass
class SearchMeta:
    total: int
    sources_searched: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    cached: bool = False
    synthetic: bool = False
    duration_ms: int = 0
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class SearchResult:
    query: str
    aggregated: List[AggregatedSneaker]
    meta: SearchMeta


class SearchService:
    """Validates input, consults the cache and runs the orchestrator.

    Args:
        orchestrator: Fans queries out to the sources
        cache: Result cache (a disabled cache always misses)
    """

    def __init__(self, orchestrator: SearchOrchestrator, cache: SearchCacheService):
        self.orchestrator = orchestrator
        self.cache = cache
        self._pending_writes: Set[asyncio.Task] = set()
        self.logger = logger.bind(service="search_service")

    @staticmethod
    def validate_query(query: Optional[str]) -> str:
        """Trimmed query, or InvalidQueryError if missing, too short or too long."""
        cleaned = (query or "").strip()
        if len(cleaned) < settings.QUERY_MIN_LENGTH:
            raise InvalidQueryError(
                f"Query must be at least {settings.QUERY_MIN_LENGTH} characters"
            )
        if len(cleaned) > settings.QUERY_MAX_LENGTH:
            raise InvalidQueryError(
                f"Query must be at most {settings.QUERY_MAX_LENGTH} characters"
            )
        return cleaned

    async def search(self, query: str, force_refresh: bool = False) -> SearchResult:
        """Aggregated results for a query.

        Args:
            query: Raw user query
            force_refresh: Skip the cache read (the write still happens)

        Raises:
            InvalidQueryError: If the query fails validation
        """
        cleaned = self.validate_query(query)
        started = time.monotonic()

        if not force_refresh:
            cached = await self.cache.get(cleaned)
            if cached is not None:
                self.logger.info("search_served_from_cache", query=cleaned, groups=len(cached))
                return SearchResult(
                    query=cleaned,
                    aggregated=cached,
                    meta=SearchMeta(
                        total=len(cached),
                        sources_searched=sorted({s for group in cached for s in group.sources}),
                        cached=True,
                        synthetic=any(listing.synthetic for group in cached for listing in group.listings),
                        duration_ms=int((time.monotonic() - started) * 1000),
                    ),
                )

        outcome = await self.orchestrator.search(cleaned)
        if outcome.listings:
            self._schedule_cache_write(cleaned, outcome.aggregated)

        duration_ms = int((time.monotonic() - started) * 1000)
        self.logger.info(
            "search_served",
            query=cleaned,
            groups=len(outcome.aggregated),
            errors=len(outcome.errors),
            duration_ms=duration_ms,
        )
        return SearchResult(
            query=cleaned,
            aggregated=outcome.aggregated,
            meta=SearchMeta(
                total=len(outcome.aggregated),
                sources_searched=outcome.sources_searched,
                errors=outcome.errors,
                synthetic=outcome.synthetic,
                duration_ms=duration_ms,
            ),
        )

    def _schedule_cache_write(self, query: str, aggregated: List[AggregatedSneaker]) -> None:
        task = asyncio.create_task(self.cache.set(query, aggregated))
        self._pending_writes.add(task)
        task.add_done_callback(self._cache_write_done)

    def _cache_write_done(self, task: asyncio.Task) -> None:
        self._pending_writes.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self.logger.warning("cache_set_failed", error=str(exc))

    async def drain(self) -> None:
        """Wait for in-flight cache writes (shutdown and tests)."""
        if self._pending_writes:
            await asyncio.gather(*self._pending_writes, return_exceptions=True)

    async def price_by_sku(self, sku: Optional[str]) -> SkuPricing:
        """Size-level prices for a style code across sources.

        Raises:
            InvalidQueryError: If the SKU is missing or implausibly short/long
        """
        cleaned = (sku or "").strip()
        if len(cleaned) < MIN_SKU_LENGTH or len(cleaned) > MAX_SKU_LENGTH:
            raise InvalidQueryError(
                f"SKU must be between {MIN_SKU_LENGTH} and {MAX_SKU_LENGTH} characters"
            )

        pricing = await self.orchestrator.price_by_sku(cleaned)
        self.logger.info(
            "sku_priced",
            sku=cleaned,
            sources=len(pricing.sources),
            errors=len(pricing.errors),
        )
        return pricing
