"""Fan a query out to every enabled source and merge what comes back.

Adapters run concurrently as independent tasks. Each invocation takes a
rate-limit slot for its source and is bounded by the adapter's own
timeout (time spent deferred by the limiter counts against it). Failures
of any kind are recorded per source; the batch itself never fails.
"""

import asyncio
import time
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Awaitable, Callable, List, Optional, Sequence, Tuple

import structlog

from solescan.scrapers.aggregator import AggregatedSneaker, aggregate
from solescan.scrapers.base import BaseAdapter, Listing, SourcePricing, SourceResult, describe_failure
from solescan.scrapers.factory import AdapterFactory
from solescan.scrapers.registry import SourceConfig, enabled_sources

logger = structlog.get_logger(__name__)


@dataclass
class SearchOutcome:
    """Result of one orchestrated search."""

    listings: List[Listing] = field(default_factory=list)
    aggregated: List[AggregatedSneaker] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    sources_searched: List[str] = field(default_factory=list)
    synthetic: bool = False


@dataclass
class BestSizeDeal:
    source: str
    size: str
    price: Decimal
    url: str


@dataclass
class SkuPricing:
    """Size-level prices for one style code across sources."""

    sku: str
    sources: List[SourcePricing] = field(default_factory=list)
    lowest_price: Decimal = Decimal("0")
    best_deal: Optional[BestSizeDeal] = None
    errors: List[str] = field(default_factory=list)


class SearchOrchestrator:
    """Runs adapters for every enabled registry entry.

    Args:
        factory: Supplies configured adapters and the shared rate limiter
        sources: Registry entries to consider (all enabled entries if omitted)
    """

    def __init__(self, factory: AdapterFactory, sources: Optional[Sequence[SourceConfig]] = None):
        self.factory = factory
        self.rate_limiter = factory.rate_limiter
        self._sources = list(sources) if sources is not None else None

    @property
    def sources(self) -> List[SourceConfig]:
        configs = self._sources if self._sources is not None else enabled_sources()
        return [config for config in configs if config.enabled]

    def _adapters(self, errors: List[str]) -> List[Tuple[SourceConfig, BaseAdapter]]:
        pairs = []
        for config in self.sources:
            adapter = self.factory.get_adapter(config.slug)
            if adapter is None:
                errors.append(f"{config.name}: no adapter registered")
                continue
            pairs.append((config, adapter))
        return pairs

    async def _settle(
        self,
        config: SourceConfig,
        adapter: BaseAdapter,
        call: Callable[[], Awaitable],
    ) -> Tuple[Optional[object], Optional[str], str]:
        """Run one rate-limited, time-bounded adapter call to a terminal state.

        Returns:
            (value, error, outcome) where outcome is "success", "timeout" or "exception"
        """

        async def limited():
            await self.rate_limiter.acquire(config.slug)
            return await call()

        try:
            value = await asyncio.wait_for(limited(), timeout=adapter.timeout)
        except asyncio.TimeoutError:
            return None, f"timed out after {adapter.timeout:g}s", "timeout"
        except Exception as e:
            logger.error("source_crashed", source=config.slug, exc_info=True)
            return None, describe_failure(e), "exception"
        return value, None, "success"

    async def _search_source(self, config: SourceConfig, adapter: BaseAdapter, query: str) -> SourceResult:
        started = time.monotonic()
        result, error, outcome = await self._settle(config, adapter, lambda: adapter.fetch(query))
        if result is None:
            result = SourceResult.failed(config.slug, error)
        elif not result.success:
            outcome = "failed"

        logger.info(
            "source_settled",
            source=config.slug,
            duration_ms=int((time.monotonic() - started) * 1000),
            outcome=outcome,
            listings=len(result.listings),
            error=result.error,
            synthetic=result.synthetic,
        )
        return result

    async def search(self, query: str) -> SearchOutcome:
        """Query every enabled source concurrently and aggregate the successes.

        Never raises: failing sources become ``"<source name>: <reason>"``
        entries in ``errors``.
        """
        errors: List[str] = []
        pairs = self._adapters(errors)

        results = await asyncio.gather(
            *(self._search_source(config, adapter, query) for config, adapter in pairs)
        )

        listings: List[Listing] = []
        synthetic = False
        for (config, _), result in zip(pairs, results):
            if result.success:
                listings.extend(result.listings)
                synthetic = synthetic or result.synthetic
            else:
                errors.append(f"{config.name}: {result.error}")

        aggregated = aggregate(listings)
        logger.info(
            "search_completed",
            query=query,
            sources=len(pairs),
            listings=len(listings),
            groups=len(aggregated),
            errors=len(errors),
        )
        return SearchOutcome(
            listings=listings,
            aggregated=aggregated,
            errors=errors,
            sources_searched=[config.slug for config, _ in pairs],
            synthetic=synthetic,
        )

    async def _price_source(self, config: SourceConfig, adapter: BaseAdapter, sku: str) -> SourcePricing:
        started = time.monotonic()
        pricing, error, outcome = await self._settle(config, adapter, lambda: adapter.fetch_pricing(sku))
        if pricing is None:
            pricing = SourcePricing(source=config.slug, error=error)
        elif not pricing.available:
            outcome = "failed"

        logger.info(
            "source_settled",
            source=config.slug,
            duration_ms=int((time.monotonic() - started) * 1000),
            outcome=outcome,
            sizes=len(pricing.sizes),
            error=pricing.error,
        )
        return pricing

    async def price_by_sku(self, sku: str) -> SkuPricing:
        """Size-level prices for a style code from every source that supports lookups.

        Never raises: sources without an available sheet become entries
        in ``errors``; sheets are ordered cheapest first.
        """
        errors: List[str] = []
        pairs = [
            (config, adapter)
            for config, adapter in self._adapters(errors)
            if adapter.supports_sku_lookup
        ]

        sheets = await asyncio.gather(
            *(self._price_source(config, adapter, sku) for config, adapter in pairs)
        )

        available: List[SourcePricing] = []
        for (config, _), sheet in zip(pairs, sheets):
            if sheet.available:
                available.append(sheet)
            else:
                errors.append(f"{config.name}: {sheet.error or 'no sizes available'}")
        available.sort(key=lambda sheet: sheet.lowest_price)

        best: Optional[BestSizeDeal] = None
        for sheet in available:
            for row in sheet.sizes:
                if row.available and (best is None or row.display_price < best.price):
                    best = BestSizeDeal(source=sheet.source, size=row.size, price=row.display_price, url=row.url)

        return SkuPricing(
            sku=sku,
            sources=available,
            lowest_price=best.price if best else Decimal("0"),
            best_deal=best,
            errors=errors,
        )
