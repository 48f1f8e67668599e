"""Tests for the concurrent search orchestrator."""

import asyncio
from decimal import Decimal
from typing import List, Optional

import pytest

from solescan.core.exceptions import ScraperError
from solescan.scrapers.base import BaseAdapter, Listing, SourcePricing, SourceResult
from solescan.scrapers.factory import AdapterFactory
from solescan.scrapers.orchestrator import SearchOrchestrator
from solescan.scrapers.registry import get_source
from solescan.scrapers.utils.rate_limiter import SourceRateLimiter


def fake_adapter(
    slug: str,
    prices: Optional[List[str]] = None,
    sku: str = "DD1391-100",
    error: Optional[Exception] = None,
    delay: float = 0.0,
    timeout: float = 1.0,
    sizes: Optional[List[tuple]] = None,
):
    """Build an adapter class for ``slug`` with scripted behaviour."""

    class _FakeAdapter(BaseAdapter):
        source_slug = slug
        adapter_type = "structured-api"
        default_timeout = timeout
        supports_sku_lookup = sizes is not None

        async def search(self, query: str) -> List[Listing]:
            if delay:
                await asyncio.sleep(delay)
            if error is not None:
                raise error
            return [
                self.build_listing(
                    identifier=f"item-{i}",
                    name="Nike Dunk Low Panda",
                    brand="Nike",
                    sku=sku,
                    price=Decimal(price),
                    currency="CAD",
                    url=f"https://example.com/{slug}/{i}",
                )
                for i, price in enumerate(prices or [])
            ]

        async def lookup_sku(self, wanted: str) -> Optional[SourcePricing]:
            if delay:
                await asyncio.sleep(delay)
            if error is not None:
                raise error
            return SourcePricing(
                source=slug,
                product_name="Nike Dunk Low Panda",
                product_url=f"https://example.com/{slug}",
                sizes=[
                    self.build_size_price(size=size, price=Decimal(price), currency="CAD", url="u", available=available)
                    for size, price, available in sizes
                ],
            )

    _FakeAdapter.__name__ = f"Fake{slug.title().replace('-', '')}Adapter"
    return _FakeAdapter


class CrashingAdapter(BaseAdapter):
    """Breaks the never-raise contract."""

    source_slug = "haven"
    adapter_type = "structured-api"

    async def search(self, query: str) -> List[Listing]:
        return []

    async def fetch(self, query: str) -> SourceResult:
        raise RuntimeError("adapter bug")


def build_orchestrator(*adapter_classes) -> SearchOrchestrator:
    factory = AdapterFactory(rate_limiter=SourceRateLimiter())
    for adapter_class in adapter_classes:
        factory.register_adapter(adapter_class.source_slug, adapter_class)
    sources = [get_source(adapter_class.source_slug) for adapter_class in adapter_classes]
    return SearchOrchestrator(factory, sources=sources)


# ============================================================================
# TESTS: SEARCH
# ============================================================================

class TestSearch:
    """Tests for SearchOrchestrator.search()."""

    async def test_partial_failure_still_succeeds(self):
        """3 of 5 sources fail in different ways; the 2 successes are aggregated."""
        orchestrator = build_orchestrator(
            fake_adapter("stockx", prices=["180"]),
            fake_adapter("goat", prices=["170"]),
            fake_adapter("grailed", error=ScraperError("grailed", "unexpected payload")),
            fake_adapter("stadium-goods", delay=1.0, timeout=0.05),
            CrashingAdapter,
        )

        outcome = await orchestrator.search("dunk panda")

        assert len(outcome.errors) == 3
        assert {listing.source for listing in outcome.listings} == {"stockx", "goat"}
        assert len(outcome.aggregated) == 1
        assert outcome.aggregated[0].listing_count == 2
        assert outcome.aggregated[0].lowest_price == Decimal("170")

    async def test_error_strings_name_the_source(self):
        orchestrator = build_orchestrator(
            fake_adapter("grailed", error=ScraperError("grailed", "unexpected payload")),
            fake_adapter("stadium-goods", delay=1.0, timeout=0.05),
            CrashingAdapter,
        )

        outcome = await orchestrator.search("dunk")

        assert "Grailed: unexpected payload" in outcome.errors
        assert any(e.startswith("Stadium Goods: timed out") for e in outcome.errors)
        assert "Haven: unexpected error: RuntimeError: adapter bug" in outcome.errors

    async def test_total_failure_returns_empty_result(self):
        orchestrator = build_orchestrator(
            fake_adapter("stockx", error=ScraperError("stockx", "blocked by bot challenge (cloudflare)")),
            fake_adapter("goat", prices=[]),
        )

        outcome = await orchestrator.search("dunk")

        assert outcome.listings == []
        assert outcome.aggregated == []
        assert outcome.errors == [
            "StockX: blocked by bot challenge (cloudflare)",
            "GOAT: No results found",
        ]

    async def test_adapters_run_concurrently(self):
        """Wall time is bounded by the slowest adapter, not the sum."""
        orchestrator = build_orchestrator(
            fake_adapter("stockx", prices=["180"], delay=0.2),
            fake_adapter("goat", prices=["170"], delay=0.2),
            fake_adapter("grailed", prices=["160"], delay=0.2),
        )

        loop = asyncio.get_running_loop()
        started = loop.time()
        outcome = await orchestrator.search("dunk")
        elapsed = loop.time() - started

        assert len(outcome.listings) == 3
        assert elapsed < 0.5

    async def test_missing_adapter_is_reported(self):
        factory = AdapterFactory(rate_limiter=SourceRateLimiter())
        factory.register_adapter("stockx", fake_adapter("stockx", prices=["180"]))
        orchestrator = SearchOrchestrator(factory, sources=[get_source("stockx"), get_source("nrml")])

        outcome = await orchestrator.search("dunk")

        assert outcome.errors == ["NRML: no adapter registered"]
        assert outcome.sources_searched == ["stockx"]

    async def test_each_invocation_takes_a_rate_limit_slot(self):
        orchestrator = build_orchestrator(fake_adapter("nrml", prices=["200"]))
        limiter = orchestrator.rate_limiter.get_limiter("nrml")

        await orchestrator.search("dunk")
        await orchestrator.search("dunk")

        assert limiter.remaining() == limiter.requests - 2

    async def test_synthetic_flag_propagates(self):
        adapter_class = fake_adapter("livestock", prices=[])
        orchestrator = build_orchestrator(adapter_class)
        orchestrator.factory.get_adapter("livestock").synthetic_fallback = True

        outcome = await orchestrator.search("jordan 1 chicago")

        assert outcome.synthetic is True
        assert outcome.errors == []
        assert all(listing.synthetic for listing in outcome.listings)


# ============================================================================
# TESTS: SKU PRICING
# ============================================================================

class TestPriceBySku:
    """Tests for SearchOrchestrator.price_by_sku()."""

    async def test_collects_available_sheets_cheapest_first(self):
        orchestrator = build_orchestrator(
            fake_adapter("goat", sizes=[("10", "260", True), ("9", "240", True)]),
            fake_adapter("flight-club", sizes=[("10", "230", True), ("11", "210", False)]),
            fake_adapter("stockx", prices=["180"]),
        )

        pricing = await orchestrator.price_by_sku("DZ5485-612")

        assert [sheet.source for sheet in pricing.sources] == ["flight-club", "goat"]
        assert pricing.lowest_price == Decimal("230")
        assert pricing.best_deal.source == "flight-club"
        assert pricing.best_deal.size == "10"
        assert pricing.errors == []

    async def test_sizes_sorted_numerically(self):
        orchestrator = build_orchestrator(
            fake_adapter("goat", sizes=[("10.5", "260", True), ("9", "240", True), ("10", "250", True)]),
        )

        pricing = await orchestrator.price_by_sku("DZ5485-612")

        assert [row.size for row in pricing.sources[0].sizes] == ["9", "10", "10.5"]

    async def test_unavailable_sources_become_errors(self):
        orchestrator = build_orchestrator(
            fake_adapter("goat", sizes=[("10", "260", False)]),
            fake_adapter("kickscrew", sizes=[], error=ScraperError("kickscrew", "browser session not configured")),
        )

        pricing = await orchestrator.price_by_sku("DZ5485-612")

        assert pricing.sources == []
        assert pricing.best_deal is None
        assert pricing.lowest_price == Decimal("0")
        assert sorted(pricing.errors) == [
            "GOAT: no sizes available",
            "KicksCrew: browser session not configured",
        ]
