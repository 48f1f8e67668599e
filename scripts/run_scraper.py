"""Manual scraper runner for testing and debugging adapters.

Runs one source adapter, a full orchestrated search, or a SKU size
lookup from the terminal and prints what came back.

Usage:
    python scripts/run_scraper.py --source grailed --query "dunk low panda"
    python scripts/run_scraper.py --all --query "jordan 4 bred"
    python scripts/run_scraper.py --sku DZ5485-612
"""

import argparse
import asyncio
import os
import sys
from decimal import Decimal

# Add backend to path so we can import solescan modules
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "backend"))

from solescan.config import settings
from solescan.core.logging import configure_logging
from solescan.scrapers.factory import AdapterFactory
from solescan.scrapers.navigation import Navigator
from solescan.scrapers.orchestrator import SearchOrchestrator
from solescan.scrapers.register_adapters import register_all_adapters
from solescan.scrapers.registry import SOURCE_REGISTRY
from solescan.scrapers.unblocker import BrowserQLUnblocker
from solescan.scrapers.utils.browser_manager import BrowserManager
from solescan.scrapers.utils.currency import CurrencyConverter


def _format_price(price: Decimal, currency: str = "CAD") -> str:
    if currency in ("CAD", "USD"):
        return f"${price:,.2f} {currency}"
    return f"{price:,.2f} {currency}"


def _banner(title: str) -> None:
    print(f"\n{'='*70}")
    print(f"  {title}")
    print(f"{'='*70}\n")


def build_factory() -> AdapterFactory:
    unblocker = BrowserQLUnblocker() if settings.unblocker_configured else None
    factory = AdapterFactory(
        browser_manager=BrowserManager(),
        navigator=Navigator(unblocker=unblocker),
    )
    register_all_adapters(factory)
    return factory


async def run_source(factory: AdapterFactory, source_slug: str, query: str, limit: int) -> None:
    adapter = factory.get_adapter(source_slug)
    _banner(f"Running {adapter.source_name} ({adapter.adapter_type})")

    result = await adapter.fetch(query)
    if not result.success:
        print(f"❌ {result.source_name}: {result.error}\n")
        return

    marker = " (synthetic)" if result.synthetic else ""
    print(f"✅ Found {len(result.listings)} listings{marker}\n")
    for i, listing in enumerate(result.listings[:limit], 1):
        print(f"[{i}] {listing.name}")
        print(f"    💰 Price: {_format_price(listing.price, listing.currency)}"
              f" -> {_format_price(listing.display_price)}")
        if listing.sku:
            print(f"    🏷️  SKU: {listing.sku}")
        if listing.size:
            print(f"    📏 Size: {listing.size} ({listing.condition})")
        print(f"    🔗 URL: {listing.url[:80]}")
        print()


async def run_all(factory: AdapterFactory, query: str, limit: int) -> None:
    _banner(f"Searching all sources for '{query}'")
    outcome = await SearchOrchestrator(factory).search(query)

    for i, group in enumerate(outcome.aggregated[:limit], 1):
        print(f"[{i}] {group.name} ({group.brand})")
        print(f"    💰 {group.price_range} across {group.listing_count} listings")
        if group.best_deal:
            print(f"    🏆 Best: {group.best_deal.source} at {_format_price(group.best_deal.display_price)}")
        print(f"    🛒 Sources: {', '.join(group.sources)}")
        print()

    _banner("Summary")
    print(f"  Sources searched: {len(outcome.sources_searched)}")
    print(f"  Listings: {len(outcome.listings)}")
    print(f"  Products: {len(outcome.aggregated)}")
    for error in outcome.errors:
        print(f"  ⚠️  {error}")
    print()


async def run_sku(factory: AdapterFactory, sku: str) -> None:
    _banner(f"Size prices for {sku}")
    pricing = await SearchOrchestrator(factory).price_by_sku(sku)

    for sheet in pricing.sources:
        print(f"{sheet.source}: {sheet.product_name or '(unnamed)'}")
        for row in sheet.sizes:
            status = _format_price(row.display_price) if row.available else "sold out"
            print(f"    US {row.size:<6} {status}")
        print()

    if pricing.best_deal:
        deal = pricing.best_deal
        print(f"🏆 Best deal: size {deal.size} on {deal.source} at {_format_price(deal.price)}")
    for error in pricing.errors:
        print(f"⚠️  {error}")
    print()


async def run(args: argparse.Namespace) -> None:
    configure_logging(level=args.log_level)
    await CurrencyConverter.refresh_rates()
    factory = build_factory()
    try:
        if args.sku:
            await run_sku(factory, args.sku)
        elif args.all:
            await run_all(factory, args.query, args.limit)
        else:
            await run_source(factory, args.source, args.query, args.limit)
    finally:
        await factory.close()
        await factory.browser_manager.stop()
        if factory.navigator.unblocker is not None:
            await factory.navigator.unblocker.close()


def main():
    """Parse arguments and run the scraper."""
    parser = argparse.ArgumentParser(
        description="Run SoleScan source adapters from the terminal",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/run_scraper.py --source grailed --query "dunk low panda"
  python scripts/run_scraper.py --all --query "jordan 4 bred"
  python scripts/run_scraper.py --sku DZ5485-612
        """,
    )

    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument("--source", choices=sorted(SOURCE_REGISTRY), help="Run a single source adapter")
    mode.add_argument("--all", action="store_true", help="Run the full orchestrated search")
    mode.add_argument("--sku", help="Look up size-level prices for a style code")

    parser.add_argument("--query", help="Search query (required with --source and --all)")
    parser.add_argument("--limit", type=int, default=10, help="Maximum results to display (default: 10)")
    parser.add_argument("--log-level", default="WARNING", help="Log level (default: WARNING)")

    args = parser.parse_args()
    if not args.sku and not args.query:
        parser.error("--query is required with --source and --all")

    asyncio.run(run(args))


if __name__ == "__main__":
    main()
