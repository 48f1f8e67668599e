"""Multi-source scraping and aggregation engine.

This package provides:
- The adapter contract and the per-source adapters
- The source registry and the adapter factory
- The orchestrator that fans a query out and the aggregator that merges results
- The navigation protocol that gets rendered pages past bot challenges
"""

from .base import (
    BaseAdapter,
    BaseScraperAdapter,
    BaseAPIAdapter,
    Listing,
    SizePrice,
    SourcePricing,
    SourceResult,
)
from .aggregator import AggregatedSneaker, aggregate
from .factory import AdapterFactory
from .orchestrator import SearchOrchestrator, SearchOutcome, SkuPricing

__all__ = [
    # Base classes
    "BaseAdapter",
    "BaseScraperAdapter",
    "BaseAPIAdapter",
    # Data structures
    "Listing",
    "SizePrice",
    "SourcePricing",
    "SourceResult",
    "AggregatedSneaker",
    # Engine
    "aggregate",
    "AdapterFactory",
    "SearchOrchestrator",
    "SearchOutcome",
    "SkuPricing",
]
