"""Register all source adapters with a factory.

Called once during application startup (and by the manual runner).
"""

import structlog

from solescan.scrapers.factory import AdapterFactory
from solescan.scrapers.adapters import (
    # Rendered-page adapters
    StockXAdapter,
    GoatAdapter,
    FlightClubAdapter,
    KicksCrewAdapter,
    # Structured-api adapters
    StadiumGoodsAdapter,
    GrailedAdapter,
    LivestockAdapter,
    HavenAdapter,
    CapsuleAdapter,
    ExclucityAdapter,
    NrmlAdapter,
)

logger = structlog.get_logger(__name__)

ADAPTER_CLASSES = [
    StockXAdapter,
    GoatAdapter,
    FlightClubAdapter,
    KicksCrewAdapter,
    StadiumGoodsAdapter,
    GrailedAdapter,
    LivestockAdapter,
    HavenAdapter,
    CapsuleAdapter,
    ExclucityAdapter,
    NrmlAdapter,
]


def register_all_adapters(factory: AdapterFactory) -> None:
    """Register every known adapter class under its source slug."""
    for adapter_class in ADAPTER_CLASSES:
        factory.register_adapter(adapter_class.source_slug, adapter_class)

    logger.info(
        "all_adapters_registered",
        count=len(factory.get_registered_sources()),
        sources=factory.get_registered_sources(),
    )
