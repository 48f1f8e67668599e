"""Source-specific adapter implementations.

Each adapter module implements a class that inherits from
BaseAPIAdapter (HTTP client only) or BaseScraperAdapter (rendered
browser pages).
"""

# Rendered-page adapters
from .stockx import StockXAdapter
from .goat import GoatAdapter
from .flight_club import FlightClubAdapter
from .kickscrew import KicksCrewAdapter

# Structured-api adapters
from .stadium_goods import StadiumGoodsAdapter
from .grailed import GrailedAdapter
from .shopify import (
    ShopifyStorefrontAdapter,
    LivestockAdapter,
    HavenAdapter,
    CapsuleAdapter,
    ExclucityAdapter,
    NrmlAdapter,
)

__all__ = [
    # Rendered-page adapters
    "StockXAdapter",
    "GoatAdapter",
    "FlightClubAdapter",
    "KicksCrewAdapter",
    # Structured-api adapters
    "StadiumGoodsAdapter",
    "GrailedAdapter",
    "ShopifyStorefrontAdapter",
    "LivestockAdapter",
    "HavenAdapter",
    "CapsuleAdapter",
    "ExclucityAdapter",
    "NrmlAdapter",
]
