"""Pydantic schemas for the SoleScan API.

All response models are defined here for easy import.
"""

from solescan.schemas.common import ApiResponse, ErrorDetail, ErrorResponse
from solescan.schemas.sneaker import AggregatedSneakerResponse, ListingResponse
from solescan.schemas.search import SearchMetaResponse, SearchResponse
from solescan.schemas.pricing import (
    BestSizeDealResponse,
    SizePriceResponse,
    SkuPricingResponse,
    SourcePricingResponse,
)
from solescan.schemas.source import RateLimitResponse, SourceResponse
from solescan.schemas.health import HealthCheckResponse

__all__ = [
    # Common
    "ApiResponse",
    "ErrorDetail",
    "ErrorResponse",
    # Sneakers
    "ListingResponse",
    "AggregatedSneakerResponse",
    # Search
    "SearchMetaResponse",
    "SearchResponse",
    # Pricing
    "SizePriceResponse",
    "SourcePricingResponse",
    "BestSizeDealResponse",
    "SkuPricingResponse",
    # Sources
    "RateLimitResponse",
    "SourceResponse",
    # Health
    "HealthCheckResponse",
]
