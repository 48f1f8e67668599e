"""Listing and aggregated sneaker response schemas."""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class ListingResponse(BaseModel):
    """One source's price for a product."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    brand: str
    source: str
    price: Decimal
    currency: str
    display_price: Decimal
    url: str
    colorway: str = ""
    sku: str = ""
    image_url: str = ""
    retail_price: Optional[Decimal] = None
    condition: str = "new"
    size: Optional[str] = None
    last_updated: datetime
    synthetic: bool = False


class AggregatedSneakerResponse(BaseModel):
    """One product merged across sources."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    brand: str
    colorway: str
    sku: str
    image_url: str
    lowest_price: Decimal
    highest_price: Decimal
    average_price: Decimal
    price_range: str
    listing_count: int
    sources: List[str]
    listings: List[ListingResponse]
    best_deal: Optional[ListingResponse] = None
    retail_price: Optional[Decimal] = None
