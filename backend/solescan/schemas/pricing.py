"""SKU price lookup response schemas."""

from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class SizePriceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    size: str
    price: Decimal
    display_price: Decimal
    currency: str
    available: bool
    url: str


class SourcePricingResponse(BaseModel):
    """Size sheet for one source."""

    model_config = ConfigDict(from_attributes=True)

    source: str
    product_name: str
    product_url: str
    image_url: str
    lowest_price: Decimal
    sizes: List[SizePriceResponse]
    synthetic: bool = False
    style_id: str = ""


class BestSizeDealResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    source: str
    size: str
    price: Decimal
    url: str


class SkuPricingResponse(BaseModel):
    """Size-level prices for one style code across sources."""

    model_config = ConfigDict(from_attributes=True)

    sku: str
    sources: List[SourcePricingResponse]
    lowest_price: Decimal
    best_deal: Optional[BestSizeDealResponse] = None
    errors: List[str]
