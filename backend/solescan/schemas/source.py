"""Source registry response schemas."""

from pydantic import BaseModel, ConfigDict

from solescan.scrapers.registry import AdapterKind, TrustLevel


class RateLimitResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    requests: int
    window_seconds: float


class SourceResponse(BaseModel):
    """Source response schema."""

    model_config = ConfigDict(from_attributes=True)

    slug: str
    name: str
    kind: AdapterKind
    base_url: str
    trust: TrustLevel
    rate_limit: RateLimitResponse
    enabled: bool
    country: str
    currency: str
    has_adapter: bool = False  # Computed field
    supports_sku_lookup: bool = False  # Computed field
