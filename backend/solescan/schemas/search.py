"""Search response schemas."""

from datetime import datetime
from typing import List

from pydantic import BaseModel, ConfigDict

from solescan.schemas.sneaker import AggregatedSneakerResponse


class SearchMetaResponse(BaseModel):
    """How a search result was produced."""

    model_config = ConfigDict(from_attributes=True)

    total: int
    sources_searched: List[str]
    errors: List[str]
    cached: bool
    synthetic: bool
    duration_ms: int
    timestamp: datetime


class SearchResponse(BaseModel):
    """Search response schema."""

    model_config = ConfigDict(from_attributes=True)

    query: str
    aggregated: List[AggregatedSneakerResponse]
    meta: SearchMetaResponse
