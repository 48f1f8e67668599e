"""Sources API endpoints."""

from typing import List

from fastapi import APIRouter, Depends

from solescan.dependencies import get_adapter_factory
from solescan.schemas import ApiResponse, SourceResponse
from solescan.scrapers.factory import AdapterFactory
from solescan.scrapers.registry import SOURCE_REGISTRY

router = APIRouter()


@router.get("", response_model=ApiResponse[List[SourceResponse]])
async def list_sources(factory: AdapterFactory = Depends(get_adapter_factory)):
    """List every marketplace in the registry with its adapter status."""
    sources = []
    for config in SOURCE_REGISTRY.values():
        source = SourceResponse.model_validate(config)
        source.has_adapter = factory.has_adapter(config.slug)
        adapter = factory.get_adapter(config.slug) if source.has_adapter else None
        source.supports_sku_lookup = bool(adapter and adapter.supports_sku_lookup)
        sources.append(source)

    return ApiResponse(status="success", data=sources)
