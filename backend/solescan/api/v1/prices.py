"""Size-level price lookup endpoint."""

from fastapi import APIRouter, Depends, Query

from solescan.dependencies import get_search_service
from solescan.schemas import SkuPricingResponse
from solescan.services.search_service import SearchService

router = APIRouter()


@router.get("", response_model=SkuPricingResponse)
async def prices_by_sku(
    sku: str = Query("", description="Manufacturer style code, e.g. DZ5485-612"),
    service: SearchService = Depends(get_search_service),
):
    """Per-size prices for a style code from every source that lists sizes."""
    pricing = await service.price_by_sku(sku)
    return SkuPricingResponse.model_validate(pricing)
