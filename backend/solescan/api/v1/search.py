"""Search API endpoints."""

from fastapi import APIRouter, Depends, Query

from solescan.dependencies import get_search_service
from solescan.schemas import SearchResponse
from solescan.services.search_service import SearchService

router = APIRouter()


@router.get("", response_model=SearchResponse)
async def search(
    q: str = Query("", description="Sneaker name, model or style code"),
    refresh: bool = Query(False, description="Bypass cached results"),
    service: SearchService = Depends(get_search_service),
):
    """Search every enabled source and return merged, ranked products.

    Results are cached briefly per query (case and whitespace
    insensitive). Failing sources are listed in ``meta.errors`` rather
    than failing the request; only an invalid query returns 400.
    """
    result = await service.search(q, force_refresh=refresh)
    return SearchResponse.model_validate(result)
