"""Health check endpoint."""

from fastapi import APIRouter, Depends

from solescan.dependencies import get_browser_manager, get_cache
from solescan.schemas import HealthCheckResponse
from solescan.scrapers.utils.browser_manager import BrowserManager
from solescan.services.cache_service import SearchCacheService

router = APIRouter()


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(
    cache: SearchCacheService = Depends(get_cache),
    browser_manager: BrowserManager = Depends(get_browser_manager),
):
    """Return service health status.

    Checks:
    - Redis (result cache), reported "disabled" when not configured
    - Browser (reported "idle" until a rendered-page source first needs it)

    The API keeps serving without either, so status is "degraded" rather
    than an error when the cache is unreachable.
    """
    if not cache.enabled:
        redis_status = "disabled"
    elif await cache.health_check():
        redis_status = "ok"
    else:
        redis_status = "error: ping failed"

    browser_status = "ok" if browser_manager.is_running else "idle"

    services = {"redis": redis_status, "browser": browser_status}
    overall_status = "degraded" if redis_status.startswith("error") else "ok"

    return HealthCheckResponse(
        status=overall_status,
        redis=redis_status,
        browser=browser_status,
        services=services,
    )
