"""FastAPI dependency injection providers.

Long-lived resources are created in the application lifespan and kept on
``app.state``; these providers hand them to route handlers.
"""

from fastapi import Request

from solescan.scrapers.factory import AdapterFactory
from solescan.scrapers.utils.browser_manager import BrowserManager
from solescan.services.cache_service import SearchCacheService
from solescan.services.search_service import SearchService


def get_search_service(request: Request) -> SearchService:
    return request.app.state.search_service


def get_cache(request: Request) -> SearchCacheService:
    return request.app.state.cache


def get_browser_manager(request: Request) -> BrowserManager:
    return request.app.state.browser_manager


def get_adapter_factory(request: Request) -> AdapterFactory:
    return request.app.state.adapter_factory
