"""Services sitting between the HTTP shell and the scraping engine."""

from solescan.services.cache_service import SearchCacheService, normalize_query
from solescan.services.search_service import SearchMeta, SearchResult, SearchService

__all__ = [
    "SearchCacheService",
    "normalize_query",
    "SearchMeta",
    "SearchResult",
    "SearchService",
]
