"""Scraper utilities for rate limiting, browser sessions, currency and normalization."""

from .rate_limiter import SlidingWindowLimiter, SourceRateLimiter
from .browser_manager import BrowserManager
from .user_agents import (
    get_random_user_agent,
    get_chromium_user_agent,
    browser_headers,
    CHROMIUM_USER_AGENTS,
    HTTP_USER_AGENTS,
)
from .currency import CurrencyConverter, to_display_currency
from .normalizer import (
    PriceNormalizer,
    extract_size,
    extract_style_code,
    infer_brand,
    size_sort_key,
    absolute_url,
)
from .retry import http_retrying, RETRYABLE_HTTP_ERRORS
from .synthetic import SYNTHETIC_CATALOG, CatalogEntry, search_catalog, find_by_sku


__all__ = [
    # Rate limiting
    "SlidingWindowLimiter",
    "SourceRateLimiter",
    # Browser sessions
    "BrowserManager",
    # User agents
    "get_random_user_agent",
    "get_chromium_user_agent",
    "browser_headers",
    "CHROMIUM_USER_AGENTS",
    "HTTP_USER_AGENTS",
    # Currency
    "CurrencyConverter",
    "to_display_currency",
    # Normalization
    "PriceNormalizer",
    "extract_size",
    "extract_style_code",
    "infer_brand",
    "size_sort_key",
    "absolute_url",
    # Retry policy
    "http_retrying",
    "RETRYABLE_HTTP_ERRORS",
    # Synthetic fallback
    "SYNTHETIC_CATALOG",
    "CatalogEntry",
    "search_catalog",
    "find_by_sku",
]
