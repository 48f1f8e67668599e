"""Base source adapter interface.

All source-specific adapters inherit from BaseAPIAdapter or
BaseScraperAdapter and implement ``search()`` (and optionally
``lookup_sku()``). Callers never use those directly: ``fetch()`` and
``fetch_pricing()`` wrap them with the timeout, error folding and
synthetic-fallback policy, and never raise.
"""

import asyncio
import time
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, List, Optional
from urllib.parse import quote_plus

import httpx
import structlog
from playwright.async_api import Error as PlaywrightError

from solescan.config import settings
from solescan.core.exceptions import RateLimitError, ScraperError, SoleScanException
from solescan.scrapers.registry import SourceConfig, get_source, is_known_source
from solescan.scrapers.utils.currency import to_display_currency
from solescan.scrapers.utils.normalizer import size_sort_key
from solescan.scrapers.utils.retry import http_retrying
from solescan.scrapers.utils.synthetic import find_by_sku, search_catalog, synthetic_size_prices
from solescan.scrapers.utils.user_agents import ACCEPT_JSON, browser_headers

logger = structlog.get_logger(__name__)

CONDITIONS = ("new", "used")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Listing:
    """One price observation from one source (optionally for one size)."""

    id: str  # "<source slug>-<source identifier>"
    name: str
    brand: str
    source: str
    price: Decimal
    currency: str
    display_price: Decimal
    url: str
    colorway: str = ""
    sku: str = ""
    image_url: str = ""
    retail_price: Optional[Decimal] = None
    condition: str = "new"
    size: Optional[str] = None
    last_updated: datetime = field(default_factory=utcnow)
    synthetic: bool = False

    def __post_init__(self):
        """Validate data after initialization."""
        if not self.id:
            raise ValueError("id is required")
        if not self.name:
            raise ValueError("name is required")
        if not is_known_source(self.source):
            raise ValueError(f"Unknown source: {self.source}")
        if self.display_price is None or self.display_price < 0:
            raise ValueError("display_price must be a non-negative Decimal")
        if self.condition not in CONDITIONS:
            raise ValueError(f"Invalid condition: {self.condition}")


@dataclass
class SizePrice:
    """One row of a size-indexed price sheet."""

    size: str
    price: Decimal
    display_price: Decimal
    currency: str
    available: bool
    url: str


@dataclass
class SourcePricing:
    """Size-indexed price sheet for one product on one source.

    Sizes are de-duplicated (first row wins) and kept in ascending numeric
    order whatever order the adapter produced them in.
    ``style_id`` is the style code printed on the product page, when the
    source shows one.
    """

    source: str
    product_name: str = ""
    product_url: str = ""
    image_url: str = ""
    sizes: List[SizePrice] = field(default_factory=list)
    error: Optional[str] = None
    synthetic: bool = False
    style_id: str = ""

    def __post_init__(self):
        unique: Dict[str, SizePrice] = {}
        for row in self.sizes:
            unique.setdefault(row.size, row)
        self.sizes = sorted(unique.values(), key=lambda row: size_sort_key(row.size))

    @property
    def lowest_price(self) -> Decimal:
        """Cheapest converted price among available sizes, zero if none."""
        prices = [row.display_price for row in self.sizes if row.available]
        return min(prices) if prices else Decimal("0")

    @property
    def available(self) -> bool:
        return self.error is None and any(row.available for row in self.sizes)


@dataclass
class SourceResult:
    """Outcome of one adapter invocation.

    ``error`` is set exactly when ``success`` is False.
    """

    success: bool
    source: str
    listings: List[Listing] = field(default_factory=list)
    error: Optional[str] = None
    synthetic: bool = False

    def __post_init__(self):
        if self.success and self.error:
            raise ValueError("a successful result cannot carry an error")
        if not self.success and not self.error:
            raise ValueError("a failed result must describe its error")

    @classmethod
    def ok(cls, source: str, listings: List[Listing], synthetic: bool = False) -> "SourceResult":
        return cls(success=True, source=source, listings=listings, synthetic=synthetic)

    @classmethod
    def failed(cls, source: str, error: str) -> "SourceResult":
        return cls(success=False, source=source, error=error)

    @property
    def source_name(self) -> str:
        return get_source(self.source).name


def describe_failure(exc: BaseException, timeout: Optional[float] = None) -> str:
    """Human-readable reason for an adapter failure."""
    if isinstance(exc, asyncio.TimeoutError):
        return f"timed out after {timeout:g}s" if timeout else "timed out"
    if isinstance(exc, ScraperError):
        return exc.reason
    if isinstance(exc, SoleScanException):
        return exc.message
    if isinstance(exc, httpx.HTTPStatusError):
        return f"network error: HTTP {exc.response.status_code}"
    if isinstance(exc, httpx.HTTPError):
        return f"network error: {exc.__class__.__name__}"
    if isinstance(exc, PlaywrightError):
        return f"browser error: {exc.message.splitlines()[0] if exc.message else exc.__class__.__name__}"
    return f"unexpected error: {exc.__class__.__name__}: {exc}"


class BaseAdapter(ABC):
    """Abstract base class for all source adapters (HTTP and browser).

    Subclasses implement ``search()``, which may raise; the public
    ``fetch()`` wrapper enforces the per-invocation ceiling and turns
    every failure into a SourceResult.
    """

    source_slug: str = ""  # Must be overridden in subclass (e.g., "stockx")
    adapter_type: str = ""  # "structured-api" or "rendered-page"
    default_timeout: float = 15.0
    supports_sku_lookup: bool = False

    def __init__(
        self,
        timeout: Optional[float] = None,
        synthetic_fallback: Optional[bool] = None,
    ):
        """Initialize the adapter with dependency injection points.

        Args:
            timeout: Per-invocation ceiling in seconds
            synthetic_fallback: Degrade to the synthetic catalog instead of
                reporting empty or failed fetches (defaults to whether the
                slug is listed in SYNTHETIC_FALLBACK_SOURCES)
        """
        self.config: SourceConfig = get_source(self.source_slug)
        self.timeout = timeout if timeout is not None else self.default_timeout
        if synthetic_fallback is None:
            synthetic_fallback = self.source_slug in settings.get_synthetic_fallback_sources()
        self.synthetic_fallback = synthetic_fallback
        self.rate_limiter = None  # Injected by factory
        self.logger = logger.bind(adapter=self.source_slug)

    @property
    def source_name(self) -> str:
        return self.config.name

    @abstractmethod
    async def search(self, query: str) -> List[Listing]:
        """Query this source.

        Args:
            query: Free-text search query

        Returns:
            Listings with display prices already computed

        Raises:
            ScraperError: On parse failures, blocks or throttling
            httpx.HTTPError / playwright Error: On transport failures
        """

    async def lookup_sku(self, sku: str) -> Optional[SourcePricing]:
        """Size-level price sheet for a style code, or None if the product isn't listed."""
        raise NotImplementedError(f"{self.source_slug} does not support SKU lookups")

    async def fetch(self, query: str) -> SourceResult:
        """Run ``search()`` under the adapter contract; never raises."""
        try:
            listings = await asyncio.wait_for(self.search(query), timeout=self.timeout)
        except Exception as e:
            reason = describe_failure(e, self.timeout)
            self._log_failure("fetch_failed", e, reason)
            return self._fallback_result(query, reason)

        if not listings:
            return self._fallback_result(query, "No results found")
        return SourceResult.ok(self.source_slug, listings)

    async def fetch_pricing(self, sku: str) -> SourcePricing:
        """Run ``lookup_sku()`` under the adapter contract; never raises."""
        try:
            pricing = await asyncio.wait_for(self.lookup_sku(sku), timeout=self.timeout)
        except Exception as e:
            reason = describe_failure(e, self.timeout)
            self._log_failure("pricing_failed", e, reason)
            return self._fallback_pricing(sku, reason)

        if pricing is None or not pricing.sizes:
            return self._fallback_pricing(sku, "Product not found")
        return pricing

    def _log_failure(self, event: str, exc: Exception, reason: str) -> None:
        if isinstance(exc, (SoleScanException, httpx.HTTPError, PlaywrightError, asyncio.TimeoutError)):
            self.logger.warning(event, reason=reason)
        else:
            self.logger.error(event, reason=reason, exc_info=True)

    def _fallback_result(self, query: str, reason: str) -> SourceResult:
        if not self.synthetic_fallback:
            return SourceResult.failed(self.source_slug, reason)

        listings = self.synthetic_listings(query)
        self.logger.warning("synthetic_fallback_used", reason=reason, listings=len(listings))
        return SourceResult.ok(self.source_slug, listings, synthetic=True)

    def _fallback_pricing(self, sku: str, reason: str) -> SourcePricing:
        entry = find_by_sku(sku) if self.synthetic_fallback else None
        if entry is None:
            return SourcePricing(source=self.source_slug, error=reason)

        self.logger.warning("synthetic_fallback_used", reason=reason, sku=sku)
        search_url = self.search_url(entry.sku)
        return SourcePricing(
            source=self.source_slug,
            product_name=entry.name,
            product_url=search_url,
            sizes=[
                SizePrice(
                    size=size,
                    price=price,
                    display_price=price,
                    currency="CAD",
                    available=available,
                    url=search_url,
                )
                for size, price, available in synthetic_size_prices(self.source_slug, entry)
            ],
            synthetic=True,
        )

    def synthetic_listings(self, query: str) -> List[Listing]:
        """Catalog matches dressed up as this source's listings."""
        # Per-source offset in -15..+15 USD
        variation = (sum(self.source_slug.encode("utf-8")) % 7) * 5 - 15
        listings = []
        for entry in search_catalog(query, price_variation=variation):
            listings.append(
                self.build_listing(
                    identifier=f"synthetic-{entry.sku.lower()}",
                    name=entry.name,
                    brand=entry.brand,
                    colorway=entry.colorway,
                    sku=entry.sku,
                    price=entry.price_cad,
                    currency="CAD",
                    url=self.search_url(entry.name),
                    synthetic=True,
                )
            )
        return listings

    def search_url(self, query: str) -> str:
        """Public search page for a query on this source."""
        return f"{self.config.base_url}/search?q={quote_plus(query)}"

    def build_listing(
        self,
        identifier: str,
        name: str,
        price: Decimal,
        currency: str,
        url: str,
        brand: str = "Unknown",
        **kwargs,
    ) -> Listing:
        """Construct a Listing owned by this source with its display price filled in."""
        return Listing(
            id=f"{self.source_slug}-{identifier}",
            name=name,
            brand=brand,
            source=self.source_slug,
            price=price,
            currency=currency,
            display_price=to_display_currency(price, currency),
            url=url,
            **kwargs,
        )

    def build_size_price(self, size: str, price: Decimal, currency: str, url: str, available: bool = True) -> SizePrice:
        return SizePrice(
            size=str(size),
            price=price,
            display_price=to_display_currency(price, currency),
            currency=currency,
            available=available,
            url=url,
        )

    async def close(self) -> None:
        """Release adapter-owned resources."""


class BaseAPIAdapter(BaseAdapter):
    """Base class for adapters that only need an HTTP client.

    Provides a shared request helper with retries (tenacity), rate-limit
    accounting on retry attempts and 429/403 backoff.
    """

    adapter_type = "structured-api"
    accept = ACCEPT_JSON

    def __init__(
        self,
        http_client: Optional[httpx.AsyncClient] = None,
        max_attempts: Optional[int] = None,
        **kwargs,
    ):
        """Initialize API adapter.

        Args:
            http_client: Client to use (one is created lazily otherwise)
            max_attempts: Attempts per request (defaults to HTTP_MAX_ATTEMPTS)
        """
        kwargs.setdefault("timeout", settings.API_ADAPTER_TIMEOUT)
        super().__init__(**kwargs)
        self.http_client = http_client
        self._owns_client = http_client is None
        self.max_attempts = max_attempts or settings.HTTP_MAX_ATTEMPTS

    def _get_client(self) -> httpx.AsyncClient:
        if self.http_client is None:
            self.http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout, connect=5.0),
                headers=browser_headers(accept=self.accept),
                follow_redirects=True,
            )
        return self.http_client

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        """Send a request, retrying transport errors and throttling.

        The first attempt's rate-limit slot is taken by the orchestrator;
        each retry takes its own.

        Raises:
            RateLimitError: If every attempt was throttled
            httpx.HTTPError: On other failures after retries
        """
        client = self._get_client()
        async for attempt in http_retrying(self.max_attempts):
            with attempt:
                if attempt.retry_state.attempt_number > 1 and self.rate_limiter:
                    await self.rate_limiter.acquire(self.source_slug)

                response = await client.request(method, url, **kwargs)
                if response.status_code in (403, 429):
                    if self.rate_limiter:
                        self.rate_limiter.penalize(self.source_slug)
                    raise RateLimitError(self.source_slug, response.status_code)
                response.raise_for_status()

                if self.rate_limiter:
                    self.rate_limiter.reward(self.source_slug)
                return response

    async def _get_json(self, url: str, **kwargs):
        response = await self._request("GET", url, **kwargs)
        try:
            return response.json()
        except ValueError as e:
            raise ScraperError(self.source_slug, "response was not valid JSON") from e

    async def close(self) -> None:
        if self.http_client is not None and self._owns_client:
            await self.http_client.aclose()
            self.http_client = None


class BaseScraperAdapter(BaseAdapter):
    """Base class for adapters that drive a rendered browser page.

    The browser manager and navigator are injected; every page load goes
    through the navigator so bot challenges are detected, waited out or
    escalated the same way for all sources.
    """

    adapter_type = "rendered-page"

    def __init__(self, browser_manager=None, navigator=None, **kwargs):
        kwargs.setdefault("timeout", settings.BROWSER_ADAPTER_TIMEOUT)
        super().__init__(**kwargs)
        self.browser_manager = browser_manager  # Injected
        self.navigator = navigator  # Injected

    def _require_session(self) -> None:
        if self.browser_manager is None or self.navigator is None:
            raise ScraperError(self.source_slug, "browser session not configured")

    @asynccontextmanager
    async def _navigated_page(self, url: str):
        """Open a page, navigate it through the navigation protocol and yield ``(page, result)``.

        The page is released on every exit path.

        Raises:
            ChallengeBlockedError: If a challenge never cleared and could not be escalated
        """
        self._require_session()
        async with self.browser_manager.page(self.source_slug) as page:
            result = await self.navigator.navigate(page, url, source=self.source_slug)
            result.raise_for_blocked(self.source_slug)
            yield page, result

    async def _render(self, url: str, wait_selector: Optional[str] = None) -> str:
        """Load a URL and return its HTML once ``wait_selector`` (if any) has appeared."""
        started = time.monotonic()
        async with self._navigated_page(url) as (page, result):
            html = result.html
            if wait_selector and not result.escalated:
                try:
                    await page.wait_for_selector(wait_selector, timeout=10000)
                except PlaywrightError:
                    self.logger.info("wait_selector_missing", selector=wait_selector, url=url)
                html = await page.content()

        self.logger.debug(
            "page_rendered",
            url=url,
            escalated=result.escalated,
            polls=result.polls,
            duration_ms=int((time.monotonic() - started) * 1000),
        )
        return html

    async def _session_json(self, url: str, headers: Optional[Dict[str, str]] = None):
        """GET a JSON endpoint with this source's browser cookies.

        Raises:
            RateLimitError: On HTTP 429/403
            ScraperError: On other error statuses or a non-JSON body
        """
        self._require_session()
        context = await self.browser_manager.get_context(self.source_slug)
        response = await context.request.get(url, headers={"Accept": ACCEPT_JSON, **(headers or {})})
        if response.status in (403, 429):
            if self.rate_limiter:
                self.rate_limiter.penalize(self.source_slug)
            raise RateLimitError(self.source_slug, response.status)
        if not response.ok:
            raise ScraperError(self.source_slug, f"HTTP {response.status} from {url}")
        try:
            return await response.json()
        except (PlaywrightError, ValueError) as e:
            raise ScraperError(self.source_slug, "response was not valid JSON") from e
