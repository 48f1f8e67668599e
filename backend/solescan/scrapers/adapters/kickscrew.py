"""KicksCrew adapter.

Rendered-page source: the search grid lists product cards, and the
product page exposes sizes through a size picker that has to be opened
before its options are in the DOM.
"""

from decimal import Decimal
from typing import List, Optional
from urllib.parse import quote_plus

from bs4 import BeautifulSoup
from playwright.async_api import Error as PlaywrightError

from solescan.scrapers.base import BaseScraperAdapter, Listing, SourcePricing
from solescan.scrapers.utils.normalizer import (
    PriceNormalizer,
    absolute_url,
    extract_style_code,
    infer_brand,
)

SEARCH_URL = "https://www.kickscrew.com/en-CA/search?q={query}"
PRODUCT_LINK_SELECTOR = 'a[href*="/products/"]'
SIZE_PICKER_SELECTOR = ".size-picker"
SIZE_OPTION_SELECTOR = '[data-testid^="size-option-"]'
MAX_RESULTS = 20
MIN_PRICE = Decimal("50")
MAX_PRICE = Decimal("5000")


class KicksCrewAdapter(BaseScraperAdapter):
    """KicksCrew search and size-level price scraper."""

    source_slug = "kickscrew"
    supports_sku_lookup = True

    async def search(self, query: str) -> List[Listing]:
        html = await self._render(SEARCH_URL.format(query=quote_plus(query)), wait_selector=PRODUCT_LINK_SELECTOR)
        return self.parse_search_results(html)

    def parse_search_results(self, html: str) -> List[Listing]:
        soup = BeautifulSoup(html, "html.parser")
        listings: List[Listing] = []
        seen = set()

        for link in soup.select(f"li {PRODUCT_LINK_SELECTOR}"):
            href = (link.get("href") or "").split("?")[0]
            handle = href.rstrip("/").split("/")[-1]
            if not handle or handle in seen:
                continue

            title = link.select_one("h2, h3, [class*='title']")
            name = title.get_text(strip=True) if title else ""
            price_el = link.select_one("[class*='price']")
            price = PriceNormalizer.clean_price_string(price_el.get_text(" ", strip=True) if price_el else "")
            if not name or not PriceNormalizer.within_bounds(price, MIN_PRICE, MAX_PRICE):
                continue

            img = link.find("img")
            seen.add(handle)
            listings.append(
                self.build_listing(
                    identifier=handle,
                    name=name,
                    brand=infer_brand(name),
                    sku=extract_style_code(handle),
                    price=price,
                    currency="CAD",
                    url=absolute_url(self.config.base_url, href),
                    image_url=(img.get("src") or img.get("data-src") or "") if img else "",
                )
            )
            if len(listings) >= MAX_RESULTS:
                break

        return listings

    def find_product_url(self, html: str, sku: str) -> Optional[str]:
        soup = BeautifulSoup(html, "html.parser")
        wanted = "".join(ch for ch in sku.lower() if ch.isalnum())
        links = soup.select(PRODUCT_LINK_SELECTOR)
        for link in links:
            if wanted and wanted in "".join(ch for ch in link.get("href", "").lower() if ch.isalnum()):
                return absolute_url(self.config.base_url, link["href"])
        return absolute_url(self.config.base_url, links[0]["href"]) if links else None

    def parse_size_sheet(self, html: str, product_url: str) -> SourcePricing:
        soup = BeautifulSoup(html, "html.parser")
        heading = soup.find("h1")

        sizes = []
        for option in soup.select(SIZE_OPTION_SELECTOR):
            size_el = option.select_one(".font-semibold")
            size = size_el.get_text(strip=True) if size_el else ""
            if not size:
                continue
            price_el = option.select_one(".text-sm:not(.font-semibold), .text-xs")
            price = PriceNormalizer.clean_price_string(price_el.get_text(strip=True) if price_el else "")
            available = option.get("data-available") == "true" and bool(price)
            sizes.append(
                self.build_size_price(
                    size=size,
                    price=price or Decimal("0"),
                    currency="CAD",
                    url=product_url,
                    available=available,
                )
            )

        return SourcePricing(
            source=self.source_slug,
            product_name=heading.get_text(strip=True) if heading else "",
            product_url=product_url,
            sizes=sizes,
        )

    async def lookup_sku(self, sku: str) -> Optional[SourcePricing]:
        search_html = await self._render(SEARCH_URL.format(query=quote_plus(sku)), wait_selector=PRODUCT_LINK_SELECTOR)
        product_url = self.find_product_url(search_html, sku)
        if not product_url:
            self.logger.info("kickscrew_product_not_found", sku=sku)
            return None

        async with self._navigated_page(product_url) as (page, result):
            html = result.html
            if not result.escalated:
                try:
                    await page.click(SIZE_PICKER_SELECTOR, timeout=10000)
                    await page.wait_for_selector(SIZE_OPTION_SELECTOR, timeout=10000)
                except PlaywrightError as e:
                    self.logger.info("kickscrew_size_picker_unavailable", url=product_url, error=e.message)
                html = await page.content()

        pricing = self.parse_size_sheet(html, product_url)
        self.logger.info("kickscrew_sizes_parsed", sku=sku, sizes=len(pricing.sizes))
        return pricing
