"""GOAT adapter.

Search results and product pages are rendered in a browser session.
For SKU lookups the product page's buy bar lists one price per size
(CAD on the en-ca storefront); out-of-stock sizes are kept as
unavailable rows.
"""

from decimal import Decimal
from typing import List, Optional
from urllib.parse import quote_plus

from bs4 import BeautifulSoup

from solescan.scrapers.base import BaseScraperAdapter, Listing, SourcePricing
from solescan.scrapers.utils.normalizer import (
    PriceNormalizer,
    absolute_url,
    extract_style_code,
    infer_brand,
)

SEARCH_URL = "https://www.goat.com/en-ca/search?query={query}&pageNumber=1"
GRID_SELECTOR = '[data-qa="grid_cell_product"]'
BUY_BAR_SELECTOR = '[data-qa="buy_bar_item_desktop"]'
MAX_RESULTS = 20


def _compact(text: str) -> str:
    return "".join(ch for ch in (text or "").lower() if ch.isalnum())


class GoatAdapter(BaseScraperAdapter):
    """GOAT search and size-level price scraper."""

    source_slug = "goat"
    supports_sku_lookup = True

    async def search(self, query: str) -> List[Listing]:
        html = await self._render(SEARCH_URL.format(query=quote_plus(query)), wait_selector=GRID_SELECTOR)
        return self.parse_search_results(html)

    def parse_search_results(self, html: str) -> List[Listing]:
        """Parse grid cells from a rendered search page."""
        soup = BeautifulSoup(html, "html.parser")
        listings: List[Listing] = []
        seen = set()

        for cell in soup.select(GRID_SELECTOR):
            link = cell.select_one('a[href*="/sneakers/"]')
            if not link:
                continue
            href = link.get("href", "").split("?")[0]
            slug = href.rstrip("/").split("/")[-1]
            if slug in seen:
                continue

            title = cell.select_one('[data-qa="grid_cell_product_name"]')
            name = title.get_text(strip=True) if title else ""
            price_el = cell.select_one('[data-qa="grid_cell_product_price"]')
            price = PriceNormalizer.clean_price_string(price_el.get_text(strip=True) if price_el else "")
            if not name or not price:
                continue

            img = cell.find("img")
            seen.add(slug)
            listings.append(
                self.build_listing(
                    identifier=slug,
                    name=name,
                    brand=infer_brand(name),
                    sku=extract_style_code(slug),
                    price=price,
                    currency="CAD",
                    url=absolute_url(self.config.base_url, href),
                    image_url=(img.get("src") or "") if img else "",
                )
            )
            if len(listings) >= MAX_RESULTS:
                break

        return listings

    def find_product_url(self, html: str, sku: str) -> Optional[str]:
        """Product link for a style code: one containing the code, else the first grid result."""
        soup = BeautifulSoup(html, "html.parser")
        wanted = _compact(sku)

        for link in soup.select('a[href*="/sneakers/"]'):
            if wanted and wanted in _compact(link.get("href", "")):
                return absolute_url(self.config.base_url, link["href"])

        for cell in soup.select(GRID_SELECTOR):
            link = cell.select_one('a[href*="/sneakers/"]')
            if link:
                return absolute_url(self.config.base_url, link["href"])
        return None

    def parse_size_sheet(self, html: str, product_url: str) -> SourcePricing:
        """Parse the buy bar of a rendered product page."""
        soup = BeautifulSoup(html, "html.parser")
        heading = soup.select_one('h1[data-qa="product_display_name"]') or soup.find("h1")
        img = soup.select_one('[data-qa="grid_cell_product_image"] img')

        sizes = []
        for item in soup.select(BUY_BAR_SELECTOR):
            size_el = item.select_one('[data-qa^="buy_bar_size_"]')
            size = size_el.get_text(strip=True) if size_el else ""
            if not size:
                continue
            price_el = item.select_one('[data-qa^="buy_bar_price_size_"]')
            price = PriceNormalizer.clean_price_string(price_el.get_text(strip=True) if price_el else "")
            out_of_stock = item.select_one('[data-qa="buy_bar_oos"]') is not None
            sizes.append(
                self.build_size_price(
                    size=size,
                    price=price or Decimal("0"),
                    currency="CAD",
                    url=f"{product_url}?size={size}",
                    available=bool(price) and not out_of_stock,
                )
            )

        return SourcePricing(
            source=self.source_slug,
            product_name=heading.get_text(strip=True) if heading else "",
            product_url=product_url,
            image_url=(img.get("src") or "") if img else "",
            sizes=sizes,
        )

    async def lookup_sku(self, sku: str) -> Optional[SourcePricing]:
        search_html = await self._render(SEARCH_URL.format(query=quote_plus(sku)), wait_selector=GRID_SELECTOR)
        product_url = self.find_product_url(search_html, sku)
        if not product_url:
            self.logger.info("goat_product_not_found", sku=sku)
            return None

        product_html = await self._render(product_url, wait_selector=BUY_BAR_SELECTOR)
        pricing = self.parse_size_sheet(product_html, product_url)
        self.logger.info("goat_sizes_parsed", sku=sku, sizes=len(pricing.sizes))
        return pricing
