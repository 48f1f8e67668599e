"""StockX adapter.

StockX has no public API and sits behind bot protection, so the
Canadian search page is rendered and the product tiles are parsed.
Prices are lowest asks in CAD.

SKU lookups open the product page, read the style code from its traits
panel and expand the size menu, where every size button carries its
own lowest ask.
"""

import re
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

SEARCH_URL = "https://stockx.com/en-ca/search?s={query}"
TILE_SELECTOR = '[data-testid="ProductTile"]'
TRAIT_SELECTOR = '[data-component="product-trait"], [data-testid="product-detail-trait"]'
SIZE_MENU_SELECTOR = '[data-testid="pdp-size-selector"]'
SIZE_BUTTON_SELECTOR = '[data-testid="size-selector-button"]'
IMAGE_SELECTOR = '[data-component="MediaContainer"] img[data-image-type="360"], [data-component="SingleImage"] img'
MAX_RESULTS = 20

_STYLE_TRAIT_RE = re.compile(r"Style</span>\s*<p[^>]*>([A-Z0-9\-]+)</p>", re.IGNORECASE)
_SIZE_LABEL_RE = re.compile(r"(\d+(?:\.\d+)?)\s*[A-Z]?$", re.IGNORECASE)


def _compact(text: str) -> str:
    return "".join(ch for ch in (text or "").lower() if ch.isalnum())


class StockXAdapter(BaseScraperAdapter):
    """StockX lowest-ask scraper."""

    source_slug = "stockx"
    supports_sku_lookup = True

    async def search(self, query: str) -> List[Listing]:
        html = await self._render(SEARCH_URL.format(query=quote_plus(query)), wait_selector=TILE_SELECTOR)
        listings = self.parse_search_results(html)
        self.logger.info("stockx_tiles_parsed", query=query, count=len(listings))
        return listings

    def parse_search_results(self, html: str) -> List[Listing]:
        """Parse product tiles from a rendered search page."""
        soup = BeautifulSoup(html, "html.parser")
        listings: List[Listing] = []
        seen = set()

        for tile in soup.select(TILE_SELECTOR):
            href = self._tile_href(tile)
            slug = href.strip("/").split("/")[-1] if href else ""
            if not slug or slug in seen:
                continue

            title = tile.select_one('[data-testid="product-tile-title"]') or tile.find("p")
            name = title.get_text(strip=True) if title else slug.replace("-", " ").title()
            if len(name) < 3:
                continue

            # Tiles without an ask have nothing to compare
            ask = tile.select_one('[data-testid="product-tile-lowest-ask-amount"]')
            price = PriceNormalizer.clean_price_string(ask.get_text(" ", strip=True) if ask else "")
            if not price:
                continue

            img = tile.find("img")
            image_url = (img.get("src") or "") if img else ""

            seen.add(slug)
            listings.append(
                self.build_listing(
                    identifier=slug,
                    name=name[:150],
                    brand=infer_brand(name),
                    sku=extract_style_code(slug),
                    price=price,
                    currency="CAD",
                    url=absolute_url(self.config.base_url, href),
                    image_url=image_url.replace("&amp;", "&"),
                )
            )
            if len(listings) >= MAX_RESULTS:
                break

        return listings

    @staticmethod
    def _tile_href(tile) -> str:
        link = tile.select_one('[data-testid="productTile-ProductSwitcherLink"]') or tile.select_one("a[href]")
        return (link.get("href") or "").split("?")[0] if link else ""

    def find_product_url(self, html: str, sku: str) -> Optional[str]:
        """Product page for a style code: the tile whose slug contains it, else the first tile."""
        soup = BeautifulSoup(html, "html.parser")
        wanted = _compact(sku)
        hrefs = [href for href in (self._tile_href(tile) for tile in soup.select(TILE_SELECTOR)) if href]

        for href in hrefs:
            if wanted and wanted in _compact(href):
                return absolute_url(self.config.base_url, href)
        return absolute_url(self.config.base_url, hrefs[0]) if hrefs else None

    @staticmethod
    def extract_style_id(html: str) -> str:
        """Style code from the product traits panel; empty when the page has none."""
        soup = BeautifulSoup(html, "html.parser")
        for trait in soup.select(TRAIT_SELECTOR):
            label = trait.find("span")
            value = trait.find("p")
            if label and value and label.get_text(strip=True).lower() == "style":
                return value.get_text(strip=True)

        match = _STYLE_TRAIT_RE.search(html)
        return match.group(1) if match else ""

    @staticmethod
    def _product_image(soup: BeautifulSoup) -> str:
        img = soup.select_one(IMAGE_SELECTOR)
        if img is None:
            img = soup.select_one('img[data-testid="product-image"]')
            return (img.get("src") or "") if img else ""

        # Prefer the sharpest rendition in the srcset
        candidates = [entry.strip().split() for entry in (img.get("srcset") or "").split(",") if entry.strip()]
        for density in ("3x", "2x"):
            for parts in candidates:
                if len(parts) == 2 and parts[1] == density and parts[0].startswith("https://images.stockx.com/"):
                    return parts[0].replace("&amp;", "&")
        return (img.get("src") or "").replace("&amp;", "&")

    def parse_size_sheet(self, html: str, product_url: str) -> SourcePricing:
        """Parse the expanded size menu of a rendered product page.

        Sizes with no current ask are kept as unavailable rows.
        """
        soup = BeautifulSoup(html, "html.parser")
        heading = soup.find("h1")

        sizes = []
        for button in soup.select(SIZE_BUTTON_SELECTOR):
            label_el = button.select_one('[data-testid="selector-label"]')
            match = _SIZE_LABEL_RE.search(label_el.get_text(" ", strip=True) if label_el else "")
            if not match:
                continue
            size = match.group(1)
            price_el = button.select_one('[data-testid="selector-secondary-label"]')
            price = PriceNormalizer.clean_price_string(price_el.get_text(strip=True) if price_el else "")
            sizes.append(
                self.build_size_price(
                    size=size,
                    price=price or Decimal("0"),
                    currency="CAD",
                    url=f"{product_url}?size={size}",
                    available=bool(price),
                )
            )

        return SourcePricing(
            source=self.source_slug,
            product_name=heading.get_text(strip=True) if heading else "",
            product_url=product_url,
            image_url=self._product_image(soup),
            sizes=sizes,
            style_id=self.extract_style_id(html),
        )

    async def lookup_product(self, product_url: str) -> SourcePricing:
        """Style code and size-level asks for a StockX product page."""
        async with self._navigated_page(product_url) as (page, result):
            html = result.html
            if not result.escalated:
                try:
                    await page.click(SIZE_MENU_SELECTOR, timeout=10000)
                    await page.wait_for_selector(SIZE_BUTTON_SELECTOR, timeout=10000)
                except PlaywrightError as e:
                    self.logger.info("stockx_size_menu_unavailable", url=product_url, error=e.message)
                html = await page.content()

        return self.parse_size_sheet(html, product_url)

    async def lookup_sku(self, sku: str) -> Optional[SourcePricing]:
        search_html = await self._render(SEARCH_URL.format(query=quote_plus(sku)), wait_selector=TILE_SELECTOR)
        product_url = self.find_product_url(search_html, sku)
        if not product_url:
            self.logger.info("stockx_product_not_found", sku=sku)
            return None

        pricing = await self.lookup_product(product_url)
        self.logger.info("stockx_sizes_parsed", sku=sku, style_id=pricing.style_id, sizes=len(pricing.sizes))
        return pricing
