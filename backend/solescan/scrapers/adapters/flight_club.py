"""Flight Club adapter.

Search runs against the rendered catalog search page. Size-level prices
come from the storefront's product_variants endpoint, called with the
browser session's cookies after the product page has been visited.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional
from urllib.parse import quote_plus, urlencode

from bs4 import BeautifulSoup

from solescan.scrapers.base import BaseScraperAdapter, Listing, SourcePricing
from solescan.scrapers.utils.normalizer import (
    PriceNormalizer,
    absolute_url,
    extract_style_code,
    infer_brand,
)

SEARCH_URL = "https://www.flightclub.com/catalogsearch/result?query={query}"
VARIANTS_URL = "https://www.flightclub.com/web-api/v1/product_variants"
CARD_SELECTOR = 'a[data-qa="ProductItemsUrl"]'
MAX_RESULTS = 20

_VARIANT_HEADERS = {
    "x-goat-app": "sneakers",
    "x-goat-sales-channel": "2",
}


class FlightClubAdapter(BaseScraperAdapter):
    """Flight Club search and size-level price scraper."""

    source_slug = "flight-club"
    supports_sku_lookup = True

    async def search(self, query: str) -> List[Listing]:
        html = await self._render(SEARCH_URL.format(query=quote_plus(query)), wait_selector=CARD_SELECTOR)
        return self.parse_search_results(html)

    def _cards(self, html: str):
        soup = BeautifulSoup(html, "html.parser")
        return soup.select(CARD_SELECTOR)

    def parse_search_results(self, html: str) -> List[Listing]:
        listings: List[Listing] = []
        seen = set()

        for card in self._cards(html):
            href = (card.get("href") or "").split("?")[0]
            template_id = href.strip("/")
            if not template_id or template_id in seen:
                continue

            title = card.select_one('[data-qa="ProductItemTitle"]')
            name = title.get_text(strip=True) if title else ""
            price_el = card.select_one('[data-qa="ProductItemPrice"]')
            price = PriceNormalizer.clean_price_string(price_el.get_text(strip=True) if price_el else "")
            if not name or not price:
                continue

            img = card.find("img")
            seen.add(template_id)
            listings.append(
                self.build_listing(
                    identifier=template_id,
                    name=name,
                    brand=infer_brand(name),
                    sku=extract_style_code(template_id),
                    price=price,
                    currency="CAD",
                    url=absolute_url(self.config.base_url, href),
                    image_url=(img.get("src") or "") if img else "",
                )
            )
            if len(listings) >= MAX_RESULTS:
                break

        return listings

    def find_product(self, html: str, sku: str) -> Optional[Dict[str, str]]:
        """``{"template_id", "url", "name"}`` of the card matching a style code, else the first card."""
        wanted = "".join(ch for ch in sku.lower() if ch.isalnum())
        first = None
        for card in self._cards(html):
            href = (card.get("href") or "").split("?")[0]
            if not href.strip("/"):
                continue
            title = card.select_one('[data-qa="ProductItemTitle"]')
            product = {
                "template_id": href.strip("/"),
                "url": absolute_url(self.config.base_url, href),
                "name": title.get_text(strip=True) if title else "",
            }
            if wanted and wanted in "".join(ch for ch in href.lower() if ch.isalnum()):
                return product
            first = first or product
        return first

    def parse_variants(self, payload: Any, product: Dict[str, str]) -> SourcePricing:
        """Build a sheet from product_variants JSON, keeping the lowest CAD ask per size."""
        variants = payload if isinstance(payload, list) else (payload or {}).get("productVariants", [])

        lowest: Dict[str, Decimal] = {}
        for variant in variants:
            cents = (variant.get("lowestPriceCents") or {})
            if cents.get("currency") != "CAD" or not cents.get("amount"):
                continue
            size = variant.get("size")
            if size is None:
                continue
            size = f"{size:g}" if isinstance(size, float) else str(size)
            price = (Decimal(str(cents["amount"])) / 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
            if size not in lowest or price < lowest[size]:
                lowest[size] = price

        return SourcePricing(
            source=self.source_slug,
            product_name=product.get("name", ""),
            product_url=product["url"],
            sizes=[
                self.build_size_price(size=size, price=price, currency="CAD", url=f"{product['url']}?size={size}")
                for size, price in lowest.items()
            ],
        )

    async def lookup_sku(self, sku: str) -> Optional[SourcePricing]:
        search_html = await self._render(SEARCH_URL.format(query=quote_plus(sku)), wait_selector=CARD_SELECTOR)
        product = self.find_product(search_html, sku)
        if product is None:
            self.logger.info("flight_club_product_not_found", sku=sku)
            return None

        # Visiting the product page earns the cookies the variants endpoint checks
        await self._render(product["url"])
        query = urlencode({
            "countryCode": "CA",
            "productTemplateId": product["template_id"],
            "currency": "CAD",
        })
        payload = await self._session_json(f"{VARIANTS_URL}?{query}", headers=_VARIANT_HEADERS)
        pricing = self.parse_variants(payload, product)
        self.logger.info("flight_club_sizes_parsed", sku=sku, sizes=len(pricing.sizes))
        return pricing
