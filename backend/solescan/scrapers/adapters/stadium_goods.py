"""Stadium Goods adapter.

The storefront search and product pages are server-rendered, so plain
HTTP plus BeautifulSoup is enough. Prices are listed in USD. A SKU
lookup searches by style code and reads the size variants listed on
the matching product page.
"""

from decimal import Decimal
from typing import List, Optional
from urllib.parse import quote_plus

from bs4 import BeautifulSoup

from solescan.scrapers.base import BaseAPIAdapter, Listing, SourcePricing
from solescan.scrapers.utils.normalizer import (
    PriceNormalizer,
    absolute_url,
    extract_style_code,
    infer_brand,
)
from solescan.scrapers.utils.user_agents import ACCEPT_HTML

SEARCH_URL = "https://www.stadiumgoods.com/en-ca/search?q={query}"
CARD_SELECTOR = '[data-testid="product-card"]'
SIZE_OPTION_SELECTOR = ".ProductForm__select__button.js-product-variant"
MAX_RESULTS = 20
MIN_PRICE = Decimal("50")
MAX_PRICE = Decimal("5000")


class StadiumGoodsAdapter(BaseAPIAdapter):
    """Stadium Goods search and size-sheet parser."""

    source_slug = "stadium-goods"
    accept = ACCEPT_HTML
    supports_sku_lookup = True

    async def search(self, query: str) -> List[Listing]:
        response = await self._request("GET", SEARCH_URL.format(query=quote_plus(query)))
        return self.parse_search_results(response.text)

    def parse_search_results(self, html: str) -> List[Listing]:
        soup = BeautifulSoup(html, "html.parser")
        listings: List[Listing] = []
        seen = set()

        for card in soup.select(CARD_SELECTOR):
            link = card.find("a", href=True)
            href = link["href"].split("?")[0] if link else ""
            handle = href.rstrip("/").split("/")[-1]
            if not handle or handle in seen:
                continue

            title = card.select_one('[data-testid="product-name"]')
            name = title.get_text(strip=True) if title else ""
            price_el = card.select_one('[data-testid="product-price"]')
            price = PriceNormalizer.clean_price_string(price_el.get_text(strip=True) if price_el else "")
            if not name or not PriceNormalizer.within_bounds(price, MIN_PRICE, MAX_PRICE):
                continue

            brand_el = card.select_one('[data-testid="product-brand"]')
            brand = brand_el.get_text(strip=True) if brand_el else ""
            img = card.find("img")

            seen.add(handle)
            listings.append(
                self.build_listing(
                    identifier=handle,
                    name=name,
                    brand=brand or infer_brand(name),
                    sku=extract_style_code(handle) or extract_style_code(name),
                    price=price,
                    currency="USD",
                    url=absolute_url(self.config.base_url, href),
                    image_url=(img.get("src") or "") if img else "",
                )
            )
            if len(listings) >= MAX_RESULTS:
                break

        return listings

    def find_product_url(self, html: str, sku: str) -> Optional[str]:
        """Card link whose handle contains the style code, else the first card."""
        soup = BeautifulSoup(html, "html.parser")
        wanted = "".join(ch for ch in sku.lower() if ch.isalnum())
        hrefs = [link["href"] for link in (card.find("a", href=True) for card in soup.select(CARD_SELECTOR)) if link]

        for href in hrefs:
            if wanted and wanted in "".join(ch for ch in href.lower() if ch.isalnum()):
                return absolute_url(self.config.base_url, href.split("?")[0])
        return absolute_url(self.config.base_url, hrefs[0].split("?")[0]) if hrefs else None

    def parse_size_sheet(self, html: str, product_url: str) -> SourcePricing:
        """Parse the size variant buttons of a product page.

        Variants without a price are sold out and kept as unavailable rows.
        """
        soup = BeautifulSoup(html, "html.parser")
        heading = soup.find("h1")
        img = soup.select_one('meta[property="og:image"]')

        sizes = []
        for option in soup.select(SIZE_OPTION_SELECTOR):
            size_el = option.select_one(".ProductForm__select__variant__name")
            size = size_el.get_text(strip=True) if size_el else ""
            if not size:
                continue
            price_el = option.select_one(".ProductForm__select__variant__price")
            price = PriceNormalizer.clean_price_string(price_el.get_text(strip=True) if price_el else "")
            sizes.append(
                self.build_size_price(
                    size=size,
                    price=price or Decimal("0"),
                    currency="USD",
                    url=product_url,
                    available=PriceNormalizer.within_bounds(price, MIN_PRICE, MAX_PRICE),
                )
            )

        return SourcePricing(
            source=self.source_slug,
            product_name=heading.get_text(strip=True) if heading else "",
            product_url=product_url,
            image_url=(img.get("content") or "") if img else "",
            sizes=sizes,
            style_id=extract_style_code(product_url),
        )

    async def lookup_sku(self, sku: str) -> Optional[SourcePricing]:
        response = await self._request("GET", SEARCH_URL.format(query=quote_plus(sku)))
        product_url = self.find_product_url(response.text, sku)
        if not product_url:
            self.logger.info("stadium_goods_product_not_found", sku=sku)
            return None

        response = await self._request("GET", product_url)
        pricing = self.parse_size_sheet(response.text, product_url)
        self.logger.info("stadium_goods_sizes_parsed", sku=sku, sizes=len(pricing.sizes))
        return pricing
