"""Canadian Shopify storefront adapters.

Livestock, Haven, Capsule Toronto, Exclucity and NRML all run on
Shopify, so one adapter reads the storefront's predictive-search JSON
and each shop only supplies its slug. Prices are in CAD.
"""

from decimal import Decimal
from typing import Any, Dict, List

from solescan.scrapers.base import BaseAPIAdapter, Listing
from solescan.scrapers.utils.normalizer import (
    UNKNOWN_BRAND,
    PriceNormalizer,
    absolute_url,
    extract_style_code,
    infer_brand,
)

SUGGEST_PATH = "/search/suggest.json"
MAX_RESULTS = 10
MIN_PRICE = Decimal("50")
MAX_PRICE = Decimal("2000")

# Shops also sell apparel; a product must look like footwear by type or name
FOOTWEAR_TERMS = (
    "shoe", "sneaker", "footwear", "runner", "trainer", "boot",
    "dunk", "jordan", "air force", "air max", "yeezy", "990", "550",
)


def looks_like_footwear(name: str, product_type: str = "") -> bool:
    text = f"{product_type} {name}".lower()
    if any(term in text for term in FOOTWEAR_TERMS):
        return True
    return not product_type and infer_brand(name) != UNKNOWN_BRAND


class ShopifyStorefrontAdapter(BaseAPIAdapter):
    """Predictive-search reader shared by every Shopify storefront."""

    async def search(self, query: str) -> List[Listing]:
        payload = await self._get_json(
            f"{self.config.base_url}{SUGGEST_PATH}",
            params={
                "q": query,
                "resources[type]": "product",
                "resources[limit]": MAX_RESULTS,
            },
        )
        return self.parse_products(payload)

    def parse_products(self, payload: Dict[str, Any]) -> List[Listing]:
        products = (((payload or {}).get("resources") or {}).get("results") or {}).get("products") or []
        listings: List[Listing] = []
        seen = set()

        for product in products:
            handle = product.get("handle") or ""
            name = (product.get("title") or "").strip()
            if not handle or not name or handle in seen:
                continue
            if product.get("available") is False:
                continue
            if not looks_like_footwear(name, product.get("type") or ""):
                continue

            price = PriceNormalizer.clean_price_string(str(product.get("price") or ""))
            if not PriceNormalizer.within_bounds(price, MIN_PRICE, MAX_PRICE):
                continue

            image = product.get("image") or product.get("featured_image") or ""
            if isinstance(image, dict):
                image = image.get("url", "")

            seen.add(handle)
            listings.append(
                self.build_listing(
                    identifier=handle,
                    name=name,
                    brand=product.get("vendor") or infer_brand(name),
                    sku=extract_style_code(handle) or extract_style_code(name),
                    price=price,
                    currency="CAD",
                    url=absolute_url(self.config.base_url, product.get("url") or f"/products/{handle}"),
                    image_url=absolute_url(self.config.base_url, image) if image else "",
                )
            )

        return listings


class LivestockAdapter(ShopifyStorefrontAdapter):
    source_slug = "livestock"


class HavenAdapter(ShopifyStorefrontAdapter):
    source_slug = "haven"


class CapsuleAdapter(ShopifyStorefrontAdapter):
    source_slug = "capsule"


class ExclucityAdapter(ShopifyStorefrontAdapter):
    source_slug = "exclucity"


class NrmlAdapter(ShopifyStorefrontAdapter):
    source_slug = "nrml"
