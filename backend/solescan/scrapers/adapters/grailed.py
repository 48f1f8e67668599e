"""Grailed adapter.

Grailed's listing search is a JSON endpoint. Listings are individual
resale items, so each one carries its own size and condition; prices
are in USD.
"""

from decimal import Decimal
from typing import Any, Dict, List

from solescan.scrapers.base import BaseAPIAdapter, Listing
from solescan.scrapers.utils.normalizer import PriceNormalizer, extract_style_code, infer_brand

SEARCH_API_URL = "https://www.grailed.com/api/listings/grailed_local"
MAX_RESULTS = 20
MIN_PRICE = Decimal("20")
MAX_PRICE = Decimal("5000")


class GrailedAdapter(BaseAPIAdapter):
    """Grailed footwear listing search."""

    source_slug = "grailed"

    async def search(self, query: str) -> List[Listing]:
        payload = await self._get_json(
            SEARCH_API_URL,
            params={
                "query": query,
                "page": 1,
                "per_page": MAX_RESULTS,
                "department": "footwear",
                "sort": "price_low",
                "country": "CA",
            },
        )
        return self.parse_listings(payload)

    def parse_listings(self, payload: Dict[str, Any]) -> List[Listing]:
        items = (payload or {}).get("data") or (payload or {}).get("listings") or []
        listings: List[Listing] = []

        for item in items:
            item_id = item.get("id")
            name = (item.get("title") or "").strip()
            try:
                price = Decimal(str(item.get("price")))
            except ArithmeticError:
                continue
            if not item_id or not name or not PriceNormalizer.within_bounds(price, MIN_PRICE, MAX_PRICE):
                continue

            designers = item.get("designers") or []
            designer = designers[0].get("name", "") if designers else item.get("designer_names", "")
            photo = item.get("cover_photo") or {}
            size = item.get("size")

            listings.append(
                self.build_listing(
                    identifier=str(item_id),
                    name=name,
                    brand=designer or infer_brand(name),
                    sku=extract_style_code(name),
                    price=price,
                    currency="USD",
                    url=f"{self.config.base_url}/listings/{item_id}",
                    image_url=photo.get("url", "") if isinstance(photo, dict) else "",
                    condition="new" if item.get("condition") == "is_new" else "used",
                    size=str(size) if size not in (None, "") else None,
                )
            )

        return listings
