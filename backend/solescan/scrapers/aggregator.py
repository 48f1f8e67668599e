"""Group listings from all sources into canonical cross-source records.

Identity is decided by a grouping key: the style code when a listing has
a usable one, otherwise a normalized brand + name token. Groups are
ranked by how many listings corroborate them, then by price.
"""

import re
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, List, Optional

from solescan.scrapers.base import Listing

MIN_SKU_LENGTH = 4
MAX_NAME_TOKENS = 5

_SIZE_MENTION_RE = re.compile(r"\b(?:size|sz)\s*:?\s*\d+(?:\.\d+)?", re.IGNORECASE)
_PARENS_RE = re.compile(r"\([^)]*\)")
_CONDITION_RE = re.compile(r"\b(?:ds|deadstock|brand new|bnib|vnds|pads)\b", re.IGNORECASE)
_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")
_NON_LETTER_RE = re.compile(r"[^a-z]+")


@dataclass
class AggregatedSneaker:
    """Canonical record for one product across sources.

    Built fresh on every aggregation pass; ``listings`` is ascending by
    display price and ``best_deal`` is its first element.
    """

    id: str
    name: str
    brand: str
    colorway: str
    sku: str
    image_url: str
    lowest_price: Decimal
    highest_price: Decimal
    average_price: Decimal
    price_range: str
    retail_price: Optional[Decimal] = None
    listings: List[Listing] = field(default_factory=list)
    best_deal: Optional[Listing] = None

    @property
    def listing_count(self) -> int:
        return len(self.listings)

    @property
    def sources(self) -> List[str]:
        """Distinct source slugs in price order."""
        return list(dict.fromkeys(listing.source for listing in self.listings))


def normalize_sku(sku: str) -> str:
    return _NON_ALNUM_RE.sub("", (sku or "").lower())


def normalize_name(name: str) -> str:
    """Name token used when a listing has no usable style code.

    Size mentions, parenthetical notes and condition jargon are removed
    before punctuation, then the first five words are concatenated.
    """
    text = (name or "").lower()
    text = _SIZE_MENTION_RE.sub(" ", text)
    text = _PARENS_RE.sub(" ", text)
    text = _CONDITION_RE.sub(" ", text)
    text = _NON_ALNUM_RE.sub(" ", text)
    return "".join(text.split()[:MAX_NAME_TOKENS])


def grouping_key(listing: Listing) -> str:
    """Deterministic identity key for a listing."""
    sku = (listing.sku or "").strip()
    if len(sku) >= MIN_SKU_LENGTH:
        return normalize_sku(sku)
    brand = _NON_LETTER_RE.sub("", (listing.brand or "").lower())
    return f"{brand}-{normalize_name(listing.name)}"


def _format_price(amount: Decimal) -> str:
    return f"${amount:,.0f}"


def _build(key: str, members: List[Listing]) -> AggregatedSneaker:
    representative = next((m for m in members if m.image_url), members[0])
    # Stable sort keeps the first of equally cheap members in front
    ordered = sorted(members, key=lambda m: m.display_price)
    prices = [m.display_price for m in ordered]

    lowest = prices[0]
    highest = prices[-1]
    average = (sum(prices) / len(prices)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)

    return AggregatedSneaker(
        id=f"agg-{key}",
        name=representative.name,
        brand=representative.brand,
        colorway=representative.colorway,
        sku=representative.sku,
        image_url=representative.image_url,
        lowest_price=lowest,
        highest_price=highest,
        average_price=average,
        price_range=_format_price(lowest) if lowest == highest else f"{_format_price(lowest)} - {_format_price(highest)}",
        retail_price=next((m.retail_price for m in [representative, *members] if m.retail_price is not None), None),
        listings=ordered,
        best_deal=ordered[0],
    )


def aggregate(listings: List[Listing]) -> List[AggregatedSneaker]:
    """Group, summarize and rank listings.

    Args:
        listings: Union of all successful adapters' listings

    Returns:
        One AggregatedSneaker per grouping key, most listings first and
        then cheapest first. Empty input yields an empty list.
    """
    groups: Dict[str, List[Listing]] = {}
    for listing in listings:
        groups.setdefault(grouping_key(listing), []).append(listing)

    aggregated = [_build(key, members) for key, members in groups.items()]
    aggregated.sort(key=lambda item: (-item.listing_count, item.lowest_price))
    return aggregated
