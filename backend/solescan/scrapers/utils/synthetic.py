"""Fixed catalog of well-known sneakers used for the synthetic fallback.

Adapters only draw on this when their source slug is listed in
SYNTHETIC_FALLBACK_SOURCES; every listing built from it is flagged
``synthetic=True``.
"""

import hashlib
from dataclasses import dataclass, replace
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional, Tuple

from solescan.scrapers.utils.currency import CurrencyConverter


@dataclass(frozen=True)
class CatalogEntry:
    name: str
    brand: str
    colorway: str
    sku: str
    price_usd: Decimal
    price_cad: Decimal
    keywords: Tuple[str, ...]


SYNTHETIC_CATALOG: Tuple[CatalogEntry, ...] = (
    CatalogEntry(
        name="Jordan 1 Retro High OG Chicago Lost and Found",
        brand="Jordan",
        colorway="Varsity Red/Black-Sail-Muslin",
        sku="DZ5485-612",
        price_usd=Decimal("215"),
        price_cad=Decimal("292"),
        keywords=("jordan", "jordan 1", "chicago", "lost and found", "retro", "high", "og", "1"),
    ),
    CatalogEntry(
        name="Nike Dunk Low Retro White Black Panda",
        brand="Nike",
        colorway="White/Black-White",
        sku="DD1391-100",
        price_usd=Decimal("105"),
        price_cad=Decimal("143"),
        keywords=("nike", "dunk", "dunk low", "panda", "black", "white", "retro"),
    ),
    CatalogEntry(
        name="Adidas Yeezy Boost 350 V2 Onyx",
        brand="Adidas",
        colorway="Onyx/Onyx/Onyx",
        sku="HQ4540",
        price_usd=Decimal("235"),
        price_cad=Decimal("320"),
        keywords=("adidas", "yeezy", "350", "v2", "onyx", "boost"),
    ),
    CatalogEntry(
        name="New Balance 550 White Green",
        brand="New Balance",
        colorway="White/Green",
        sku="BB550WT1",
        price_usd=Decimal("120"),
        price_cad=Decimal("163"),
        keywords=("new balance", "nb", "550", "white", "green"),
    ),
    CatalogEntry(
        name="Nike Air Force 1 Low White",
        brand="Nike",
        colorway="White/White",
        sku="CW2288-111",
        price_usd=Decimal("100"),
        price_cad=Decimal("136"),
        keywords=("nike", "air force", "af1", "force 1", "white", "low"),
    ),
    CatalogEntry(
        name="Jordan 4 Retro Thunder",
        brand="Jordan",
        colorway="Black/Tour Yellow",
        sku="DH6927-017",
        price_usd=Decimal("280"),
        price_cad=Decimal("381"),
        keywords=("jordan", "jordan 4", "4", "thunder", "retro", "black", "yellow"),
    ),
    CatalogEntry(
        name="Adidas Samba OG White",
        brand="Adidas",
        colorway="Cloud White/Core Black/Clear Granite",
        sku="B75806",
        price_usd=Decimal("100"),
        price_cad=Decimal("140"),
        keywords=("adidas", "samba", "og", "white", "classic"),
    ),
    CatalogEntry(
        name="Nike Air Max 1 86 Big Bubble",
        brand="Nike",
        colorway="White/University Red-Neutral Grey",
        sku="DQ3989-100",
        price_usd=Decimal("145"),
        price_cad=Decimal("197"),
        keywords=("nike", "air max", "max 1", "86", "big bubble", "red"),
    ),
    CatalogEntry(
        name="Jordan 11 Retro Cherry",
        brand="Jordan",
        colorway="White/Varsity Red-Black",
        sku="CT8012-116",
        price_usd=Decimal("240"),
        price_cad=Decimal("326"),
        keywords=("jordan", "jordan 11", "11", "cherry", "retro", "red", "white"),
    ),
    CatalogEntry(
        name="Nike SB Dunk Low Pro",
        brand="Nike",
        colorway="Various",
        sku="BQ6817",
        price_usd=Decimal("130"),
        price_cad=Decimal("177"),
        keywords=("nike", "sb", "dunk", "dunk low", "pro", "skate"),
    ),
    CatalogEntry(
        name="Adidas Campus 00s Core Black",
        brand="Adidas",
        colorway="Core Black/Cloud White",
        sku="HQ8708",
        price_usd=Decimal("110"),
        price_cad=Decimal("150"),
        keywords=("adidas", "campus", "00s", "black", "white"),
    ),
    CatalogEntry(
        name="New Balance 2002R Protection Pack Rain Cloud",
        brand="New Balance",
        colorway="Rain Cloud",
        sku="M2002RDA",
        price_usd=Decimal("180"),
        price_cad=Decimal("245"),
        keywords=("new balance", "nb", "2002r", "protection", "rain", "cloud", "grey"),
    ),
)

MAX_MATCHES = 5

# Men's US sizes offered on generated size sheets
SYNTHETIC_SIZES: Tuple[str, ...] = (
    "7", "7.5", "8", "8.5", "9", "9.5", "10", "10.5", "11", "11.5", "12", "13",
)


def _score(entry: CatalogEntry, words: List[str]) -> int:
    score = 0
    for word in words:
        if len(word) < 2:
            continue
        if any(word in keyword for keyword in entry.keywords):
            score += 2
        if word in entry.brand.lower():
            score += 3
        if word in entry.name.lower():
            score += 2
        if word in entry.sku.lower():
            score += 5
    return score


def search_catalog(query: str, price_variation: int = 0) -> List[CatalogEntry]:
    """Best catalog matches for a query, highest score first.

    Args:
        query: Free-text search query
        price_variation: USD offset applied to every match (CAD offset is
            the converted amount) so different sources don't quote identical prices

    Returns:
        At most five entries with a positive score
    """
    words = query.lower().split()
    scored = [(entry, _score(entry, words)) for entry in SYNTHETIC_CATALOG]
    # sorted() is stable: equal scores keep catalog order
    matches = sorted((pair for pair in scored if pair[1] > 0), key=lambda pair: -pair[1])

    usd_offset = Decimal(price_variation)
    cad_offset = (usd_offset * CurrencyConverter.get_rate("USD")).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return [
        replace(entry, price_usd=entry.price_usd + usd_offset, price_cad=entry.price_cad + cad_offset)
        for entry, _ in matches[:MAX_MATCHES]
    ]


def find_by_sku(sku: str) -> Optional[CatalogEntry]:
    """Exact style-code match, ignoring case and punctuation."""
    wanted = "".join(ch for ch in sku.lower() if ch.isalnum())
    for entry in SYNTHETIC_CATALOG:
        if "".join(ch for ch in entry.sku.lower() if ch.isalnum()) == wanted:
            return entry
    return None


def synthetic_size_prices(source: str, entry: CatalogEntry) -> List[Tuple[str, Decimal, bool]]:
    """Deterministic (size, CAD price, available) rows for one source and product.

    The same ``(source, sku)`` pair always yields the same sheet.
    """
    rows = []
    for size in SYNTHETIC_SIZES:
        digest = hashlib.sha256(f"{source}:{entry.sku}:{size}".encode("utf-8")).digest()
        offset = Decimal(digest[0] % 61) - 20  # -20..+40 CAD
        available = digest[1] % 5 != 0
        rows.append((size, max(Decimal("0"), entry.price_cad + offset), available))
    return rows
