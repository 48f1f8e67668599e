"""Text normalization helpers for prices, sizes and brands."""

import re
from decimal import Decimal, InvalidOperation
from typing import Optional, Tuple
from urllib.parse import urljoin

# Checked in order; sub-lines before their parent brand
BRAND_PATTERNS = [
    ("jordan", "Jordan"),
    ("yeezy", "Adidas"),
    ("new balance", "New Balance"),
    ("dunk", "Nike"),
    ("air force", "Nike"),
    ("air max", "Nike"),
    ("nike", "Nike"),
    ("adidas", "Adidas"),
    ("puma", "Puma"),
    ("reebok", "Reebok"),
    ("converse", "Converse"),
    ("vans", "Vans"),
    ("asics", "ASICS"),
]

UNKNOWN_BRAND = "Unknown"

_SIZE_RE = re.compile(r"(?:size|sz|us)\s*:?\s*(\d+(?:\.\d+)?)", re.IGNORECASE)
_NUMBER_RE = re.compile(r"\d+(?:\.\d+)?")
_STYLE_CODE_RE = re.compile(r"(?<![A-Z0-9])([A-Z]{2}\d{4})[-_ ](\d{3})(?![0-9])")


class PriceNormalizer:
    """Price string parsing."""

    @staticmethod
    def clean_price_string(raw: Optional[str]) -> Optional[Decimal]:
        """Parse a price string and extract its numeric value.

        Handles formats such as "$189.99", "CA$1,234" and "C$ 240".

        Args:
            raw: Raw price string

        Returns:
            Decimal price value, or None if parsing fails
        """
        if not raw:
            return None

        match = re.search(r"\d[\d,]*(?:\.\d+)?", raw)
        if not match:
            return None

        try:
            return Decimal(match.group(0).replace(",", ""))
        except InvalidOperation:
            return None

    @staticmethod
    def from_cents(cents) -> Optional[Decimal]:
        """Convert an integer amount in cents to whole currency units."""
        if cents is None:
            return None
        try:
            return (Decimal(str(cents)) / 100).quantize(Decimal("0.01"))
        except InvalidOperation:
            return None

    @staticmethod
    def within_bounds(price: Optional[Decimal], minimum: Decimal, maximum: Decimal) -> bool:
        """Sanity window that weeds out accessories and parse noise."""
        return price is not None and minimum <= price <= maximum


def extract_size(text: Optional[str]) -> Optional[str]:
    """Pull a size label out of a free-text title ("Size 10", "sz: 9.5", "US 11")."""
    if not text:
        return None
    match = _SIZE_RE.search(text)
    return match.group(1) if match else None


def extract_style_code(text: Optional[str]) -> str:
    """Nike/Jordan-style manufacturer code ("DZ5485-612") embedded in a slug or title."""
    if not text:
        return ""
    match = _STYLE_CODE_RE.search(text.upper())
    return f"{match.group(1)}-{match.group(2)}" if match else ""


def infer_brand(name: Optional[str]) -> str:
    """Best-effort brand for sources that don't report one."""
    lowered = (name or "").lower()
    for needle, brand in BRAND_PATTERNS:
        if needle in lowered:
            return brand
    return UNKNOWN_BRAND


def size_sort_key(label: str) -> Tuple[int, float, str]:
    """Order size labels numerically by their first number; non-numeric labels last."""
    match = _NUMBER_RE.search(label or "")
    if match:
        return (0, float(match.group(0)), label)
    return (1, 0.0, label or "")


def absolute_url(base_url: str, href: Optional[str]) -> str:
    """Resolve relative and protocol-relative links against a source origin."""
    if not href:
        return ""
    if href.startswith("//"):
        return f"https:{href}"
    return urljoin(base_url + "/", href)
