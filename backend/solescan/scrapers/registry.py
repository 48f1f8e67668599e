"""Static catalog of the marketplaces SoleScan knows how to query.

Every Listing's ``source`` must resolve to one of these entries. The
registry is read-only at runtime: the orchestrator reads it to decide
which adapters to run and the rate limiter reads it for budgets.
"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import List, Mapping


class AdapterKind(str, Enum):
    """How an adapter obtains its data."""

    STRUCTURED_API = "structured-api"
    RENDERED_PAGE = "rendered-page"


class TrustLevel(str, Enum):
    """How much a source vouches for what it sells."""

    VERIFIED = "verified"
    AUTHENTICATED = "authenticated"
    MARKETPLACE = "marketplace"


@dataclass(frozen=True)
class RateLimit:
    """Maximum number of requests allowed per rolling window."""

    requests: int
    window_seconds: float

    def __post_init__(self):
        if self.requests < 1:
            raise ValueError("requests must be at least 1")
        if self.window_seconds <= 0:
            raise ValueError("window_seconds must be positive")


@dataclass(frozen=True)
class SourceConfig:
    """One registry entry."""

    slug: str
    name: str
    kind: AdapterKind
    base_url: str
    trust: TrustLevel
    rate_limit: RateLimit
    enabled: bool = True
    country: str = "CA"
    currency: str = "CAD"


_RESALE_BUDGET = RateLimit(requests=10, window_seconds=60)
_STOREFRONT_BUDGET = RateLimit(requests=5, window_seconds=60)


SOURCE_REGISTRY: Mapping[str, SourceConfig] = MappingProxyType({
    config.slug: config
    for config in (
        # Large resale platforms (rendered pages, bot protection)
        SourceConfig(
            slug="stockx",
            name="StockX",
            kind=AdapterKind.RENDERED_PAGE,
            base_url="https://stockx.com",
            trust=TrustLevel.AUTHENTICATED,
            rate_limit=_RESALE_BUDGET,
        ),
        SourceConfig(
            slug="goat",
            name="GOAT",
            kind=AdapterKind.RENDERED_PAGE,
            base_url="https://www.goat.com",
            trust=TrustLevel.AUTHENTICATED,
            rate_limit=_RESALE_BUDGET,
        ),
        SourceConfig(
            slug="flight-club",
            name="Flight Club",
            kind=AdapterKind.RENDERED_PAGE,
            base_url="https://www.flightclub.com",
            trust=TrustLevel.AUTHENTICATED,
            rate_limit=_RESALE_BUDGET,
        ),
        SourceConfig(
            slug="kickscrew",
            name="KicksCrew",
            kind=AdapterKind.RENDERED_PAGE,
            base_url="https://www.kickscrew.com",
            trust=TrustLevel.AUTHENTICATED,
            rate_limit=_STOREFRONT_BUDGET,
        ),
        # HTTP-only sources
        SourceConfig(
            slug="stadium-goods",
            name="Stadium Goods",
            kind=AdapterKind.STRUCTURED_API,
            base_url="https://www.stadiumgoods.com",
            trust=TrustLevel.AUTHENTICATED,
            rate_limit=_STOREFRONT_BUDGET,
            currency="USD",
        ),
        SourceConfig(
            slug="grailed",
            name="Grailed",
            kind=AdapterKind.STRUCTURED_API,
            base_url="https://www.grailed.com",
            trust=TrustLevel.VERIFIED,
            rate_limit=_RESALE_BUDGET,
            currency="USD",
        ),
        # Canadian Shopify storefronts
        SourceConfig(
            slug="livestock",
            name="Livestock",
            kind=AdapterKind.STRUCTURED_API,
            base_url="https://www.deadstock.ca",
            trust=TrustLevel.VERIFIED,
            rate_limit=_STOREFRONT_BUDGET,
        ),
        SourceConfig(
            slug="haven",
            name="Haven",
            kind=AdapterKind.STRUCTURED_API,
            base_url="https://havenshop.com",
            trust=TrustLevel.VERIFIED,
            rate_limit=_STOREFRONT_BUDGET,
        ),
        SourceConfig(
            slug="capsule",
            name="Capsule Toronto",
            kind=AdapterKind.STRUCTURED_API,
            base_url="https://capsuletoronto.com",
            trust=TrustLevel.VERIFIED,
            rate_limit=_STOREFRONT_BUDGET,
        ),
        SourceConfig(
            slug="exclucity",
            name="Exclucity",
            kind=AdapterKind.STRUCTURED_API,
            base_url="https://www.exclucitylife.com",
            trust=TrustLevel.VERIFIED,
            rate_limit=_STOREFRONT_BUDGET,
        ),
        SourceConfig(
            slug="nrml",
            name="NRML",
            kind=AdapterKind.STRUCTURED_API,
            base_url="https://nrml.ca",
            trust=TrustLevel.VERIFIED,
            rate_limit=_STOREFRONT_BUDGET,
        ),
    )
})


def get_source(slug: str) -> SourceConfig:
    """Look up a registry entry.

    Raises:
        KeyError: If the slug is not registered
    """
    try:
        return SOURCE_REGISTRY[slug]
    except KeyError:
        raise KeyError(f"Unknown source: {slug}") from None


def is_known_source(slug: str) -> bool:
    return slug in SOURCE_REGISTRY


def enabled_sources() -> List[SourceConfig]:
    """Enabled entries in registry order."""
    return [config for config in SOURCE_REGISTRY.values() if config.enabled]
