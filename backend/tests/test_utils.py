"""Tests for normalization, currency conversion and the synthetic catalog."""

from decimal import Decimal

import httpx
import pytest

from solescan.scrapers.utils.currency import CurrencyConverter, to_display_currency
from solescan.scrapers.utils.normalizer import (
    PriceNormalizer,
    absolute_url,
    extract_size,
    extract_style_code,
    infer_brand,
    size_sort_key,
)
from solescan.scrapers.utils.synthetic import (
    SYNTHETIC_CATALOG,
    find_by_sku,
    search_catalog,
    synthetic_size_prices,
)


# ============================================================================
# TESTS: NORMALIZER
# ============================================================================

class TestPriceNormalizer:
    """Test PriceNormalizer utility."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("$189.99", Decimal("189.99")),
            ("CA$1,234", Decimal("1234")),
            ("C$ 240", Decimal("240")),
            ("Lowest Ask CA$312", Decimal("312")),
        ],
    )
    def test_clean_price_string(self, raw, expected):
        assert PriceNormalizer.clean_price_string(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "Sold out", "--"])
    def test_clean_price_string_invalid(self, raw):
        assert PriceNormalizer.clean_price_string(raw) is None

    def test_from_cents(self):
        assert PriceNormalizer.from_cents(18999) == Decimal("189.99")
        assert PriceNormalizer.from_cents(None) is None

    def test_within_bounds(self):
        assert PriceNormalizer.within_bounds(Decimal("50"), Decimal("50"), Decimal("100"))
        assert not PriceNormalizer.within_bounds(Decimal("49.99"), Decimal("50"), Decimal("100"))
        assert not PriceNormalizer.within_bounds(None, Decimal("50"), Decimal("100"))


class TestTextHelpers:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("Jordan 1 Chicago Size 10.5", "10.5"),
            ("Dunk Low sz: 9", "9"),
            ("Yeezy 350 US 11", "11"),
            ("Samba OG", None),
            (None, None),
        ],
    )
    def test_extract_size(self, text, expected):
        assert extract_size(text) == expected

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("air-jordan-1-retro-high-og-dz5485-612", "DZ5485-612"),
            ("Nike Dunk Low Panda DD1391 100", "DD1391-100"),
            ("new-balance-550-white-green", ""),
            ("", ""),
        ],
    )
    def test_extract_style_code(self, text, expected):
        assert extract_style_code(text) == expected

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("Air Jordan 1 Mid", "Jordan"),
            ("Yeezy Boost 350 V2", "Adidas"),
            ("New Balance 2002R", "New Balance"),
            ("Dunk Low Retro", "Nike"),
            ("Mystery Runner", "Unknown"),
        ],
    )
    def test_infer_brand(self, name, expected):
        assert infer_brand(name) == expected

    def test_size_sort_key_orders_numerically(self):
        labels = ["10", "OS", "9.5", "US 4", "13"]

        assert sorted(labels, key=size_sort_key) == ["US 4", "9.5", "10", "13", "OS"]

    def test_absolute_url(self):
        base = "https://www.goat.com"

        assert absolute_url(base, "/sneakers/x") == "https://www.goat.com/sneakers/x"
        assert absolute_url(base, "//cdn.goat.com/a.jpg") == "https://cdn.goat.com/a.jpg"
        assert absolute_url(base, "https://other.com/y") == "https://other.com/y"
        assert absolute_url(base, "") == ""


# ============================================================================
# TESTS: CURRENCY
# ============================================================================

class TestCurrencyConverter:
    """Conversion into CAD with live and fallback rates."""

    def test_display_currency_passes_through(self):
        assert to_display_currency(Decimal("189.99"), "CAD") == Decimal("189.99")

    def test_fallback_usd_rate(self):
        assert to_display_currency(Decimal("100"), "USD") == Decimal("136")

    def test_rounds_half_up(self):
        # 6.25 * 1.36 = 8.50
        assert to_display_currency(Decimal("6.25"), "USD") == Decimal("9")

    def test_unknown_currency_is_one_to_one(self):
        assert CurrencyConverter.get_rate("XYZ") == Decimal("1")

    async def test_refresh_inverts_quoted_rates(self):
        def handler(request):
            return httpx.Response(200, json={"base": "CAD", "rates": {"CAD": 1, "USD": 0.74, "EUR": 0.68}})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            updated = await CurrencyConverter.refresh_rates(client)

        assert updated is True
        assert CurrencyConverter.get_rate("USD") == Decimal("1.3514")
        assert CurrencyConverter.get_rate("EUR") == Decimal("1.4706")
        # GBP missing from the response keeps its fallback
        assert CurrencyConverter.get_rate("GBP") == Decimal("1.72")
        assert to_display_currency(Decimal("100"), "USD") == Decimal("135")

    async def test_refresh_failure_keeps_fallback(self):
        async with httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(503))) as client:
            updated = await CurrencyConverter.refresh_rates(client)

        assert updated is False
        assert CurrencyConverter.get_rate("USD") == Decimal("1.36")

    async def test_refresh_rejects_non_json(self):
        async with httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(200, text="<html>"))
        ) as client:
            assert await CurrencyConverter.refresh_rates(client) is False

    @pytest.mark.parametrize("body", [[1, 2], {"rates": ["USD"]}, {"rates": {"USD": [0.73]}}])
    async def test_refresh_rejects_malformed_payload(self, body):
        async with httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json=body))
        ) as client:
            assert await CurrencyConverter.refresh_rates(client) is False

        assert CurrencyConverter.get_rate("USD") == Decimal("1.36")


# ============================================================================
# TESTS: SYNTHETIC CATALOG
# ============================================================================

class TestSyntheticCatalog:
    def test_best_match_first(self):
        matches = search_catalog("dunk panda")

        assert matches[0].sku == "DD1391-100"
        assert len(matches) <= 5

    def test_style_code_query(self):
        assert search_catalog("dz5485")[0].sku == "DZ5485-612"

    def test_no_match(self):
        assert search_catalog("zzqx") == []

    def test_price_variation(self):
        base = search_catalog("panda")[0]
        shifted = search_catalog("panda", price_variation=5)[0]

        assert shifted.price_usd == base.price_usd + 5
        # 5 USD at 1.36 rounds to 7 CAD
        assert shifted.price_cad == base.price_cad + 7

    def test_catalog_is_not_mutated(self):
        before = [entry.price_cad for entry in SYNTHETIC_CATALOG]
        search_catalog("jordan", price_variation=-15)

        assert [entry.price_cad for entry in SYNTHETIC_CATALOG] == before

    def test_find_by_sku_ignores_punctuation(self):
        assert find_by_sku("dd1391 100").name == "Nike Dunk Low Retro White Black Panda"
        assert find_by_sku("XX0000-000") is None

    def test_size_prices_are_deterministic_per_source(self):
        entry = find_by_sku("DZ5485-612")

        goat = synthetic_size_prices("goat", entry)

        assert goat == synthetic_size_prices("goat", entry)
        assert goat != synthetic_size_prices("stockx", entry)
        assert [size for size, _, _ in goat][:3] == ["7", "7.5", "8"]
        assert all(entry.price_cad - 20 <= price <= entry.price_cad + 40 for _, price, _ in goat)
