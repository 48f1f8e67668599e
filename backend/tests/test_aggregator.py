"""Tests for grouping, summarizing and ranking listings."""

from decimal import Decimal

from solescan.scrapers.aggregator import aggregate, grouping_key, normalize_name


# ============================================================================
# TESTS: GROUPING KEY
# ============================================================================

class TestGroupingKey:
    """Tests for listing identity."""

    def test_sku_variants_share_a_key(self, make_listing):
        """Formatting differences in a style code do not split a product."""
        a = make_listing(sku="DZ5485-612", name="Jordan 1 Chicago", brand="Jordan")
        b = make_listing(source="goat", sku="dz5485612", name="Air Jordan 1 Retro High OG", brand="Nike")

        assert grouping_key(a) == grouping_key(b) == "dz5485612"

    def test_size_and_condition_markers_ignored_without_sku(self, make_listing):
        a = make_listing(name="Nike Dunk Low Panda (Size 10)")
        b = make_listing(source="grailed", name="Nike Dunk Low Panda DS")

        assert grouping_key(a) == grouping_key(b) == "nike-nikedunklowpanda"

    def test_short_sku_falls_back_to_name(self, make_listing):
        listing = make_listing(sku="ABC", name="Nike Dunk Low Panda")

        assert grouping_key(listing) == "nike-nikedunklowpanda"

    def test_brand_changes_name_key(self, make_listing):
        nike = make_listing(name="Dunk Low Panda", brand="Nike")
        other = make_listing(name="Dunk Low Panda", brand="Unknown")

        assert grouping_key(nike) != grouping_key(other)

    def test_normalize_name_keeps_first_five_words(self):
        assert normalize_name("Nike Dunk Low Retro White Black Panda") == "nikedunklowretrowhite"

    def test_normalize_name_strips_jargon_and_punctuation(self):
        assert normalize_name("BNIB Jordan 4 'Bred' sz 10.5 VNDS") == "jordan4bred"


# ============================================================================
# TESTS: AGGREGATION
# ============================================================================

class TestAggregate:
    """Tests for aggregate()."""

    def test_empty_input(self):
        assert aggregate([]) == []

    def test_single_member_group(self, make_listing):
        result = aggregate([make_listing(price="180")])

        assert len(result) == 1
        group = result[0]
        assert group.lowest_price == group.highest_price == Decimal("180")
        assert group.price_range == "$180"
        assert group.best_deal is group.listings[0]

    def test_price_statistics_and_best_deal(self, make_listing):
        listings = [
            make_listing(source="stockx", price="210", sku="DD1391-100"),
            make_listing(source="goat", price="150", sku="DD1391-100"),
            make_listing(source="grailed", price="181", sku="DD1391-100"),
        ]

        group = aggregate(listings)[0]

        assert group.lowest_price == Decimal("150")
        assert group.highest_price == Decimal("210")
        assert group.average_price == Decimal("180")
        assert group.best_deal.source == "goat"
        assert [listing.display_price for listing in group.listings] == [Decimal("150"), Decimal("181"), Decimal("210")]
        for listing in group.listings:
            assert group.lowest_price <= listing.display_price <= group.highest_price

    def test_average_rounds_half_up(self, make_listing):
        listings = [
            make_listing(source="stockx", price="100"),
            make_listing(source="goat", price="101"),
        ]

        assert aggregate(listings)[0].average_price == Decimal("101")

    def test_first_cheapest_member_wins_ties(self, make_listing):
        listings = [
            make_listing(source="haven", price="200"),
            make_listing(source="nrml", price="200"),
        ]

        assert aggregate(listings)[0].best_deal.source == "haven"

    def test_representative_prefers_member_with_image(self, make_listing):
        listings = [
            make_listing(source="stockx", name="Nike Dunk Low Panda"),
            make_listing(source="goat", name="Nike Dunk Low Panda", image_url="https://img.example/panda.png"),
        ]

        group = aggregate(listings)[0]

        assert group.image_url == "https://img.example/panda.png"

    def test_retail_price_carried_from_group(self, make_listing):
        listings = [
            make_listing(source="stockx", name="Nike Dunk Low Panda", image_url="https://img.example/panda.png"),
            make_listing(source="goat", name="Nike Dunk Low Panda", retail_price=Decimal("110")),
        ]

        group = aggregate(listings)[0]

        assert group.retail_price == Decimal("110")

    def test_retail_price_unknown(self, make_listing):
        group = aggregate([make_listing()])[0]

        assert group.retail_price is None

    def test_price_range_formatting(self, make_listing):
        listings = [
            make_listing(source="stockx", price="150"),
            make_listing(source="goat", price="1200"),
        ]

        assert aggregate(listings)[0].price_range == "$150 - $1,200"

    def test_more_listings_rank_before_cheaper_products(self, make_listing):
        """A product seen on 5 sources outranks a cheaper one seen on 2."""
        popular = [
            make_listing(source=source, identifier="p", price=str(200 + i), sku="DZ5485-612")
            for i, source in enumerate(["stockx", "goat", "flight-club", "kickscrew", "grailed"])
        ]
        cheap = [
            make_listing(source=source, identifier="c", price="100", sku="HQ4540")
            for source in ["haven", "nrml"]
        ]

        result = aggregate(cheap + popular)

        assert [g.sku for g in result] == ["DZ5485-612", "HQ4540"]

    def test_equal_counts_rank_by_lowest_price(self, make_listing):
        listings = [
            make_listing(source="stockx", price="300", sku="AAAA-1"),
            make_listing(source="goat", price="120", sku="BBBB-2"),
        ]

        assert [g.sku for g in aggregate(listings)] == ["BBBB-2", "AAAA-1"]

    def test_id_and_sources(self, make_listing):
        listings = [
            make_listing(source="goat", price="160", sku="DD1391-100"),
            make_listing(source="stockx", price="150", sku="DD1391-100"),
        ]

        group = aggregate(listings)[0]

        assert group.id == "agg-dd1391100"
        assert group.sources == ["stockx", "goat"]
        assert group.listing_count == 2
