"""
Bulk price update tests.

Verifies:
- Margin (sale - purchase) is preserved for every repriced product
- Only products in scope are touched; the count matches them
- Percentage runs compound
- Read/commit failures leave every product unchanged
"""

from decimal import Decimal

import pytest

from stockroom.services.document_store import set_op
from stockroom.services.pricing_service import (
    PriceUpdateEngine,
    PriceScope,
    PriceAdjustment,
    PriceUpdateError,
    reprice,
)
from stockroom.validation import ValidationError


def _seed(store, products):
    store.batch_write([
        set_op("products", pid, {
            "name": pid,
            "purchase_price": Decimal(purchase),
            "sale_price": Decimal(sale),
            "stock": 10,
            "supplier_id": supplier_id,
            "family_id": family_id,
        })
        for pid, purchase, sale, supplier_id, family_id in products
    ])


@pytest.fixture
def catalog(memory_store):
    _seed(memory_store, [
        ("p1", "100.00", "150.00", "s1", "f1"),
        ("p2", "10.05", "15.00", "s1", None),
        ("p3", "20.00", "30.00", "s2", "f1"),
    ])
    return memory_store


def _prices(store, pid):
    doc = store.get_by_id("products", pid)
    return doc["purchase_price"], doc["sale_price"]


class TestMarginPreservation:

    def test_percentage_by_supplier(self, catalog):
        result = PriceUpdateEngine(catalog).apply_bulk_price_update(
            PriceScope("supplier", "s1"), PriceAdjustment("percentage", 10)
        )

        assert result.updated_count == 2
        assert _prices(catalog, "p1") == (Decimal("110.00"), Decimal("160.00"))
        # 10.05 * 1.1 = 11.055 rounds half-up; margin 4.95 kept
        assert _prices(catalog, "p2") == (Decimal("11.06"), Decimal("16.01"))
        assert _prices(catalog, "p3") == (Decimal("20.00"), Decimal("30.00"))

    def test_fixed_by_family(self, catalog):
        result = PriceUpdateEngine(catalog).apply_bulk_price_update(
            PriceScope("family", "f1"), PriceAdjustment("fixed", "2.50")
        )

        assert result.updated_count == 2
        assert _prices(catalog, "p1") == (Decimal("102.50"), Decimal("152.50"))
        assert _prices(catalog, "p3") == (Decimal("22.50"), Decimal("32.50"))

    def test_margin_identical_before_and_after(self, catalog):
        before = {p["id"]: p["sale_price"] - p["purchase_price"] for p in catalog.query("products")}

        PriceUpdateEngine(catalog).apply_bulk_price_update(
            PriceScope("supplier", "s1"), PriceAdjustment("percentage", 7.5)
        )

        for p in catalog.query("products"):
            assert p["sale_price"] - p["purchase_price"] == before[p["id"]]

    def test_fixed_zero_leaves_prices_unchanged(self, catalog):
        result = PriceUpdateEngine(catalog).apply_bulk_price_update(
            PriceScope("supplier", "s1"), PriceAdjustment("fixed", 0)
        )

        assert result.updated_count == 2
        assert _prices(catalog, "p1") == (Decimal("100.00"), Decimal("150.00"))
        assert _prices(catalog, "p2") == (Decimal("10.05"), Decimal("15.00"))


class TestRepeatedRuns:

    def test_percentage_compounds(self, catalog):
        engine = PriceUpdateEngine(catalog)
        scope = PriceScope("supplier", "s1")

        engine.apply_bulk_price_update(scope, PriceAdjustment("percentage", 10))
        engine.apply_bulk_price_update(scope, PriceAdjustment("percentage", 10))

        # +10% twice is 121.00, not the 120.00 of a single +20%
        assert _prices(catalog, "p1") == (Decimal("121.00"), Decimal("171.00"))

    def test_negative_value_is_a_discount(self, catalog):
        PriceUpdateEngine(catalog).apply_bulk_price_update(
            PriceScope("supplier", "s2"), PriceAdjustment("percentage", -10)
        )

        assert _prices(catalog, "p3") == (Decimal("18.00"), Decimal("28.00"))

    def test_empty_scope_skips_the_commit(self, catalog):
        commits = catalog.commit_count

        result = PriceUpdateEngine(catalog).apply_bulk_price_update(
            PriceScope("supplier", "nobody"), PriceAdjustment("percentage", 10)
        )

        assert result.updated_count == 0
        assert catalog.commit_count == commits


class TestFailures:

    def test_read_failure(self, catalog):
        catalog.fail_reads = True

        with pytest.raises(PriceUpdateError, match="price update failed"):
            PriceUpdateEngine(catalog).apply_bulk_price_update(
                PriceScope("supplier", "s1"), PriceAdjustment("percentage", 10)
            )

    def test_commit_failure_applies_nothing(self, catalog):
        catalog.fail_writes = True

        with pytest.raises(PriceUpdateError):
            PriceUpdateEngine(catalog).apply_bulk_price_update(
                PriceScope("supplier", "s1"), PriceAdjustment("percentage", 10)
            )

        catalog.fail_writes = False
        assert _prices(catalog, "p1") == (Decimal("100.00"), Decimal("150.00"))
        assert _prices(catalog, "p2") == (Decimal("10.05"), Decimal("15.00"))


class TestInputs:

    @pytest.mark.parametrize("kind,scope_id", [("vendor", "s1"), ("supplier", ""), ("family", None)])
    def test_invalid_scope(self, kind, scope_id):
        with pytest.raises(ValidationError):
            PriceScope(kind, scope_id)

    @pytest.mark.parametrize("mode,value", [("ratio", 10), ("fixed", "abc"), ("percentage", None)])
    def test_invalid_adjustment(self, mode, value):
        with pytest.raises(ValidationError):
            PriceAdjustment(mode, value)

    def test_reprice_single_product(self):
        new_purchase, new_sale = reprice(
            {"purchase_price": Decimal("4.00"), "sale_price": Decimal("5.00")},
            PriceAdjustment("fixed", "-1.00"),
        )
        assert (new_purchase, new_sale) == (Decimal("3.00"), Decimal("4.00"))


class TestOutOfRange:

    def test_huge_adjustment_rejected(self):
        with pytest.raises(ValidationError):
            PriceAdjustment("fixed", "1e30")

    def test_repriced_above_max_commits_nothing(self, memory_store):
        _seed(memory_store, [
            ("big", "9999990.00", "9999999.00", "s9", None),
            ("small", "1.00", "2.00", "s9", None),
        ])
        commits = memory_store.commit_count

        with pytest.raises(ValidationError) as exc_info:
            PriceUpdateEngine(memory_store).apply_bulk_price_update(
                PriceScope("supplier", "s9"), PriceAdjustment("fixed", 100)
            )

        assert exc_info.value.details["product_id"] == "big"
        assert memory_store.commit_count == commits
        assert _prices(memory_store, "small") == (Decimal("1.00"), Decimal("2.00"))
