"""
Sale registration tests.

Verifies:
- A sale records its lines and takes the quantities out of stock atomically
- Validation and stock failures write nothing
- Idempotency keys turn retries into replays
- A stock race lost after the check is reported as insufficient stock
"""

from decimal import Decimal

import pytest

from stockroom.services.document_store import set_op
from stockroom.services.sales_service import (
    SaleRegistrar,
    InsufficientStockError,
    list_sales,
    get_sale,
    parse_line,
)
from stockroom.services.document_store import StoreUnavailableError
from stockroom.validation import ValidationError, NotFoundError


@pytest.fixture
def store(memory_store):
    memory_store.batch_write([
        set_op("products", "p1", {"name": "Widget", "purchase_price": Decimal("6.00"),
                                  "sale_price": Decimal("10.00"), "stock": 5}),
        set_op("products", "p2", {"name": "Gadget", "purchase_price": Decimal("2.00"),
                                  "sale_price": Decimal("3.50"), "stock": 1}),
    ])
    return memory_store


def _line(product_id="p1", quantity=2, unit_price=10.0, name="Widget"):
    return {"product_id": product_id, "name": name, "unit_price": unit_price, "quantity": quantity}


def _stock(store, pid):
    return store.get_by_id("products", pid)["stock"]


class TestRegisterSale:

    def test_records_sale_and_decrements_stock(self, store):
        result = SaleRegistrar(store).register_sale([_line()], 20.0, "u1")

        assert result.total == Decimal("20.00")
        assert result.replayed is False
        assert _stock(store, "p1") == 3

        sale = get_sale(store, result.sale_id)
        assert sale["total"] == Decimal("20.00")
        assert sale["user_id"] == "u1"
        assert sale["status"] == "completed"
        assert sale["sold_at"] is not None
        assert sale["items"][0]["subtotal"] == Decimal("20.00")

    def test_total_is_recomputed_when_omitted(self, store):
        result = SaleRegistrar(store).register_sale([_line(), _line("p2", 1, "3.50", "Gadget")])

        assert result.total == Decimal("23.50")
        assert _stock(store, "p2") == 0

    def test_single_commit(self, store):
        commits = store.commit_count
        SaleRegistrar(store).register_sale([_line(), _line("p2", 1, 3.5, "Gadget")], 23.5, "u1")
        assert store.commit_count == commits + 1

    def test_repeated_product_lines_are_summed(self, store):
        with pytest.raises(InsufficientStockError) as exc_info:
            SaleRegistrar(store).register_sale([_line(quantity=3), _line(quantity=3)])

        assert exc_info.value.details["requested_quantity"] == 6
        assert exc_info.value.details["available"] == 5
        assert _stock(store, "p1") == 5


class TestRejections:

    def test_insufficient_stock_writes_nothing(self, store):
        with pytest.raises(InsufficientStockError, match="Widget"):
            SaleRegistrar(store).register_sale([_line("p2", 1, 3.5, "Gadget"), _line(quantity=6)])

        assert _stock(store, "p1") == 5
        assert _stock(store, "p2") == 1
        assert store.query("sales") == []

    def test_total_mismatch(self, store):
        with pytest.raises(ValidationError) as exc_info:
            SaleRegistrar(store).register_sale([_line()], 19.99)

        assert exc_info.value.details["computed_total"] == "20.00"
        assert _stock(store, "p1") == 5

    @pytest.mark.parametrize("quantity", [0, -1, 1.5, "two", None])
    def test_invalid_quantity(self, store, quantity):
        with pytest.raises(ValidationError, match="Invalid quantity for product Widget"):
            SaleRegistrar(store).register_sale([_line(quantity=quantity)])

    @pytest.mark.parametrize("price", [0, -3, "abc", None])
    def test_invalid_price(self, store, price):
        with pytest.raises(ValidationError, match="Invalid price for product Widget"):
            SaleRegistrar(store).register_sale([_line(unit_price=price)])

    def test_empty_cart(self, store):
        with pytest.raises(ValidationError):
            SaleRegistrar(store).register_sale([])

    def test_unknown_product(self, store):
        with pytest.raises(ValidationError, match="not found"):
            SaleRegistrar(store).register_sale([_line("ghost", 1, 1, "Ghost")])

    def test_commit_failure_writes_nothing(self, store):
        store.fail_writes = True
        with pytest.raises(StoreUnavailableError):
            SaleRegistrar(store).register_sale([_line()])

        store.fail_writes = False
        assert _stock(store, "p1") == 5
        assert store.query("sales") == []


class TestIdempotency:

    def test_replay_returns_original_sale(self, store):
        registrar = SaleRegistrar(store)
        first = registrar.register_sale([_line()], 20.0, "u1", idempotency_key="cart-42")
        second = registrar.register_sale([_line()], 20.0, "u1", idempotency_key="cart-42")

        assert second.replayed is True
        assert second.sale_id == first.sale_id
        assert _stock(store, "p1") == 3
        assert len(store.query("sales")) == 1

    def test_replay_does_not_recheck_stock(self, store):
        registrar = SaleRegistrar(store)
        registrar.register_sale([_line(quantity=5)], idempotency_key="all-of-it")

        again = registrar.register_sale([_line(quantity=5)], idempotency_key="all-of-it")
        assert again.replayed is True
        assert _stock(store, "p1") == 0


class TestStockRace:

    def test_guard_rejects_sale_after_stale_check(self, store, monkeypatch):
        registrar = SaleRegistrar(store)
        # Another checkout takes the stock between our check and our commit
        original_check = registrar._check_stock

        def check_then_lose_race(requested, parsed):
            original_check(requested, parsed)
            store.batch_write([set_op("products", "p1", {
                **store.get_by_id("products", "p1"), "stock": 1,
            })])

        monkeypatch.setattr(registrar, "_check_stock", check_then_lose_race)

        with pytest.raises(InsufficientStockError) as exc_info:
            registrar.register_sale([_line(quantity=2)])

        assert exc_info.value.product_id == "p1"
        assert _stock(store, "p1") == 1
        assert store.query("sales") == []


class TestHistory:

    def test_newest_first_with_limit(self, store):
        registrar = SaleRegistrar(store)
        ids = [registrar.register_sale([_line(quantity=1)]).sale_id for _ in range(3)]

        history = list_sales(store)
        assert {s["id"] for s in history} == set(ids)
        assert [s["sold_at"] for s in history] == sorted((s["sold_at"] for s in history), reverse=True)
        assert len(list_sales(store, limit=2)) == 2

    def test_unknown_sale(self, store):
        with pytest.raises(NotFoundError):
            get_sale(store, "missing")


def test_parse_line_defaults_blank_name():
    line = parse_line({"product_id": " p1 ", "unit_price": "2.5", "quantity": "3"})
    assert line.product_id == "p1"
    assert line.name == "Unnamed product"
    assert line.subtotal == Decimal("7.50")


class TestAmounts:

    def test_unit_price_rounded_to_cents(self, store):
        result = SaleRegistrar(store).register_sale([_line(unit_price="10.005")])

        item = get_sale(store, result.sale_id)["items"][0]
        assert item["unit_price"] == Decimal("10.01")
        assert item["subtotal"] == Decimal("20.02")
        assert result.total == Decimal("20.02")

    @pytest.mark.parametrize("price", ["1e30", "10000000"])
    def test_unit_price_above_max(self, store, price):
        with pytest.raises(ValidationError, match="Invalid price for product Widget"):
            SaleRegistrar(store).register_sale([_line(unit_price=price)])

    def test_subtotal_out_of_range(self, store):
        with pytest.raises(ValidationError):
            SaleRegistrar(store).register_sale([_line(quantity=10 ** 30)])
        assert _stock(store, "p1") == 5
