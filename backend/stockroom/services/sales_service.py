# Overview: Sale registration (validate cart, write sale + stock decrements atomically) and sales history.

"""
Sale Registrar

WHY: A checkout must either record the sale AND take the items out of stock,
or do neither. Both writes go into a single batch.

FLOW:
1. Validate every line (fail fast, no writes)
2. Recompute the total from the lines and reject a mismatching caller total
3. Idempotency: a known key returns the sale it already produced
4. Read current stock and reject lines that exceed it
5. One batch: set the sale document + guarded stock decrement per product

STOCK RACE: step 4 reads stock, step 5 writes later. The decrement is a
relative increment with floor=0, so if another sale took the stock in
between, the store rejects the whole batch and the caller gets
InsufficientStockError instead of negative stock.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal

from ..validation import ValidationError, NotFoundError, round2, to_decimal, to_int, to_money
from .document_store import GuardFailedError, SERVER_TIMESTAMP, set_op, increment_op

logger = logging.getLogger(__name__)


SALE_STATUS_COMPLETED = "completed"


class InsufficientStockError(Exception):
    """Requested quantity exceeds the stock currently available."""

    def __init__(self, product_id: str, name: str | None, requested: int, available: int | None):
        label = name or product_id
        super().__init__(f"Not enough stock for product {label}")
        self.product_id = product_id
        self.name = name
        self.requested = requested
        self.available = available
        self.details = {
            "product_id": product_id,
            "name": name,
            "requested_quantity": requested,
            "available": available,
        }


@dataclass(frozen=True)
class SaleLineInput:
    product_id: str
    name: str
    unit_price: Decimal
    quantity: int

    @property
    def subtotal(self) -> Decimal:
        return round2(self.unit_price * self.quantity)


@dataclass(frozen=True)
class RegisteredSale:
    sale_id: str
    total: Decimal
    items: list[dict] = field(default_factory=list)
    replayed: bool = False


def _label(raw: dict) -> str:
    return str(raw.get("name") or raw.get("product_id") or "?")


def parse_line(raw) -> SaleLineInput:
    """Validate one cart line; errors name the offending product."""
    if not isinstance(raw, dict):
        raise ValidationError("Each line must be an object")

    product_id = raw.get("product_id")
    if product_id is None or str(product_id).strip() == "":
        raise ValidationError(f"Missing product_id for product {_label(raw)}")
    product_id = str(product_id).strip()

    label = _label(raw)
    quantity = raw.get("quantity")
    try:
        quantity = to_int(quantity, "quantity")
    except ValidationError:
        raise ValidationError(f"Invalid quantity for product {label}", details={"product_id": product_id})
    if quantity <= 0:
        raise ValidationError(f"Invalid quantity for product {label}", details={"product_id": product_id})

    try:
        unit_price = to_money(raw.get("unit_price"), "unit_price")
    except ValidationError:
        raise ValidationError(f"Invalid price for product {label}", details={"product_id": product_id})
    if unit_price <= 0:
        raise ValidationError(f"Invalid price for product {label}", details={"product_id": product_id})

    name = raw.get("name")
    name = str(name).strip() if name else "Unnamed product"

    return SaleLineInput(product_id=product_id, name=name, unit_price=unit_price, quantity=quantity)


class SaleRegistrar:
    def __init__(self, store):
        self.store = store

    def register_sale(
        self,
        lines,
        total=None,
        user_id: str | None = None,
        *,
        idempotency_key: str | None = None,
    ) -> RegisteredSale:
        """
        Turn a cart into a durable sale and take its items out of stock.

        Args:
            lines: [{product_id, name, unit_price, quantity}, ...]
            total: caller-computed total; recomputed and checked when given
            user_id: user performing the sale
            idempotency_key: optional client token to deduplicate retries

        Returns:
            RegisteredSale

        Raises:
            ValidationError: malformed line, empty cart or total mismatch
            InsufficientStockError: a line exceeds current stock
            StoreUnavailableError: the read or the commit failed
        """
        if not isinstance(lines, (list, tuple)) or not lines:
            raise ValidationError("Cannot register a sale with no lines")

        parsed = [parse_line(raw) for raw in lines]
        computed_total = round2(sum((line.subtotal for line in parsed), Decimal("0")))

        if total is not None:
            expected = round2(to_decimal(total, "total"))
            if expected != computed_total:
                raise ValidationError(
                    "total does not match line items",
                    details={"total": str(expected), "computed_total": str(computed_total)},
                )

        if idempotency_key is not None:
            idempotency_key = str(idempotency_key).strip() or None
        if idempotency_key:
            previous = self.store.query("sales", {"idempotency_key": idempotency_key}, limit=1)
            if previous:
                sale = previous[0]
                logger.info("Sale %s replayed for idempotency key %s", sale["id"], idempotency_key)
                return RegisteredSale(
                    sale_id=sale["id"],
                    total=sale["total"],
                    items=sale["items"],
                    replayed=True,
                )

        requested = self._requested_quantities(parsed)
        self._check_stock(requested, parsed)

        items = [
            {
                "product_id": line.product_id,
                "name": line.name,
                "unit_price": line.unit_price,
                "quantity": line.quantity,
                "subtotal": line.subtotal,
            }
            for line in parsed
        ]

        sale_id = self.store.new_id("sales")
        ops = [set_op("sales", sale_id, {
            "items": items,
            "total": computed_total,
            "sold_at": SERVER_TIMESTAMP,
            "user_id": user_id,
            "status": SALE_STATUS_COMPLETED,
            "idempotency_key": idempotency_key,
        })]
        for product_id, quantity in requested.items():
            ops.append(increment_op("products", product_id, "stock", -quantity, floor=0))

        try:
            self.store.batch_write(ops)
        except GuardFailedError as exc:
            # Lost the race against a concurrent sale after the stock check
            name = next((l.name for l in parsed if l.product_id == exc.doc_id), None)
            raise InsufficientStockError(exc.doc_id, name, requested.get(exc.doc_id, 0), None) from exc

        logger.info("Sale %s registered: %d lines, total %s", sale_id, len(items), computed_total)
        return RegisteredSale(sale_id=sale_id, total=computed_total, items=items)

    @staticmethod
    def _requested_quantities(parsed: list[SaleLineInput]) -> dict[str, int]:
        # The same product may appear on several lines
        totals: dict[str, int] = {}
        for line in parsed:
            totals[line.product_id] = totals.get(line.product_id, 0) + line.quantity
        return totals

    def _check_stock(self, requested: dict[str, int], parsed: list[SaleLineInput]) -> None:
        for product_id, quantity in requested.items():
            product = self.store.get_by_id("products", product_id)
            name = next(l.name for l in parsed if l.product_id == product_id)
            if product is None:
                raise ValidationError(
                    f"Product {name} not found",
                    details={"product_id": product_id},
                )
            available = product.get("stock") or 0
            if available < quantity:
                raise InsufficientStockError(product_id, product.get("name") or name, quantity, available)


def list_sales(store, *, limit: int | None = None) -> list[dict]:
    """Sales history, newest first."""
    return store.query("sales", order_by="sold_at", descending=True, limit=limit)


def get_sale(store, sale_id: str) -> dict:
    sale = store.get_by_id("sales", sale_id)
    if sale is None:
        raise NotFoundError(f"Sale {sale_id} not found")
    return sale
