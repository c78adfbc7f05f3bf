# Overview: Bulk price updates by supplier or family, preserving each product's margin.

"""
Price Update Engine

WHY: Suppliers raise prices across their whole catalog at once. Updating the
purchase price product by product is error-prone, and the sale price has to
move with it so the shop keeps the same absolute margin on each item.

ALGORITHM (per product matched by the scope):
    new_purchase = round2(purchase * (1 + value / 100))   # percentage
    new_purchase = round2(purchase + value)               # fixed
    margin       = sale - purchase                        # before the update
    new_sale     = round2(new_purchase + margin)

All staged updates go into one batch; the store commits them atomically.

SIGN: the engine accepts negative values (discounts). Rejecting non-positive
adjustments is the caller's decision (see routes/pricing.py).

RETRIES: every run recomputes from the prices currently stored, so a failed
run can be retried as a whole. Percentage runs compound: +10% twice is not
+20% once, but the margin is preserved after each run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal

from ..validation import MAX_PRICE, ValidationError, round2, to_decimal
from .document_store import StoreError, SERVER_TIMESTAMP, update_op

logger = logging.getLogger(__name__)


SCOPE_SUPPLIER = "supplier"
SCOPE_FAMILY = "family"

MODE_PERCENTAGE = "percentage"
MODE_FIXED = "fixed"

_SCOPE_FIELDS = {
    SCOPE_SUPPLIER: "supplier_id",
    SCOPE_FAMILY: "family_id",
}

_HUNDRED = Decimal("100")


class PriceUpdateError(Exception):
    """The bulk update could not read or commit; no product was changed."""

    def __init__(self, message: str = "price update failed"):
        super().__init__(message)


@dataclass(frozen=True)
class PriceScope:
    kind: str
    id: str

    def __post_init__(self):
        if self.kind not in _SCOPE_FIELDS:
            raise ValidationError(f"scope kind must be one of: {', '.join(_SCOPE_FIELDS)}")
        if not self.id or not str(self.id).strip():
            raise ValidationError("scope id is required")

    @property
    def field_name(self) -> str:
        return _SCOPE_FIELDS[self.kind]


@dataclass(frozen=True)
class PriceAdjustment:
    mode: str
    value: Decimal

    def __post_init__(self):
        if self.mode not in (MODE_PERCENTAGE, MODE_FIXED):
            raise ValidationError(f"mode must be '{MODE_PERCENTAGE}' or '{MODE_FIXED}'")
        # Accept ints/floats/strings at construction; store the Decimal
        value = to_decimal(self.value, "value")
        if abs(value) > MAX_PRICE:
            raise ValidationError(f"value cannot exceed {MAX_PRICE} in magnitude")
        object.__setattr__(self, "value", value)

    def new_purchase_price(self, purchase: Decimal) -> Decimal:
        if self.mode == MODE_PERCENTAGE:
            return round2(purchase * (1 + self.value / _HUNDRED))
        return round2(purchase + self.value)


@dataclass(frozen=True)
class PriceUpdateResult:
    updated_count: int


def reprice(product: dict, adjustment: PriceAdjustment) -> tuple[Decimal, Decimal]:
    """New (purchase, sale) for one product, keeping its current margin."""
    purchase = Decimal(product["purchase_price"])
    sale = Decimal(product["sale_price"])
    margin = sale - purchase

    new_purchase = adjustment.new_purchase_price(purchase)
    new_sale = round2(new_purchase + margin)
    if new_sale > MAX_PRICE:
        raise ValidationError(
            f"Product {product.get('name') or product.get('id')} would be priced above {MAX_PRICE}",
            details={"product_id": product.get("id")},
        )
    return new_purchase, new_sale


class PriceUpdateEngine:
    def __init__(self, store):
        self.store = store

    def apply_bulk_price_update(self, scope: PriceScope, adjustment: PriceAdjustment) -> PriceUpdateResult:
        """
        Reprice every product in scope and commit the result as one batch.

        Returns:
            PriceUpdateResult with the number of products matched (and updated)

        Raises:
            PriceUpdateError: the read or the commit failed; nothing was applied
            ValidationError: a repriced product would exceed the maximum price
        """
        try:
            products = self.store.query("products", {scope.field_name: scope.id})
        except StoreError as exc:
            logger.error("Price update read failed for %s=%s: %s", scope.kind, scope.id, exc)
            raise PriceUpdateError() from exc

        if not products:
            return PriceUpdateResult(updated_count=0)

        ops = []
        for product in products:
            new_purchase, new_sale = reprice(product, adjustment)
            if new_purchase <= 0:
                # Not blocked: the update still applies, but this is almost always a typo
                logger.warning(
                    "Product %s purchase price would become %s after %s %s",
                    product["id"], new_purchase, adjustment.mode, adjustment.value,
                )
            ops.append(update_op("products", product["id"], {
                "purchase_price": new_purchase,
                "sale_price": new_sale,
                "updated_at": SERVER_TIMESTAMP,
            }))

        try:
            self.store.batch_write(ops)
        except StoreError as exc:
            logger.error("Price update commit failed for %s=%s: %s", scope.kind, scope.id, exc)
            raise PriceUpdateError() from exc

        logger.info(
            "Repriced %d products for %s=%s (%s %s)",
            len(ops), scope.kind, scope.id, adjustment.mode, adjustment.value,
        )
        return PriceUpdateResult(updated_count=len(ops))
