# Overview: Service-layer operations for products; encapsulates catalog rules over the document store.

"""
Catalog Service

Product CRUD, barcode lookup, low-stock listing and manual stock adjustments.

RULES (enforced on every create/update, over the merged document):
- purchase_price > 0 and sale_price > purchase_price
- stock >= 0, min_stock >= 0 when set
- supplier_id must reference an existing supplier
- family_id, when set, must reference an existing family
- barcode is digits only and unique across products
"""

from __future__ import annotations

import logging

from ..validation import (
    DocumentPolicy,
    ValidationError,
    NotFoundError,
    enforce_rules_product,
    normalize_barcode,
    to_int,
    to_money,
    to_text,
)
from .document_store import (
    GuardFailedError,
    SERVER_TIMESTAMP,
    set_op,
    update_op,
    delete_op,
    increment_op,
)
from .sales_service import InsufficientStockError

logger = logging.getLogger(__name__)


def _barcode(value, name):
    return normalize_barcode(value)


def _reference(value, name):
    text = to_text(value, name)
    return text or None


PRODUCT_POLICY = DocumentPolicy(
    coercers={
        "name": to_text,
        "description": to_text,
        "purchase_price": to_money,
        "sale_price": to_money,
        "stock": to_int,
        "min_stock": to_int,
        "barcode": _barcode,
        "supplier_id": _reference,
        "family_id": _reference,
    },
    required_on_create={"name", "purchase_price", "sale_price", "stock", "supplier_id"},
    nullable={"description", "min_stock", "barcode", "family_id"},
    max_lengths={"name": 255},
)


def _require_references(store, doc: dict) -> None:
    supplier_id = doc.get("supplier_id")
    if not supplier_id:
        raise ValidationError("supplier_id is required")
    if store.get_by_id("suppliers", supplier_id) is None:
        raise ValidationError(f"Supplier {supplier_id} not found")

    family_id = doc.get("family_id")
    if family_id and store.get_by_id("families", family_id) is None:
        raise ValidationError(f"Family {family_id} not found")


def _require_unique_barcode(store, barcode: str | None, product_id: str | None = None) -> None:
    if not barcode:
        return
    for other in store.query("products", {"barcode": barcode}):
        if other["id"] != product_id:
            raise ValidationError(f"Barcode {barcode} already belongs to product {other['name']}")


def is_low_stock(product: dict) -> bool:
    min_stock = product.get("min_stock")
    return min_stock is not None and (product.get("stock") or 0) < min_stock


def create_product(store, *, patch: dict) -> dict:
    """
    Create product from a validated patch dict.

    Returns:
        Created product document

    Raises:
        ValidationError: rule violation, unknown supplier/family, duplicate barcode
    """
    doc = {
        "description": None,
        "min_stock": None,
        "barcode": None,
        "family_id": None,
        **patch,
    }
    enforce_rules_product(doc)
    _require_references(store, doc)
    _require_unique_barcode(store, doc.get("barcode"))

    if is_low_stock(doc):
        logger.warning("Product %r created below its minimum stock (%s < %s)",
                       doc["name"], doc["stock"], doc["min_stock"])

    product_id = store.new_id("products")
    doc["created_at"] = SERVER_TIMESTAMP
    doc["updated_at"] = SERVER_TIMESTAMP
    store.batch_write([set_op("products", product_id, doc)])
    return store.get_by_id("products", product_id)


def get_product(store, product_id: str) -> dict:
    product = store.get_by_id("products", product_id)
    if product is None:
        raise NotFoundError(f"Product {product_id} not found")
    return product


def list_products(store, *, supplier_id: str | None = None, family_id: str | None = None) -> list[dict]:
    """
    Products ordered by name, each with its supplier name and a low_stock flag.
    """
    filters = {}
    if supplier_id:
        filters["supplier_id"] = supplier_id
    if family_id:
        filters["family_id"] = family_id

    # One supplier read instead of one per product
    supplier_names = {s["id"]: s["name"] for s in store.query("suppliers")}

    products = store.query("products", filters, order_by="name")
    for product in products:
        product["supplier_name"] = supplier_names.get(product.get("supplier_id"))
        product["low_stock"] = is_low_stock(product)
    return products


def list_low_stock(store) -> list[dict]:
    return [p for p in list_products(store) if p["low_stock"]]


def find_by_barcode(store, barcode) -> dict | None:
    code = normalize_barcode(barcode)
    if code is None:
        return None
    matches = store.query("products", {"barcode": code}, limit=1)
    return matches[0] if matches else None


def update_product(store, *, product_id: str, patch: dict) -> dict:
    """
    Update a product.

    Raises:
        NotFoundError: product does not exist
        ValidationError: merged document breaks a catalog rule
    """
    current = get_product(store, product_id)
    merged = {**current, **patch}

    enforce_rules_product(merged)
    if "supplier_id" in patch or "family_id" in patch:
        _require_references(store, merged)
    if patch.get("barcode"):
        _require_unique_barcode(store, patch["barcode"], product_id)

    changes = dict(patch)
    changes["updated_at"] = SERVER_TIMESTAMP
    store.batch_write([update_op("products", product_id, changes)])
    return store.get_by_id("products", product_id)


def delete_product(store, *, product_id: str) -> None:
    get_product(store, product_id)
    store.batch_write([delete_op("products", product_id)])
    logger.info("Product %s deleted", product_id)


def adjust_stock(store, *, product_id: str, delta: int) -> dict:
    """
    Add (delta > 0) or remove (delta < 0) units outside of a sale.

    The change is a relative, floor-guarded increment so it cannot race a
    concurrent sale into negative stock.

    Raises:
        NotFoundError: product does not exist
        InsufficientStockError: removal exceeds current stock
    """
    if delta == 0:
        raise ValidationError("delta must be non-zero")

    product = get_product(store, product_id)
    try:
        store.batch_write([
            increment_op("products", product_id, "stock", delta, floor=0),
            update_op("products", product_id, {"updated_at": SERVER_TIMESTAMP}),
        ])
    except GuardFailedError as exc:
        raise InsufficientStockError(product_id, product.get("name"), -delta, product.get("stock")) from exc
    return store.get_by_id("products", product_id)
