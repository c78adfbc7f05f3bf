# Overview: Service-layer operations for suppliers; encapsulates business logic over the document store.

"""
Supplier Service

WHY: Every product is bought from exactly one supplier (Product.supplier_id),
and bulk price updates are usually issued per supplier.

DELETE GUARD: a supplier that still has products cannot be deleted. The
check counts referencing products first and only then stages the delete.
"""

from __future__ import annotations

import logging

from ..validation import DocumentPolicy, ValidationError, ConsistencyError, NotFoundError, to_text
from .document_store import SERVER_TIMESTAMP, set_op, update_op, delete_op

logger = logging.getLogger(__name__)


SUPPLIER_POLICY = DocumentPolicy(
    coercers={
        "name": to_text,
        "phone": to_text,
        "email": to_text,
        "notes": to_text,
        "address": to_text,
    },
    required_on_create={"name"},
    nullable={"phone", "email", "notes", "address"},
    max_lengths={"name": 255, "phone": 64, "email": 255, "address": 255},
)


def create_supplier(store, *, patch: dict) -> dict:
    """
    Create a new supplier.

    Raises:
        ValidationError: missing name
    """
    name = (patch.get("name") or "").strip()
    if not name:
        raise ValidationError("Supplier name is required")

    doc = {
        "phone": None,
        "email": None,
        "notes": None,
        "address": None,
        **patch,
        "name": name,
        "created_at": SERVER_TIMESTAMP,
        "updated_at": SERVER_TIMESTAMP,
    }
    supplier_id = store.new_id("suppliers")
    store.batch_write([set_op("suppliers", supplier_id, doc)])
    return store.get_by_id("suppliers", supplier_id)


def get_supplier(store, supplier_id: str) -> dict:
    supplier = store.get_by_id("suppliers", supplier_id)
    if supplier is None:
        raise NotFoundError(f"Supplier {supplier_id} not found")
    return supplier


def list_suppliers(store) -> list[dict]:
    return store.query("suppliers", order_by="name")


def update_supplier(store, *, supplier_id: str, patch: dict) -> dict:
    get_supplier(store, supplier_id)

    if "name" in patch:
        name = (patch["name"] or "").strip()
        if not name:
            raise ValidationError("Supplier name cannot be empty")
        patch = {**patch, "name": name}

    store.batch_write([update_op("suppliers", supplier_id, {**patch, "updated_at": SERVER_TIMESTAMP})])
    return store.get_by_id("suppliers", supplier_id)


def delete_supplier(store, *, supplier_id: str) -> None:
    """
    Delete a supplier with no products.

    Raises:
        NotFoundError: supplier does not exist
        ConsistencyError: at least one product references the supplier
    """
    supplier = get_supplier(store, supplier_id)

    products = store.query("products", {"supplier_id": supplier_id})
    if products:
        raise ConsistencyError(
            f"Supplier {supplier['name']} has associated products and cannot be deleted",
            details={"supplier_id": supplier_id, "product_count": len(products)},
        )

    store.batch_write([delete_op("suppliers", supplier_id)])
    logger.info("Supplier %s deleted", supplier_id)
