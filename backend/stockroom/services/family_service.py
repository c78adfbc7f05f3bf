# Overview: Service-layer operations for product families (categories).

"""
Family Service

DELETE POLICY (FAMILY_DELETE_POLICY):
- "guard": refuse to delete a family that still has products (same rule as suppliers)
- "cascade_null": clear family_id on every referencing product and delete the
  family, all in one batch

Products never require a family, so "cascade_null" leaves a valid catalog.
"""

from __future__ import annotations

import logging

from ..validation import ValidationError, ConsistencyError, NotFoundError
from .document_store import SERVER_TIMESTAMP, set_op, update_op, delete_op

logger = logging.getLogger(__name__)


DELETE_POLICY_GUARD = "guard"
DELETE_POLICY_CASCADE_NULL = "cascade_null"
DELETE_POLICIES = (DELETE_POLICY_GUARD, DELETE_POLICY_CASCADE_NULL)


def create_family(store, *, name: str) -> dict:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Family name is required")
    if len(name) > 255:
        raise ValidationError("name exceeds max length 255")

    family_id = store.new_id("families")
    store.batch_write([set_op("families", family_id, {"name": name, "created_at": SERVER_TIMESTAMP})])
    return store.get_by_id("families", family_id)


def list_families(store) -> list[dict]:
    return store.query("families", order_by="name")


def get_family(store, family_id: str) -> dict:
    family = store.get_by_id("families", family_id)
    if family is None:
        raise NotFoundError(f"Family {family_id} not found")
    return family


def delete_family(store, *, family_id: str, policy: str = DELETE_POLICY_GUARD) -> int:
    """
    Delete a family according to policy.

    Returns:
        Number of products detached (always 0 under "guard")

    Raises:
        NotFoundError: family does not exist
        ConsistencyError: "guard" policy and products still reference it
    """
    if policy not in DELETE_POLICIES:
        raise ValueError(f"Unknown family delete policy: {policy}")

    family = get_family(store, family_id)
    products = store.query("products", {"family_id": family_id})

    if products and policy == DELETE_POLICY_GUARD:
        raise ConsistencyError(
            f"Family {family['name']} has associated products and cannot be deleted",
            details={"family_id": family_id, "product_count": len(products)},
        )

    ops = [
        update_op("products", p["id"], {"family_id": None, "updated_at": SERVER_TIMESTAMP})
        for p in products
    ]
    ops.append(delete_op("families", family_id))
    store.batch_write(ops)

    logger.info("Family %s deleted (%d products detached)", family_id, len(products))
    return len(products)
