# Overview: Flask API routes for products; parses input and returns JSON responses.

"""
Product routes.

SECURITY: All routes require a forwarded user (@require_user).
Deleting a product additionally requires the admin role.
"""

from flask import Blueprint, request, current_app

from ..decorators import require_user, require_role
from ..extensions import get_document_store
from ..models import ROLE_ADMIN
from ..services import catalog_service
from ..services.catalog_service import PRODUCT_POLICY
from ..services.document_store import StoreError
from ..services.sales_service import InsufficientStockError
from ..validation import validate_payload, to_int, ValidationError, NotFoundError
from .responses import success, failure


products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_user
def list_products_route():
    """
    List products ordered by name.

    Query params:
    - supplier_id: only products of this supplier
    - family_id: only products of this family
    - low_stock: "true" to keep only products below their minimum stock
    """
    supplier_id = request.args.get("supplier_id")
    family_id = request.args.get("family_id")
    low_only = request.args.get("low_stock", "false").lower() == "true"

    try:
        items = catalog_service.list_products(
            get_document_store(), supplier_id=supplier_id, family_id=family_id
        )
    except StoreError:
        current_app.logger.exception("Failed to list products")
        return failure("Store unavailable", 503)

    if low_only:
        items = [p for p in items if p["low_stock"]]
    return success(items=items, count=len(items))


@products_bp.post("")
@require_user
def create_product_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(payload=payload, policy=PRODUCT_POLICY, partial=False)
        created = catalog_service.create_product(get_document_store(), patch=patch)
    except ValidationError as e:
        return failure(str(e), 400, e.details)
    except StoreError:
        current_app.logger.exception("Failed to create product")
        return failure("Store unavailable", 503)

    return success(201, product=created)


@products_bp.get("/<product_id>")
@require_user
def get_product_route(product_id: str):
    try:
        product = catalog_service.get_product(get_document_store(), product_id)
    except NotFoundError as e:
        return failure(str(e), 404)
    except StoreError:
        current_app.logger.exception("Failed to load product")
        return failure("Store unavailable", 503)
    return success(product=product)


@products_bp.get("/barcode/<code>")
@require_user
def find_by_barcode_route(code: str):
    try:
        product = catalog_service.find_by_barcode(get_document_store(), code)
    except ValidationError as e:
        return failure(str(e), 400)
    except StoreError:
        current_app.logger.exception("Failed to lookup barcode")
        return failure("Store unavailable", 503)

    if product is None:
        return failure("Product not found", 404)
    return success(product=product)


@products_bp.put("/<product_id>")
@require_user
def update_product_route(product_id: str):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(payload=payload, policy=PRODUCT_POLICY, partial=True)
        updated = catalog_service.update_product(get_document_store(), product_id=product_id, patch=patch)
    except ValidationError as e:
        return failure(str(e), 400, e.details)
    except NotFoundError as e:
        return failure(str(e), 404)
    except StoreError:
        current_app.logger.exception("Failed to update product")
        return failure("Store unavailable", 503)

    return success(product=updated)


@products_bp.post("/<product_id>/stock")
@require_user
def adjust_stock_route(product_id: str):
    """
    Manual stock adjustment.

    Request body: {"delta": 5} adds units, {"delta": -2} removes them.
    """
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return failure("Invalid JSON payload", 400)

    try:
        delta = to_int(payload.get("delta"), "delta")
        product = catalog_service.adjust_stock(get_document_store(), product_id=product_id, delta=delta)
    except ValidationError as e:
        return failure(str(e), 400)
    except NotFoundError as e:
        return failure(str(e), 404)
    except InsufficientStockError as e:
        return failure(str(e), 409, e.details)
    except StoreError:
        current_app.logger.exception("Failed to adjust stock")
        return failure("Store unavailable", 503)

    return success(product=product)


@products_bp.delete("/<product_id>")
@require_user
@require_role(ROLE_ADMIN)
def delete_product_route(product_id: str):
    try:
        catalog_service.delete_product(get_document_store(), product_id=product_id)
    except NotFoundError as e:
        return failure(str(e), 404)
    except StoreError:
        current_app.logger.exception("Failed to delete product")
        return failure("Store unavailable", 503)

    return success()
