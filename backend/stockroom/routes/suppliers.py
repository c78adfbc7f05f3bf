# Overview: Flask API routes for suppliers; parses input and returns JSON responses.

from flask import Blueprint, request, current_app

from ..decorators import require_user, require_role
from ..extensions import get_document_store
from ..models import ROLE_ADMIN
from ..services import supplier_service
from ..services.supplier_service import SUPPLIER_POLICY
from ..services.document_store import StoreError
from ..validation import validate_payload, ValidationError, ConsistencyError, NotFoundError
from .responses import success, failure


suppliers_bp = Blueprint("suppliers", __name__, url_prefix="/api/suppliers")


@suppliers_bp.get("")
@require_user
def list_suppliers_route():
    try:
        items = supplier_service.list_suppliers(get_document_store())
    except StoreError:
        current_app.logger.exception("Failed to list suppliers")
        return failure("Store unavailable", 503)
    return success(items=items, count=len(items))


@suppliers_bp.post("")
@require_user
def create_supplier_route():
    """
    Create a new supplier.

    Request body:
    {
        "name": "Supplier Name",  // required
        "phone": "...",           // optional
        "email": "...",           // optional
        "address": "...",         // optional
        "notes": "..."            // optional
    }
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(payload=payload, policy=SUPPLIER_POLICY, partial=False)
        supplier = supplier_service.create_supplier(get_document_store(), patch=patch)
    except ValidationError as e:
        return failure(str(e), 400)
    except StoreError:
        current_app.logger.exception("Failed to create supplier")
        return failure("Store unavailable", 503)

    return success(201, supplier=supplier)


@suppliers_bp.get("/<supplier_id>")
@require_user
def get_supplier_route(supplier_id: str):
    try:
        supplier = supplier_service.get_supplier(get_document_store(), supplier_id)
    except NotFoundError as e:
        return failure(str(e), 404)
    except StoreError:
        current_app.logger.exception("Failed to load supplier")
        return failure("Store unavailable", 503)
    return success(supplier=supplier)


@suppliers_bp.put("/<supplier_id>")
@require_user
def update_supplier_route(supplier_id: str):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(payload=payload, policy=SUPPLIER_POLICY, partial=True)
        supplier = supplier_service.update_supplier(get_document_store(), supplier_id=supplier_id, patch=patch)
    except ValidationError as e:
        return failure(str(e), 400)
    except NotFoundError as e:
        return failure(str(e), 404)
    except StoreError:
        current_app.logger.exception("Failed to update supplier")
        return failure("Store unavailable", 503)

    return success(supplier=supplier)


@suppliers_bp.delete("/<supplier_id>")
@require_user
@require_role(ROLE_ADMIN)
def delete_supplier_route(supplier_id: str):
    try:
        supplier_service.delete_supplier(get_document_store(), supplier_id=supplier_id)
    except NotFoundError as e:
        return failure(str(e), 404)
    except ConsistencyError as e:
        return failure(str(e), 409, e.details)
    except StoreError:
        current_app.logger.exception("Failed to delete supplier")
        return failure("Store unavailable", 503)

    return success()
