# Overview: Flask API routes for product families; parses input and returns JSON responses.

from flask import Blueprint, request, current_app

from ..decorators import require_user, require_role
from ..extensions import get_document_store
from ..models import ROLE_ADMIN
from ..services import family_service
from ..services.document_store import StoreError
from ..validation import ValidationError, ConsistencyError, NotFoundError
from .responses import success, failure


families_bp = Blueprint("families", __name__, url_prefix="/api/families")


@families_bp.get("")
@require_user
def list_families_route():
    try:
        items = family_service.list_families(get_document_store())
    except StoreError:
        current_app.logger.exception("Failed to list families")
        return failure("Store unavailable", 503)
    return success(items=items, count=len(items))


@families_bp.post("")
@require_user
def create_family_route():
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return failure("Invalid JSON payload", 400)

    name = data.get("name")
    if not isinstance(name, str) or not name.strip():
        return failure("name is required", 400)

    try:
        family = family_service.create_family(get_document_store(), name=name)
    except ValidationError as e:
        return failure(str(e), 400)
    except StoreError:
        current_app.logger.exception("Failed to create family")
        return failure("Store unavailable", 503)

    return success(201, family=family)


@families_bp.delete("/<family_id>")
@require_user
@require_role(ROLE_ADMIN)
def delete_family_route(family_id: str):
    """
    Delete a family.

    Behaviour with referencing products follows FAMILY_DELETE_POLICY.
    """
    policy = current_app.config.get("FAMILY_DELETE_POLICY", family_service.DELETE_POLICY_GUARD)

    try:
        detached = family_service.delete_family(get_document_store(), family_id=family_id, policy=policy)
    except NotFoundError as e:
        return failure(str(e), 404)
    except ConsistencyError as e:
        return failure(str(e), 409, e.details)
    except StoreError:
        current_app.logger.exception("Failed to delete family")
        return failure("Store unavailable", 503)

    return success(detached_products=detached, policy=policy)
