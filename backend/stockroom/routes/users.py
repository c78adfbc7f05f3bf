# Overview: Flask API routes for the user directory; parses input and returns JSON responses.

"""
User directory routes.

Credentials are handled by the identity provider; these routes only keep the
name, email, role and active flag used for attribution and authorization.

SECURITY: Creating and updating users requires the admin role.
"""

from flask import Blueprint, request, current_app

from ..decorators import require_user, require_role
from ..extensions import get_document_store
from ..models import ROLE_ADMIN
from ..services import user_service
from ..services.user_service import USER_POLICY
from ..services.document_store import StoreError
from ..validation import validate_payload, ValidationError, NotFoundError
from .responses import success, failure


users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
@require_user
@require_role(ROLE_ADMIN)
def list_users_route():
    try:
        items = user_service.list_users(get_document_store())
    except StoreError:
        current_app.logger.exception("Failed to list users")
        return failure("Store unavailable", 503)
    return success(items=items, count=len(items))


@users_bp.post("")
@require_user
@require_role(ROLE_ADMIN)
def create_user_route():
    """
    Register a user.

    Request body:
    {
        "id": "...",            // optional, the identity provider's user id
        "name": "Jane Doe",     // required
        "email": "jane@...",    // required, unique
        "role": "user"          // optional, "admin" or "user"
    }
    """
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return failure("Invalid JSON payload", 400)
    user_id = payload.pop("id", None)
    if user_id is not None and (not isinstance(user_id, str) or not user_id.strip()):
        return failure("id must be a non-empty string", 400)

    try:
        patch = validate_payload(payload=payload, policy=USER_POLICY, partial=False)
        user = user_service.create_user(
            get_document_store(),
            patch=patch,
            user_id=user_id.strip() if user_id else None,
        )
    except ValidationError as e:
        return failure(str(e), 400)
    except StoreError:
        current_app.logger.exception("Failed to create user")
        return failure("Store unavailable", 503)

    return success(201, user=user)


@users_bp.get("/<user_id>")
@require_user
def get_user_route(user_id: str):
    try:
        user = user_service.get_user(get_document_store(), user_id)
    except NotFoundError as e:
        return failure(str(e), 404)
    except StoreError:
        current_app.logger.exception("Failed to load user")
        return failure("Store unavailable", 503)
    return success(user=user)


@users_bp.put("/<user_id>")
@require_user
@require_role(ROLE_ADMIN)
def update_user_route(user_id: str):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(payload=payload, policy=USER_POLICY, partial=True)
        user = user_service.update_user(get_document_store(), user_id=user_id, patch=patch)
    except ValidationError as e:
        return failure(str(e), 400)
    except NotFoundError as e:
        return failure(str(e), 404)
    except StoreError:
        current_app.logger.exception("Failed to update user")
        return failure("Store unavailable", 503)

    return success(user=user)
