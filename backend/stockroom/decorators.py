# Overview: Request decorators resolving the caller forwarded by the identity provider.

from functools import wraps
from flask import request, jsonify, g, current_app

from .extensions import get_document_store
from .models import ROLE_ADMIN
from .services.document_store import StoreError


def require_user(f):
    """
    Require a known, active user.

    The identity provider in front of the service authenticates the caller
    and forwards its id in USER_HEADER (X-User-Id by default).

    Sets g.current_user to the user document.

    Returns 401 if:
    - No user header
    - Unknown user id
    - User deactivated
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        header = current_app.config.get("USER_HEADER", "X-User-Id")
        user_id = (request.headers.get(header) or "").strip()

        if not user_id:
            return jsonify({"success": False, "error": "Authentication required"}), 401

        try:
            user = get_document_store().get_by_id("users", user_id)
        except StoreError:
            current_app.logger.exception("Failed to resolve user")
            return jsonify({"success": False, "error": "Store unavailable"}), 503

        if not user or not user.get("is_active"):
            return jsonify({"success": False, "error": "Unknown or inactive user"}), 401

        g.current_user = user
        return f(*args, **kwargs)

    return decorated_function


def require_role(role: str):
    """Require the authenticated user to hold role (admins pass every check)."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            user = getattr(g, "current_user", None)
            if user is None:
                return jsonify({"success": False, "error": "Authentication required"}), 401

            if user.get("role") not in (role, ROLE_ADMIN):
                return jsonify({
                    "success": False,
                    "error": "Permission denied",
                    "required_role": role,
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator
