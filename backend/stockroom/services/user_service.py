# Overview: User directory operations (attribution and roles; credentials stay with the identity provider).

"""
User Service

WHY: Sales are attributed to the user forwarded by the identity provider
(Sale.user_id), and admin-only routes check the user's role. This directory
is the only place those ids, roles and active flags live.

RULES:
- email is unique across users
- role is "admin" or "user" (default "user")
- a deactivated user is rejected by require_user
"""

from __future__ import annotations

import logging
import re

from ..models import ROLES, ROLE_USER
from ..validation import DocumentPolicy, ValidationError, NotFoundError, to_text
from .document_store import SERVER_TIMESTAMP, set_op, update_op

logger = logging.getLogger(__name__)


_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _role(value, name):
    role = to_text(value, name).lower()
    if role not in ROLES:
        raise ValidationError(f"{name} must be one of: {', '.join(ROLES)}")
    return role


def _email(value, name):
    email = to_text(value, name).lower()
    if not _EMAIL_RE.match(email):
        raise ValidationError(f"{name} is not a valid email address")
    return email


def _flag(value, name):
    if not isinstance(value, bool):
        raise ValidationError(f"{name} must be true or false")
    return value


USER_POLICY = DocumentPolicy(
    coercers={
        "name": to_text,
        "email": _email,
        "role": _role,
        "is_active": _flag,
    },
    required_on_create={"name", "email"},
    max_lengths={"name": 255, "email": 255},
)


def create_user(store, *, patch: dict, user_id: str | None = None) -> dict:
    """
    Register a user in the directory.

    user_id: the identity provider's id for the user, when known; a new id
    is generated otherwise.

    Raises:
        ValidationError: email already registered or id already taken
    """
    email = patch["email"]
    if store.query("users", {"email": email}, limit=1):
        raise ValidationError(f"Email {email} is already registered")

    if user_id is None:
        user_id = store.new_id("users")
    elif store.get_by_id("users", user_id) is not None:
        raise ValidationError(f"User {user_id} already exists")

    doc = {
        "role": ROLE_USER,
        "is_active": True,
        **patch,
        "created_at": SERVER_TIMESTAMP,
    }
    store.batch_write([set_op("users", user_id, doc)])
    logger.info("User %s registered with role %s", user_id, doc["role"])
    return store.get_by_id("users", user_id)


def get_user(store, user_id: str) -> dict:
    user = store.get_by_id("users", user_id)
    if user is None:
        raise NotFoundError(f"User {user_id} not found")
    return user


def list_users(store) -> list[dict]:
    return store.query("users", order_by="name")


def update_user(store, *, user_id: str, patch: dict) -> dict:
    get_user(store, user_id)

    email = patch.get("email")
    if email:
        for other in store.query("users", {"email": email}):
            if other["id"] != user_id:
                raise ValidationError(f"Email {email} is already registered")

    store.batch_write([update_op("users", user_id, patch)])
    if patch.get("is_active") is False:
        logger.info("User %s deactivated", user_id)
    return store.get_by_id("users", user_id)
