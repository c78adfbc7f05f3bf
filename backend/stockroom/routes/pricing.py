# Overview: Flask API route for bulk price updates.

"""
Bulk price update route.

Request body:
{
    "scope": {"kind": "supplier" | "family", "id": "..."},
    "adjustment": {"mode": "percentage" | "fixed", "value": 10}
}

The engine treats negative values as discounts; this boundary only accepts
value > 0 unless PRICE_UPDATE_ALLOW_DISCOUNTS is enabled.

SECURITY: admin role required.
"""

from flask import Blueprint, request, current_app

from ..decorators import require_user, require_role
from ..extensions import get_document_store
from ..models import ROLE_ADMIN
from ..services.pricing_service import (
    PriceUpdateEngine,
    PriceScope,
    PriceAdjustment,
    PriceUpdateError,
)
from ..validation import ValidationError
from .responses import success, failure


pricing_bp = Blueprint("pricing", __name__, url_prefix="/api/prices")


@pricing_bp.post("/bulk-update")
@require_user
@require_role(ROLE_ADMIN)
def bulk_update_route():
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return failure("Invalid JSON payload", 400)
    scope_data = data.get("scope") or {}
    adjustment_data = data.get("adjustment") or {}

    if not isinstance(scope_data, dict) or not isinstance(adjustment_data, dict):
        return failure("scope and adjustment must be objects", 400)

    try:
        scope = PriceScope(kind=scope_data.get("kind"), id=scope_data.get("id"))
        adjustment = PriceAdjustment(mode=adjustment_data.get("mode"), value=adjustment_data.get("value"))
    except ValidationError as e:
        return failure(str(e), 400)

    if adjustment.value <= 0 and not current_app.config.get("PRICE_UPDATE_ALLOW_DISCOUNTS"):
        return failure("value must be a positive number", 400)

    try:
        result = PriceUpdateEngine(get_document_store()).apply_bulk_price_update(scope, adjustment)
    except ValidationError as e:
        return failure(str(e), 400, e.details)
    except PriceUpdateError as e:
        current_app.logger.exception("Bulk price update failed")
        return failure(str(e), 503, {"updated_count": 0})

    return success(updated_count=result.updated_count)
