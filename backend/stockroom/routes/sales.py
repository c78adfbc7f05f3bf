# Overview: Flask API routes for sales; parses input and returns JSON responses.

"""
Sales routes.

POST /api/sales registers a sale for the forwarded user:
{
    "lines": [{"product_id": "...", "name": "...", "unit_price": 10.0, "quantity": 2}],
    "total": 20.0,                  // optional, checked against the lines
    "idempotency_key": "..."        // optional, recommended for retries
}

A replayed idempotency key answers 200 with the original sale instead of 201.
"""

from flask import Blueprint, request, g, current_app

from ..decorators import require_user
from ..extensions import get_document_store
from ..services import sales_service
from ..services.sales_service import SaleRegistrar, InsufficientStockError
from ..services.document_store import StoreError
from ..validation import to_int, ValidationError, NotFoundError
from .responses import success, failure


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("")
@require_user
def register_sale_route():
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return failure("Invalid JSON payload", 400)

    try:
        result = SaleRegistrar(get_document_store()).register_sale(
            data.get("lines"),
            data.get("total"),
            g.current_user["id"],
            idempotency_key=data.get("idempotency_key"),
        )
    except ValidationError as e:
        return failure(str(e), 400, e.details)
    except InsufficientStockError as e:
        return failure(str(e), 409, e.details)
    except StoreError:
        current_app.logger.exception("Failed to register sale")
        return failure("Sale could not be saved", 503)

    status = 200 if result.replayed else 201
    return success(
        status,
        sale_id=result.sale_id,
        total=result.total,
        items=result.items,
        replayed=result.replayed,
    )


@sales_bp.get("")
@require_user
def list_sales_route():
    """
    Sales history, newest first.

    Query params:
    - limit: int (optional) - maximum number of sales
    """
    limit = request.args.get("limit")
    try:
        limit = to_int(limit, "limit") if limit is not None else None
    except ValidationError as e:
        return failure(str(e), 400)
    if limit is not None and limit < 1:
        return failure("limit must be >= 1", 400)

    try:
        items = sales_service.list_sales(get_document_store(), limit=limit)
    except StoreError:
        current_app.logger.exception("Failed to load sales history")
        return failure("Store unavailable", 503)

    return success(items=items, count=len(items))


@sales_bp.get("/<sale_id>")
@require_user
def get_sale_route(sale_id: str):
    try:
        sale = sales_service.get_sale(get_document_store(), sale_id)
    except NotFoundError as e:
        return failure(str(e), 404)
    except StoreError:
        current_app.logger.exception("Failed to load sale")
        return failure("Store unavailable", 503)

    return success(sale=sale)
