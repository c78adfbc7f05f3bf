# backend/stockroom/routes/system.py
"""
System health endpoint.

Checks that the document store answers, for load balancers and deployment
debugging. No authentication.
"""

import time
from flask import Blueprint, current_app

from ..extensions import get_document_store
from ..services.document_store import StoreError
from ..time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__, url_prefix="/api")


def check_store_health() -> dict:
    """
    Check document store connectivity.

    Returns dict with status and latency.
    """
    start_time = time.time()
    try:
        get_document_store().ping()
    except StoreError:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Document store health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Store error",
        }

    elapsed_ms = (time.time() - start_time) * 1000
    return {
        "status": "healthy",
        "latency_ms": round(elapsed_ms, 2),
        "backend": current_app.config.get("DOCUMENT_STORE", "sql"),
    }


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: store reachable
    - 503: store unreachable
    """
    store_health = check_store_health()
    healthy = store_health["status"] == "healthy"

    response = {
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": to_utc_z(utcnow()),
        "checks": {"document_store": store_health},
    }
    return response, 200 if healthy else 503
