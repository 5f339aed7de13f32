# backend/craftmarket/routes/system.py
"""
Liveness endpoint.
"""

import time

from flask import Blueprint, current_app

from ..errors import ServiceUnavailableError
from ..extensions import db
from ..models import User
from ..responses import error_response, success_response
from craftmarket.time_utils import utcnow

system_bp = Blueprint("system", __name__, url_prefix="/api/v1")


def check_database_health() -> dict:
    start_time = time.time()
    try:
        user_count = db.session.query(User).count()
        return {
            "status": "healthy",
            "latency_ms": round((time.time() - start_time) * 1000, 2),
            "details": {"users": user_count},
        }
    except Exception:
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round((time.time() - start_time) * 1000, 2),
            "error": "Database error",
        }


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: database reachable
    - 503: database check failed (error envelope)
    """
    database_health = check_database_health()
    body = {
        "status": database_health["status"],
        "timestamp": utcnow().isoformat() + "Z",
        "checks": {"database": database_health},
    }

    if database_health["status"] != "healthy":
        return error_response(ServiceUnavailableError(details=body))
    return success_response("Service is healthy", body)
