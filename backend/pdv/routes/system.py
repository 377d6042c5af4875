# backend/pdv/routes/system.py
"""
System health and version endpoints.

Both are unauthenticated and expose nothing sensitive.
"""

import sys
import time
from flask import Blueprint, current_app
from sqlalchemy import text

from ..extensions import db
from ..services.stock_service import verify_ledger
from pdv.time_utils import utcnow

API_VERSION = "1.0.0"

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """
    Check database connectivity and the stock ledger invariant.

    Ledger drift is reported as degraded, not unhealthy: sales can still be
    served, but an operator should run `flask stock check-ledger`.
    """
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        drift = verify_ledger()
        elapsed_ms = (time.time() - start_time) * 1000

        if drift:
            return {
                "status": "degraded",
                "latency_ms": round(elapsed_ms, 2),
                "warning": f"Ledger drift on {len(drift)} product(s)",
                "details": {"drifted_product_ids": [row["product_id"] for row in drift]},
            }

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        db.session.rollback()
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


@system_bp.get("/health")
def health():
    """
    Health check endpoint.

    Returns:
    - 200: healthy or degraded
    - 503: database unreachable
    """
    database_health = check_database_health()

    if database_health["status"] == "unhealthy":
        http_status = 503
    else:
        http_status = 200

    response = {
        "status": database_health["status"],
        "timestamp": utcnow().isoformat() + "Z",
        "checks": {
            "database": database_health,
        },
    }
    return response, http_status


@system_bp.get("/version")
def version():
    """Version endpoint for deployment debugging."""
    env = "production" if not current_app.debug else "development"

    return {
        "api_version": API_VERSION,
        "environment": env,
        "python_version": sys.version.split()[0],
        "database_dialect": db.engine.dialect.name,
        "server_time": utcnow().isoformat() + "Z",
    }
