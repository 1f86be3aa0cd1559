# Overview: Flask API routes for liveness and readiness probes.

# backend/bankportal/routes/system.py
"""
System health endpoints.

/api/health is a pure liveness probe. /api/health/ready also checks that
the database answers, for load balancers that should stop routing to an
instance whose storage is gone.
"""

import time
from flask import Blueprint, current_app, jsonify
from sqlalchemy import text

from ..extensions import db

system_bp = Blueprint("system", __name__, url_prefix="/api/health")


def check_database_health() -> dict:
    """
    Check database connectivity with a trivial query.

    Returns dict with status and latency.
    """
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
        }
    except Exception:
        db.session.rollback()
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


@system_bp.get("")
def health_route():
    return jsonify({"ok": True}), 200


@system_bp.get("/ready")
def readiness_route():
    database = check_database_health()
    ok = database["status"] == "healthy"
    return jsonify({"ok": ok, "database": database}), 200 if ok else 503
