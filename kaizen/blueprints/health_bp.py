"""
Health check blueprint.

Endpoints:
    GET /api/v1/health  - liveness, with a database round trip
"""

import logging
import time

from flask import Blueprint, jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from kaizen.models import db

logger = logging.getLogger(__name__)

health_bp = Blueprint("health", __name__, url_prefix="/api/v1/health")


@health_bp.route("", methods=["GET"])
def health():
    """Liveness check; 503 when the database is unreachable."""
    try:
        t0 = time.perf_counter()
        db.session.execute(text("SELECT 1"))
        db_ms = (time.perf_counter() - t0) * 1000
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.error("Health check - database failed: %s", exc)
        return jsonify({"status": "error", "database": {"status": "error"}}), 503
    return jsonify({
        "status": "ok",
        "app": "Kaizen Idea Tracker",
        "database": {"status": "ok", "latency_ms": round(db_ms, 1)},
    }), 200
