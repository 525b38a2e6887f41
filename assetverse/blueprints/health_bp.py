"""
Health check blueprint.

Endpoints:
    GET /health  — 200 with database status, 503 if the database is unreachable
"""

import logging
import time

from flask import Blueprint, jsonify
from sqlalchemy.exc import SQLAlchemyError

from assetverse.models import db

logger = logging.getLogger(__name__)

health_bp = Blueprint("health", __name__)


@health_bp.route("/health", methods=["GET"])
def health():
    checks = {}
    try:
        t0 = time.perf_counter()
        db.session.execute(db.text("SELECT 1"))
        checks["database"] = {"status": "ok", "latency_ms": round((time.perf_counter() - t0) * 1000, 1)}
    except SQLAlchemyError as exc:
        logger.error("Health check: database failed: %s", exc)
        checks["database"] = {"status": "error"}
        return jsonify({"status": "degraded", "app": "AssetVerse", "checks": checks}), 503
    return jsonify({"status": "ok", "app": "AssetVerse", "checks": checks}), 200
