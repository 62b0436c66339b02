# backend/bookkeeper/routes/system.py
"""
System health endpoint.

Reports database connectivity and the number of unresolved reconciliation
issues, which need a person to look at them.
"""

import time

from flask import Blueprint, current_app, jsonify

from ..extensions import db
from ..models import Business, ReconciliationIssue
from ..time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    start_time = time.time()
    try:
        business_count = db.session.query(Business).count()
        open_issues = db.session.query(ReconciliationIssue).filter(
            ReconciliationIssue.resolved_at.is_(None)
        ).count()
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "businesses": business_count,
                "open_reconciliation_issues": open_issues,
            },
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


@system_bp.get("/health")
def health():
    database = check_database_health()
    healthy = database["status"] == "healthy"
    body = {
        "status": "ok" if healthy else "degraded",
        "timestamp": to_utc_z(utcnow()),
        "checks": {"database": database},
    }
    return jsonify(body), 200 if healthy else 503
