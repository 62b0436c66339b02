# Overview: Flask API routes for the dashboard and analytics pages.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_business
from ..errors import LedgerError
from ..services import reporting_service
from .common import error_response, internal_error


analytics_bp = Blueprint("analytics", __name__, url_prefix="/api/analytics")


def _range_key() -> str:
    return request.args.get("range") or current_app.config["DEFAULT_DATE_RANGE"]


@analytics_bp.get("/dashboard")
@require_business
def dashboard_route():
    """Headline metrics, low/out-of-stock products and debts. ?range=1M|3M|6M|YTD|ALL"""
    try:
        body = reporting_service.dashboard(
            g.business_id,
            _range_key(),
            low_stock_threshold=current_app.config["LOW_STOCK_THRESHOLD"],
        )
        return jsonify(body)
    except LedgerError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to build dashboard")


@analytics_bp.get("/summary")
@require_business
def summary_route():
    try:
        return jsonify(reporting_service.ledger_summary(g.business_id, _range_key()))
    except LedgerError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to build analytics summary")
