# Overview: Flask API routes for businesses (tenants).

from flask import Blueprint, jsonify

from ..errors import LedgerError
from ..services import business_service
from .common import error_response, internal_error, json_body


businesses_bp = Blueprint("businesses", __name__, url_prefix="/api/businesses")


@businesses_bp.get("")
def list_businesses_route():
    try:
        rows = business_service.list_businesses()
        return jsonify({"items": [b.to_dict() for b in rows], "count": len(rows)})
    except Exception:
        return internal_error("Failed to list businesses")


@businesses_bp.post("")
def create_business_route():
    """
    Create a business.

    Request body: {"name": "...", "preferred_currency": "NGN"}
    """
    try:
        business = business_service.create_business(json_body())
        return jsonify(business.to_dict()), 201
    except LedgerError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to create business")


@businesses_bp.get("/<int:business_id>")
def get_business_route(business_id: int):
    try:
        return jsonify(business_service.get_business(business_id).to_dict())
    except LedgerError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to load business")
