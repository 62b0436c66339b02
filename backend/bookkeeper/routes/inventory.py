# Overview: Flask API routes for inventory items and stock alerts.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_business
from ..errors import LedgerError
from ..services import inventory_service
from .common import error_response, internal_error, json_body, paginated, parse_page, parse_sort


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")

SORTABLE = {"name", "quantity", "selling_price", "created_at"}


def _with_stock_status(item) -> dict:
    row = item.to_dict()
    row["stock_status"] = inventory_service.stock_status(
        item.type, item.quantity, current_app.config["LOW_STOCK_THRESHOLD"]
    )
    return row


@inventory_bp.get("")
@require_business
def list_items_route():
    try:
        page = parse_page()
        rows, total = inventory_service.list_items(
            g.business_id,
            item_type=request.args.get("type"),
            search=request.args.get("search"),
            sort=parse_sort(SORTABLE),
            page=page,
        )
        return jsonify(paginated([_with_stock_status(r) for r in rows], total, page))
    except LedgerError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to list inventory items")


@inventory_bp.get("/stock-alerts")
@require_business
def stock_alerts_route():
    try:
        threshold = request.args.get("threshold", current_app.config["LOW_STOCK_THRESHOLD"], type=int)
        return jsonify(inventory_service.stock_alerts(g.business_id, threshold))
    except Exception:
        return internal_error("Failed to load stock alerts")


@inventory_bp.post("")
@require_business
def create_item_route():
    """
    Request body:
    {
        "type": "product" | "service",  // default product
        "name": "...",                   // required
        "sku": "...",
        "quantity": 10,                  // products only
        "selling_price": "12.50",        // required
        "cost_price": "8.00"
    }
    """
    try:
        item = inventory_service.create_item(g.business_id, json_body())
        return jsonify(_with_stock_status(item)), 201
    except LedgerError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to create inventory item")


@inventory_bp.patch("/<int:item_id>")
@require_business
def update_item_route(item_id: int):
    try:
        item = inventory_service.update_item(item_id, json_body(), business_id=g.business_id)
        return jsonify(_with_stock_status(item))
    except LedgerError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to update inventory item")


@inventory_bp.delete("/<int:item_id>")
@require_business
def delete_item_route(item_id: int):
    try:
        inventory_service.delete_item(item_id, business_id=g.business_id)
        return "", 204
    except LedgerError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to delete inventory item")
