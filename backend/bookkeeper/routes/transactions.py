# Overview: Flask API routes for sales and expenses; parses input and returns JSON responses.

"""
Transaction Routes

Monetary fields in responses are strings with two decimals. Clients never
send subtotal/total/balance; they are derived from items, discount and
amount_paid on every write.
"""

from flask import Blueprint, g, jsonify, request

from ..decorators import require_business
from ..errors import LedgerError
from ..services import transaction_service
from .common import (
    error_response,
    internal_error,
    json_body,
    paginated,
    parse_date_arg,
    parse_page,
    parse_sort,
)


transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")

SORTABLE = {"date", "total", "balance", "created_at"}


@transactions_bp.get("")
@require_business
def list_transactions_route():
    """
    Query parameters:
    - type: sale | expense
    - payment_status: paid | partially_paid | unpaid
    - contact_id
    - from_date, to_date (ISO-8601, inclusive)
    - sort (default -date), page, page_size
    """
    try:
        page = parse_page()
        rows, total = transaction_service.list_transactions(
            g.business_id,
            transaction_type=request.args.get("type"),
            payment_status=request.args.get("payment_status"),
            contact_id=request.args.get("contact_id", type=int),
            start=parse_date_arg("from_date"),
            end=parse_date_arg("to_date"),
            sort=parse_sort(SORTABLE),
            page=page,
        )
        return jsonify(paginated([t.to_dict() for t in rows], total, page))
    except LedgerError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to list transactions")


@transactions_bp.get("/<int:transaction_id>")
@require_business
def get_transaction_route(transaction_id: int):
    try:
        txn = transaction_service.get_transaction(transaction_id, business_id=g.business_id)
        return jsonify(txn.to_dict())
    except LedgerError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to load transaction")


@transactions_bp.post("")
@require_business
def create_transaction_route():
    """
    Request body:
    {
        "type": "sale" | "expense",
        "date": "2024-05-01T10:00:00Z",
        "items": [
            {"inventory_item_id": 3, "quantity_selected": 2},
            {"name": "Delivery", "quantity_selected": 1, "selling_price": "5.00"}
        ],
        "discount": "3.00",
        "amount_paid": "15.00",
        "payment_status": "partially_paid",   // optional declaration
        "payment_method": "cash",
        "contact_id": 1                        // or contact_name / contact_phone
    }
    """
    try:
        txn = transaction_service.create_transaction(g.business_id, json_body())
        return jsonify(txn.to_dict()), 201
    except LedgerError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to create transaction")


@transactions_bp.patch("/<int:transaction_id>")
@require_business
def update_transaction_route(transaction_id: int):
    try:
        txn = transaction_service.update_transaction(transaction_id, json_body(), business_id=g.business_id)
        return jsonify(txn.to_dict())
    except LedgerError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to update transaction")


@transactions_bp.post("/<int:transaction_id>/payments")
@require_business
def record_payment_route(transaction_id: int):
    """Request body: {"amount": "7.00"}"""
    try:
        data = json_body()
        txn = transaction_service.record_payment(transaction_id, data.get("amount"), business_id=g.business_id)
        return jsonify(txn.to_dict())
    except LedgerError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to record payment")


@transactions_bp.delete("/<int:transaction_id>")
@require_business
def delete_transaction_route(transaction_id: int):
    try:
        transaction_service.delete_transaction(transaction_id, business_id=g.business_id)
        return "", 204
    except LedgerError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to delete transaction")
