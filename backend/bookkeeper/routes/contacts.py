# Overview: Flask API routes for customers and suppliers; parses input and returns JSON responses.

"""
Contact Routes

All routes are scoped to the business in X-Business-Id (or ?business_id=).
Listing attaches each contact's outstanding amount. Deleting a contact that
any transaction references is refused with 409.
"""

from flask import Blueprint, g, jsonify, request

from ..decorators import require_business
from ..errors import LedgerError
from ..money import money_str
from ..services import contact_service
from .common import error_response, internal_error, json_body, paginated, parse_page, parse_sort


contacts_bp = Blueprint("contacts", __name__, url_prefix="/api/contacts")

SORTABLE = {"name", "created_at", "type"}


@contacts_bp.get("")
@require_business
def list_contacts_route():
    """
    Query parameters:
    - type: customer | supplier
    - search: substring of name or phone
    - sort: name | -name | created_at | -created_at
    - page, page_size
    """
    try:
        page = parse_page()
        rows, total = contact_service.list_contacts(
            g.business_id,
            contact_type=request.args.get("type"),
            search=request.args.get("search"),
            sort=parse_sort(SORTABLE),
            page=page,
        )
        return jsonify(paginated(rows, total, page))
    except LedgerError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to list contacts")


@contacts_bp.post("")
@require_business
def create_contact_route():
    try:
        contact = contact_service.create_contact(g.business_id, json_body())
        return jsonify(contact.to_dict()), 201
    except LedgerError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to create contact")


@contacts_bp.patch("/<int:contact_id>")
@require_business
def update_contact_route(contact_id: int):
    try:
        contact = contact_service.update_contact(contact_id, json_body(), business_id=g.business_id)
        return jsonify(contact.to_dict())
    except LedgerError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to update contact")


@contacts_bp.delete("/<int:contact_id>")
@require_business
def delete_contact_route(contact_id: int):
    try:
        contact_service.delete_contact(contact_id, business_id=g.business_id)
        return "", 204
    except LedgerError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to delete contact")


@contacts_bp.get("/<int:contact_id>/owed")
@require_business
def contact_owed_route(contact_id: int):
    try:
        amount = contact_service.contact_owed(contact_id, business_id=g.business_id)
        return jsonify({"contact_id": contact_id, "amount_owed": money_str(amount)})
    except LedgerError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to compute amount owed")
