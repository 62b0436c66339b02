# Overview: Flask API routes for bank statement lines and their conversion into transactions.

"""
Bank Record Routes

Statement lines arrive already parsed (date, type, amount, description,
beneficiary_name). Each unprocessed line can be converted into exactly one
sale (money-in) or expense (money-out).

Conversion outcomes:
- 201 with the new transaction
- 409 ALREADY_PROCESSED when the line was converted before (or concurrently)
- 500 INCONSISTENT_STATE with details.issue_id when the transaction was
  created but the line could not be marked processed; see GET /issues
"""

from flask import Blueprint, g, jsonify, request

from ..decorators import require_business
from ..errors import LedgerError
from ..services import reconciliation_service
from .common import (
    error_response,
    internal_error,
    json_body,
    paginated,
    parse_bool_arg,
    parse_date_arg,
    parse_page,
    parse_sort,
)


bank_records_bp = Blueprint("bank_records", __name__, url_prefix="/api/bank-records")

SORTABLE = {"date", "amount", "created_at"}


@bank_records_bp.get("")
@require_business
def list_records_route():
    """
    Query parameters:
    - processed: false (default) | true | all
    - type: money-in | money-out
    - from_date, to_date
    - search: substring of description or beneficiary
    """
    try:
        page = parse_page()
        rows, total = reconciliation_service.list_records(
            g.business_id,
            processed=parse_bool_arg("processed", False),
            record_type=request.args.get("type"),
            start=parse_date_arg("from_date"),
            end=parse_date_arg("to_date"),
            search=request.args.get("search"),
            sort=parse_sort(SORTABLE),
            page=page,
        )
        return jsonify(paginated([r.to_dict() for r in rows], total, page))
    except LedgerError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to list bank payment records")


@bank_records_bp.post("")
@require_business
def create_records_route():
    """Body: one record object, or {"records": [...]} for a batch."""
    try:
        data = json_body()
        rows = data["records"] if "records" in data else [data]
        created = reconciliation_service.create_records(g.business_id, rows)
        return jsonify({"items": [r.to_dict() for r in created], "count": len(created)}), 201
    except LedgerError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to create bank payment records")


@bank_records_bp.delete("/<int:record_id>")
@require_business
def delete_record_route(record_id: int):
    try:
        reconciliation_service.delete_record(record_id, business_id=g.business_id)
        return "", 204
    except LedgerError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to delete bank payment record")


@bank_records_bp.post("/<int:record_id>/convert")
@require_business
def convert_record_route(record_id: int):
    """
    Optional body overrides the seeded transaction:
    {"items": [...], "contact_id": 1, "contact_name": "...", "discount": "0"}
    """
    try:
        txn = reconciliation_service.convert(record_id, json_body() or None, business_id=g.business_id)
        return jsonify(txn.to_dict()), 201
    except LedgerError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to convert bank payment record")


@bank_records_bp.get("/issues")
@require_business
def list_issues_route():
    try:
        include_resolved = parse_bool_arg("include_resolved", False)
        issues = reconciliation_service.list_issues(g.business_id, include_resolved=bool(include_resolved))
        return jsonify({"items": [i.to_dict() for i in issues], "count": len(issues)})
    except LedgerError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to list reconciliation issues")


@bank_records_bp.post("/issues/<int:issue_id>/resolve")
@require_business
def resolve_issue_route(issue_id: int):
    try:
        data = json_body()
        issue = reconciliation_service.resolve_issue(issue_id, data.get("note"), business_id=g.business_id)
        return jsonify(issue.to_dict())
    except LedgerError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to resolve reconciliation issue")
