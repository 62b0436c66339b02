# Overview: Flask API routes for receipts and invoices.

"""
Document Routes

POST /<id>/export returns the rendered file and, on the first export, moves
the document from draft to sent. POST /<id>/viewed is the hook for the
delivery channel to report that the customer opened it.
"""

from flask import Blueprint, Response, g, jsonify, request

from ..decorators import require_business
from ..errors import LedgerError
from ..services import document_service
from .common import error_response, internal_error, json_body, paginated, parse_page


documents_bp = Blueprint("documents", __name__, url_prefix="/api/documents")


@documents_bp.get("")
@require_business
def list_documents_route():
    try:
        page = parse_page()
        rows, total = document_service.list_documents(
            g.business_id,
            status=request.args.get("status"),
            document_type=request.args.get("type"),
            transaction_id=request.args.get("transaction_id", type=int),
            page=page,
        )
        return jsonify(paginated([d.to_dict() for d in rows], total, page))
    except LedgerError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to list documents")


@documents_bp.post("")
@require_business
def create_document_route():
    """Body: {"transaction_id": 1, "type": "receipt" | "invoice" (optional)}"""
    try:
        data = json_body()
        document = document_service.create_document(
            data.get("transaction_id"),
            document_type=data.get("type"),
            business_id=g.business_id,
        )
        return jsonify(document.to_dict()), 201
    except LedgerError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to create document")


@documents_bp.post("/<int:document_id>/export")
@require_business
def export_document_route(document_id: int):
    try:
        document, content = document_service.export_document(document_id, business_id=g.business_id)
    except LedgerError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to export document")

    filename = f"{document.type}-{document.id}.csv"
    response = Response(content, mimetype="text/csv")
    response.headers["Content-Disposition"] = f'attachment; filename="{filename}"'
    response.headers["X-Document-Status"] = document.status
    return response


@documents_bp.post("/<int:document_id>/viewed")
@require_business
def mark_viewed_route(document_id: int):
    try:
        document = document_service.mark_viewed(document_id, business_id=g.business_id)
        return jsonify(document.to_dict())
    except LedgerError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to mark document viewed")


@documents_bp.delete("/<int:document_id>")
@require_business
def delete_document_route(document_id: int):
    try:
        document_service.delete_document(document_id, business_id=g.business_id)
        return "", 204
    except LedgerError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to delete document")
