# Overview: Receipt/invoice lifecycle (draft -> sent -> viewed).

"""
Document Service

Lifecycle
- draft:  created for a transaction, not yet delivered
- sent:   first successful export; sent_at recorded once
- viewed: confirmed by an external hook; only from sent

Exporting an already sent/viewed document produces the file again and
leaves the status alone. There are no backward transitions.

The export runs BEFORE the status changes so a failed export never marks a
document as sent.
"""

from __future__ import annotations

from ..errors import InvalidInputError
from ..models import ReceiptInvoice
from ..models.documents import DOC_INVOICE, DOC_RECEIPT, DOCUMENT_TYPES
from ..time_utils import utcnow
from .export_service import DocumentExporter, csv_exporter
from .ledger_types import PAYMENT_STATUS_PAID
from .repository import Filter, Page, Repository, Sort


STATUS_DRAFT = "draft"
STATUS_SENT = "sent"
STATUS_VIEWED = "viewed"
DOCUMENT_STATUSES = {STATUS_DRAFT, STATUS_SENT, STATUS_VIEWED}

EVENT_EXPORT = "export"
EVENT_VIEW = "view"

TRANSITIONS = {
    (STATUS_DRAFT, EVENT_EXPORT): STATUS_SENT,
    (STATUS_SENT, EVENT_EXPORT): STATUS_SENT,
    (STATUS_VIEWED, EVENT_EXPORT): STATUS_VIEWED,
    (STATUS_SENT, EVENT_VIEW): STATUS_VIEWED,
    (STATUS_VIEWED, EVENT_VIEW): STATUS_VIEWED,
}


def next_status(current: str, event: str) -> str:
    """Status after `event`; raises InvalidInputError for a disallowed move."""
    try:
        return TRANSITIONS[(current, event)]
    except KeyError:
        raise InvalidInputError(
            f"Cannot apply '{event}' to a document in status '{current}'",
            details={"status": current, "event": event},
        )


def document_type_for(payment_status: str) -> str:
    return DOC_RECEIPT if payment_status == PAYMENT_STATUS_PAID else DOC_INVOICE


def create_document(
    transaction_id: int,
    *,
    document_type: str | None = None,
    business_id: int | None = None,
    repo: Repository | None = None,
) -> ReceiptInvoice:
    repo = repo or Repository()
    txn = repo.require("transactions", transaction_id, business_id=business_id)
    if document_type is None:
        document_type = document_type_for(txn.payment_status)
    elif document_type not in DOCUMENT_TYPES:
        raise InvalidInputError(f"type must be one of: {', '.join(sorted(DOCUMENT_TYPES))}")
    return repo.insert("receipts_invoices", {
        "business_id": txn.business_id,
        "transaction_id": txn.id,
        "type": document_type,
        "status": STATUS_DRAFT,
    })


def export_document(
    document_id: int,
    exporter: DocumentExporter | None = None,
    *,
    business_id: int | None = None,
    repo: Repository | None = None,
) -> tuple[ReceiptInvoice, bytes]:
    """Render the document, then move draft -> sent on the first export."""
    repo = repo or Repository()
    exporter = exporter or csv_exporter
    document = repo.require("receipts_invoices", document_id, business_id=business_id)
    txn = repo.require("transactions", document.transaction_id)

    content = exporter(document, txn)

    if next_status(document.status, EVENT_EXPORT) != document.status:
        # Conditional so two concurrent first exports record sent_at once
        repo.compare_and_swap(
            "receipts_invoices",
            document.id,
            expected={"status": STATUS_DRAFT},
            patch={"status": STATUS_SENT, "sent_at": utcnow(), "updated_at": utcnow()},
        )
        document = repo.require("receipts_invoices", document.id)
    return document, content


def mark_viewed(document_id: int, *, business_id: int | None = None, repo: Repository | None = None) -> ReceiptInvoice:
    repo = repo or Repository()
    document = repo.require("receipts_invoices", document_id, business_id=business_id)
    if next_status(document.status, EVENT_VIEW) == document.status:
        return document
    repo.compare_and_swap(
        "receipts_invoices",
        document.id,
        expected={"status": STATUS_SENT},
        patch={"status": STATUS_VIEWED, "viewed_at": utcnow(), "updated_at": utcnow()},
    )
    return repo.require("receipts_invoices", document.id)


def delete_document(document_id: int, *, business_id: int | None = None, repo: Repository | None = None) -> None:
    repo = repo or Repository()
    repo.require("receipts_invoices", document_id, business_id=business_id)
    repo.delete("receipts_invoices", document_id)


def list_documents(
    business_id: int,
    *,
    status: str | None = None,
    document_type: str | None = None,
    transaction_id: int | None = None,
    page: Page | None = None,
    repo: Repository | None = None,
) -> tuple[list[ReceiptInvoice], int]:
    repo = repo or Repository()
    filters: list = [Filter("business_id", "eq", business_id)]
    if status:
        if status not in DOCUMENT_STATUSES:
            raise InvalidInputError(f"status must be one of: {', '.join(sorted(DOCUMENT_STATUSES))}")
        filters.append(Filter("status", "eq", status))
    if document_type:
        if document_type not in DOCUMENT_TYPES:
            raise InvalidInputError(f"type must be one of: {', '.join(sorted(DOCUMENT_TYPES))}")
        filters.append(Filter("type", "eq", document_type))
    if transaction_id is not None:
        filters.append(Filter("transaction_id", "eq", transaction_id))
    rows = repo.fetch("receipts_invoices", filters, [Sort("created_at", descending=True)], page)
    return rows, repo.count("receipts_invoices", filters)
