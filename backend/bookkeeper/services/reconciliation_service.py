# Overview: Converts bank statement lines into transactions exactly once.

"""
Bank Reconciliation

convert() turns an unprocessed BankPaymentRecord into a Transaction:

1. Refuse records that are already processed (AlreadyProcessedError).
2. Create the transaction: sale for money-in, expense for money-out, dated
   like the record, amount_paid = record amount, paid by bank transfer.
   Draft items totalling more than the record amount are rejected up front
   (InvalidInputError) so the transaction is always paid.
3. Claim the record with ONE conditional UPDATE
   (processed = false AND transaction_id IS NULL -> processed = true,
   transaction_id = new id). Two racing conversions can both pass step 1,
   but only one of them wins step 3.

Outcomes of step 3
- claimed: done.
- lost the race: the transaction from step 2 is a duplicate; it is deleted
  and AlreadyProcessedError is raised.
- the UPDATE itself failed: the transaction exists but the record does not
  point to it. This is recorded as a ReconciliationIssue and raised as
  InconsistentStateError. It is NOT retried; a retry could double-create.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..errors import AlreadyProcessedError, InconsistentStateError, InvalidInputError, LedgerError
from ..models import BankPaymentRecord, ReconciliationIssue, Transaction
from ..models.bank import BANK_RECORD_TYPES, MONEY_IN
from ..money import money_str
from ..time_utils import to_utc_z, utcnow
from ..validation import (
    ModelValidationPolicy,
    ValidationError,
    enforce_rules_bank_record,
    validate_payload,
)
from . import transaction_service
from .ledger_types import METHOD_BANK_TRANSFER, PAYMENT_STATUS_PAID, TYPE_EXPENSE, TYPE_SALE
from .monetary_service import derive_totals
from .repository import Filter, Page, Repository, Search, Sort


logger = logging.getLogger(__name__)

ISSUE_ORPHAN_TRANSACTION = "ORPHAN_TRANSACTION"
ISSUE_DUPLICATE_NOT_DISCARDED = "DUPLICATE_NOT_DISCARDED"

RECORD_POLICY = ModelValidationPolicy(
    writable_fields={"date", "type", "description", "amount", "beneficiary_name"},
    required_on_create={"date", "type", "amount"},
    choices={"type": BANK_RECORD_TYPES},
)


def transaction_type_for(record_type: str) -> str:
    return TYPE_SALE if record_type == MONEY_IN else TYPE_EXPENSE


def seed_transaction_payload(record: BankPaymentRecord, draft: dict | None = None) -> dict:
    """
    Transaction payload for a record, with caller-supplied draft fields
    (items, contact, discount) layered on top.

    Without draft items a single line named after the record description is
    priced at the record amount, so the transaction comes out fully paid.
    """
    draft = dict(draft or {})
    items = draft.get("items") or [{
        "name": (record.description or "").strip()[:120] or "Bank transfer",
        "quantity_selected": 1,
        "selling_price": money_str(record.amount),
    }]

    payload = {
        "type": transaction_type_for(record.type),
        "date": to_utc_z(record.date),
        "items": items,
        "discount": draft.get("discount", 0),
        "amount_paid": money_str(record.amount),
        "payment_method": METHOD_BANK_TRANSFER,
    }
    if draft.get("contact_id") is not None:
        payload["contact_id"] = draft["contact_id"]
    elif draft.get("contact_name") or record.beneficiary_name:
        payload["contact_name"] = draft.get("contact_name") or record.beneficiary_name
        payload["contact_phone"] = draft.get("contact_phone")
    return payload


def ensure_covered_by_record(record: BankPaymentRecord, payload: dict, *, repo: Repository) -> None:
    """The converted transaction must come out paid: its total cannot exceed the record amount."""
    items = transaction_service.parse_line_items(record.business_id, payload["items"], repo=repo)
    derived = derive_totals(items, payload.get("discount"), payload["amount_paid"])
    if derived.payment_status != PAYMENT_STATUS_PAID:
        raise InvalidInputError(
            "Draft total exceeds the bank record amount",
            details={"total": money_str(derived.total), "amount": money_str(record.amount)},
        )


def convert(
    record_id: int,
    draft: dict | None = None,
    *,
    business_id: int | None = None,
    repo: Repository | None = None,
) -> Transaction:
    """Create exactly one transaction from a bank payment record."""
    repo = repo or Repository()
    record = repo.require("bank_payment_records", record_id, business_id=business_id)
    if record.processed:
        raise AlreadyProcessedError(
            f"Bank payment record {record_id} has already been processed",
            details={"transaction_id": record.transaction_id},
        )

    payload = seed_transaction_payload(record, draft)
    ensure_covered_by_record(record, payload, repo=repo)

    txn = transaction_service.create_transaction(record.business_id, payload, repo=repo)

    try:
        claimed = repo.compare_and_swap(
            "bank_payment_records",
            record_id,
            expected={"processed": False, "transaction_id": None},
            patch={"processed": True, "transaction_id": txn.id, "updated_at": utcnow()},
        )
    except IntegrityError:
        # Unique transaction_id: another conversion already linked this record
        claimed = None
    except SQLAlchemyError as exc:
        issue = _report_issue(
            record, txn.id, ISSUE_ORPHAN_TRANSACTION,
            f"Transaction {txn.id} created but record update failed: {exc}",
            repo=repo,
        )
        raise InconsistentStateError(
            "Transaction was created but the bank record could not be marked processed",
            details={"bank_record_id": record_id, "transaction_id": txn.id, "issue_id": issue.id if issue else None},
        )

    if claimed is None:
        logger.warning("Bank record %s was converted concurrently; discarding transaction %s", record_id, txn.id)
        _discard_duplicate(record, txn.id, repo=repo)
        current = repo.get("bank_payment_records", record_id)
        raise AlreadyProcessedError(
            f"Bank payment record {record_id} has already been processed",
            details={"transaction_id": current.transaction_id if current else None},
        )

    logger.info("Bank record %s converted into transaction %s", record_id, txn.id)
    return repo.require("transactions", txn.id)


def _discard_duplicate(record: BankPaymentRecord, transaction_id: int, *, repo: Repository) -> None:
    try:
        transaction_service.delete_transaction(transaction_id, repo=repo)
    except (LedgerError, SQLAlchemyError) as exc:
        issue = _report_issue(
            record, transaction_id, ISSUE_DUPLICATE_NOT_DISCARDED,
            f"Duplicate transaction {transaction_id} could not be deleted: {exc}",
            repo=repo,
        )
        raise InconsistentStateError(
            "A duplicate transaction was created and could not be removed",
            details={"bank_record_id": record.id, "transaction_id": transaction_id, "issue_id": issue.id if issue else None},
        )


def _report_issue(
    record: BankPaymentRecord,
    transaction_id: int | None,
    kind: str,
    detail: str,
    *,
    repo: Repository,
) -> ReconciliationIssue | None:
    """Persist an audit entry; if even that fails, the log line is the report."""
    logger.error("Reconciliation inconsistency (%s) for bank record %s: %s", kind, record.id, detail)
    try:
        return repo.insert("reconciliation_issues", {
            "business_id": record.business_id,
            "bank_record_id": record.id,
            "transaction_id": transaction_id,
            "kind": kind,
            "detail": detail,
        })
    except SQLAlchemyError:
        repo.rollback()
        logger.exception("Could not record reconciliation issue for bank record %s", record.id)
        return None


# =============================================================================
# RECORDS & AUDIT
# =============================================================================

def create_records(business_id: int, rows: list[dict], *, repo: Repository | None = None) -> list[BankPaymentRecord]:
    """Store already-parsed statement lines (all or nothing)."""
    repo = repo or Repository()
    if not isinstance(rows, list) or not rows:
        raise ValidationError("At least one record is required")

    cleaned = []
    for index, row in enumerate(rows):
        try:
            patch = validate_payload(model=BankPaymentRecord, payload=row, policy=RECORD_POLICY, partial=False)
            enforce_rules_bank_record(patch)
        except ValidationError as exc:
            raise ValidationError(f"records[{index}]: {exc}")
        cleaned.append(patch)

    created = [
        repo.insert("bank_payment_records", {"business_id": business_id, "processed": False, **patch}, commit=False)
        for patch in cleaned
    ]
    repo.commit()
    return created


def delete_record(record_id: int, *, business_id: int | None = None, repo: Repository | None = None) -> None:
    repo = repo or Repository()
    record = repo.require("bank_payment_records", record_id, business_id=business_id)
    if record.processed:
        raise AlreadyProcessedError("Processed bank payment records cannot be deleted")
    repo.delete("bank_payment_records", record_id)


def list_records(
    business_id: int,
    *,
    processed: bool | None = False,
    record_type: str | None = None,
    start=None,
    end=None,
    search: str | None = None,
    sort: Sort | None = None,
    page: Page | None = None,
    repo: Repository | None = None,
) -> tuple[list[BankPaymentRecord], int]:
    repo = repo or Repository()
    filters: list = [Filter("business_id", "eq", business_id)]
    if processed is not None:
        filters.append(Filter("processed", "eq", processed))
    if record_type:
        if record_type not in BANK_RECORD_TYPES:
            raise ValidationError(f"type must be one of: {', '.join(sorted(BANK_RECORD_TYPES))}")
        filters.append(Filter("type", "eq", record_type))
    if start is not None:
        filters.append(Filter("date", "gte", start))
    if end is not None:
        filters.append(Filter("date", "lte", end))
    if search:
        filters.append(Search(("description", "beneficiary_name"), search))

    rows = repo.fetch("bank_payment_records", filters, [sort or Sort("date", descending=True)], page)
    return rows, repo.count("bank_payment_records", filters)


def list_issues(business_id: int | None = None, *, include_resolved: bool = False, repo: Repository | None = None) -> list[ReconciliationIssue]:
    repo = repo or Repository()
    filters: list = []
    if business_id is not None:
        filters.append(Filter("business_id", "eq", business_id))
    if not include_resolved:
        filters.append(Filter("resolved_at", "is_null"))
    return repo.fetch("reconciliation_issues", filters, [Sort("created_at", descending=True)])


def resolve_issue(issue_id: int, note: str, *, business_id: int | None = None, repo: Repository | None = None) -> ReconciliationIssue:
    repo = repo or Repository()
    issue = repo.require("reconciliation_issues", issue_id, business_id=business_id)
    if issue.resolved_at is not None:
        raise ValidationError(f"Reconciliation issue {issue_id} is already resolved")
    return repo.update("reconciliation_issues", issue_id, {"resolved_at": utcnow(), "resolution_note": (note or "").strip()[:255] or None})
