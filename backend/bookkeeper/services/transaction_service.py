# Overview: Service-layer operations for sales and expenses.

"""
Transaction Service

Creates, edits, pays and deletes sale/expense transactions. Every write runs
the line items, discount and amount paid through monetary_service so the
stored subtotal, total, balance and payment_status always agree.

Side effects kept in the same database transaction:
- product stock moves (sales out, expenses in); edits and deletes reverse the
  previous movement before applying the new one
- a new contact is created when the payload names one that does not exist
- deleting a transaction deletes its receipts/invoices
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from ..errors import InvalidInputError, LedgerError
from ..models import Transaction
from ..money import to_decimal
from ..time_utils import parse_iso_datetime, utcnow
from ..validation import ConflictError
from .concurrency import run_with_retry
from .contact_service import contact_type_for, find_or_create_contact
from .inventory_service import apply_stock_deltas, stock_deltas
from .ledger_types import (
    LineItem,
    METHOD_CASH,
    PAYMENT_METHODS,
    PAYMENT_STATUSES,
    TRANSACTION_TYPES,
)
from .monetary_service import amount_paid_for_status, derive_totals
from .repository import Filter, Page, Repository, Sort


# =============================================================================
# PAYLOAD PARSING
# =============================================================================

def _parse_date(value: Any) -> datetime:
    if value is None or value == "":
        return utcnow()
    if isinstance(value, datetime):
        return value
    try:
        parsed = parse_iso_datetime(str(value))
    except ValueError:
        raise InvalidInputError("date must be an ISO-8601 date or datetime")
    return parsed or utcnow()


def parse_line_items(business_id: int, raw_items: Any, *, repo: Repository) -> list[LineItem]:
    """
    Build LineItems from request data.

    A line either references an inventory item (name and price default to the
    item's) or names a free-form line with an explicit selling_price.
    """
    if not isinstance(raw_items, list) or not raw_items:
        raise InvalidInputError("At least one item is required")

    items = []
    for index, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            raise InvalidInputError(f"items[{index}] must be an object")

        item_id = raw.get("inventory_item_id")
        name = raw.get("name")
        price = raw.get("selling_price")
        item_type = None

        if item_id is not None:
            inventory_item = repo.require("inventory_items", item_id, business_id=business_id)
            name = name or inventory_item.name
            price = inventory_item.selling_price if price is None else price
            item_type = inventory_item.type
        elif price is None:
            raise InvalidInputError(f"items[{index}].selling_price is required")

        try:
            items.append(LineItem.build(
                name,
                raw.get("quantity_selected", 1),
                price,
                inventory_item_id=item_id,
                item_type=item_type,
            ))
        except InvalidInputError as exc:
            raise InvalidInputError(f"items[{index}]: {exc}")
    return items


def _resolve_contact_id(business_id: int, transaction_type: str, payload: dict, *, repo: Repository) -> int | None:
    contact_id = payload.get("contact_id")
    if contact_id is not None:
        contact = repo.require("contacts", contact_id, business_id=business_id)
        return contact.id

    name = payload.get("contact_name")
    if name and str(name).strip():
        contact = find_or_create_contact(
            business_id,
            contact_type_for(transaction_type),
            str(name),
            payload.get("contact_phone"),
            repo=repo,
        )
        return contact.id
    return None


def _monetary_fields(items: list[LineItem], payload: dict, *, current_paid=None) -> dict:
    discount = payload.get("discount", 0)
    # Derive the total first so a declared status can resolve amount_paid
    preliminary = derive_totals(items, discount, 0)
    amount_paid = amount_paid_for_status(
        payload.get("payment_status"),
        preliminary.total,
        payload.get("amount_paid", current_paid),
    )
    derived = derive_totals(items, discount, amount_paid)
    return {
        "items": [item.to_dict() for item in items],
        "discount": to_decimal(discount if discount is not None else 0, "discount"),
        "amount_paid": amount_paid,
        "subtotal": derived.subtotal,
        "total": derived.total,
        "balance": derived.balance,
        "payment_status": derived.payment_status,
    }


def _payment_method(value: Any) -> str:
    method = value or METHOD_CASH
    if method not in PAYMENT_METHODS:
        raise InvalidInputError(f"payment_method must be one of: {', '.join(sorted(PAYMENT_METHODS))}")
    return method


# =============================================================================
# WRITES
# =============================================================================

def create_transaction(business_id: int, payload: dict, *, repo: Repository | None = None) -> Transaction:
    """
    Record a sale or expense.

    Payload: type, items[], discount?, amount_paid?, payment_status?
    (declared: paid/unpaid/partially_paid), payment_method?, date?,
    contact_id? | contact_name?/contact_phone?
    """
    repo = repo or Repository()
    payload = payload or {}

    transaction_type = payload.get("type")
    if transaction_type not in TRANSACTION_TYPES:
        raise InvalidInputError(f"type must be one of: {', '.join(sorted(TRANSACTION_TYPES))}")

    def _op():
        items = parse_line_items(business_id, payload.get("items"), repo=repo)
        values = _monetary_fields(items, payload)
        apply_stock_deltas(stock_deltas(transaction_type, items), repo=repo)
        values.update(
            business_id=business_id,
            type=transaction_type,
            date=_parse_date(payload.get("date")),
            payment_method=_payment_method(payload.get("payment_method")),
            contact_id=_resolve_contact_id(business_id, transaction_type, payload, repo=repo),
        )
        txn = repo.insert("transactions", values, commit=False)
        repo.commit()
        return txn

    try:
        return run_with_retry(_op)
    except LedgerError:
        repo.rollback()
        raise


def update_transaction(
    transaction_id: int,
    payload: dict,
    *,
    business_id: int | None = None,
    repo: Repository | None = None,
) -> Transaction:
    """
    Edit a transaction and recompute every derived field.

    Fields not present in the payload keep their current values.
    """
    repo = repo or Repository()
    payload = payload or {}
    if "type" in payload:
        raise InvalidInputError("Transaction type cannot be changed")

    def _op():
        txn = repo.require("transactions", transaction_id, business_id=business_id)
        old_items = txn.line_items()

        if "items" in payload:
            items = parse_line_items(txn.business_id, payload.get("items"), repo=repo)
        else:
            items = old_items

        merged = {"discount": txn.discount, **payload}
        values = _monetary_fields(items, merged, current_paid=txn.amount_paid)

        deltas = stock_deltas(txn.type, old_items, reverse=True)
        for item_id, delta in stock_deltas(txn.type, items).items():
            deltas[item_id] = deltas.get(item_id, 0) + delta
        apply_stock_deltas({k: v for k, v in deltas.items() if v}, repo=repo)

        if "date" in payload:
            values["date"] = _parse_date(payload.get("date"))
        if "payment_method" in payload:
            values["payment_method"] = _payment_method(payload.get("payment_method"))
        if "contact_id" in payload or "contact_name" in payload:
            values["contact_id"] = _resolve_contact_id(txn.business_id, txn.type, payload, repo=repo)

        updated = repo.update("transactions", txn.id, values, commit=False)
        repo.commit()
        return updated

    try:
        return run_with_retry(_op)
    except LedgerError:
        repo.rollback()
        raise


def record_payment(
    transaction_id: int,
    amount: Any,
    *,
    business_id: int | None = None,
    repo: Repository | None = None,
) -> Transaction:
    """Add a payment to amount_paid and re-derive balance and status."""
    repo = repo or Repository()
    value = to_decimal(amount, "amount")
    if value <= 0:
        raise InvalidInputError("Payment amount must be positive")

    def _op():
        txn = repo.require("transactions", transaction_id, business_id=business_id)
        derived = derive_totals(txn.line_items(), txn.discount, txn.amount_paid + value)
        return repo.update("transactions", txn.id, {
            "amount_paid": txn.amount_paid + value,
            "subtotal": derived.subtotal,
            "total": derived.total,
            "balance": derived.balance,
            "payment_status": derived.payment_status,
        })

    return run_with_retry(_op)


def delete_transaction(transaction_id: int, *, business_id: int | None = None, repo: Repository | None = None) -> None:
    """Delete a transaction, its documents, and reverse its stock movement."""
    repo = repo or Repository()

    def _op():
        txn = repo.require("transactions", transaction_id, business_id=business_id)
        apply_stock_deltas(stock_deltas(txn.type, txn.line_items(), reverse=True), repo=repo)
        if repo.count("bank_payment_records", [Filter("transaction_id", "eq", txn.id)]):
            raise ConflictError("Cannot delete a transaction created from a bank payment record")
        # receipts_invoices rows go with it (relationship cascade)
        repo.delete("transactions", txn.id, commit=False)
        repo.commit()

    try:
        run_with_retry(_op)
    except LedgerError:
        repo.rollback()
        raise


# =============================================================================
# READS
# =============================================================================

def get_transaction(transaction_id: int, *, business_id: int | None = None, repo: Repository | None = None) -> Transaction:
    repo = repo or Repository()
    return repo.require("transactions", transaction_id, business_id=business_id)


def list_transactions(
    business_id: int,
    *,
    transaction_type: str | None = None,
    payment_status: str | None = None,
    contact_id: int | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    sort: Sort | None = None,
    page: Page | None = None,
    repo: Repository | None = None,
) -> tuple[list[Transaction], int]:
    repo = repo or Repository()
    filters: list = [Filter("business_id", "eq", business_id)]
    if transaction_type:
        if transaction_type not in TRANSACTION_TYPES:
            raise InvalidInputError(f"type must be one of: {', '.join(sorted(TRANSACTION_TYPES))}")
        filters.append(Filter("type", "eq", transaction_type))
    if payment_status:
        if payment_status not in PAYMENT_STATUSES:
            raise InvalidInputError(f"payment_status must be one of: {', '.join(sorted(PAYMENT_STATUSES))}")
        filters.append(Filter("payment_status", "eq", payment_status))
    if contact_id is not None:
        filters.append(Filter("contact_id", "eq", contact_id))
    if start is not None:
        filters.append(Filter("date", "gte", start))
    if end is not None:
        filters.append(Filter("date", "lte", end))

    rows = repo.fetch("transactions", filters, [sort or Sort("date", descending=True)], page)
    return rows, repo.count("transactions", filters)
