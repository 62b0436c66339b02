# Overview: Contacts and the per-contact debt tracker.

"""
Contact debt tracking

owed(contact, transactions) sums (total - amount_paid) over the contact's
transactions that are not fully paid. For a customer this is a receivable,
for a supplier a payable. Adding an unpaid transaction can only raise the
figure; recording a payment can only lower it.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable

from ..errors import InvalidInputError
from ..models import Contact
from ..models.contacts import CONTACT_CUSTOMER, CONTACT_SUPPLIER, CONTACT_TYPES
from ..money import ZERO, money_str
from ..validation import ConflictError, ModelValidationPolicy, validate_payload
from .concurrency import run_with_retry
from .ledger_types import PAYMENT_STATUS_PAID, TYPE_EXPENSE, TYPE_SALE, TransactionSnapshot
from .repository import Filter, Page, Repository, Search, Sort


TOP_DEBTORS = 5

CONTACT_POLICY = ModelValidationPolicy(
    writable_fields={"type", "name", "phone"},
    required_on_create={"type", "name"},
    choices={"type": CONTACT_TYPES},
)


def contact_type_for(transaction_type: str) -> str:
    return CONTACT_CUSTOMER if transaction_type == TYPE_SALE else CONTACT_SUPPLIER


# =============================================================================
# PURE DEBT FUNCTIONS
# =============================================================================

def owed(contact_id: int, transactions: Iterable[TransactionSnapshot]) -> Decimal:
    """Outstanding amount across the contact's not-fully-paid transactions."""
    return sum(
        (t.total - t.amount_paid for t in transactions
         if t.contact_id == contact_id and t.payment_status != PAYMENT_STATUS_PAID),
        ZERO,
    )


def summarize_debts(transactions: Iterable[TransactionSnapshot], limit: int = TOP_DEBTORS) -> dict:
    """
    Totals of customer debt (unpaid sales) and supplier debt (unpaid
    expenses), plus the customers owing the most.
    """
    customer_debt = ZERO
    supplier_debt = ZERO
    debtors: dict[int | None, dict] = {}

    for txn in transactions:
        if txn.payment_status == PAYMENT_STATUS_PAID:
            continue
        outstanding = txn.total - txn.amount_paid
        if txn.type == TYPE_EXPENSE:
            supplier_debt += outstanding
            continue
        customer_debt += outstanding
        entry = debtors.setdefault(txn.contact_id, {
            "contact_id": txn.contact_id,
            "contact_name": txn.contact_name,
            "total_owed": ZERO,
        })
        entry["total_owed"] += outstanding

    top = sorted(debtors.values(), key=lambda d: d["total_owed"], reverse=True)[:limit]
    return {
        "total_customer_debt": money_str(customer_debt),
        "total_supplier_debt": money_str(supplier_debt),
        "top_debtors": [
            {**d, "total_owed": money_str(d["total_owed"])} for d in top
        ],
    }


# =============================================================================
# CRUD
# =============================================================================

def create_contact(business_id: int, payload: dict, *, repo: Repository | None = None) -> Contact:
    repo = repo or Repository()
    patch = validate_payload(model=Contact, payload=payload, policy=CONTACT_POLICY, partial=False)

    def _op():
        return repo.insert("contacts", {"business_id": business_id, **patch})

    return run_with_retry(_op)


def update_contact(contact_id: int, payload: dict, *, business_id: int | None = None, repo: Repository | None = None) -> Contact:
    repo = repo or Repository()
    repo.require("contacts", contact_id, business_id=business_id)
    patch = validate_payload(model=Contact, payload=payload, policy=CONTACT_POLICY, partial=True)

    def _op():
        return repo.update("contacts", contact_id, patch)

    return run_with_retry(_op)


def delete_contact(contact_id: int, *, business_id: int | None = None, repo: Repository | None = None) -> None:
    repo = repo or Repository()
    repo.require("contacts", contact_id, business_id=business_id)
    linked = repo.count("transactions", [Filter("contact_id", "eq", contact_id)])
    if linked:
        raise ConflictError(
            "Cannot delete contact because it is linked to one or more transactions",
            details={"transactions": linked},
        )
    repo.delete("contacts", contact_id)


def find_or_create_contact(
    business_id: int,
    contact_type: str,
    name: str,
    phone: str | None = None,
    *,
    repo: Repository,
    commit: bool = False,
) -> Contact:
    """Reuse a contact with the same (business, type, name) or stage a new one."""
    name = (name or "").strip()
    if not name:
        raise InvalidInputError("Contact name is required")
    if contact_type not in CONTACT_TYPES:
        raise InvalidInputError(f"Contact type must be one of: {', '.join(sorted(CONTACT_TYPES))}")

    existing = repo.fetch("contacts", [
        Filter("business_id", "eq", business_id),
        Filter("type", "eq", contact_type),
        Filter("name", "eq", name),
    ])
    if existing:
        return existing[0]

    phone = phone.strip() if phone else None
    return repo.insert(
        "contacts",
        {"business_id": business_id, "type": contact_type, "name": name, "phone": phone or None},
        commit=commit,
    )


def list_contacts(
    business_id: int,
    *,
    contact_type: str | None = None,
    search: str | None = None,
    sort: Sort | None = None,
    page: Page | None = None,
    repo: Repository | None = None,
) -> tuple[list[dict], int]:
    """Contacts with their owed amount attached."""
    repo = repo or Repository()
    filters: list = [Filter("business_id", "eq", business_id)]
    if contact_type:
        if contact_type not in CONTACT_TYPES:
            raise InvalidInputError(f"type must be one of: {', '.join(sorted(CONTACT_TYPES))}")
        filters.append(Filter("type", "eq", contact_type))
    if search:
        filters.append(Search(("name", "phone"), search))

    contacts = repo.fetch("contacts", filters, [sort or Sort("name")], page)
    total = repo.count("contacts", filters)

    snapshots = _unpaid_snapshots(repo, [c.id for c in contacts])
    rows = []
    for contact in contacts:
        row = contact.to_dict()
        row["amount_owed"] = money_str(owed(contact.id, snapshots))
        rows.append(row)
    return rows, total


def contact_owed(contact_id: int, *, business_id: int | None = None, repo: Repository | None = None) -> Decimal:
    repo = repo or Repository()
    repo.require("contacts", contact_id, business_id=business_id)
    return owed(contact_id, _unpaid_snapshots(repo, [contact_id]))


def debt_summary(business_id: int, *, repo: Repository | None = None) -> dict:
    repo = repo or Repository()
    rows = repo.fetch("transactions", [
        Filter("business_id", "eq", business_id),
        Filter("payment_status", "ne", PAYMENT_STATUS_PAID),
    ], [Sort("date")])
    return summarize_debts([t.snapshot() for t in rows])


def _unpaid_snapshots(repo: Repository, contact_ids: list[int]) -> list[TransactionSnapshot]:
    if not contact_ids:
        return []
    rows = repo.fetch("transactions", [
        Filter("contact_id", "in", contact_ids),
        Filter("payment_status", "ne", PAYMENT_STATUS_PAID),
    ])
    return [t.snapshot() for t in rows]
