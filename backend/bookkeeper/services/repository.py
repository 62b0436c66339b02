# Overview: Narrow persistence interface over the SQLAlchemy models.

"""
Repository

The only place that knows how records are stored. Services ask for records by
collection name with typed filter/sort/page parameters and never compose
queries themselves.

Operations
- fetch(collection, filters, sort, page) -> records
- count(collection, filters) -> int
- get / require(collection, id, business_id=None)
- insert(collection, values) -> record
- update(collection, id, patch) -> record
- delete(collection, id)
- compare_and_swap(collection, id, expected, patch) -> record | None

Writes commit by default. Pass commit=False to stage several writes and call
commit() once; compare_and_swap always commits on success because its whole
point is a single conditional statement.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Sequence

from sqlalchemy import or_, update

from ..errors import InvalidInputError, NotFoundError
from ..extensions import db
from ..models import (
    Business,
    Contact,
    InventoryItem,
    Transaction,
    BankPaymentRecord,
    ReconciliationIssue,
    ReceiptInvoice,
)


COLLECTIONS = {
    "businesses": Business,
    "contacts": Contact,
    "inventory_items": InventoryItem,
    "transactions": Transaction,
    "bank_payment_records": BankPaymentRecord,
    "reconciliation_issues": ReconciliationIssue,
    "receipts_invoices": ReceiptInvoice,
}

LABELS = {
    "businesses": "Business",
    "contacts": "Contact",
    "inventory_items": "Inventory item",
    "transactions": "Transaction",
    "bank_payment_records": "Bank payment record",
    "reconciliation_issues": "Reconciliation issue",
    "receipts_invoices": "Document",
}

FILTER_OPS = {"eq", "ne", "gt", "gte", "lt", "lte", "in", "is_null", "not_null"}


@dataclass(frozen=True)
class Filter:
    field: str
    op: str = "eq"
    value: Any = None


@dataclass(frozen=True)
class Search:
    """Case-insensitive substring match across any of `fields`."""
    fields: tuple[str, ...]
    term: str


@dataclass(frozen=True)
class Sort:
    field: str
    descending: bool = False


@dataclass(frozen=True)
class Page:
    number: int = 1
    size: int = 25

    @property
    def offset(self) -> int:
        return (self.number - 1) * self.size


def _model(collection: str):
    try:
        return COLLECTIONS[collection]
    except KeyError:
        raise ValueError(f"Unknown collection: {collection}")


def _column(model, field: str):
    column = model.__table__.columns.get(field)
    if column is None:
        raise InvalidInputError(f"Unknown field: {field}")
    return getattr(model, field)


def _criterion(model, flt: Filter | Search):
    if isinstance(flt, Search):
        pattern = f"%{flt.term}%"
        return or_(*[_column(model, f).ilike(pattern) for f in flt.fields])

    if flt.op not in FILTER_OPS:
        raise ValueError(f"Unknown filter op: {flt.op}")
    col = _column(model, flt.field)
    if flt.op == "eq":
        return col.is_(None) if flt.value is None else col == flt.value
    if flt.op == "ne":
        return col.is_not(None) if flt.value is None else col != flt.value
    if flt.op == "gt":
        return col > flt.value
    if flt.op == "gte":
        return col >= flt.value
    if flt.op == "lt":
        return col < flt.value
    if flt.op == "lte":
        return col <= flt.value
    if flt.op == "in":
        return col.in_(list(flt.value))
    if flt.op == "is_null":
        return col.is_(None)
    return col.is_not(None)


class Repository:
    def __init__(self, session=None):
        self.session = session or db.session

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def _query(self, collection: str, filters: Iterable[Filter | Search] = ()):
        model = _model(collection)
        query = self.session.query(model)
        for flt in filters:
            query = query.filter(_criterion(model, flt))
        return model, query

    def fetch(
        self,
        collection: str,
        filters: Iterable[Filter | Search] = (),
        sort: Sequence[Sort] = (),
        page: Page | None = None,
    ) -> list:
        model, query = self._query(collection, filters)
        for s in sort:
            col = _column(model, s.field)
            query = query.order_by(col.desc() if s.descending else col.asc())
        # Deterministic tie-break on primary key
        query = query.order_by(model.id.asc())
        if page is not None:
            query = query.offset(page.offset).limit(page.size)
        return query.all()

    def count(self, collection: str, filters: Iterable[Filter | Search] = ()) -> int:
        _, query = self._query(collection, filters)
        return query.count()

    def get(self, collection: str, record_id: int):
        return self.session.get(_model(collection), record_id)

    def require(self, collection: str, record_id: int, business_id: int | None = None):
        """Load a record or raise NotFoundError (also when owned by another business)."""
        record = self.get(collection, record_id) if record_id is not None else None
        if record is None:
            raise NotFoundError(f"{LABELS[collection]} {record_id} not found")
        if business_id is not None and getattr(record, "business_id", business_id) != business_id:
            raise NotFoundError(f"{LABELS[collection]} {record_id} not found")
        return record

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def insert(self, collection: str, values: dict, *, commit: bool = True):
        record = _model(collection)(**values)
        self.session.add(record)
        self.session.flush()
        if commit:
            self.session.commit()
        return record

    def update(self, collection: str, record_id: int, patch: dict, *, commit: bool = True):
        record = self.require(collection, record_id)
        for key, value in patch.items():
            _column(type(record), key)
            setattr(record, key, value)
        self.session.flush()
        if commit:
            self.session.commit()
        return record

    def delete(self, collection: str, record_id: int, *, commit: bool = True) -> None:
        record = self.require(collection, record_id)
        self.session.delete(record)
        self.session.flush()
        if commit:
            self.session.commit()

    def compare_and_swap(self, collection: str, record_id: int, expected: dict, patch: dict):
        """
        Single conditional UPDATE: apply `patch` only if every `expected`
        column still holds its expected value.

        Returns the refreshed record, or None when the condition no longer
        held (another writer got there first). Errors propagate after rollback.
        """
        model = _model(collection)
        criteria = [model.id == record_id]
        for key, value in expected.items():
            criteria.append(_criterion(model, Filter(key, "eq", value)))

        stmt = update(model).where(*criteria).values(**patch).execution_options(synchronize_session=False)
        try:
            result = self.session.execute(stmt)
            if not result.rowcount:
                self.session.rollback()
                return None
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        record = self.session.get(model, record_id)
        self.session.refresh(record)
        return record

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()
