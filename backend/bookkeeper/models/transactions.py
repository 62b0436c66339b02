from __future__ import annotations

from ..extensions import db
from ..money import money_str
from ..services.ledger_types import LineItem, TransactionSnapshot
from ..time_utils import to_utc_z
from .types import Money


class Transaction(db.Model):
    """
    A recorded sale or expense.

    Monetary fields (subtotal, total, balance, payment_status) are derived by
    monetary_service.derive_totals and rewritten on every edit; they are never
    set independently of items/discount/amount_paid.

    Line items are stored as a JSON array of LineItem dicts.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.Index("ix_transactions_business_type_date", "business_id", "type", "date"),
        db.Index("ix_transactions_business_status", "business_id", "payment_status"),
        db.CheckConstraint("discount >= 0", name="discount_non_negative"),
        db.CheckConstraint("amount_paid >= 0", name="amount_paid_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=False, index=True)
    contact_id = db.Column(db.Integer, db.ForeignKey("contacts.id"), nullable=True, index=True)

    type = db.Column(db.String(16), nullable=False)  # sale, expense
    date = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    items = db.Column(db.JSON, nullable=False, default=list)

    subtotal = db.Column(Money(), nullable=False)
    discount = db.Column(Money(), nullable=False, default=0)
    total = db.Column(Money(), nullable=False)
    amount_paid = db.Column(Money(), nullable=False, default=0)
    balance = db.Column(Money(), nullable=False)
    payment_status = db.Column(db.String(16), nullable=False, index=True)  # paid, partially_paid, unpaid
    payment_method = db.Column(db.String(32), nullable=False, default="cash")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    business = db.relationship("Business", backref=db.backref("transactions", lazy=True))
    contact = db.relationship("Contact", backref=db.backref("transactions", lazy=True))
    documents = db.relationship(
        "ReceiptInvoice",
        back_populates="transaction",
        cascade="all, delete-orphan",
        lazy=True,
    )
    __mapper_args__ = {"version_id_col": version_id}

    def line_items(self) -> list[LineItem]:
        return [LineItem.from_dict(raw) for raw in (self.items or [])]

    def snapshot(self) -> TransactionSnapshot:
        """Immutable copy consumed by the pure aggregation/debt functions."""
        return TransactionSnapshot(
            id=self.id,
            type=self.type,
            date=self.date,
            total=self.total,
            amount_paid=self.amount_paid,
            payment_status=self.payment_status,
            contact_id=self.contact_id,
            contact_name=self.contact.name if self.contact else None,
            contact_type=self.contact.type if self.contact else None,
            payment_method=self.payment_method,
            items=tuple(self.line_items()),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "business_id": self.business_id,
            "contact_id": self.contact_id,
            "contact_name": self.contact.name if self.contact else None,
            "type": self.type,
            "date": to_utc_z(self.date),
            "items": list(self.items or []),
            "subtotal": money_str(self.subtotal),
            "discount": money_str(self.discount),
            "total": money_str(self.total),
            "amount_paid": money_str(self.amount_paid),
            "balance": money_str(self.balance),
            "payment_status": self.payment_status,
            "payment_method": self.payment_method,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }
