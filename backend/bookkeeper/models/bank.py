from __future__ import annotations

from ..extensions import db
from ..money import money_str
from ..time_utils import to_utc_z
from .types import Money


MONEY_IN = "money-in"
MONEY_OUT = "money-out"
BANK_RECORD_TYPES = {MONEY_IN, MONEY_OUT}


class BankPaymentRecord(db.Model):
    """
    One imported bank statement line.

    `processed` flips False -> True exactly once, in the same conditional
    UPDATE that sets `transaction_id`. Processed records are terminal.
    The UNIQUE constraint on transaction_id backs the one-to-one link.
    """
    __tablename__ = "bank_payment_records"
    __table_args__ = (
        db.UniqueConstraint("transaction_id", name="uq_bank_payment_records_transaction_id"),
        db.Index("ix_bank_payment_records_business_processed", "business_id", "processed", "date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=False, index=True)
    date = db.Column(db.DateTime(timezone=True), nullable=False)
    type = db.Column(db.String(16), nullable=False)  # money-in, money-out
    description = db.Column(db.Text, nullable=True)
    amount = db.Column(Money(), nullable=False)
    beneficiary_name = db.Column(db.String(255), nullable=True)

    transaction_id = db.Column(db.Integer, db.ForeignKey("transactions.id"), nullable=True)
    processed = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    business = db.relationship("Business", backref=db.backref("bank_payment_records", lazy=True))
    transaction = db.relationship("Transaction", foreign_keys=[transaction_id])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "business_id": self.business_id,
            "date": to_utc_z(self.date),
            "type": self.type,
            "description": self.description,
            "amount": money_str(self.amount),
            "beneficiary_name": self.beneficiary_name,
            "transaction_id": self.transaction_id,
            "processed": self.processed,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class ReconciliationIssue(db.Model):
    """
    Audit entry for a half-failed conversion.

    Written when a transaction was created from a bank record but the record
    could not be marked processed (or a duplicate could not be discarded).
    These are resolved by a person, never by automatic retry.
    """
    __tablename__ = "reconciliation_issues"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=False, index=True)
    bank_record_id = db.Column(db.Integer, nullable=False, index=True)
    transaction_id = db.Column(db.Integer, nullable=True)
    kind = db.Column(db.String(32), nullable=False)  # ORPHAN_TRANSACTION, DUPLICATE_NOT_DISCARDED
    detail = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    resolved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    resolution_note = db.Column(db.String(255), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "business_id": self.business_id,
            "bank_record_id": self.bank_record_id,
            "transaction_id": self.transaction_id,
            "kind": self.kind,
            "detail": self.detail,
            "created_at": to_utc_z(self.created_at),
            "resolved_at": to_utc_z(self.resolved_at) if self.resolved_at else None,
            "resolution_note": self.resolution_note,
        }
