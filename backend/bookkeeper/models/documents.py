from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


DOC_RECEIPT = "receipt"
DOC_INVOICE = "invoice"
DOCUMENT_TYPES = {DOC_RECEIPT, DOC_INVOICE}


class ReceiptInvoice(db.Model):
    """
    Receipt or invoice generated for a transaction.

    Status moves draft -> sent (first successful export) -> viewed (external
    confirmation) and never backwards. Deleted with its transaction.
    """
    __tablename__ = "receipts_invoices"
    __table_args__ = (
        db.Index("ix_receipts_invoices_business_status", "business_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=False, index=True)
    transaction_id = db.Column(
        db.Integer,
        db.ForeignKey("transactions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    type = db.Column(db.String(16), nullable=False)  # receipt, invoice
    status = db.Column(db.String(16), nullable=False, default="draft")  # draft, sent, viewed
    sent_at = db.Column(db.DateTime(timezone=True), nullable=True)
    viewed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    transaction = db.relationship("Transaction", back_populates="documents")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "business_id": self.business_id,
            "transaction_id": self.transaction_id,
            "type": self.type,
            "status": self.status,
            "sent_at": to_utc_z(self.sent_at) if self.sent_at else None,
            "viewed_at": to_utc_z(self.viewed_at) if self.viewed_at else None,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
