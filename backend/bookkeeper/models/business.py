from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Business(db.Model):
    """
    Tenant root. Every contact, item, transaction, bank record and document
    belongs to exactly one business.
    """
    __tablename__ = "businesses"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    preferred_currency = db.Column(db.String(64), nullable=False, default="USD")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "preferred_currency": self.preferred_currency,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
