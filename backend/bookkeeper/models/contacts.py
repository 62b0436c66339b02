from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


CONTACT_CUSTOMER = "customer"
CONTACT_SUPPLIER = "supplier"
CONTACT_TYPES = {CONTACT_CUSTOMER, CONTACT_SUPPLIER}


class Contact(db.Model):
    """Customer or supplier. Deletion is blocked while transactions reference it."""
    __tablename__ = "contacts"
    __table_args__ = (
        db.Index("ix_contacts_business_type_name", "business_id", "type", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=False, index=True)
    type = db.Column(db.String(16), nullable=False)
    name = db.Column(db.String(128), nullable=False)
    phone = db.Column(db.String(32), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    business = db.relationship("Business", backref=db.backref("contacts", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "business_id": self.business_id,
            "type": self.type,
            "name": self.name,
            "phone": self.phone,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
