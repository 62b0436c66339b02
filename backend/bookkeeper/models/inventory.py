from __future__ import annotations

from ..extensions import db
from ..money import money_str
from ..time_utils import to_utc_z
from .types import Money


ITEM_PRODUCT = "product"
ITEM_SERVICE = "service"
ITEM_TYPES = {ITEM_PRODUCT, ITEM_SERVICE}


class InventoryItem(db.Model):
    """
    Product or service that can appear on a transaction line.

    Only products track `quantity`; services leave it NULL.
    """
    __tablename__ = "inventory_items"
    __table_args__ = (
        db.CheckConstraint("quantity IS NULL OR quantity >= 0", name="quantity_non_negative"),
        db.Index("ix_inventory_items_business_type", "business_id", "type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.id"), nullable=False, index=True)
    type = db.Column(db.String(16), nullable=False, default=ITEM_PRODUCT)
    name = db.Column(db.String(128), nullable=False)
    sku = db.Column(db.String(64), nullable=True)
    quantity = db.Column(db.Integer, nullable=True)
    selling_price = db.Column(Money(), nullable=False)
    cost_price = db.Column(Money(), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    business = db.relationship("Business", backref=db.backref("inventory_items", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "business_id": self.business_id,
            "type": self.type,
            "name": self.name,
            "sku": self.sku,
            "quantity": self.quantity,
            "selling_price": money_str(self.selling_price),
            "cost_price": money_str(self.cost_price),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }
