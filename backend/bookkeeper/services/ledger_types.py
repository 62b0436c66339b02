# Overview: Immutable value objects passed between the ledger services.

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from ..errors import InvalidInputError
from ..money import ZERO, money_str, quantize, to_decimal


TYPE_SALE = "sale"
TYPE_EXPENSE = "expense"
TRANSACTION_TYPES = {TYPE_SALE, TYPE_EXPENSE}

PAYMENT_STATUS_PAID = "paid"
PAYMENT_STATUS_PARTIAL = "partially_paid"
PAYMENT_STATUS_UNPAID = "unpaid"
PAYMENT_STATUSES = {PAYMENT_STATUS_PAID, PAYMENT_STATUS_PARTIAL, PAYMENT_STATUS_UNPAID}

METHOD_CASH = "cash"
METHOD_CARD = "card"
METHOD_BANK_TRANSFER = "bank_transfer"
METHOD_MOBILE_MONEY = "mobile_money"
PAYMENT_METHODS = {METHOD_CASH, METHOD_CARD, METHOD_BANK_TRANSFER, METHOD_MOBILE_MONEY}


def _to_quantity(value: Any) -> int:
    if isinstance(value, bool):
        raise InvalidInputError("quantity_selected must be an integer")
    if isinstance(value, int):
        qty = value
    elif isinstance(value, str) and value.strip().lstrip("-").isdigit():
        qty = int(value.strip())
    else:
        raise InvalidInputError("quantity_selected must be an integer")
    if qty <= 0:
        raise InvalidInputError("quantity_selected must be > 0")
    return qty


@dataclass(frozen=True)
class LineItem:
    """One line of a transaction. subtotal == quantity_selected * selling_price."""
    name: str
    quantity_selected: int
    selling_price: Decimal
    subtotal: Decimal
    inventory_item_id: Optional[int] = None
    item_type: Optional[str] = None

    @classmethod
    def build(
        cls,
        name: str,
        quantity_selected: Any,
        selling_price: Any,
        *,
        inventory_item_id: int | None = None,
        item_type: str | None = None,
    ) -> "LineItem":
        if not name or not str(name).strip():
            raise InvalidInputError("Line item name is required")
        qty = _to_quantity(quantity_selected)
        price = to_decimal(selling_price, "selling_price")
        if price < 0:
            raise InvalidInputError("selling_price must be >= 0")
        return cls(
            name=str(name).strip(),
            quantity_selected=qty,
            selling_price=price,
            subtotal=quantize(price * qty),
            inventory_item_id=inventory_item_id,
            item_type=item_type,
        )

    @classmethod
    def from_dict(cls, data: dict) -> "LineItem":
        """Rebuild from stored JSON; subtotal is always recomputed."""
        return cls.build(
            data.get("name"),
            data.get("quantity_selected"),
            data.get("selling_price"),
            inventory_item_id=data.get("inventory_item_id"),
            item_type=data.get("type"),
        )

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "quantity_selected": self.quantity_selected,
            "selling_price": money_str(self.selling_price),
            "subtotal": money_str(self.subtotal),
            "inventory_item_id": self.inventory_item_id,
            "type": self.item_type,
        }


@dataclass(frozen=True)
class TransactionSnapshot:
    """Read-only view of a transaction for aggregation and debt tracking."""
    id: Optional[int]
    type: str
    date: datetime
    total: Decimal
    amount_paid: Decimal = ZERO
    payment_status: str = PAYMENT_STATUS_PAID
    contact_id: Optional[int] = None
    contact_name: Optional[str] = None
    contact_type: Optional[str] = None
    payment_method: str = METHOD_CASH
    items: tuple[LineItem, ...] = field(default_factory=tuple)

    @property
    def is_sale(self) -> bool:
        return self.type == TYPE_SALE

    @property
    def is_expense(self) -> bool:
        return self.type == TYPE_EXPENSE

    @property
    def outstanding(self) -> Decimal:
        return self.total - self.amount_paid
