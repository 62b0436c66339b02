# Overview: Pure derivation of a transaction's monetary fields.

"""
Monetary derivation

Given line items, a discount and the amount paid, compute:

- subtotal = sum of line subtotals
- total = max(subtotal - discount, 0)
- balance = total - amount_paid (negative when over-paid; never clamped)
- payment_status:
    paid            balance <= 0
    partially_paid  0 < amount_paid < total
    unpaid          amount_paid == 0 and total > 0

No I/O and no hidden state: the same inputs always yield the same output.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable

from ..errors import InvalidInputError
from ..money import ZERO, money_str, quantize, to_decimal
from .ledger_types import (
    LineItem,
    PAYMENT_STATUS_PAID,
    PAYMENT_STATUS_PARTIAL,
    PAYMENT_STATUS_UNPAID,
    PAYMENT_STATUSES,
)


@dataclass(frozen=True)
class Derivation:
    subtotal: Decimal
    total: Decimal
    balance: Decimal
    payment_status: str

    def to_dict(self) -> dict:
        return {
            "subtotal": money_str(self.subtotal),
            "total": money_str(self.total),
            "balance": money_str(self.balance),
            "payment_status": self.payment_status,
        }


def payment_status_for(total: Decimal, amount_paid: Decimal) -> str:
    if total - amount_paid <= 0:
        return PAYMENT_STATUS_PAID
    if amount_paid > 0:
        return PAYMENT_STATUS_PARTIAL
    return PAYMENT_STATUS_UNPAID


def derive_totals(items: Iterable[LineItem], discount: Any = ZERO, amount_paid: Any = ZERO) -> Derivation:
    """Compute subtotal, total, balance and payment_status."""
    discount = to_decimal(discount if discount is not None else ZERO, "discount")
    if discount < 0:
        raise InvalidInputError("discount must be >= 0", details={"discount": money_str(discount)})

    amount_paid = to_decimal(amount_paid if amount_paid is not None else ZERO, "amount_paid")
    if amount_paid < 0:
        raise InvalidInputError("amount_paid must be >= 0", details={"amount_paid": money_str(amount_paid)})

    subtotal = quantize(sum((item.subtotal for item in items), ZERO))
    total = max(subtotal - discount, ZERO)
    balance = total - amount_paid

    return Derivation(
        subtotal=subtotal,
        total=total,
        balance=balance,
        payment_status=payment_status_for(total, amount_paid),
    )


def amount_paid_for_status(declared_status: str | None, total: Decimal, amount_paid: Any) -> Decimal:
    """
    Resolve amount_paid from an entry form's declared payment status.

    - paid: the full total
    - unpaid: zero
    - partially_paid: the given amount, which must satisfy 0 < amount < total
    - None: the given amount as-is (status is then derived)
    """
    if declared_status is None:
        return to_decimal(amount_paid if amount_paid is not None else ZERO, "amount_paid")

    if declared_status not in PAYMENT_STATUSES:
        raise InvalidInputError(f"payment_status must be one of: {', '.join(sorted(PAYMENT_STATUSES))}")

    if declared_status == PAYMENT_STATUS_PAID:
        return total
    if declared_status == PAYMENT_STATUS_UNPAID:
        return ZERO

    if amount_paid is None:
        raise InvalidInputError("amount_paid is required for partially paid transactions")
    value = to_decimal(amount_paid, "amount_paid")
    if value <= 0 or value >= total:
        raise InvalidInputError(
            "For partially paid transactions, amount paid must be greater than 0 and less than total",
            details={"amount_paid": money_str(value), "total": money_str(total)},
        )
    return value
