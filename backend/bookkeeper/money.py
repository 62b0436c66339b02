# Overview: Decimal helpers for currency amounts.

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

from .errors import InvalidInputError


CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def quantize(value: Decimal) -> Decimal:
    """Round to the currency minor unit (2 places, ROUND_HALF_UP)."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def to_decimal(value: Any, field: str = "amount") -> Decimal:
    """
    Coerce user input to a quantized Decimal.

    Accepts Decimal, int, float or numeric strings ("1,250.50", "$12").
    Floats go through str() to avoid binary-float surprises.
    """
    if isinstance(value, bool):
        raise InvalidInputError(f"{field} must be a number")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float)):
        result = Decimal(str(value))
    elif isinstance(value, str):
        text = value.strip().replace("$", "").replace(",", "")
        if not text:
            raise InvalidInputError(f"{field} must be a number")
        try:
            result = Decimal(text)
        except InvalidOperation:
            raise InvalidInputError(f"{field} must be a number")
    else:
        raise InvalidInputError(f"{field} must be a number")

    if not result.is_finite():
        raise InvalidInputError(f"{field} must be a finite number")
    return quantize(result)


def money_str(value: Decimal | None) -> str | None:
    if value is None:
        return None
    return str(quantize(value))
