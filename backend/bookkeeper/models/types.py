from __future__ import annotations

from decimal import Decimal

from sqlalchemy.types import TypeDecorator, Numeric as SA_Numeric

from ..money import quantize


class Money(TypeDecorator):
    """
    Decimal currency amount stored as NUMERIC(14, 2).

    Bound values are quantized to the minor unit (ROUND_HALF_UP); results come
    back as Decimal regardless of backend (SQLite hands back floats).
    """
    impl = SA_Numeric(precision=14, scale=2, asdecimal=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if not isinstance(value, Decimal):
            # Use str() to avoid binary-float surprises
            value = Decimal(str(value))
        return quantize(value)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if not isinstance(value, Decimal):
            value = Decimal(str(value))
        return quantize(value)
