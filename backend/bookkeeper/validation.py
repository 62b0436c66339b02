from __future__ import annotations
from datetime import datetime
from decimal import Decimal

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Integer, Numeric, String, Text, DateTime
from sqlalchemy.orm import DeclarativeMeta

from .errors import InvalidInputError
from .money import to_decimal
from .models.types import Money
from .time_utils import parse_iso_datetime


# Maximum amount: 999,999,999,999.99 fits NUMERIC(14, 2)
MAX_AMOUNT = Decimal("999999999999.99")


class ValidationError(InvalidInputError):
    """400-level input problem."""


class ConflictError(InvalidInputError):
    """409-level business rule conflict (e.g., deleting a referenced contact)."""

    http_status = 409


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    - choices: allowed values for enumerated text columns
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore
    choices: dict[str, set[str]] | None = None


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Money / Numeric
    if isinstance(coltype, (Money, Numeric)):
        try:
            return to_decimal(value, col.key)
        except InvalidInputError as exc:
            raise ValidationError(str(exc))

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        # Already an int (but not bool which is a subclass of int)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        # String input - must be plain digits (with optional leading minus)
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                raise ValidationError(f"{col.key} must be an integer")
            # Reject scientific notation (e.g., "1e15", "1E10")
            if 'e' in stripped.lower():
                raise ValidationError(f"{col.key} must be a plain integer (scientific notation not allowed)")
            # Reject decimal points (e.g., "12.5")
            if '.' in stripped:
                raise ValidationError(f"{col.key} must be an integer (no decimals)")
            try:
                return int(stripped)
            except ValueError:
                raise ValidationError(f"{col.key} must be an integer")
        # Reject floats explicitly
        if isinstance(value, float):
            raise ValidationError(f"{col.key} must be an integer, not a decimal")
        # Other types
        raise ValidationError(f"{col.key} must be an integer")

    # Booleans
    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        raise ValidationError(f"{col.key} must be true or false")

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{col.key} must be a datetime")

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    # Default: leave as-is
    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    - enumerated choices
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)
    choices = policy.choices or {}

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        # NULL handling
        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        if k in choices and val not in choices[k]:
            raise ValidationError(f"{k} must be one of: {', '.join(sorted(choices[k]))}")

        patch[k] = val

    return patch


def enforce_non_negative_amounts(patch: dict, *fields: str) -> None:
    for field in fields:
        value = patch.get(field)
        if value is None:
            continue
        if value < 0:
            raise ValidationError(f"{field} must be >= 0")
        if value > MAX_AMOUNT:
            raise ValidationError(f"{field} cannot exceed {MAX_AMOUNT}")


def enforce_rules_inventory_item(patch: dict, item_type: str | None) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    enforce_non_negative_amounts(patch, "selling_price", "cost_price")

    if "quantity" in patch and patch["quantity"] is not None:
        if item_type == "service":
            raise ValidationError("quantity is only tracked for products")
        if patch["quantity"] < 0:
            raise ValidationError("quantity must be >= 0")


def enforce_rules_bank_record(patch: dict) -> None:
    # Statement lines carry a positive amount; direction lives in `type`
    if "amount" in patch:
        if patch["amount"] is None or patch["amount"] <= 0:
            raise ValidationError("amount must be > 0")
        enforce_non_negative_amounts(patch, "amount")
