from __future__ import annotations
from datetime import datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from kitchen.time_utils import parse_iso_datetime

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Integer, Numeric, String, Text, DateTime
from sqlalchemy.orm import DeclarativeMeta

from .errors import InvalidInputError


CENTS = Decimal("0.01")


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def parse_decimal(value: Any, field: str = "value") -> Decimal:
    """
    Parse a user-supplied number into a finite Decimal.

    Accepts ints, floats, Decimals and strings; strings may use a locale
    comma as decimal separator ("3,50" -> 3.50). Booleans, NaN and
    infinities are rejected.
    """
    if value is None or isinstance(value, bool):
        raise InvalidInputError(f"{field} must be a number")
    if isinstance(value, Decimal):
        number = value
    elif isinstance(value, (int, float)):
        number = Decimal(str(value))
    elif isinstance(value, str):
        stripped = value.strip().replace(",", ".")
        if not stripped:
            raise InvalidInputError(f"{field} must be a number")
        try:
            number = Decimal(stripped)
        except InvalidOperation:
            raise InvalidInputError(f"{field} must be a number")
    else:
        raise InvalidInputError(f"{field} must be a number")

    if not number.is_finite():
        raise InvalidInputError(f"{field} must be a finite number")
    return number


def round_money(value: Decimal) -> Decimal:
    """Round half-up to 2 decimals."""
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def money(value: Decimal | None) -> float | None:
    """JSON representation of a monetary/quantity Decimal."""
    if value is None:
        return None
    return float(value)


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        # Already an int (but not bool which is a subclass of int)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        # String input - must be plain digits (with optional leading minus)
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                raise InvalidInputError(f"{col.key} must be an integer")
            if 'e' in stripped.lower() or '.' in stripped:
                raise InvalidInputError(f"{col.key} must be a plain integer")
            try:
                return int(stripped)
            except ValueError:
                raise InvalidInputError(f"{col.key} must be an integer")
        raise InvalidInputError(f"{col.key} must be an integer")

    # Numerics (quantities, percentages, money)
    if isinstance(coltype, Numeric):
        return parse_decimal(value, col.key)

    # Booleans
    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        raise InvalidInputError(f"{col.key} must be a boolean")

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise InvalidInputError(f"{col.key} must be an ISO-8601 datetime")
            if dt is None:
                raise InvalidInputError(f"{col.key} must be an ISO-8601 datetime")
            return dt
        raise InvalidInputError(f"{col.key} must be a datetime")

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
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise InvalidInputError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise InvalidInputError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise InvalidInputError(f"Field not allowed: {k}")
        if k not in cols:
            raise InvalidInputError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        # NULL handling
        if raw is None:
            if not col.nullable:
                raise InvalidInputError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise InvalidInputError(f"{k} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise InvalidInputError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def require_non_negative(patch: dict, *fields: str) -> None:
    for field in fields:
        if field in patch and patch[field] is not None and patch[field] < 0:
            raise InvalidInputError(f"{field} must be >= 0")


def require_positive_int(value: Any, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise InvalidInputError(f"{field} must be an integer >= 1")
    return value
