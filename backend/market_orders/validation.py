from __future__ import annotations

import re
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any

from sqlalchemy import Boolean, Integer, Numeric, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .errors import ValidationFailure


# Prices and totals are fixed-point with two decimal places
CENT = Decimal("0.01")
MAX_PRICE = Decimal("9999999999.99")

# Quantities, ledger amounts and limits are stored in 32-bit INTEGER columns
MAX_INT = 2**31 - 1

PIN_RE = re.compile(r"^\d{4}$")
PHONE_RE = re.compile(r"^\d{10}$")

CREDENTIAL_PIN = "PIN"
CREDENTIAL_PHONE = "PHONE"


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: wire name -> column key clients are allowed to set (security boundary)
    - required_on_create: wire names required for POST
    """
    writable_fields: dict[str, str]
    required_on_create: set[str] = field(default_factory=set)


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def parse_money(value: Any, name: str) -> Decimal:
    """
    Parse a price into a Decimal with at most two decimal places.

    Floats are converted through their shortest repr so 0.1 stays 0.1.
    Booleans, NaN/Infinity and sub-cent precision are rejected.
    """
    if isinstance(value, bool) or value is None:
        raise ValidationFailure(f"{name} must be a number")
    if isinstance(value, Decimal):
        dec = value
    elif isinstance(value, (int, float, str)):
        try:
            dec = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValidationFailure(f"{name} must be a number")
    else:
        raise ValidationFailure(f"{name} must be a number")

    if not dec.is_finite():
        raise ValidationFailure(f"{name} must be a finite number")
    # Bound before quantizing: quantize raises InvalidOperation past the context precision
    if abs(dec) > MAX_PRICE:
        raise ValidationFailure(f"{name} cannot exceed {MAX_PRICE}")
    try:
        cents = dec.quantize(CENT)
    except InvalidOperation:
        raise ValidationFailure(f"{name} must be a number")
    if dec != cents:
        raise ValidationFailure(f"{name} cannot have more than 2 decimal places")
    return cents


def parse_positive_money(value: Any, name: str) -> Decimal:
    dec = parse_money(value, name)
    if dec <= 0:
        raise ValidationFailure(f"{name} must be positive")
    return dec


def parse_int(value: Any, name: str) -> int:
    """
    Strict integer parsing: rejects bools, floats, decimals and scientific notation.

    Values outside the 32-bit INTEGER range are rejected rather than left to
    overflow the database column.
    """
    number = None
    if isinstance(value, int) and not isinstance(value, bool):
        number = value
    elif isinstance(value, str):
        stripped = value.strip()
        digits = stripped[1:] if stripped[:1] == "-" else stripped
        if digits.isascii() and digits.isdigit():
            if len(digits) > len(str(MAX_INT)):
                raise ValidationFailure(f"{name} is too large")
            number = int(stripped)
    if number is None:
        raise ValidationFailure(f"{name} must be an integer")
    if abs(number) > MAX_INT:
        raise ValidationFailure(f"{name} is too large")
    return number


def parse_positive_int(value: Any, name: str) -> int:
    number = parse_int(value, name)
    if number <= 0:
        raise ValidationFailure(f"{name} must be a positive integer")
    return number


def parse_non_negative_int(value: Any, name: str) -> int:
    number = parse_int(value, name)
    if number < 0:
        raise ValidationFailure(f"{name} must be a non-negative integer")
    return number


def validate_pin(pin: Any) -> str:
    if not isinstance(pin, str) or not PIN_RE.match(pin):
        raise ValidationFailure("PIN must be exactly 4 digits")
    return pin


def validate_phone_number(phone: Any) -> str:
    if not isinstance(phone, str) or not PHONE_RE.match(phone.strip()):
        raise ValidationFailure("Phone number must be exactly 10 digits")
    return phone.strip()


def classify_credential(credential: Any) -> str:
    """4 digits -> PIN, 10 digits -> market phone number, anything else is a format error."""
    if isinstance(credential, str):
        credential = credential.strip()
        if PIN_RE.match(credential):
            return CREDENTIAL_PIN
        if PHONE_RE.match(credential):
            return CREDENTIAL_PHONE
    raise ValidationFailure("Credential must be a 4-digit PIN or a 10-digit phone number")


def validate_image_url(value: Any) -> str | None:
    """Empty clears the image; otherwise an uploaded path or an absolute http(s) URL."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationFailure("imageUrl must be a string")
    value = value.strip()
    if value == "":
        return None
    if value.startswith(("/uploads/", "http://", "https://")):
        return value
    raise ValidationFailure("Image URL must be a valid URL or a path starting with /uploads/")


def _coerce_value(col, name: str, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Numeric):
        return parse_money(value, name)

    if isinstance(coltype, Integer):
        return parse_int(value, name)

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        raise ValidationFailure(f"{name} must be a boolean")

    if isinstance(coltype, (String, Text)):
        if not isinstance(value, (str, int)) or isinstance(value, bool):
            raise ValidationFailure(f"{name} must be a string")
        return str(value).strip()

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
    Returns a cleaned patch dict keyed by column name with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationFailure("Invalid JSON payload")

    if not partial:
        missing = sorted(f for f in policy.required_on_create if payload.get(f) in (None, ""))
        if missing:
            raise ValidationFailure(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationFailure(f"Field not allowed: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        key = policy.writable_fields[k]
        col = cols[key]

        if raw is None:
            if not col.nullable:
                raise ValidationFailure(f"{k} cannot be null")
            patch[key] = None
            continue

        val = _coerce_value(col, k, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationFailure(f"{k} cannot be blank")

        # Optional text fields: blank means "clear"
        if isinstance(col.type, (String, Text)) and col.nullable and val == "":
            val = None

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationFailure(f"{k} exceeds max length {col.type.length}")

        patch[key] = val

    return patch


def enforce_rules_item(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    if "price" in patch and patch["price"] is not None and patch["price"] <= 0:
        raise ValidationFailure("price must be positive")
    if "image_url" in patch:
        patch["image_url"] = validate_image_url(patch["image_url"])


def enforce_rules_category(patch: dict) -> None:
    if "image_url" in patch:
        patch["image_url"] = validate_image_url(patch["image_url"])


def enforce_rules_market(patch: dict) -> None:
    if "phone_number" in patch:
        patch["phone_number"] = validate_phone_number(patch["phone_number"])
