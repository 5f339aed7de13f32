from __future__ import annotations
from datetime import date, datetime
import re
from craftmarket.time_utils import parse_iso_date, parse_iso_datetime

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Date, DateTime, Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .errors import ValidationError


EMAIL_RE = re.compile(r"^[\w.+-]+@([\w-]+\.)+[\w-]{2,}$")
MOBILE_RE = re.compile(r"^[0-9]{10,15}$")
GENDERS = {"male", "female", "other"}


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Integers - reject floats, bools and scientific notation
    if isinstance(coltype, Integer):
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped.isascii() or not stripped.lstrip("-").isdigit():
                raise ValidationError(f"{col.key} must be an integer")
            try:
                return int(stripped)
            except ValueError:
                raise ValidationError(f"{col.key} must be an integer")
        raise ValidationError(f"{col.key} must be an integer")

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

    if isinstance(coltype, Date):
        if isinstance(value, date):
            return value
        if isinstance(value, str):
            try:
                d = parse_iso_date(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 date")
            if d is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 date")
            return d
        raise ValidationError(f"{col.key} must be a date")

    if isinstance(coltype, (String, Text)):
        if isinstance(value, (dict, list)):
            raise ValidationError(f"{col.key} must be a string")
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

    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

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

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


# =============================================================================
# FIELD RULES
# =============================================================================

def normalize_email(email) -> str:
    if not isinstance(email, str) or not email.strip():
        raise ValidationError("email is required")
    cleaned = email.strip().lower()
    if not EMAIL_RE.match(cleaned):
        raise ValidationError("email must be a valid email address")
    return cleaned


def validate_mobile(mobile) -> str:
    if not isinstance(mobile, str) or not MOBILE_RE.match(mobile.strip()):
        raise ValidationError("mobile must be 10 to 15 digits")
    return mobile.strip()


def validate_full_name(full_name) -> str:
    if not isinstance(full_name, str) or not full_name.strip():
        raise ValidationError("fullName is required")
    cleaned = full_name.strip()
    if len(cleaned) > 50:
        raise ValidationError("fullName exceeds max length 50")
    return cleaned


def enforce_rules_profile(patch: dict) -> None:
    """
    Business rules for profile updates that SQLAlchemy metadata can't express.
    """
    if patch.get("gender") is not None and patch["gender"] not in GENDERS:
        raise ValidationError(f"gender must be one of: {', '.join(sorted(GENDERS))}")

    if patch.get("mobile") is not None:
        patch["mobile"] = validate_mobile(patch["mobile"])

    if "full_name" in patch:
        patch["full_name"] = validate_full_name(patch["full_name"])

    dob = patch.get("date_of_birth")
    if dob is not None and dob > date.today():
        raise ValidationError("date_of_birth cannot be in the future")


def require_positive_int(value, field: str) -> int:
    """Strict positive integer: rejects bools, floats and numeric strings with decimals."""
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a positive integer")
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped.isascii() or not stripped.isdigit():
            raise ValidationError(f"{field} must be a positive integer")
        try:
            value = int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be a positive integer")
    if not isinstance(value, int) or value < 1:
        raise ValidationError(f"{field} must be a positive integer")
    return value
