# milkflow/utils/validators.py
"""
Field rules for every form the API accepts.

Each ``validate_*`` helper returns ``(ok, message)`` in the same shape as
``validate_password``. The ``clean_*`` helpers run a whole payload, collect
one message per failing field and raise :class:`ValidationError` if any
field failed; otherwise they return the normalized values.
"""
from __future__ import annotations

import re
import uuid
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Iterable, Tuple

from milkflow.errors import ValidationError
from milkflow.models import ROLE_VALUES

from .passwords import validate_password

Rule = Tuple[Callable[[Any], bool], str]

CENT = Decimal("0.01")

_PHONE_RE = re.compile(r"^[0-9+()\-\s]+$")
_FULL_NAME_RE = re.compile(r"^[a-zA-Z\s'-]+$")
_SUPPLIER_CODE_RE = re.compile(r"^[A-Z0-9-]+$")


def _clean_str(value: Any) -> str:
    return (value if isinstance(value, str) else "").strip()


def _run(value: Any, rules: Iterable[Rule]) -> Tuple[bool, str]:
    for rule, msg in rules:
        if not rule(value):
            return False, msg
    return True, ""


def to_decimal(value: Any) -> Decimal | None:
    """Parse user input into a Decimal; None for blanks and garbage."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        d = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if not d.is_finite():
        return None
    return d


def _max_two_places(d: Decimal) -> bool:
    return d == d.quantize(CENT)


# =========================
# Text rules
# =========================
_PHONE_RULES: list[Rule] = [
    (lambda s: len(s) >= 10, "Phone number must be at least 10 digits"),
    (lambda s: len(s) <= 15, "Phone number must be less than 15 digits"),
    (lambda s: _PHONE_RE.match(s) is not None, "Phone number can only contain digits, +, -, (), and spaces"),
]

_FULL_NAME_RULES: list[Rule] = [
    (lambda s: len(s) >= 1, "Full name is required"),
    (lambda s: len(s) <= 100, "Full name must be less than 100 characters"),
    (lambda s: _FULL_NAME_RE.match(s) is not None, "Full name can only contain letters, spaces, hyphens, and apostrophes"),
]

_SUPPLIER_CODE_RULES: list[Rule] = [
    (lambda s: len(s) >= 1, "Supplier code is required"),
    (lambda s: len(s) <= 20, "Supplier code must be less than 20 characters"),
    (lambda s: _SUPPLIER_CODE_RE.match(s) is not None, "Supplier code can only contain uppercase letters, numbers, and hyphens"),
]

_SUPPLIER_NAME_RULES: list[Rule] = [
    (lambda s: len(s) >= 1, "Supplier name is required"),
    (lambda s: len(s) <= 100, "Supplier name must be less than 100 characters"),
]


def validate_phone(value: Any) -> Tuple[bool, str]:
    return _run(_clean_str(value), _PHONE_RULES)


def validate_full_name(value: Any) -> Tuple[bool, str]:
    return _run(_clean_str(value), _FULL_NAME_RULES)


def validate_supplier_code(value: Any) -> Tuple[bool, str]:
    return _run(_clean_str(value), _SUPPLIER_CODE_RULES)


def validate_supplier_name(value: Any) -> Tuple[bool, str]:
    return _run(_clean_str(value), _SUPPLIER_NAME_RULES)


def validate_address(value: Any) -> Tuple[bool, str]:
    if len(_clean_str(value)) > 200:
        return False, "Address must be less than 200 characters"
    return True, ""


def validate_notes(value: Any) -> Tuple[bool, str]:
    if len(_clean_str(value)) > 500:
        return False, "Notes must be less than 500 characters"
    return True, ""


def validate_role(value: Any) -> Tuple[bool, str]:
    if _clean_str(value) not in ROLE_VALUES:
        return False, "Role must be admin or supplier"
    return True, ""


# =========================
# Numeric rules
# =========================
def validate_quantity(value: Any) -> Tuple[bool, str]:
    d = to_decimal(value)
    return _run(d, [
        (lambda x: x is not None, "Quantity is required"),
        (lambda x: x > 0, "Quantity must be positive"),
        (lambda x: x <= 10000, "Quantity must be less than 10,000 liters"),
        (_max_two_places, "Quantity can have at most 2 decimal places"),
    ])


def validate_fat_percentage(value: Any) -> Tuple[bool, str]:
    """Optional; blank means "not measured"."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return True, ""
    d = to_decimal(value)
    return _run(d, [
        (lambda x: x is not None, "Fat percentage must be a number"),
        (lambda x: x >= 0, "Fat percentage cannot be negative"),
        (lambda x: x <= 100, "Fat percentage cannot exceed 100%"),
        (_max_two_places, "Fat percentage can have at most 2 decimal places"),
    ])


def validate_rate(value: Any) -> Tuple[bool, str]:
    d = to_decimal(value)
    return _run(d, [
        (lambda x: x is not None, "Rate is required"),
        (lambda x: x > 0, "Rate must be positive"),
        (lambda x: x <= 1000, "Rate must be less than 1,000"),
        (_max_two_places, "Rate can have at most 2 decimal places"),
    ])


# =========================
# Payload cleaners
# =========================
def _collect(checks: Iterable[Tuple[str, Tuple[bool, str]]]) -> dict[str, str]:
    return {field: msg for field, (ok, msg) in checks if not ok}


def _parse_uuid(value: Any) -> uuid.UUID | None:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(_clean_str(value))
    except ValueError:
        return None


def _parse_date(value: Any) -> date | None:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(_clean_str(value))
    except ValueError:
        return None


def clean_signup(data: dict) -> dict:
    errors = _collect([
        ("phone", validate_phone(data.get("phone"))),
        ("password", validate_password(data.get("password"))),
        ("full_name", validate_full_name(data.get("full_name"))),
        ("role", validate_role(data.get("role"))),
    ])
    if errors:
        raise ValidationError(errors)
    return {
        "phone": _clean_str(data.get("phone")),
        "password": data.get("password"),
        "full_name": _clean_str(data.get("full_name")),
        "role": _clean_str(data.get("role")),
    }


def clean_signin(data: dict) -> dict:
    errors = _collect([
        ("phone", validate_phone(data.get("phone"))),
        ("password", validate_password(data.get("password"))),
    ])
    if errors:
        raise ValidationError(errors)
    return {"phone": _clean_str(data.get("phone")), "password": data.get("password")}


def clean_supplier(data: dict, *, partial: bool = False) -> dict:
    """Validate a supplier payload; with ``partial`` only present keys are checked."""
    checks = {
        "supplier_code": validate_supplier_code,
        "full_name": validate_supplier_name,
        "phone": validate_phone,
        "address": validate_address,
    }
    errors: dict[str, str] = {}
    cleaned: dict[str, Any] = {}
    for field, check in checks.items():
        if partial and field not in data:
            continue
        ok, msg = check(data.get(field))
        if not ok:
            errors[field] = msg
            continue
        value = _clean_str(data.get(field))
        if field == "address":
            value = value or None
        cleaned[field] = value

    if errors:
        raise ValidationError(errors)
    return cleaned


def clean_collection(data: dict) -> dict:
    errors = _collect([
        ("quantity_liters", validate_quantity(data.get("quantity_liters"))),
        ("fat_percentage", validate_fat_percentage(data.get("fat_percentage"))),
        ("rate_per_liter", validate_rate(data.get("rate_per_liter"))),
        ("notes", validate_notes(data.get("notes"))),
    ])

    supplier_id = _parse_uuid(data.get("supplier_id"))
    if supplier_id is None:
        errors["supplier_id"] = "Invalid supplier ID"

    collection_date = None
    if data.get("collection_date") not in (None, ""):
        collection_date = _parse_date(data.get("collection_date"))
        if collection_date is None:
            errors["collection_date"] = "Date must be in YYYY-MM-DD format"

    if errors:
        raise ValidationError(errors)

    return {
        "supplier_id": supplier_id,
        "quantity_liters": to_decimal(data.get("quantity_liters")),
        "fat_percentage": to_decimal(data.get("fat_percentage")),
        "rate_per_liter": to_decimal(data.get("rate_per_liter")),
        "notes": _clean_str(data.get("notes")) or None,
        "collection_date": collection_date,
    }
