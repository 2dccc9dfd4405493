"""
Field rules and payload cleaners.
"""
import uuid
from decimal import Decimal

import pytest

from milkflow.errors import ValidationError
from milkflow.utils.passwords import validate_password
from milkflow.utils.validators import (
    clean_collection,
    clean_signup,
    clean_supplier,
    validate_fat_percentage,
    validate_phone,
    validate_quantity,
    validate_rate,
    validate_supplier_code,
)


@pytest.mark.parametrize("phone", ["9876543210", "+91 98765 43210", "(987) 654-3210"])
def test_valid_phones(phone):
    assert validate_phone(phone) == (True, "")


@pytest.mark.parametrize(
    "phone, message",
    [
        ("12345", "Phone number must be at least 10 digits"),
        ("1234567890123456", "Phone number must be less than 15 digits"),
        ("98765abc10", "Phone number can only contain digits, +, -, (), and spaces"),
    ],
)
def test_invalid_phones(phone, message):
    assert validate_phone(phone) == (False, message)


def test_password_length_rules():
    assert validate_password("short")[0] is False
    assert validate_password("x" * 73)[0] is False
    assert validate_password("long-enough")[0] is True


def test_supplier_code_is_upper_alnum():
    assert validate_supplier_code("SUP-001")[0] is True
    assert validate_supplier_code("sup-001")[0] is False


def test_quantity_rules():
    assert validate_quantity("120.50")[0] is True
    assert validate_quantity("0") == (False, "Quantity must be positive")
    assert validate_quantity("10000.01")[0] is False
    assert validate_quantity("1.234") == (False, "Quantity can have at most 2 decimal places")
    assert validate_quantity("abc") == (False, "Quantity is required")


def test_fat_is_optional_but_bounded():
    assert validate_fat_percentage(None)[0] is True
    assert validate_fat_percentage("")[0] is True
    assert validate_fat_percentage("100")[0] is True
    assert validate_fat_percentage("100.5")[0] is False
    assert validate_fat_percentage("-1")[0] is False


def test_rate_must_be_positive():
    assert validate_rate("0") == (False, "Rate must be positive")
    assert validate_rate("35.00")[0] is True


def test_clean_collection_collects_every_field_error():
    with pytest.raises(ValidationError) as exc:
        clean_collection({"supplier_id": "nope", "quantity_liters": "-1", "rate_per_liter": "", "fat_percentage": "101"})
    assert set(exc.value.field_errors) == {"supplier_id", "quantity_liters", "rate_per_liter", "fat_percentage"}


def test_clean_collection_normalizes():
    sid = uuid.uuid4()
    cleaned = clean_collection(
        {"supplier_id": str(sid), "quantity_liters": "120.5", "rate_per_liter": 35, "notes": "  ", "collection_date": "2026-10-01"}
    )
    assert cleaned["supplier_id"] == sid
    assert cleaned["quantity_liters"] == Decimal("120.5")
    assert cleaned["fat_percentage"] is None
    assert cleaned["notes"] is None
    assert cleaned["collection_date"].isoformat() == "2026-10-01"


def test_clean_collection_rejects_bad_date():
    with pytest.raises(ValidationError) as exc:
        clean_collection({"supplier_id": str(uuid.uuid4()), "quantity_liters": "1", "rate_per_liter": "1", "collection_date": "01/10/2026"})
    assert exc.value.field_errors == {"collection_date": "Date must be in YYYY-MM-DD format"}


def test_clean_signup_requires_known_role():
    with pytest.raises(ValidationError) as exc:
        clean_signup({"phone": "9876543210", "password": "long-enough", "full_name": "Ravi", "role": "owner"})
    assert "role" in exc.value.field_errors


def test_clean_supplier_partial_only_checks_present_fields():
    assert clean_supplier({"address": "  "}, partial=True) == {"address": None}
    with pytest.raises(ValidationError):
        clean_supplier({"full_name": "Ravi"})
