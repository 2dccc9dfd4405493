# milkflow/utils/phones.py
from __future__ import annotations

import re

_NON_DIGITS = re.compile(r"[^\d+]")


def normalize_phone(phone: str | None) -> str:
    """
    Stored form of a phone number: surrounding whitespace removed, nothing else.
    Supplier linking compares this value by plain string equality.
    """
    return (phone or "").strip()


def to_e164(phone: str | None, default_country_code: str = "+91") -> str:
    """Format for the SMS provider: '+<digits>', prefixing the default country code."""
    cleaned = _NON_DIGITS.sub("", normalize_phone(phone))
    if not cleaned:
        return ""
    if cleaned.startswith("+"):
        return cleaned
    return f"{default_country_code}{cleaned}"


def mask_phone(phone: str | None) -> str:
    digits = normalize_phone(phone)
    if len(digits) <= 4:
        return "****"
    return f"***{digits[-4:]}"
