# milkflow/config/cooperative.py
"""
Single source of truth for the cooperative's identity.

Used in SMS copy and the health payload.
"""
from __future__ import annotations

import os

BRAND_NAME = os.environ.get("COOPERATIVE_BRAND_NAME", "MilkFlow")
COOPERATIVE_NAME = os.environ.get("COOPERATIVE_NAME", "MilkFlow Dairy Cooperative")

# Amounts are stored in the currency's major unit with 2 decimal places.
CURRENCY_CODE = "INR"
CURRENCY_SYMBOL = "₹"

COOPERATIVE = {
    "brand_name": BRAND_NAME,
    "name": COOPERATIVE_NAME,
    "currency_code": CURRENCY_CODE,
    "currency_symbol": CURRENCY_SYMBOL,
}


def cooperative_context() -> dict:
    """Identity block for JSON payloads."""
    return {
        "name": COOPERATIVE_NAME,
        "brand": BRAND_NAME,
        "currency": CURRENCY_CODE,
    }
