# milkflow/services/payments.py
"""
Payment calculation for a single collection entry.

There is one entry point, :func:`calculate_payment`, parameterized by
:class:`PaymentMode`:

- ``flat``: the operator enters the rate per liter directly.
- ``fat_adjusted``: the rate is ``base_rate * (1 + fat / 100)``.

Amounts are rounded half-up to the currency's minor unit (2 places). Rates keep
6 places: a 2-place base rate times a 2-place fat adjustment is exact there,
so the stored rate times the quantity always reproduces the stored total.
Range checks belong to :mod:`milkflow.utils.validators`; nothing here raises
for well-formed numbers.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

CENT = Decimal("0.01")
RATE_STEP = Decimal("0.000001")
HUNDRED = Decimal("100")


class PaymentMode(str, enum.Enum):
    FLAT = "flat"
    FAT_ADJUSTED = "fat_adjusted"

    @classmethod
    def parse(cls, value: Any) -> "PaymentMode":
        if isinstance(value, cls):
            return value
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            return cls.FLAT


@dataclass(frozen=True)
class PaymentBreakdown:
    rate_per_liter: Decimal
    total_amount: Decimal
    mode: PaymentMode


def _dec(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if value is None:
        return Decimal("0")
    # str() keeps 35.1 as "35.1" instead of the binary float expansion
    return Decimal(str(value))


def round_currency(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def round_rate(value: Decimal) -> Decimal:
    return value.quantize(RATE_STEP, rounding=ROUND_HALF_UP)


def format_rate(value: Any) -> str:
    """At least 2 places, up to 6, without trailing zeros: 35.00, 41.332."""
    d = round_rate(_dec(value)).normalize()
    if d.as_tuple().exponent > -2:
        return f"{d:.2f}"
    return f"{d:f}"


def effective_rate(base_rate: Any, fat_percentage: Any = None, mode: Any = PaymentMode.FLAT) -> Decimal:
    """Unrounded rate per liter for the given mode."""
    base = _dec(base_rate)
    if PaymentMode.parse(mode) is PaymentMode.FLAT:
        return base
    fat = _dec(fat_percentage)  # missing fat -> 0% adjustment
    return base * (1 + fat / HUNDRED)


def calculate_payment(
    quantity_liters: Any,
    rate_per_liter: Any,
    fat_percentage: Any = None,
    mode: Any = PaymentMode.FLAT,
) -> PaymentBreakdown:
    mode = PaymentMode.parse(mode)
    rate = round_rate(effective_rate(rate_per_liter, fat_percentage, mode))
    total = round_currency(_dec(quantity_liters) * rate)
    return PaymentBreakdown(rate_per_liter=rate, total_amount=total, mode=mode)


def calculate_total(quantity_liters: Any, rate_per_liter: Any, fat_percentage: Any = None, mode: Any = PaymentMode.FLAT) -> Decimal:
    return calculate_payment(quantity_liters, rate_per_liter, fat_percentage, mode).total_amount
