# milkflow/services/aggregation.py
"""
Summary statistics over collection records.

Records can be ``MilkCollection`` rows or plain mappings with the same keys
(``collection_date``, ``supplier_id``, ``quantity_liters``, ``total_amount``,
``fat_percentage``). Daily groups are keyed by the literal stored date text,
so two records land together only when their dates read the same.
"""
from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterable, Mapping

from .payments import round_currency

ZERO = Decimal("0")


@dataclass
class CollectionSummary:
    total_liters: Decimal = ZERO
    total_amount: Decimal = ZERO
    entry_count: int = 0
    fat_total: Decimal = ZERO
    fat_sample_count: int = 0

    @property
    def average_fat(self) -> Decimal:
        if not self.fat_sample_count:
            return ZERO
        return round_currency(self.fat_total / self.fat_sample_count)

    def add(self, record: Any) -> None:
        self.total_liters += _decimal_field(record, "quantity_liters")
        self.total_amount += _decimal_field(record, "total_amount")
        self.entry_count += 1
        fat = _field(record, "fat_percentage")
        if fat is not None:
            self.fat_total += Decimal(str(fat))
            self.fat_sample_count += 1

    def to_dict(self) -> dict:
        return {
            "total_liters": f"{self.total_liters:.2f}",
            "total_amount": f"{self.total_amount:.2f}",
            "entry_count": self.entry_count,
            "average_fat": f"{self.average_fat:.2f}",
            "fat_sample_count": self.fat_sample_count,
        }


@dataclass
class DailySummary(CollectionSummary):
    date: str = ""

    def to_dict(self) -> dict:
        return {"date": self.date, **super().to_dict()}


@dataclass
class SupplierSummary(CollectionSummary):
    supplier_id: str = ""
    dates: set = field(default_factory=set)

    def to_dict(self) -> dict:
        return {
            "supplier_id": self.supplier_id,
            "first_date": min(self.dates) if self.dates else None,
            "last_date": max(self.dates) if self.dates else None,
            **super().to_dict(),
        }


def _field(record: Any, name: str) -> Any:
    if isinstance(record, Mapping):
        return record.get(name)
    return getattr(record, name, None)


def _decimal_field(record: Any, name: str) -> Decimal:
    value = _field(record, name)
    if value is None:
        return ZERO
    return value if isinstance(value, Decimal) else Decimal(str(value))


def date_key(value: Any) -> str:
    """Grouping key: the stored date as text, never re-parsed."""
    if value is None:
        return ""
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)


def summarize(records: Iterable[Any]) -> CollectionSummary:
    summary = CollectionSummary()
    for record in records:
        summary.add(record)
    return summary


def daily_summaries(records: Iterable[Any]) -> list[DailySummary]:
    """Per-day totals across all suppliers, most recent date first."""
    groups: "OrderedDict[str, DailySummary]" = OrderedDict()
    for record in records:
        key = date_key(_field(record, "collection_date"))
        group = groups.get(key)
        if group is None:
            group = groups[key] = DailySummary(date=key)
        group.add(record)
    return sorted(groups.values(), key=lambda g: g.date, reverse=True)


def supplier_summaries(records: Iterable[Any]) -> list[SupplierSummary]:
    """Per-supplier totals over whatever window the caller passes in."""
    groups: "OrderedDict[str, SupplierSummary]" = OrderedDict()
    for record in records:
        key = str(_field(record, "supplier_id") or "")
        group = groups.get(key)
        if group is None:
            group = groups[key] = SupplierSummary(supplier_id=key)
        group.add(record)
        group.dates.add(date_key(_field(record, "collection_date")))
    return sorted(
        groups.values(),
        key=lambda g: (max(g.dates) if g.dates else "", g.supplier_id),
        reverse=True,
    )
