"""
Summary statistics over collection records.
"""
from datetime import date
from decimal import Decimal

from milkflow.services.aggregation import (
    daily_summaries,
    date_key,
    summarize,
    supplier_summaries,
)


def rec(day, supplier="s1", qty="10", amount="350", fat=None):
    return {
        "collection_date": day,
        "supplier_id": supplier,
        "quantity_liters": Decimal(qty),
        "total_amount": Decimal(amount),
        "fat_percentage": None if fat is None else Decimal(str(fat)),
    }


def test_empty_input_gives_zero_summary():
    summary = summarize([])
    assert summary.total_liters == 0
    assert summary.total_amount == 0
    assert summary.entry_count == 0
    assert summary.average_fat == 0
    assert summary.to_dict()["average_fat"] == "0.00"


def test_empty_input_gives_no_groups():
    assert daily_summaries([]) == []
    assert supplier_summaries([]) == []


def test_average_fat_skips_missing_values():
    records = [rec("2026-10-01", fat=4), rec("2026-10-01", fat=None), rec("2026-10-01", fat=6)]
    summary = summarize(records)
    assert summary.average_fat == Decimal("5")
    assert summary.fat_sample_count == 2
    assert summary.entry_count == 3


def test_totals_add_up():
    summary = summarize([rec("2026-10-01", qty="120.50", amount="4217.50"), rec("2026-10-02", qty="9.50", amount="332.50")])
    assert summary.total_liters == Decimal("130.00")
    assert summary.total_amount == Decimal("4550.00")


def test_same_date_text_groups_across_suppliers():
    days = daily_summaries([rec("2026-10-01", "s1"), rec("2026-10-01", "s2")])
    assert len(days) == 1
    assert days[0].entry_count == 2
    assert days[0].total_liters == Decimal("20")


def test_differently_formatted_dates_do_not_merge():
    days = daily_summaries([rec("2026-10-01"), rec("2026-10-1")])
    assert len(days) == 2


def test_date_objects_group_by_iso_text():
    days = daily_summaries([rec(date(2026, 10, 1)), rec("2026-10-01")])
    assert len(days) == 1
    assert date_key(date(2026, 10, 1)) == "2026-10-01"


def test_daily_groups_most_recent_first():
    days = daily_summaries([rec("2026-09-30"), rec("2026-10-02"), rec("2026-10-01")])
    assert [d.date for d in days] == ["2026-10-02", "2026-10-01", "2026-09-30"]


def test_supplier_summaries_window():
    records = [
        rec("2026-10-01", "s1", qty="10", amount="350", fat=4),
        rec("2026-10-03", "s1", qty="5", amount="175"),
        rec("2026-10-02", "s2", qty="7", amount="245", fat=5),
    ]
    groups = supplier_summaries(records)
    assert [g.supplier_id for g in groups] == ["s1", "s2"]

    s1 = groups[0].to_dict()
    assert s1["total_liters"] == "15.00"
    assert s1["entry_count"] == 2
    assert s1["average_fat"] == "4.00"
    assert s1["first_date"] == "2026-10-01"
    assert s1["last_date"] == "2026-10-03"
