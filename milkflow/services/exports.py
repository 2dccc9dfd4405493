# milkflow/services/exports.py
"""
CSV renderings of collection history and daily summaries.

Column order is fixed; filenames carry the export date.
"""
from __future__ import annotations

import csv
import io
from datetime import date
from typing import Iterable

from flask import Response

from milkflow.models import MilkCollection

from .aggregation import DailySummary
from .payments import format_rate

HISTORY_HEADER = ["Date", "Quantity (L)", "Rate/L", "Amount", "Added By"]
ADMIN_HEADER = ["Date", "Supplier", "Code", "Quantity (L)", "Rate/L", "Amount", "Added By"]
DAILY_HEADER = ["Date", "Collections", "Total Liters", "Total Payment"]


def display_date(value) -> str:
    """'Oct 18, 2026'; text that is not an ISO date is written as stored."""
    if isinstance(value, str):
        try:
            value = date.fromisoformat(value)
        except ValueError:
            return value
    return value.strftime("%b %d, %Y")


def _render(header: list[str], rows: Iterable[list]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(header)
    writer.writerows(rows)
    return buf.getvalue()


def collection_history_csv(records: Iterable[MilkCollection]) -> str:
    return _render(
        HISTORY_HEADER,
        (
            [
                display_date(c.collection_date),
                f"{c.quantity_liters:.2f}",
                format_rate(c.rate_per_liter),
                f"{c.total_amount:.2f}",
                c.preparer_name,
            ]
            for c in records
        ),
    )


def collections_csv(records: Iterable[MilkCollection]) -> str:
    return _render(
        ADMIN_HEADER,
        (
            [
                display_date(c.collection_date),
                c.supplier.full_name if c.supplier else "",
                c.supplier.supplier_code if c.supplier else "",
                f"{c.quantity_liters:.2f}",
                format_rate(c.rate_per_liter),
                f"{c.total_amount:.2f}",
                c.preparer_name,
            ]
            for c in records
        ),
    )


def daily_summary_csv(summaries: Iterable[DailySummary]) -> str:
    return _render(
        DAILY_HEADER,
        (
            [display_date(s.date), s.entry_count, f"{s.total_liters:.2f}", f"{s.total_amount:.2f}"]
            for s in summaries
        ),
    )


def export_filename(prefix: str, on: date | None = None) -> str:
    return f"{prefix}-{(on or date.today()).isoformat()}.csv"


def csv_response(body: str, filename: str) -> Response:
    return Response(
        body,
        mimetype="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
