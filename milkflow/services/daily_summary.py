# milkflow/services/daily_summary.py
"""
End-of-day SMS to each active supplier with that day's collections.

Suppliers with no records for the day are skipped. One supplier's failure
never stops the batch; every attempted recipient gets a status row.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Optional

import sqlalchemy as sa
from flask import current_app

from milkflow.config import COOPERATIVE
from milkflow.extensions import db
from milkflow.models import MilkCollection, Supplier
from milkflow.utils.phones import mask_phone

from .aggregation import CollectionSummary, summarize
from .collections import local_today
from .sms_service import SMSService, get_sms_service

STATUS_SENT = "sent"
STATUS_FAILED = "failed"
STATUS_ERROR = "error"


@dataclass
class RecipientStatus:
    supplier_id: str
    supplier: str
    status: str
    message_sid: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "supplier_id": self.supplier_id,
            "supplier": self.supplier,
            "status": self.status,
            "message_sid": self.message_sid,
            "error": self.error,
        }


@dataclass
class DailySummaryRun:
    date: str
    total: int = 0
    results: list = field(default_factory=list)

    @property
    def sent(self) -> int:
        return sum(1 for r in self.results if r.status == STATUS_SENT)

    def to_dict(self) -> dict:
        return {
            "success": True,
            "message": "Daily summaries processed",
            "date": self.date,
            "total": self.total,
            "sent": self.sent,
            "results": [r.to_dict() for r in self.results],
        }


def format_message(day: str, supplier_name: str, stats: CollectionSummary) -> str:
    currency = COOPERATIVE["currency_symbol"]
    return (
        f"{COOPERATIVE['brand_name']} Daily Summary ({day})\n"
        f"Collections: {stats.entry_count}\n"
        f"Total Quantity: {stats.total_liters:.2f} L\n"
        f"Avg Fat: {stats.average_fat:.2f}%\n"
        f"Total Amount: {currency}{stats.total_amount:.2f}\n"
        f"Thank you, {supplier_name}!"
    )


def send_daily_summaries(day: date | None = None, sms: SMSService | None = None) -> DailySummaryRun:
    """Runs without an access context: callers are the scheduler, the CLI or an admin endpoint."""
    day = day or local_today()
    sms = sms or get_sms_service()

    suppliers = db.session.execute(
        sa.select(Supplier).where(Supplier.is_active.is_(True)).order_by(Supplier.supplier_code)
    ).scalars().all()
    run = DailySummaryRun(date=day.isoformat(), total=len(suppliers))
    current_app.logger.info("Daily summary for %s: %d active suppliers", run.date, run.total)

    for supplier in suppliers:
        try:
            records = db.session.execute(
                sa.select(MilkCollection).where(
                    MilkCollection.supplier_id == supplier.id,
                    MilkCollection.collection_date == day,
                )
            ).scalars().all()
            if not records:
                continue

            stats = summarize(records)
            result = sms.send(supplier.phone, format_message(run.date, supplier.full_name, stats))
            if result.success:
                run.results.append(RecipientStatus(str(supplier.id), supplier.full_name, STATUS_SENT, message_sid=result.sid))
            else:
                run.results.append(RecipientStatus(str(supplier.id), supplier.full_name, STATUS_FAILED, error=result.error))
        except Exception as exc:
            current_app.logger.exception("Daily summary for supplier %s (%s) failed", supplier.supplier_code, mask_phone(supplier.phone))
            run.results.append(RecipientStatus(str(supplier.id), supplier.full_name, STATUS_ERROR, error=str(exc)))

    current_app.logger.info("Daily summary for %s done: %d/%d sent", run.date, run.sent, len(run.results))
    return run
