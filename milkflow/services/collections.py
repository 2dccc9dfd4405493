# milkflow/services/collections.py
"""
Suppliers and milk collection records.

Admins create, edit, deactivate and delete suppliers, and create or delete
collection records (records are never edited in place). Every read goes
through the scoped selects in :mod:`milkflow.services.access`, so a
supplier identity only ever sees its own rows whatever filters it sends.
"""
from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Any
from zoneinfo import ZoneInfo

import sqlalchemy as sa
from flask import current_app

from milkflow.errors import NotFoundError, ValidationError
from milkflow.extensions import db
from milkflow.models import MilkCollection, Supplier
from milkflow.signals import collection_created, collection_deleted
from milkflow.utils.db import commit_or_rollback
from milkflow.utils.validators import clean_collection, clean_supplier

from .access import (
    AccessContext,
    require_admin,
    require_authenticated,
    visible_collections,
    visible_suppliers,
)
from .aggregation import daily_summaries, summarize
from .payments import PaymentMode, calculate_payment, format_rate


def _clean_str(value: Any) -> str:
    return (value if isinstance(value, str) else "").strip()


def _parse_uuid(value: Any) -> uuid.UUID | None:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(_clean_str(value))
    except ValueError:
        return None


def local_today() -> date:
    """Today in the cooperative's timezone (APP_TIMEZONE)."""
    tz = ZoneInfo(current_app.config.get("APP_TIMEZONE") or "UTC")
    return datetime.now(tz=tz).date()


def _money(value) -> str | None:
    return None if value is None else f"{value:.2f}"


# =========================================================
# Serialization
# =========================================================
def supplier_dict(supplier: Supplier) -> dict:
    return {
        "id": str(supplier.id),
        "supplier_code": supplier.supplier_code,
        "full_name": supplier.full_name,
        "phone": supplier.phone,
        "address": supplier.address,
        "is_active": bool(supplier.is_active),
        "linked": supplier.user_id is not None,
        "created_at": supplier.created_at.isoformat() if supplier.created_at else None,
    }


def collection_dict(collection: MilkCollection) -> dict:
    supplier = collection.supplier
    return {
        "id": str(collection.id),
        "supplier_id": str(collection.supplier_id),
        "supplier_code": supplier.supplier_code if supplier else None,
        "supplier_name": supplier.full_name if supplier else None,
        "collection_date": collection.collection_date.isoformat(),
        "quantity_liters": _money(collection.quantity_liters),
        "fat_percentage": _money(collection.fat_percentage),
        "rate_per_liter": format_rate(collection.rate_per_liter),
        "total_amount": _money(collection.total_amount),
        "notes": collection.notes,
        "added_by": collection.preparer_name,
        "created_at": collection.created_at.isoformat() if collection.created_at else None,
    }


# =========================================================
# Suppliers
# =========================================================
def list_suppliers(ctx: AccessContext, search: str | None = None) -> list[Supplier]:
    stmt = visible_suppliers(ctx)
    q = _clean_str(search)
    if q:
        like = f"%{q}%"
        stmt = stmt.where(
            sa.or_(
                Supplier.full_name.ilike(like),
                Supplier.supplier_code.ilike(like),
                Supplier.phone.ilike(like),
            )
        )
    return db.session.execute(stmt.order_by(Supplier.supplier_code)).scalars().all()


def selectable_suppliers(ctx: AccessContext) -> list[Supplier]:
    """Choices for a new collection entry: active suppliers only."""
    require_admin(ctx)
    stmt = visible_suppliers(ctx).where(Supplier.is_active.is_(True)).order_by(Supplier.supplier_code)
    return db.session.execute(stmt).scalars().all()


def get_supplier(ctx: AccessContext, supplier_id: Any) -> Supplier:
    sid = _parse_uuid(supplier_id)
    if sid is None:
        raise NotFoundError()
    supplier = db.session.execute(
        visible_suppliers(ctx).where(Supplier.id == sid)
    ).scalar_one_or_none()
    if supplier is None:
        raise NotFoundError()
    return supplier


def _code_taken(code: str, exclude_id: uuid.UUID | None = None) -> bool:
    stmt = sa.select(Supplier.id).where(Supplier.supplier_code == code)
    if exclude_id is not None:
        stmt = stmt.where(Supplier.id != exclude_id)
    return db.session.execute(stmt).first() is not None


def create_supplier(ctx: AccessContext, data: dict[str, Any]) -> Supplier:
    require_admin(ctx)
    cleaned = clean_supplier(data)

    if _code_taken(cleaned["supplier_code"]):
        raise ValidationError({"supplier_code": "Supplier code already exists"})

    supplier = Supplier(is_active=True, **cleaned)
    db.session.add(supplier)
    commit_or_rollback("Add supplier", "Supplier code already exists.")
    current_app.logger.info("Supplier %s created by user %s", supplier.supplier_code, ctx.user_id)
    return supplier


def update_supplier(ctx: AccessContext, supplier_id: Any, data: dict[str, Any]) -> Supplier:
    require_admin(ctx)
    supplier = get_supplier(ctx, supplier_id)
    cleaned = clean_supplier(data, partial=True)

    if "is_active" in data:
        if not isinstance(data["is_active"], bool):
            raise ValidationError({"is_active": "Active status must be true or false"})
        cleaned["is_active"] = data["is_active"]

    code = cleaned.get("supplier_code")
    if code and _code_taken(code, exclude_id=supplier.id):
        raise ValidationError({"supplier_code": "Supplier code already exists"})

    for key, value in cleaned.items():
        setattr(supplier, key, value)

    commit_or_rollback("Update supplier", "Supplier code already exists.")
    return supplier


def toggle_supplier_active(ctx: AccessContext, supplier_id: Any) -> Supplier:
    require_admin(ctx)
    supplier = get_supplier(ctx, supplier_id)
    supplier.is_active = not supplier.is_active
    commit_or_rollback("Update supplier status")
    current_app.logger.info(
        "Supplier %s %s by user %s",
        supplier.supplier_code,
        "activated" if supplier.is_active else "deactivated",
        ctx.user_id,
    )
    return supplier


def delete_supplier(ctx: AccessContext, supplier_id: Any) -> None:
    """Hard delete; the supplier's collection records go with it."""
    require_admin(ctx)
    supplier = get_supplier(ctx, supplier_id)
    code, sid = supplier.supplier_code, supplier.id
    db.session.delete(supplier)
    commit_or_rollback("Delete supplier")
    current_app.logger.info("Supplier %s deleted by user %s", code, ctx.user_id)
    collection_deleted.send(current_app._get_current_object(), supplier_id=sid)


def own_supplier(ctx: AccessContext) -> Supplier | None:
    require_authenticated(ctx)
    return db.session.execute(
        visible_suppliers(ctx).where(Supplier.user_id == ctx.user_id)
    ).scalar_one_or_none()


# =========================================================
# Collection records
# =========================================================
def create_collection(ctx: AccessContext, data: dict[str, Any]) -> MilkCollection:
    require_admin(ctx)
    cleaned = clean_collection(data)

    supplier = db.session.execute(
        visible_suppliers(ctx).where(Supplier.id == cleaned["supplier_id"])
    ).scalar_one_or_none()
    if supplier is None:
        raise ValidationError({"supplier_id": "Supplier not found"})
    if not supplier.is_active:
        raise ValidationError({"supplier_id": "Supplier is inactive"})

    mode = PaymentMode.parse(data.get("payment_mode") or current_app.config.get("PAYMENT_MODE"))
    payment = calculate_payment(
        cleaned["quantity_liters"],
        cleaned["rate_per_liter"],
        cleaned["fat_percentage"],
        mode,
    )

    collection = MilkCollection(
        supplier_id=supplier.id,
        collection_date=cleaned["collection_date"] or local_today(),
        quantity_liters=cleaned["quantity_liters"],
        fat_percentage=cleaned["fat_percentage"],
        rate_per_liter=payment.rate_per_liter,
        total_amount=payment.total_amount,
        notes=cleaned["notes"],
        created_by_user_id=ctx.user_id,
    )
    db.session.add(collection)
    commit_or_rollback("Add collection")

    current_app.logger.info(
        "Collection %s: %s L for %s = %s (%s)",
        collection.id,
        collection.quantity_liters,
        supplier.supplier_code,
        collection.total_amount,
        mode.value,
    )
    collection_created.send(current_app._get_current_object(), collection=collection)
    return collection


def delete_collection(ctx: AccessContext, collection_id: Any) -> None:
    require_admin(ctx)
    cid = _parse_uuid(collection_id)
    if cid is None:
        raise NotFoundError()

    collection = db.session.execute(
        visible_collections(ctx).where(MilkCollection.id == cid)
    ).scalar_one_or_none()
    if collection is None:
        raise NotFoundError()

    supplier_id = collection.supplier_id
    db.session.delete(collection)
    commit_or_rollback("Delete collection")
    collection_deleted.send(current_app._get_current_object(), supplier_id=supplier_id)


def list_collections(
    ctx: AccessContext,
    *,
    search: str | None = None,
    on_date: Any = None,
    supplier_id: Any = None,
    limit: int | None = None,
) -> list[MilkCollection]:
    """
    Most recent records first, capped at ``limit``
    (COLLECTION_HISTORY_LIMIT by default). Filters narrow the caller's scope.
    """
    stmt = visible_collections(ctx)

    q = _clean_str(search)
    if q:
        like = f"%{q}%"
        stmt = stmt.join(MilkCollection.supplier).where(
            sa.or_(Supplier.full_name.ilike(like), Supplier.supplier_code.ilike(like))
        )

    if on_date not in (None, ""):
        day = on_date if isinstance(on_date, date) else _parse_date(on_date)
        if day is None:
            raise ValidationError({"date": "Date must be in YYYY-MM-DD format"})
        stmt = stmt.where(MilkCollection.collection_date == day)

    if supplier_id not in (None, ""):
        sid = _parse_uuid(supplier_id)
        if sid is None:
            raise ValidationError({"supplier_id": "Invalid supplier ID"})
        stmt = stmt.where(MilkCollection.supplier_id == sid)

    limit = limit or current_app.config["COLLECTION_HISTORY_LIMIT"]
    stmt = stmt.order_by(MilkCollection.collection_date.desc(), MilkCollection.created_at.desc()).limit(limit)
    return db.session.execute(stmt).unique().scalars().all()


def _parse_date(value: Any) -> date | None:
    try:
        return date.fromisoformat(_clean_str(value))
    except ValueError:
        return None


# =========================================================
# Dashboards
# =========================================================
def admin_dashboard(ctx: AccessContext) -> dict:
    require_admin(ctx)
    today = local_today()

    total_suppliers = db.session.execute(
        sa.select(sa.func.count()).select_from(
            visible_suppliers(ctx).where(Supplier.is_active.is_(True)).subquery()
        )
    ).scalar_one()

    todays = db.session.execute(
        visible_collections(ctx).where(MilkCollection.collection_date == today)
    ).unique().scalars().all()
    stats = summarize(todays)

    return {
        "date": today.isoformat(),
        "total_suppliers": total_suppliers,
        "today_collection": f"{stats.total_liters:.2f}",
        "today_payment": f"{stats.total_amount:.2f}",
        "today_entries": stats.entry_count,
        "avg_fat": f"{stats.average_fat:.2f}",
    }


def supplier_dashboard(ctx: AccessContext, limit: int | None = None) -> dict:
    """
    The caller's own supplier row, its most recent records and totals over
    them. Always recomputed from the stored rows.
    """
    supplier = own_supplier(ctx)
    if supplier is None:
        return {"supplier": None, "collections": [], "summary": summarize([]).to_dict()}

    limit = limit or current_app.config["SUPPLIER_HISTORY_LIMIT"]
    records = list_collections(ctx, supplier_id=supplier.id, limit=limit)
    stats = summarize(records)

    return {
        "supplier": supplier_dict(supplier),
        "collections": [collection_dict(c) for c in records],
        "summary": {
            **stats.to_dict(),
            "total_collections": f"{stats.total_liters:.2f}",
        },
    }


def daily_payment_summary(ctx: AccessContext, days: int | None = None) -> list:
    """
    Per-day totals for the ``days`` most recent collection dates
    (DAILY_SUMMARY_DAYS by default). Every row of a listed date is counted.
    If DAILY_SUMMARY_ROW_LIMIT cuts into the oldest date, that date is left
    out instead of being reported short.
    """
    require_admin(ctx)
    scoped = visible_collections(ctx)

    recent_dates = (
        scoped.with_only_columns(MilkCollection.collection_date)
        .distinct()
        .order_by(MilkCollection.collection_date.desc())
        .limit(days or current_app.config["DAILY_SUMMARY_DAYS"])
    )

    row_cap = current_app.config["DAILY_SUMMARY_ROW_LIMIT"]
    stmt = (
        scoped.where(MilkCollection.collection_date.in_(recent_dates.scalar_subquery()))
        .order_by(MilkCollection.collection_date.desc(), MilkCollection.created_at.desc())
        .limit(row_cap + 1)
    )
    records = db.session.execute(stmt).unique().scalars().all()

    if len(records) > row_cap:
        cut_date = records[row_cap].collection_date
        records = [r for r in records[:row_cap] if r.collection_date != cut_date]
        current_app.logger.warning(
            "Daily summary hit the %d row limit; %s left out", row_cap, cut_date.isoformat()
        )

    return daily_summaries(records)
