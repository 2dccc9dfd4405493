# milkflow/routes.py
from __future__ import annotations

from flask import Blueprint, Response, current_app, jsonify, request, stream_with_context
from flask_login import current_user

from milkflow.config import cooperative_context
from milkflow.extensions import db
from milkflow.services import collections, identity
from milkflow.services.exports import collection_history_csv, csv_response, export_filename
from milkflow.services.realtime import SupplierDashboardFeed
from milkflow.utils.guards import current_access, role_required

main = Blueprint("main", __name__)


# ======================
# Health
# ======================
@main.route("/health", methods=["GET"])
def health():
    try:
        db.session.execute(db.text("SELECT 1"))
        database = "ok"
    except Exception:
        current_app.logger.exception("Health check: database unreachable")
        database = "unavailable"

    status = 200 if database == "ok" else 503
    return jsonify({"status": "ok" if status == 200 else "degraded", "database": database, "cooperative": cooperative_context()}), status


# ======================
# Supplier portal (/api/me)
# ======================
@main.route("/api/me/dashboard", methods=["GET"])
@role_required("supplier", "admin")
def my_dashboard():
    return jsonify(collections.supplier_dashboard(current_access()))


@main.route("/api/me/collections", methods=["GET"])
@role_required("supplier", "admin")
def my_collections():
    ctx = current_access()
    supplier = collections.own_supplier(ctx)
    if supplier is None:
        return jsonify({"collections": []})
    limit = request.args.get("limit", type=int) or current_app.config["SUPPLIER_HISTORY_LIMIT"]
    rows = collections.list_collections(
        ctx,
        supplier_id=supplier.id,
        on_date=request.args.get("date"),
        limit=max(1, min(limit, 1000)),
    )
    return jsonify({"collections": [collections.collection_dict(c) for c in rows]})


@main.route("/api/me/collections.csv", methods=["GET"])
@role_required("supplier", "admin")
def my_collections_export():
    ctx = current_access()
    supplier = collections.own_supplier(ctx)
    rows = []
    if supplier is not None:
        rows = collections.list_collections(
            ctx,
            supplier_id=supplier.id,
            limit=current_app.config["SUPPLIER_HISTORY_LIMIT"],
        )
    return csv_response(collection_history_csv(rows), export_filename("my-collections", collections.local_today()))


@main.route("/api/me/events", methods=["GET"])
@role_required("supplier", "admin")
def my_events():
    """Server-sent events: a full dashboard snapshot whenever one of my records changes."""
    feed = SupplierDashboardFeed(current_access())
    feed.open()
    return Response(
        stream_with_context(feed.events()),
        mimetype="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@main.route("/api/me/profile", methods=["GET"])
@role_required("supplier", "admin")
def my_profile():
    profile = current_user.profile
    return jsonify({"profile": identity.profile_dict(profile) if profile else None})


@main.route("/api/me/profile", methods=["PATCH"])
@role_required("supplier", "admin")
def my_profile_update():
    data = request.get_json(silent=True)
    profile = identity.update_profile(current_access(), current_user.id, data if isinstance(data, dict) else {})
    return jsonify({"message": "Profile updated", "profile": identity.profile_dict(profile)})
