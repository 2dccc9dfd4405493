# milkflow/admin.py
from __future__ import annotations

from flask import Blueprint, jsonify, request

from milkflow.errors import SMSError, ValidationError
from milkflow.services import collections, identity
from milkflow.services.daily_summary import send_daily_summaries
from milkflow.services.exports import (
    collections_csv,
    csv_response,
    daily_summary_csv,
    export_filename,
)
from milkflow.services.sms_service import get_sms_service
from milkflow.utils.guards import admin_required, current_access

admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


# -------------------------------------------------------------------
# Helpers
# -------------------------------------------------------------------
def _clean_str(value) -> str:
    return (value if isinstance(value, str) else "").strip()


def _json() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _limit_arg(name: str = "limit") -> int | None:
    limit = request.args.get(name, type=int)
    if limit is None:
        return None
    return max(1, min(limit, 1000))


def _collection_filters() -> dict:
    return {
        "search": request.args.get("q"),
        "on_date": request.args.get("date"),
        "supplier_id": request.args.get("supplier_id"),
        "limit": _limit_arg(),
    }


# -------------------------------------------------------------------
# Dashboard
# GET /api/admin/dashboard
# -------------------------------------------------------------------
@admin_bp.route("/dashboard", methods=["GET"])
@admin_required
def dashboard():
    return jsonify(collections.admin_dashboard(current_access()))


# -------------------------------------------------------------------
# Suppliers
# GET/POST /api/admin/suppliers
# GET /api/admin/suppliers/selectable
# PATCH/DELETE /api/admin/suppliers/<id>
# POST /api/admin/suppliers/<id>/toggle-active
# -------------------------------------------------------------------
@admin_bp.route("/suppliers", methods=["GET"])
@admin_required
def suppliers_list():
    rows = collections.list_suppliers(current_access(), search=request.args.get("q"))
    return jsonify({"suppliers": [collections.supplier_dict(s) for s in rows]})


@admin_bp.route("/suppliers", methods=["POST"])
@admin_required
def suppliers_create():
    supplier = collections.create_supplier(current_access(), _json())
    return jsonify({"message": "Supplier added successfully", "supplier": collections.supplier_dict(supplier)}), 201


@admin_bp.route("/suppliers/selectable", methods=["GET"])
@admin_required
def suppliers_selectable():
    rows = collections.selectable_suppliers(current_access())
    return jsonify(
        {
            "suppliers": [
                {"id": str(s.id), "supplier_code": s.supplier_code, "full_name": s.full_name}
                for s in rows
            ]
        }
    )


@admin_bp.route("/suppliers/<supplier_id>", methods=["PATCH"])
@admin_required
def suppliers_update(supplier_id):
    supplier = collections.update_supplier(current_access(), supplier_id, _json())
    return jsonify({"message": "Supplier updated successfully", "supplier": collections.supplier_dict(supplier)})


@admin_bp.route("/suppliers/<supplier_id>/toggle-active", methods=["POST"])
@admin_required
def suppliers_toggle_active(supplier_id):
    supplier = collections.toggle_supplier_active(current_access(), supplier_id)
    state = "activated" if supplier.is_active else "deactivated"
    return jsonify({"message": f"Supplier {state}", "supplier": collections.supplier_dict(supplier)})


@admin_bp.route("/suppliers/<supplier_id>", methods=["DELETE"])
@admin_required
def suppliers_delete(supplier_id):
    collections.delete_supplier(current_access(), supplier_id)
    return jsonify({"message": "Supplier deleted successfully"})


# -------------------------------------------------------------------
# Collections
# GET/POST /api/admin/collections
# DELETE /api/admin/collections/<id>
# GET /api/admin/collections.csv
# -------------------------------------------------------------------
@admin_bp.route("/collections", methods=["GET"])
@admin_required
def collections_list():
    rows = collections.list_collections(current_access(), **_collection_filters())
    return jsonify({"collections": [collections.collection_dict(c) for c in rows]})


@admin_bp.route("/collections", methods=["POST"])
@admin_required
def collections_create():
    record = collections.create_collection(current_access(), _json())
    return jsonify({"message": "Collection added successfully", "collection": collections.collection_dict(record)}), 201


@admin_bp.route("/collections/<collection_id>", methods=["DELETE"])
@admin_required
def collections_delete(collection_id):
    collections.delete_collection(current_access(), collection_id)
    return jsonify({"message": "Collection deleted successfully"})


@admin_bp.route("/collections.csv", methods=["GET"])
@admin_required
def collections_export():
    rows = collections.list_collections(current_access(), **_collection_filters())
    return csv_response(collections_csv(rows), export_filename("collections", collections.local_today()))


# -------------------------------------------------------------------
# Daily payment summary
# GET /api/admin/daily-summary?days=N
# GET /api/admin/daily-summary.csv?days=N
# -------------------------------------------------------------------
@admin_bp.route("/daily-summary", methods=["GET"])
@admin_required
def daily_summary():
    days = collections.daily_payment_summary(current_access(), days=_limit_arg("days"))
    return jsonify({"days": [d.to_dict() for d in days]})


@admin_bp.route("/daily-summary.csv", methods=["GET"])
@admin_required
def daily_summary_export():
    days = collections.daily_payment_summary(current_access(), days=_limit_arg("days"))
    return csv_response(daily_summary_csv(days), export_filename("daily-payment-summary", collections.local_today()))


# -------------------------------------------------------------------
# Role assignments
# GET/POST /api/admin/roles
# DELETE /api/admin/roles/<id>
# POST /api/admin/users/<id>/relink-supplier
# -------------------------------------------------------------------
@admin_bp.route("/roles", methods=["GET"])
@admin_required
def roles_list():
    rows = identity.list_role_assignments(current_access())
    return jsonify({"roles": [identity.role_dict(r) for r in rows]})


@admin_bp.route("/roles", methods=["POST"])
@admin_required
def roles_assign():
    data = _json()
    assignment = identity.assign_role(current_access(), data.get("user_id"), data.get("role"))
    return jsonify({"message": "Role assigned", "role": identity.role_dict(assignment)}), 201


@admin_bp.route("/roles/<assignment_id>", methods=["DELETE"])
@admin_required
def roles_revoke(assignment_id):
    identity.revoke_role(current_access(), assignment_id)
    return jsonify({"message": "Role removed"})


@admin_bp.route("/users/<int:user_id>/relink-supplier", methods=["POST"])
@admin_required
def relink_supplier(user_id: int):
    supplier = identity.relink_supplier(current_access(), user_id)
    return jsonify(
        {
            "linked": supplier is not None,
            "supplier": collections.supplier_dict(supplier) if supplier else None,
        }
    )


# -------------------------------------------------------------------
# Notifications
# POST /api/admin/notifications/daily-summary
# POST /api/admin/sms
# -------------------------------------------------------------------
@admin_bp.route("/notifications/daily-summary", methods=["POST"])
@admin_required
def notifications_daily_summary():
    run = send_daily_summaries()
    return jsonify(run.to_dict())


@admin_bp.route("/sms", methods=["POST"])
@admin_required
def send_sms():
    data = _json()
    to = _clean_str(data.get("to"))
    message = _clean_str(data.get("message"))

    errors = {}
    if not to:
        errors["to"] = "Phone number is required"
    if not message:
        errors["message"] = "Message is required"
    if errors:
        raise ValidationError(errors)

    result = get_sms_service().send(to, message)
    if not result.success:
        raise SMSError(result.error or None)
    return jsonify({"success": True, "messageSid": result.sid})
