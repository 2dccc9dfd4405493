# milkflow/auth.py
from __future__ import annotations

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required, login_user, logout_user

from .extensions import db, limiter, login_manager
from .models import User
from .services import identity, otp
from .services.collections import supplier_dict
from .utils.guards import clear_access, current_access

auth = Blueprint("auth", __name__, url_prefix="/api/auth")


# =========================================================
# Flask-Login user loader
# =========================================================
@login_manager.user_loader
def load_user(user_id: str):
    try:
        user = db.session.get(User, int(user_id))
    except (TypeError, ValueError):
        return None
    if user is None or not user.is_active:
        return None
    return user


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({"error": "Authentication required."}), 401


# =========================================================
# Helpers
# =========================================================
def _json() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _start_session(user: User) -> dict:
    """Log the user in and build a fresh access context for the session."""
    clear_access()
    login_user(user)
    ctx = current_access()
    return identity.session_payload(user, ctx)


# =========================================================
# Sign up / Login / Logout
# =========================================================
@auth.route("/signup", methods=["POST"])
@limiter.limit("5 per minute")
def signup():
    user, supplier = identity.sign_up(_json())
    payload = _start_session(user)
    payload["linked_supplier"] = supplier_dict(supplier) if supplier else None
    return jsonify({"message": "Account created successfully", **payload}), 201


@auth.route("/login", methods=["POST"])
@limiter.limit("5 per minute")
def login():
    user = identity.sign_in(_json())
    payload = _start_session(user)
    return jsonify({"message": "Signed in successfully", **payload})


@auth.route("/logout", methods=["POST"])
def logout():
    """
    Not login_required: logging out twice must not error.
    """
    logout_user()
    clear_access()
    return jsonify({"message": "Signed out"})


@auth.route("/session", methods=["GET"])
def session_info():
    if not getattr(current_user, "is_authenticated", False):
        return jsonify({"authenticated": False, "user": None, "role": None})
    payload = identity.session_payload(current_user, current_access())
    return jsonify({"authenticated": True, **payload})


# =========================================================
# Self service
# =========================================================
@auth.route("/change-password", methods=["POST"])
@login_required
@limiter.limit("5 per minute")
def change_password():
    data = _json()
    identity.change_password(
        current_user,
        data.get("current_password") or "",
        data.get("new_password") or "",
        data.get("confirm_password"),
    )
    return jsonify({"message": "Password updated successfully."})


@auth.route("/account", methods=["DELETE"])
@login_required
def delete_account():
    user = current_user._get_current_object()
    logout_user()
    clear_access()
    identity.delete_account(user)
    return jsonify({"message": "Account deleted"})


# =========================================================
# One-time passcodes (legacy; OTP_ENABLED)
# =========================================================
@auth.route("/otp/send", methods=["POST"])
@limiter.limit("3 per minute")
def otp_send():
    otp.send(_json().get("phone"))
    return jsonify({"success": True, "message": "OTP sent successfully"})


@auth.route("/otp/verify", methods=["POST"])
@limiter.limit("5 per minute")
def otp_verify():
    data = _json()
    if not otp.verify(data.get("phone"), data.get("code")):
        return jsonify({"success": False, "error": "Invalid or expired code"}), 400
    return jsonify({"success": True, "message": "Phone verified"})
