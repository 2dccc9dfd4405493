# milkflow/services/identity.py
"""
Phone + password identities.

The credential table stores each phone as a synthetic email
(``<phone>@<PHONE_EMAIL_DOMAIN>``). Signing up creates the user, its profile
and its single role in one transaction, and links an existing unlinked
supplier row with the same phone inside that same transaction.
"""
from __future__ import annotations

from typing import Any

import sqlalchemy as sa
from flask import current_app
from sqlalchemy.exc import IntegrityError

from milkflow.errors import AuthenticationError, AuthorizationError, NotFoundError, ValidationError
from milkflow.extensions import db
from milkflow.models import Profile, Role, Supplier, User, UserRole, utcnow_naive
from milkflow.utils.db import commit_or_rollback
from milkflow.utils.passwords import (
    hash_password,
    is_locked_out,
    set_lockout,
    validate_password,
    verify_password,
)
from milkflow.utils.phones import mask_phone, normalize_phone
from milkflow.utils.validators import clean_signin, clean_signup, validate_full_name, validate_role

from .access import AccessContext, is_self_or_admin, require_admin, visible_profiles, visible_roles


def phone_to_email(phone: str, domain: str | None = None) -> str:
    domain = domain or current_app.config.get("PHONE_EMAIL_DOMAIN", "milkflow.in")
    return f"{normalize_phone(phone)}@{domain}"


def find_user_by_phone(phone: str) -> User | None:
    email = phone_to_email(phone)
    return db.session.execute(
        sa.select(User).where(User.email == email)
    ).scalar_one_or_none()


# =========================================================
# Supplier linking
# =========================================================
def _link_supplier(user_id: int, phone: str) -> Supplier | None:
    """
    Attach the oldest unlinked supplier whose phone equals ``phone``.
    Does not commit. Returns the linked supplier, or the one already linked.
    """
    existing = db.session.execute(
        sa.select(Supplier).where(Supplier.user_id == user_id)
    ).scalar_one_or_none()
    if existing is not None:
        return existing

    phone = normalize_phone(phone)
    if not phone:
        return None

    candidate_id = db.session.execute(
        sa.select(Supplier.id)
        .where(Supplier.phone == phone, Supplier.user_id.is_(None))
        .order_by(Supplier.created_at, Supplier.supplier_code)
        .limit(1)
    ).scalar_one_or_none()
    if candidate_id is None:
        return None

    # Conditional update: a concurrent link of the same row leaves rowcount at 0.
    result = db.session.execute(
        sa.update(Supplier)
        .where(Supplier.id == candidate_id, Supplier.user_id.is_(None))
        .values(user_id=user_id)
        .execution_options(synchronize_session="fetch")
    )
    if result.rowcount != 1:
        return None

    current_app.logger.info("Linked supplier %s to user %s (phone %s)", candidate_id, user_id, mask_phone(phone))
    return db.session.get(Supplier, candidate_id)


def relink_supplier(ctx: AccessContext, user_id: int) -> Supplier | None:
    """Idempotent re-link for supplier rows created after the identity."""
    if not is_self_or_admin(ctx, user_id):
        raise AuthorizationError()

    user = db.session.get(User, user_id)
    if user is None or user.profile is None:
        raise NotFoundError()

    supplier = _link_supplier(user.id, user.profile.phone)
    commit_or_rollback("Link supplier")
    return supplier


def relink_all_suppliers() -> int:
    """Re-link every identity that has no supplier yet. Returns the number linked."""
    linked_user_ids = sa.select(Supplier.user_id).where(Supplier.user_id.is_not(None))
    profiles = db.session.execute(
        sa.select(Profile).where(Profile.id.not_in(linked_user_ids)).order_by(Profile.id)
    ).scalars().all()

    count = 0
    for profile in profiles:
        if _link_supplier(profile.id, profile.phone) is not None:
            count += 1
    commit_or_rollback("Link suppliers")
    return count


# =========================================================
# Sign up / sign in
# =========================================================
def sign_up(data: dict[str, Any]) -> tuple[User, Supplier | None]:
    cleaned = clean_signup(data)

    if find_user_by_phone(cleaned["phone"]) is not None:
        raise ValidationError({"phone": "An account with this phone number already exists"})

    user = User(
        email=phone_to_email(cleaned["phone"]),
        password_hash=hash_password(cleaned["password"]),
        is_active=True,
    )
    user.profile = Profile(full_name=cleaned["full_name"], phone=normalize_phone(cleaned["phone"]))
    user.roles.append(UserRole(role=cleaned["role"]))
    db.session.add(user)

    try:
        db.session.flush()
    except IntegrityError as exc:
        db.session.rollback()
        raise ValidationError({"phone": "An account with this phone number already exists"}) from exc
    supplier = _link_supplier(user.id, cleaned["phone"])

    commit_or_rollback("Sign up", "An account with this phone number already exists.")
    current_app.logger.info("New %s account %s (phone %s)", cleaned["role"], user.id, mask_phone(cleaned["phone"]))
    return user, supplier


def sign_in(data: dict[str, Any]) -> User:
    """
    Check phone + password. Every failure raises the same AuthenticationError
    so callers cannot tell whether the phone is registered.
    """
    cleaned = clean_signin(data)
    user = find_user_by_phone(cleaned["phone"])
    now = utcnow_naive()

    if user is None or not user.is_active:
        raise AuthenticationError()

    if is_locked_out(user.locked_until, now):
        current_app.logger.warning("Login attempt on locked account %s", user.id)
        raise AuthenticationError()

    if not verify_password(user.password_hash, cleaned["password"]):
        user.failed_login_attempts = (user.failed_login_attempts or 0) + 1
        if user.failed_login_attempts >= current_app.config["LOGIN_MAX_ATTEMPTS"]:
            user.locked_until = set_lockout(now, current_app.config["LOGIN_LOCKOUT_MINUTES"])
            user.failed_login_attempts = 0
            current_app.logger.warning("Account %s locked after repeated failures", user.id)
        commit_or_rollback("Record failed login")
        raise AuthenticationError()

    user.failed_login_attempts = 0
    user.locked_until = None
    user.last_login_at = now
    commit_or_rollback("Sign in")
    return user


# =========================================================
# Self service
# =========================================================
def session_payload(user: User, ctx: AccessContext) -> dict:
    profile = user.profile
    supplier = db.session.execute(
        sa.select(Supplier).where(Supplier.user_id == user.id)
    ).scalar_one_or_none()
    return {
        "user": {"id": user.id, "email": user.email, "last_login_at": _iso(user.last_login_at)},
        "profile": profile_dict(profile) if profile else None,
        "role": ctx.primary_role,
        "roles": sorted(ctx.roles),
        "supplier_id": str(supplier.id) if supplier else None,
    }


def profile_dict(profile: Profile) -> dict:
    return {"id": profile.id, "full_name": profile.full_name, "phone": profile.phone}


def update_profile(ctx: AccessContext, user_id: int, data: dict[str, Any]) -> Profile:
    if not is_self_or_admin(ctx, user_id):
        raise AuthorizationError()

    profile = db.session.execute(
        visible_profiles(ctx).where(Profile.id == user_id)
    ).scalar_one_or_none()
    if profile is None:
        raise NotFoundError()

    if "full_name" in data:
        ok, msg = validate_full_name(data.get("full_name"))
        if not ok:
            raise ValidationError({"full_name": msg})
        profile.full_name = data["full_name"].strip()

    commit_or_rollback("Update profile")
    return profile


def change_password(user: User, current_password: str, new_password: str, confirm_password: str | None = None) -> None:
    if not verify_password(user.password_hash, current_password or ""):
        raise ValidationError({"current_password": "Current password is incorrect"})

    ok, msg = validate_password(new_password)
    if not ok:
        raise ValidationError({"new_password": msg})

    if confirm_password is not None and new_password != confirm_password:
        raise ValidationError({"confirm_password": "New password and confirmation do not match"})

    if verify_password(user.password_hash, new_password):
        raise ValidationError({"new_password": "New password must be different from the current password"})

    user.password_hash = hash_password(new_password)
    commit_or_rollback("Change password")


def delete_account(user: User) -> None:
    """Remove the caller's identity; linked supplier rows stay, unlinked."""
    user_id = user.id
    db.session.delete(user)
    commit_or_rollback("Delete account")
    current_app.logger.info("Account %s deleted by its owner", user_id)


def _iso(value) -> str | None:
    return value.isoformat() if value else None


# =========================================================
# Role assignments (admin only)
# =========================================================
def role_dict(assignment: UserRole) -> dict:
    profile = assignment.user.profile if assignment.user else None
    return {
        "id": assignment.id,
        "user_id": assignment.user_id,
        "role": assignment.role,
        "full_name": profile.full_name if profile else None,
        "phone": profile.phone if profile else None,
        "created_at": _iso(assignment.created_at),
    }


def list_role_assignments(ctx: AccessContext) -> list[UserRole]:
    stmt = visible_roles(ctx).order_by(UserRole.user_id, UserRole.role)
    return db.session.execute(stmt).scalars().all()


def assign_role(ctx: AccessContext, user_id: Any, role: Any) -> UserRole:
    require_admin(ctx)
    ok, msg = validate_role(role)
    if not ok:
        raise ValidationError({"role": msg})

    try:
        uid = int(user_id)
    except (TypeError, ValueError):
        raise ValidationError({"user_id": "Invalid user ID"}) from None

    if db.session.get(User, uid) is None:
        raise NotFoundError()

    role = role.strip()
    existing = db.session.execute(
        sa.select(UserRole).where(UserRole.user_id == uid, UserRole.role == role)
    ).scalar_one_or_none()
    if existing is not None:
        return existing

    assignment = UserRole(user_id=uid, role=role)
    db.session.add(assignment)
    commit_or_rollback("Assign role")
    current_app.logger.info("Role %s granted to user %s by user %s", role, uid, ctx.user_id)
    return assignment


def revoke_role(ctx: AccessContext, assignment_id: Any) -> None:
    require_admin(ctx)
    try:
        rid = int(assignment_id)
    except (TypeError, ValueError):
        raise NotFoundError()

    assignment = db.session.get(UserRole, rid)
    if assignment is None:
        raise NotFoundError()
    if assignment.user_id == ctx.user_id and assignment.role == Role.ADMIN.value:
        raise ValidationError({"role": "You cannot remove your own admin role"})

    db.session.delete(assignment)
    commit_or_rollback("Revoke role")
    current_app.logger.info("Role %s revoked from user %s by user %s", assignment.role, assignment.user_id, ctx.user_id)
