# milkflow/models.py
from __future__ import annotations

import enum
import uuid
from datetime import date, datetime, timezone

import sqlalchemy as sa
from flask_login import UserMixin

from .extensions import db


# Naive UTC everywhere; timestamp columns are "timestamp without time zone".
def utcnow_naive() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Role(str, enum.Enum):
    ADMIN = "admin"
    SUPPLIER = "supplier"


ROLE_VALUES = tuple(r.value for r in Role)


# =========================================================
# User (credential identity)
# =========================================================
class User(UserMixin, db.Model):
    __tablename__ = "user"

    id = db.Column(db.Integer, primary_key=True)

    # Synthetic "<phone>@<PHONE_EMAIL_DOMAIN>" login identifier.
    email = db.Column(db.String(120), nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)

    # Account lifecycle / security
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    failed_login_attempts = db.Column(db.Integer, default=0, nullable=False)
    locked_until = db.Column(db.DateTime, nullable=True)
    last_login_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow_naive)
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=utcnow_naive,
        onupdate=utcnow_naive,
    )

    profile = db.relationship(
        "Profile",
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan",
    )
    roles = db.relationship(
        "UserRole",
        back_populates="user",
        cascade="all, delete-orphan",
        lazy="select",
    )

    __table_args__ = (
        db.UniqueConstraint("email", name="user_email_key"),
    )

    def __repr__(self) -> str:
        return f"<User {self.id} {self.email}>"


# =========================================================
# Profile (display identity, 1:1 with User)
# =========================================================
class Profile(db.Model):
    __tablename__ = "profiles"

    id = db.Column(
        db.Integer,
        db.ForeignKey("user.id", ondelete="CASCADE"),
        primary_key=True,
    )
    user = db.relationship("User", back_populates="profile")

    full_name = db.Column(db.String(100), nullable=False, default="User")
    phone = db.Column(db.String(30), nullable=False)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow_naive)
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=utcnow_naive,
        onupdate=utcnow_naive,
    )

    def __repr__(self) -> str:
        return f"<Profile {self.id} {self.full_name}>"


# =========================================================
# UserRole (role assignments live only here)
# =========================================================
class UserRole(db.Model):
    __tablename__ = "user_roles"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer,
        db.ForeignKey("user.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user = db.relationship("User", back_populates="roles")

    role = db.Column(db.String(20), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow_naive)

    __table_args__ = (
        db.UniqueConstraint("user_id", "role", name="uq_user_roles_user_role"),
        db.CheckConstraint("role in ('admin','supplier')", name="ck_user_roles_role"),
    )

    def __repr__(self) -> str:
        return f"<UserRole {self.user_id} {self.role}>"


# =========================================================
# Supplier (milk producer) + optional login link
# =========================================================
class Supplier(db.Model):
    __tablename__ = "suppliers"

    id = db.Column(sa.Uuid, primary_key=True, default=uuid.uuid4)

    user_id = db.Column(
        db.Integer,
        db.ForeignKey("user.id", ondelete="SET NULL"),
        unique=True,
        nullable=True,
        index=True,
    )
    user = db.relationship("User", foreign_keys=[user_id], lazy="joined")

    supplier_code = db.Column(db.String(20), unique=True, nullable=False, index=True)
    full_name = db.Column(db.String(100), nullable=False)
    phone = db.Column(db.String(30), nullable=False, index=True)
    address = db.Column(db.String(200), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow_naive)
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=utcnow_naive,
        onupdate=utcnow_naive,
    )

    collections = db.relationship(
        "MilkCollection",
        back_populates="supplier",
        cascade="all, delete-orphan",
        lazy="select",
    )

    def __repr__(self) -> str:
        return f"<Supplier {self.supplier_code} {self.full_name}>"


# =========================================================
# MilkCollection (one pickup; create/delete only)
# =========================================================
class MilkCollection(db.Model):
    __tablename__ = "milk_collections"

    id = db.Column(sa.Uuid, primary_key=True, default=uuid.uuid4)

    supplier_id = db.Column(
        sa.Uuid,
        db.ForeignKey("suppliers.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    supplier = db.relationship("Supplier", back_populates="collections", lazy="joined")

    collection_date = db.Column(db.Date, nullable=False, default=date.today, index=True)
    quantity_liters = db.Column(db.Numeric(10, 2), nullable=False)
    fat_percentage = db.Column(db.Numeric(5, 2), nullable=True)
    rate_per_liter = db.Column(db.Numeric(12, 6), nullable=False)
    total_amount = db.Column(db.Numeric(10, 2), nullable=False)
    notes = db.Column(db.Text, nullable=True)

    created_by_user_id = db.Column(
        db.Integer,
        db.ForeignKey("user.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    created_by = db.relationship("User", foreign_keys=[created_by_user_id], lazy="joined")

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow_naive)

    __table_args__ = (
        db.CheckConstraint("quantity_liters > 0", name="ck_collections_quantity_positive"),
        db.CheckConstraint(
            "fat_percentage IS NULL OR (fat_percentage >= 0 AND fat_percentage <= 100)",
            name="ck_collections_fat_range",
        ),
        db.CheckConstraint("rate_per_liter >= 0", name="ck_collections_rate_nonnegative"),
        db.CheckConstraint("total_amount >= 0", name="ck_collections_amount_nonnegative"),
    )

    @property
    def preparer_name(self) -> str:
        creator = self.created_by
        if creator is not None and creator.profile is not None:
            return creator.profile.full_name
        return "N/A"

    def __repr__(self) -> str:
        return f"<MilkCollection {self.id} {self.collection_date} {self.quantity_liters}L>"


# =========================================================
# OtpVerification (legacy phone verification)
# =========================================================
class OtpVerification(db.Model):
    __tablename__ = "otp_verifications"

    id = db.Column(sa.Uuid, primary_key=True, default=uuid.uuid4)
    phone = db.Column(db.String(30), nullable=False)
    code = db.Column(db.String(6), nullable=False)
    verified = db.Column(db.Boolean, nullable=False, default=False)
    expires_at = db.Column(db.DateTime, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow_naive)

    __table_args__ = (
        db.Index("ix_otp_phone_verified_expires", "phone", "verified", "expires_at"),
    )

    def __repr__(self) -> str:
        return f"<OtpVerification {self.phone} verified={self.verified}>"
