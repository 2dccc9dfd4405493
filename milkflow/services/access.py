# milkflow/services/access.py
"""
Row-visibility rules, enforced where the data is read and written.

Every operation receives an explicit :class:`AccessContext` built at login
and dropped at logout. Role resolution goes through :func:`resolve_roles`, a
single direct read of ``user_roles`` that never consults another policy.

Policies:

- admin: full read/write over suppliers, collections, profiles and roles.
- supplier: read-only over collection records whose supplier row is linked
  to the caller (``suppliers.user_id == caller``), its own supplier row,
  its own profile and its own role rows.
- anyone else (no role yet): nothing.
"""
from __future__ import annotations

from dataclasses import dataclass, field

import sqlalchemy as sa

from milkflow.errors import AuthorizationError
from milkflow.extensions import db
from milkflow.models import MilkCollection, Profile, Role, Supplier, UserRole


@dataclass(frozen=True)
class AccessContext:
    user_id: int | None
    roles: frozenset = field(default_factory=frozenset)

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    @property
    def is_admin(self) -> bool:
        return Role.ADMIN.value in self.roles

    @property
    def is_supplier(self) -> bool:
        return Role.SUPPLIER.value in self.roles

    @property
    def primary_role(self) -> str | None:
        if self.is_admin:
            return Role.ADMIN.value
        if self.is_supplier:
            return Role.SUPPLIER.value
        return None


ANONYMOUS = AccessContext(user_id=None)


def resolve_roles(user_id: int | None) -> frozenset:
    """Minimal-privilege role lookup: one read, no policy recursion."""
    if user_id is None:
        return frozenset()
    rows = db.session.execute(
        sa.select(UserRole.role).where(UserRole.user_id == user_id)
    ).scalars()
    return frozenset(rows)


def build_context(user_id: int | None) -> AccessContext:
    if user_id is None:
        return ANONYMOUS
    return AccessContext(user_id=user_id, roles=resolve_roles(user_id))


# =========================================================
# Predicates
# =========================================================
def can_manage(ctx: AccessContext) -> bool:
    return ctx.is_authenticated and ctx.is_admin


def is_self_or_admin(ctx: AccessContext, user_id: int | None) -> bool:
    if not ctx.is_authenticated:
        return False
    return ctx.is_admin or (user_id is not None and ctx.user_id == user_id)


def require_admin(ctx: AccessContext) -> None:
    if not can_manage(ctx):
        raise AuthorizationError()


def require_authenticated(ctx: AccessContext) -> None:
    if not ctx.is_authenticated:
        raise AuthorizationError()


# =========================================================
# Scoped selects (callers add filters on top, never instead)
# =========================================================
def _owned_supplier_ids(ctx: AccessContext):
    return sa.select(Supplier.id).where(Supplier.user_id == ctx.user_id)


def visible_collections(ctx: AccessContext) -> sa.Select:
    stmt = sa.select(MilkCollection)
    if can_manage(ctx):
        return stmt
    if ctx.is_authenticated and ctx.is_supplier:
        return stmt.where(MilkCollection.supplier_id.in_(_owned_supplier_ids(ctx)))
    return stmt.where(sa.false())


def visible_suppliers(ctx: AccessContext) -> sa.Select:
    stmt = sa.select(Supplier)
    if can_manage(ctx):
        return stmt
    if ctx.is_authenticated and ctx.is_supplier:
        return stmt.where(Supplier.user_id == ctx.user_id)
    return stmt.where(sa.false())


def visible_profiles(ctx: AccessContext) -> sa.Select:
    stmt = sa.select(Profile)
    if can_manage(ctx):
        return stmt
    if ctx.is_authenticated:
        return stmt.where(Profile.id == ctx.user_id)
    return stmt.where(sa.false())


def visible_roles(ctx: AccessContext) -> sa.Select:
    stmt = sa.select(UserRole)
    if can_manage(ctx):
        return stmt
    if ctx.is_authenticated:
        return stmt.where(UserRole.user_id == ctx.user_id)
    return stmt.where(sa.false())
