# milkflow/utils/guards.py

from __future__ import annotations

from functools import wraps
from typing import Callable, Any

from flask import g
from flask_login import current_user, login_required

from milkflow.errors import AuthorizationError
from milkflow.services.access import ANONYMOUS, AccessContext, build_context


def current_access() -> AccessContext:
    """
    The caller's AccessContext for this request.
    Built from the logged-in identity on first use and cached on ``g``.
    """
    ctx = g.get("access_context")
    if ctx is None:
        if getattr(current_user, "is_authenticated", False):
            ctx = build_context(current_user.id)
        else:
            ctx = ANONYMOUS
        g.access_context = ctx
    return ctx


def clear_access() -> None:
    g.pop("access_context", None)


def admin_required(view: Callable[..., Any]) -> Callable[..., Any]:
    """
    Allow only admin-role identities.
    Everyone else gets the generic 403.
    """
    @wraps(view)
    @login_required
    def wrapped(*args, **kwargs):
        if not current_access().is_admin:
            raise AuthorizationError()
        return view(*args, **kwargs)

    return wrapped


def role_required(*allowed_roles: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """
    Generic role gate:
        @role_required("supplier")
        def view(): ...
    """
    def decorator(view: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(view)
        @login_required
        def wrapped(*args, **kwargs):
            if not current_access().roles.intersection(allowed_roles):
                raise AuthorizationError()
            return view(*args, **kwargs)
        return wrapped
    return decorator
