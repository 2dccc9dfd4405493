# milkflow/utils/passwords.py
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Tuple

from werkzeug.security import check_password_hash, generate_password_hash

from milkflow.models import utcnow_naive

PASSWORD_MIN_LENGTH = 8
# upper bound of the hosted credential store the accounts were created in
PASSWORD_MAX_LENGTH = 72


# =========================
# Hashing
# =========================
def hash_password(plain_password: str) -> str:
    """scrypt hash for the ``user.password_hash`` column."""
    if not isinstance(plain_password, str) or not plain_password:
        raise ValueError("Password must be a non-empty string.")
    return generate_password_hash(plain_password, method="scrypt")


def verify_password(password_hash: str | None, plain_password: str | None) -> bool:
    if not (password_hash and plain_password):
        return False
    return check_password_hash(password_hash, plain_password)


# =========================
# Policy
# =========================
def validate_password(plain_password) -> Tuple[bool, str]:
    """Length-only policy. Returns (ok, message) like the other field validators."""
    if not isinstance(plain_password, str) or not plain_password:
        return False, "Password is required"
    if len(plain_password) < PASSWORD_MIN_LENGTH:
        return False, f"Password must be at least {PASSWORD_MIN_LENGTH} characters"
    if len(plain_password) > PASSWORD_MAX_LENGTH:
        return False, f"Password must be less than {PASSWORD_MAX_LENGTH} characters"
    return True, ""


# =========================
# Lockout
# =========================
def is_locked_out(locked_until: datetime | None, now: datetime | None = None) -> bool:
    return locked_until is not None and locked_until > (now or utcnow_naive())


def set_lockout(now: datetime | None = None, minutes: int = 10) -> datetime:
    return (now or utcnow_naive()) + timedelta(minutes=minutes)
