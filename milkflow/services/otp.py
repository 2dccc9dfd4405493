# milkflow/services/otp.py
"""
One-time passcodes for phone verification (optional, OTP_ENABLED).

Codes are 6 digits, expire OTP_EXPIRY_MINUTES (5) after issuance and are
single use. Verification only ever looks at rows that are unverified and
unexpired, so an expired or consumed code cannot match.
"""
from __future__ import annotations

import secrets
import string
from datetime import datetime, timedelta

import sqlalchemy as sa
from flask import current_app

from milkflow.config import COOPERATIVE
from milkflow.errors import MilkflowError, SMSError, ValidationError
from milkflow.extensions import db
from milkflow.models import OtpVerification, utcnow_naive
from milkflow.utils.db import commit_or_rollback
from milkflow.utils.phones import mask_phone, normalize_phone
from milkflow.utils.validators import validate_phone

from .sms_service import get_sms_service

OTP_LENGTH = 6


class OtpDisabled(MilkflowError):
    status_code = 404
    default_message = "Not found."


def _require_enabled() -> None:
    if not current_app.config.get("OTP_ENABLED"):
        raise OtpDisabled()


def generate_code() -> str:
    return "".join(secrets.choice(string.digits) for _ in range(OTP_LENGTH))


def issue(phone: str, now: datetime | None = None) -> OtpVerification:
    """Store a fresh code for ``phone`` without sending it."""
    ok, msg = validate_phone(phone)
    if not ok:
        raise ValidationError({"phone": msg})

    now = now or utcnow_naive()
    minutes = current_app.config.get("OTP_EXPIRY_MINUTES", 5)
    otp = OtpVerification(
        phone=normalize_phone(phone),
        code=generate_code(),
        verified=False,
        expires_at=now + timedelta(minutes=minutes),
        created_at=now,
    )
    db.session.add(otp)
    commit_or_rollback("Issue verification code")
    return otp


def send(phone: str, now: datetime | None = None) -> OtpVerification:
    _require_enabled()
    otp = issue(phone, now=now)

    result = get_sms_service().send(otp.phone, f"Your {COOPERATIVE['brand_name']} verification code is: {otp.code}")
    if not result.success:
        current_app.logger.warning("Verification code for %s not delivered: %s", mask_phone(otp.phone), result.error)
        raise SMSError("Failed to send verification code. Please try again.")

    current_app.logger.info("Verification code sent to %s", mask_phone(otp.phone))
    return otp


def verify(phone: str, code: str, now: datetime | None = None) -> bool:
    """
    Consume a matching live code. Returns False for wrong, expired or
    already-used codes.
    """
    _require_enabled()
    now = now or utcnow_naive()
    code = (code or "").strip()
    if len(code) != OTP_LENGTH or not code.isdigit():
        return False

    otp = db.session.execute(
        sa.select(OtpVerification)
        .where(
            OtpVerification.phone == normalize_phone(phone),
            OtpVerification.code == code,
            OtpVerification.verified.is_(False),
            OtpVerification.expires_at > now,
        )
        .order_by(OtpVerification.created_at.desc())
        .limit(1)
    ).scalar_one_or_none()
    if otp is None:
        return False

    # Conditional update so two concurrent verifications cannot both consume it.
    result = db.session.execute(
        sa.update(OtpVerification)
        .where(OtpVerification.id == otp.id, OtpVerification.verified.is_(False))
        .values(verified=True)
        .execution_options(synchronize_session="fetch")
    )
    commit_or_rollback("Verify code")
    return result.rowcount == 1
