"""
Verification codes: six digits, five minutes, single use.
"""
from datetime import datetime, timedelta, timezone

import pytest

from conftest import SUPPLIER_PHONE
from milkflow.errors import ValidationError
from milkflow.services import otp

T0 = datetime(2026, 10, 18, 6, 0, 0)


def test_code_shape():
    code = otp.generate_code()
    assert len(code) == 6 and code.isdigit()


def test_code_expires_after_five_minutes(db):
    issued = otp.issue(SUPPLIER_PHONE, now=T0)
    assert issued.expires_at == T0 + timedelta(minutes=5)
    assert otp.verify(SUPPLIER_PHONE, issued.code, now=T0 + timedelta(seconds=301)) is False


def test_code_is_single_use(db):
    issued = otp.issue(SUPPLIER_PHONE, now=T0)
    assert otp.verify(SUPPLIER_PHONE, issued.code, now=T0 + timedelta(seconds=60)) is True
    assert otp.verify(SUPPLIER_PHONE, issued.code, now=T0 + timedelta(seconds=61)) is False


def test_wrong_code_or_phone(db):
    issued = otp.issue(SUPPLIER_PHONE, now=T0)
    wrong = "000000" if issued.code != "000000" else "111111"
    assert otp.verify(SUPPLIER_PHONE, wrong, now=T0) is False
    assert otp.verify("9876500999", issued.code, now=T0) is False
    assert otp.verify(SUPPLIER_PHONE, "12ab", now=T0) is False


def test_invalid_phone_is_rejected(db):
    with pytest.raises(ValidationError):
        otp.issue("12", now=T0)


def test_disabled(app, db):
    app.config["OTP_ENABLED"] = False
    try:
        with pytest.raises(otp.OtpDisabled):
            otp.verify(SUPPLIER_PHONE, "123456")
    finally:
        app.config["OTP_ENABLED"] = True


def test_send_and_verify_over_http(client, sms_stub):
    resp = client.post("/api/auth/otp/send", json={"phone": SUPPLIER_PHONE})
    assert resp.status_code == 200

    code = sms_stub.calls[0]["Body"].rsplit(" ", 1)[-1]
    assert sms_stub.calls[0]["To"] == "+91" + SUPPLIER_PHONE

    resp = client.post("/api/auth/otp/verify", json={"phone": SUPPLIER_PHONE, "code": code})
    assert resp.get_json()["success"] is True

    resp = client.post("/api/auth/otp/verify", json={"phone": SUPPLIER_PHONE, "code": code})
    assert resp.status_code == 400


def test_send_failure_is_reported(client, sms_stub):
    sms_stub.fail_for.add("+91" + SUPPLIER_PHONE)
    resp = client.post("/api/auth/otp/send", json={"phone": SUPPLIER_PHONE})
    assert resp.status_code == 502
    assert resp.get_json()["error"] == "Failed to send verification code. Please try again."


def test_default_clock_is_naive_utc(db):
    before = datetime.now(timezone.utc).replace(tzinfo=None)
    issued = otp.issue(SUPPLIER_PHONE)
    assert issued.expires_at.tzinfo is None
    assert timedelta(minutes=4) < issued.expires_at - before <= timedelta(minutes=5, seconds=5)
