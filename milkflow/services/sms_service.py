# milkflow/services/sms_service.py
"""
Outbound SMS through the Twilio Messages API.

Configured from the app config (or the environment outside a request):
- TWILIO_ACCOUNT_SID / TWILIO_AUTH_TOKEN: basic-auth credentials
- TWILIO_PHONE_NUMBER: sender
- DEFAULT_COUNTRY_CODE: prefix for numbers stored without one (+91)

``send`` never raises for provider failures; it returns an SmsResult so batch
callers can record a status per recipient and carry on.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Callable, Optional

import requests
from flask import current_app

from milkflow.utils.phones import mask_phone, to_e164

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SmsResult:
    success: bool
    sid: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {"success": self.success, "sid": self.sid, "error": self.error}


class SMSService:
    API_URL = "https://api.twilio.com/2010-04-01/Accounts/{sid}/Messages.json"
    MAX_BODY_LENGTH = 1600

    def __init__(
        self,
        account_sid: str | None = None,
        auth_token: str | None = None,
        from_number: str | None = None,
        default_country_code: str = "+91",
        timeout: int = 15,
        transport: Callable[..., Any] | None = None,
    ):
        self.account_sid = account_sid if account_sid is not None else os.environ.get("TWILIO_ACCOUNT_SID", "")
        self.auth_token = auth_token if auth_token is not None else os.environ.get("TWILIO_AUTH_TOKEN", "")
        self.from_number = from_number if from_number is not None else os.environ.get("TWILIO_PHONE_NUMBER", "")
        self.default_country_code = default_country_code
        self.timeout = timeout
        # Anything with requests.post's signature; tests pass a stub.
        self.transport = transport or requests.post

    @classmethod
    def from_config(cls, config: dict, transport: Callable[..., Any] | None = None) -> "SMSService":
        return cls(
            account_sid=config.get("TWILIO_ACCOUNT_SID", ""),
            auth_token=config.get("TWILIO_AUTH_TOKEN", ""),
            from_number=config.get("TWILIO_PHONE_NUMBER", ""),
            default_country_code=config.get("DEFAULT_COUNTRY_CODE", "+91"),
            timeout=config.get("SMS_TIMEOUT_SECONDS", 15),
            transport=transport,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.account_sid and self.auth_token and self.from_number)

    def format_phone(self, phone: str) -> str:
        return to_e164(phone, self.default_country_code)

    def send(self, to: str, body: str) -> SmsResult:
        if not self.is_configured:
            logger.error("Twilio credentials not configured")
            return SmsResult(False, error="SMS service not configured")

        phone = self.format_phone(to)
        if not phone:
            return SmsResult(False, error="Phone number is required")
        if not body:
            return SmsResult(False, error="Message is required")
        if len(body) > self.MAX_BODY_LENGTH:
            return SmsResult(False, error=f"Message is longer than {self.MAX_BODY_LENGTH} characters")

        try:
            response = self.transport(
                self.API_URL.format(sid=self.account_sid),
                data={"To": phone, "From": self.from_number, "Body": body},
                auth=(self.account_sid, self.auth_token),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.error("SMS to %s failed: %s", mask_phone(phone), exc)
            return SmsResult(False, error=str(exc))

        try:
            payload = response.json()
        except ValueError:
            payload = {}

        if response.status_code in (200, 201):
            logger.info("SMS sent to %s (sid %s)", mask_phone(phone), payload.get("sid"))
            return SmsResult(True, sid=payload.get("sid"))

        message = payload.get("message") or f"Twilio returned {response.status_code}"
        logger.warning("SMS to %s rejected: %s", mask_phone(phone), message)
        return SmsResult(False, error=message)


def get_sms_service(app=None) -> SMSService:
    """The app's SMS client; ``app.extensions['sms']`` overrides the default."""
    app = app or current_app
    service = app.extensions.get("sms")
    if service is None:
        service = SMSService.from_config(app.config)
    return service
