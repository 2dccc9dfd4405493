# milkflow/errors.py
from __future__ import annotations


class MilkflowError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 400
    default_message = "Request could not be processed."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": self.message}


class ValidationError(MilkflowError):
    """Malformed or out-of-range input, with one message per field."""

    status_code = 400
    default_message = "Please correct the highlighted fields."

    def __init__(self, field_errors: dict[str, str], message: str | None = None):
        self.field_errors = dict(field_errors)
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"error": self.message, "fields": self.field_errors}


class AuthorizationError(MilkflowError):
    # Never say whether the target exists.
    status_code = 403
    default_message = "You do not have permission to perform this action."


class AuthenticationError(MilkflowError):
    status_code = 401
    default_message = "Invalid phone number or password."


class NotFoundError(MilkflowError):
    status_code = 404
    default_message = "Not found."


class ConflictError(MilkflowError):
    status_code = 409
    default_message = "A record with these details already exists."


class UpstreamError(MilkflowError):
    """Store or provider failure; the operator may retry manually."""

    status_code = 502
    default_message = "A dependent service is unavailable. Please try again."


class SMSError(UpstreamError):
    default_message = "Failed to send SMS."
