# milkflow/utils/db.py
from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from milkflow.errors import ConflictError, UpstreamError
from milkflow.extensions import db


def commit_or_rollback(action: str, conflict_message: str | None = None) -> None:
    """
    Commit the session or roll it back and raise.
    Constraint violations become ConflictError, anything else UpstreamError.
    """
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        current_app.logger.warning("%s rejected by a constraint: %s", action, exc.orig)
        raise ConflictError(conflict_message) from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("%s failed", action)
        raise UpstreamError(f"{action} failed. Please try again.") from exc
