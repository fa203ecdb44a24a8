from contextlib import contextmanager

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from swiftride.errors import TransientStoreError
from swiftride.extensions import db


@contextmanager
def store_write(action):
    """Roll back and report database failures inside a write as TransientStoreError."""
    try:
        yield
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.warning("Store write failed while %s: %s", action, exc)
        raise TransientStoreError("Store temporarily unavailable. Please retry.") from exc
