"""
Unit of work and store-error translation.

Every write path runs inside ``unit_of_work(session)``: one transaction
that commits on success and rolls back on any failure. SQLAlchemy errors
leave this module only as platform exceptions:

    IntegrityError (unique)       → ConflictError
    IntegrityError (check)        → ValidationError
    TimeoutError / lock, statement
    or busy timeouts              → StoreTimeoutError
    any other SQLAlchemyError     → ServerError

Read paths use the ``store_call`` decorator for the same translation.
"""

import functools
import logging
import re
from contextlib import contextmanager

from sqlalchemy import exc as sa_exc

from kaizen.core.exceptions import (
    ConflictError,
    ServerError,
    StoreTimeoutError,
    ValidationError,
)

logger = logging.getLogger(__name__)

_TIMEOUT_MARKERS = (
    "timeout",
    "timed out",
    "database is locked",
    "canceling statement",
)

# SQLite: "UNIQUE constraint failed: employees.email"
_SQLITE_UNIQUE = re.compile(r"unique constraint failed: \w+\.(\w+)", re.IGNORECASE)
# PostgreSQL: "Key (email)=(a@b.c) already exists."
_PG_UNIQUE = re.compile(r"key \((\w+)\)=\((.*?)\)", re.IGNORECASE)


def _is_timeout(exc):
    if isinstance(exc, sa_exc.TimeoutError):
        return True
    if isinstance(exc, sa_exc.OperationalError):
        text = str(exc.orig if exc.orig is not None else exc).lower()
        return any(marker in text for marker in _TIMEOUT_MARKERS)
    return False


def _conflict_details(exc):
    """Return (field, value) for a unique violation, or (None, None)."""
    text = str(exc.orig if exc.orig is not None else exc)
    m = _PG_UNIQUE.search(text)
    if m:
        return m.group(1), m.group(2)
    m = _SQLITE_UNIQUE.search(text)
    if m:
        return m.group(1), None
    return None, None


def translate_store_error(exc, resource="record"):
    """Map a SQLAlchemy error to the platform exception hierarchy."""
    if isinstance(exc, sa_exc.IntegrityError):
        text = str(exc.orig if exc.orig is not None else exc).lower()
        if "unique" in text or "duplicate key" in text:
            field, value = _conflict_details(exc)
            return ConflictError(resource, field or "unknown", value)
        if "check constraint" in text:
            return ValidationError(f"{resource} violates a data constraint")
        return ServerError(f"{resource}: integrity error")
    if _is_timeout(exc):
        return StoreTimeoutError(f"Store call timed out ({resource})")
    return ServerError(f"Store failure ({resource})")


@contextmanager
def unit_of_work(session, *, resource="record"):
    """
    Run the enclosed block as one transaction on ``session``.

    Usage::

        with unit_of_work(self.session, resource="Idea"):
            idea.status = "approved"
            ...

    Platform exceptions raised inside the block propagate unchanged after
    rollback; SQLAlchemy errors are translated.
    """
    try:
        yield session
        session.commit()
    except sa_exc.SQLAlchemyError as exc:
        session.rollback()
        translated = translate_store_error(exc, resource)
        if isinstance(translated, (ServerError, StoreTimeoutError)):
            logger.exception("Unit of work aborted resource=%s", resource)
        else:
            logger.warning("Unit of work rejected resource=%s: %s", resource, translated)
        raise translated from exc
    except Exception:
        session.rollback()
        raise


def store_call(resource="record"):
    """Decorator: translate SQLAlchemy errors raised by a read path."""
    def decorator(f):
        @functools.wraps(f)
        def wrapper(*args, **kwargs):
            try:
                return f(*args, **kwargs)
            except sa_exc.SQLAlchemyError as exc:
                logger.exception("Store read failed in %s", f.__name__)
                session = getattr(args[0], "session", None) if args else None
                if session is not None:
                    session.rollback()
                raise translate_store_error(exc, resource) from exc
        return wrapper
    return decorator
