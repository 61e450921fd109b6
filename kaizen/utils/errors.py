"""JSON error bodies for the kaizen API.

Every error response has the shape ``{"error": <text>, "code": <ERR_*>}``
plus an optional ``details`` object. ``error_for`` maps a service
exception onto that shape; ``api_error`` builds the Flask response.

    return api_error(E.NOT_FOUND, "Idea id=4 not found")
    return api_error(*error_for(exc))
"""

from __future__ import annotations

from flask import jsonify

from kaizen.core.exceptions import (
    ConflictError,
    NotFoundError,
    ServerError,
    StoreTimeoutError,
    UnauthorizedError,
    ValidationError,
)


class E:
    """Error codes returned in the ``code`` field."""

    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"
    UNAUTHORIZED = "ERR_UNAUTHORIZED"
    FORBIDDEN = "ERR_FORBIDDEN"
    NOT_FOUND = "ERR_NOT_FOUND"
    CONFLICT_DUPLICATE = "ERR_CONFLICT_DUPLICATE"
    TIMEOUT = "ERR_TIMEOUT"
    DATABASE = "ERR_DATABASE"
    INTERNAL = "ERR_INTERNAL"


HTTP_STATUS: dict[str, int] = {
    E.VALIDATION_INVALID: 400,
    E.UNAUTHORIZED: 401,
    E.FORBIDDEN: 403,
    E.NOT_FOUND: 404,
    E.CONFLICT_DUPLICATE: 409,
    E.TIMEOUT: 504,
    E.DATABASE: 500,
    E.INTERNAL: 500,
}


def error_for(exc: Exception) -> tuple[str, str, dict | None]:
    """Return ``(code, message, details)`` for a service exception."""
    if isinstance(exc, UnauthorizedError):
        return (E.UNAUTHORIZED if exc.role is None else E.FORBIDDEN), str(exc), None
    if isinstance(exc, NotFoundError):
        return E.NOT_FOUND, str(exc), None
    if isinstance(exc, ValidationError):
        return E.VALIDATION_INVALID, str(exc), exc.details
    if isinstance(exc, ConflictError):
        return E.CONFLICT_DUPLICATE, str(exc), {"field": exc.field}
    if isinstance(exc, StoreTimeoutError):
        return E.TIMEOUT, "The request timed out, please retry", None
    if isinstance(exc, ServerError):
        return E.DATABASE, "Database error", None
    return E.INTERNAL, "Internal server error", None


def api_error(code: str, message: str, details: dict | None = None, *, status: int | None = None):
    """Build ``(response, status)`` for a Flask view or error handler."""
    body: dict = {"error": message, "code": code}
    if details:
        body["details"] = details
    return jsonify(body), status or HTTP_STATUS.get(code, 400)
