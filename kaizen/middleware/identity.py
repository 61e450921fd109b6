"""
Identity Middleware - resolves the trusted caller for /api/v1 requests.

Credentials are issued elsewhere; this module only reads an identity that
an upstream component already vouched for and stores it on ``g.identity``.

Priority order:
  1. JWT (Authorization: Bearer <token>, HS256, JWT_SECRET_KEY)
     claims: sub, employee_number, role, name
  2. Trusted gateway headers, only when API_AUTH_ENABLED is false
     X-User-Id, X-Employee-Number, X-User-Role, X-User-Name

Invalid or expired tokens leave ``g.identity`` unset; routes that need a
caller then fail with UnauthorizedError (401).
"""

import functools
import logging
from dataclasses import dataclass

import jwt as pyjwt
from flask import current_app, g, request

from kaizen.core.exceptions import UnauthorizedError
from kaizen.models.employee import EMPLOYEE_ROLES

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"

# Paths that skip identity resolution entirely
IDENTITY_SKIP_PREFIXES = (
    "/api/v1/health",
)


@dataclass(frozen=True)
class Identity:
    """Trusted caller: who they are, their employee number and role."""

    caller_id: str
    role: str
    employee_number: str | None = None
    name: str | None = None


def _get_secret():
    return current_app.config.get("JWT_SECRET_KEY") or current_app.config["SECRET_KEY"]


def _auth_enabled():
    return str(current_app.config.get("API_AUTH_ENABLED", "true")).lower() == "true"


def _build_identity(caller_id, role, employee_number=None, name=None):
    if not caller_id or role not in EMPLOYEE_ROLES:
        return None
    return Identity(
        caller_id=str(caller_id),
        role=role,
        employee_number=employee_number or None,
        name=name or None,
    )


def decode_identity_token(token: str) -> Identity | None:
    """Verify a bearer token and return its Identity, or None if unusable."""
    try:
        payload = pyjwt.decode(token, _get_secret(), algorithms=[ALGORITHM])
    except pyjwt.ExpiredSignatureError:
        logger.info("Expired identity token rejected")
        return None
    except pyjwt.InvalidTokenError:
        logger.warning("Invalid identity token rejected")
        return None
    return _build_identity(
        payload.get("sub"),
        payload.get("role"),
        payload.get("employee_number"),
        payload.get("name"),
    )


def _identity_from_headers():
    return _build_identity(
        request.headers.get("X-User-Id", "").strip(),
        request.headers.get("X-User-Role", "").strip(),
        request.headers.get("X-Employee-Number", "").strip(),
        request.headers.get("X-User-Name", "").strip(),
    )


def init_identity_middleware(app):
    """Register identity resolution as a before_request hook."""

    @app.before_request
    def _resolve_identity():
        g.identity = None

        path = request.path
        if not path.startswith("/api/v1/"):
            return
        for prefix in IDENTITY_SKIP_PREFIXES:
            if path.startswith(prefix):
                return

        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            g.identity = decode_identity_token(auth_header[7:])
        elif not _auth_enabled():
            g.identity = _identity_from_headers()


def current_identity() -> Identity:
    """Return the resolved caller or raise UnauthorizedError (no identity)."""
    identity = getattr(g, "identity", None)
    if identity is None:
        raise UnauthorizedError(None)
    return identity


def require_roles(*roles: str):
    """
    Decorator: require the caller to hold one of ``roles``.

    With no roles, any identified caller passes.
    """
    allowed = frozenset(roles)

    def decorator(f):
        @functools.wraps(f)
        def decorated(*args, **kwargs):
            identity = current_identity()
            if allowed and identity.role not in allowed:
                logger.warning(
                    "Caller %s (%s) denied on %s",
                    identity.caller_id, identity.role, f.__name__,
                )
                raise UnauthorizedError(identity.role, allowed)
            return f(*args, **kwargs)
        return decorated
    return decorator
