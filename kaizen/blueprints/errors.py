"""
Shared error handlers for the kaizen API blueprints.

Each blueprint calls ``register_error_handlers(bp)`` once; services raise
``kaizen.core.exceptions`` types and never build responses themselves.
"""

import logging

from flask import request
from werkzeug.exceptions import HTTPException

from kaizen.core.exceptions import (
    ConflictError,
    NotFoundError,
    ServerError,
    StoreTimeoutError,
    UnauthorizedError,
    ValidationError,
)
from kaizen.utils.errors import api_error, error_for

logger = logging.getLogger(__name__)

_CLIENT_ERRORS = (UnauthorizedError, NotFoundError, ValidationError, ConflictError)


def register_error_handlers(bp):
    """Attach the exception → JSON error mapping to a blueprint."""

    def _handle_client_error(error):
        return api_error(*error_for(error))

    for exc_type in _CLIENT_ERRORS:
        bp.register_error_handler(exc_type, _handle_client_error)

    @bp.errorhandler(StoreTimeoutError)
    def _handle_timeout(error):
        logger.warning("Store timeout on %s: %s", request.endpoint, error)
        return api_error(*error_for(error))

    @bp.errorhandler(ServerError)
    def _handle_server(error):
        logger.error("Store failure on %s: %s", request.endpoint, error)
        return api_error(*error_for(error))

    @bp.errorhandler(Exception)
    def _handle_unexpected(error):
        if isinstance(error, HTTPException):
            return error
        logger.exception("Unexpected error in endpoint=%s", request.endpoint)
        return api_error(*error_for(error))
