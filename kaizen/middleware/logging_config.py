"""
Logging setup for the kaizen service.

One stream handler on the root logger:
  - JSON lines outside development/testing (one object per record)
  - compact coloured lines in development and tests
LOG_LEVEL overrides the default level (DEBUG in dev, INFO otherwise).
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

# Attributes passed via ``extra={...}`` that are worth keeping in JSON output.
CONTEXT_FIELDS = (
    "request_id",
    "method",
    "path",
    "status",
    "duration_ms",
    "remote_addr",
    "caller_id",
    "idea_id",
    "employee_number",
    "recipient_role",
    "event_type",
)

NOISY_LOGGERS = ("werkzeug", "urllib3", "sqlalchemy.engine", "alembic")


def _context(record):
    return {
        key: getattr(record, key)
        for key in CONTEXT_FIELDS
        if getattr(record, key, None) is not None
    }


class JSONFormatter(logging.Formatter):
    """One JSON object per record, context fields at top level."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "where": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        entry.update(_context(record))
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class ReadableFormatter(logging.Formatter):
    """``HH:MM:SS LEVEL logger: message [k=v ...]`` with the level coloured."""

    _COLOURS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    _RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        stamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        colour = self._COLOURS.get(record.levelno, "")
        line = f"{stamp} {colour}{record.levelname:<8}{self._RESET} {record.name}: {record.getMessage()}"
        context = _context(record)
        if "duration_ms" in context:
            context["duration_ms"] = f"{context['duration_ms']:.0f}"
        if context:
            line += " [" + " ".join(f"{k}={v}" for k, v in context.items()) + "]"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(app):
    """Install the root handler for ``app`` and quieten chatty libraries."""
    testing = app.config.get("TESTING", False)
    production = not (app.config.get("DEBUG", False) or testing)

    level_name = os.getenv("LOG_LEVEL", "INFO" if production else "DEBUG").upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.INFO

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if production else ReadableFormatter())

    root = logging.getLogger()
    # Idempotent across repeated create_app calls
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    app.logger.setLevel(level)

    if not testing:
        app.logger.info("Logging configured level=%s json=%s", level_name, production)
