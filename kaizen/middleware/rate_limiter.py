"""
Per-blueprint rate limits (Flask-Limiter).

The Limiter in kaizen/__init__.py carries no default limit; the limits
below are attached to blueprints once they are registered:

    ideas, notifications   200/minute   (UI polling)
    employees               60/minute   (administration)
    health                  exempt

Keys are the remote address. Skipped entirely when TESTING is set.
"""

import logging

logger = logging.getLogger(__name__)

BLUEPRINT_LIMITS = {
    "idea": "200/minute",
    "notification": "200/minute",
    "employee": "60/minute",
}
EXEMPT_BLUEPRINTS = ("health",)


def init_rate_limits(app, limiter):
    """Attach BLUEPRINT_LIMITS to the registered blueprints of ``app``."""
    if app.config.get("TESTING"):
        logger.info("Rate limiter disabled (TESTING=True)")
        return

    for name, limit in BLUEPRINT_LIMITS.items():
        bp = app.blueprints.get(name)
        if bp is not None:
            limiter.limit(limit)(bp)
    for name in EXEMPT_BLUEPRINTS:
        bp = app.blueprints.get(name)
        if bp is not None:
            limiter.exempt(bp)

    logger.info("Rate limits applied: %s", BLUEPRINT_LIMITS)
