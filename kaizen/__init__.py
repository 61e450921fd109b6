"""
Kaizen Idea Tracker
Flask Application Factory.

Usage:
    from kaizen import create_app
    app = create_app()           # defaults to APP_ENV or "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

from flask import Flask, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate

from kaizen.config import config, store_engine_options
from kaizen.models import db
from kaizen.middleware.identity import init_identity_middleware
from kaizen.middleware.logging_config import configure_logging
from kaizen.middleware.rate_limiter import init_rate_limits
from kaizen.middleware.timing import init_request_timing

logger = logging.getLogger(__name__)

migrate = Migrate()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],                     # no global limit - apply per-blueprint
)


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name.
                     One of: "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config[config_name]())
    app.config.setdefault(
        "SQLALCHEMY_ENGINE_OPTIONS",
        store_engine_options(
            app.config.get("SQLALCHEMY_DATABASE_URI"),
            app.config["KAIZEN_STORE_TIMEOUT_SECONDS"],
        ),
    )

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins and cors_origins != "*":
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()])
    else:
        CORS(app)

    # ── Request timing middleware ────────────────────────────────────────
    init_request_timing(app)

    # ── Trusted caller identity (sets g.identity) ────────────────────────
    init_identity_middleware(app)

    # ── Import all models so Alembic can detect them ─────────────────────
    from kaizen.models import employee as _employee_models          # noqa: F401
    from kaizen.models import idea as _idea_models                  # noqa: F401
    from kaizen.models import notification as _notification_models  # noqa: F401

    # ── Auto-create tables (CREATE IF NOT EXISTS) ────────────────────────
    with app.app_context():
        db.create_all()

    # ── Blueprints ───────────────────────────────────────────────────────
    from kaizen.blueprints.employee_bp import employee_bp
    from kaizen.blueprints.health_bp import health_bp
    from kaizen.blueprints.idea_bp import idea_bp
    from kaizen.blueprints.notification_bp import notification_bp

    app.register_blueprint(idea_bp)
    app.register_blueprint(notification_bp)
    app.register_blueprint(employee_bp)
    app.register_blueprint(health_bp)

    # ── Error handlers ───────────────────────────────────────────────────
    @app.errorhandler(404)
    def not_found(e):
        return {"error": "Not found", "code": "ERR_NOT_FOUND", "path": request.path}, 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return {"error": "Method not allowed"}, 405

    @app.errorhandler(429)
    def rate_limited(e):
        return {"error": "Too many requests", "retry_after": e.description}, 429

    @app.errorhandler(500)
    def server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        return {"error": "Internal server error", "code": "ERR_INTERNAL"}, 500

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app, limiter)

    logger.info("Kaizen app created (config=%s)", config_name)
    return app
