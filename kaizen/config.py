"""
Kaizen Idea Tracker
Configuration classes for the Flask App Factory.

Usage:
    config_name = os.getenv("APP_ENV", "development")
    app.config.from_object(config[config_name]())
"""

import os
import secrets

# Relative SQLite paths resolve inside the Flask instance folder
_SQLITE_DEV = "sqlite:///kaizen_dev.db"
_SQLITE_TEST = "sqlite:///:memory:"

# Generate a random key for development; production MUST use a stable env var
_DEV_SECRET = secrets.token_hex(32)


def _env_flag(name, default="false"):
    return os.getenv(name, default).lower() in ("1", "true", "yes")


def _database_url(default=None):
    # Railway/Heroku use postgres:// but SQLAlchemy 2.0 requires postgresql://
    raw = os.getenv("DATABASE_URL", "")
    return raw.replace("postgres://", "postgresql://", 1) if raw else default


def store_engine_options(database_uri, timeout_seconds):
    """
    Build SQLALCHEMY_ENGINE_OPTIONS that bound every store call.

    SQLite      → busy timeout on the DB-API connection
    PostgreSQL  → pool checkout timeout + statement/lock timeouts
    Other       → pool checkout timeout only
    """
    uri = database_uri or ""
    if uri.startswith("sqlite"):
        return {"connect_args": {"timeout": timeout_seconds}}

    options = {
        "pool_pre_ping": True,
        "pool_size": 5,
        "max_overflow": 10,
        "pool_recycle": 300,             # recycle connections every 5 min
        "pool_timeout": timeout_seconds,  # bounded wait for a pooled connection
    }
    if uri.startswith("postgresql"):
        millis = int(timeout_seconds * 1000)
        options["connect_args"] = {
            "options": f"-c statement_timeout={millis} -c lock_timeout={millis}",
        }
    return options


class Config:
    """Base configuration shared across all environments."""

    SECRET_KEY = os.getenv("SECRET_KEY", _DEV_SECRET)
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY")
    DEBUG = False
    TESTING = False

    # SQLAlchemy (engine options are derived from the URI in create_app)
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Rate-limit storage: Redis in production, memory for dev
    RATELIMIT_STORAGE_URI = os.getenv("REDIS_URL", "memory://")

    # CORS
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")

    # Identity: when disabled, trusted gateway headers supply the caller.
    API_AUTH_ENABLED = os.getenv("API_AUTH_ENABLED", "true")

    # ── Review workflow ──────────────────────────────────────────────────
    # Upper bound for any single store call (pool checkout, lock wait, statement)
    KAIZEN_STORE_TIMEOUT_SECONDS = int(os.getenv("KAIZEN_STORE_TIMEOUT_SECONDS", "10"))
    # "permissive": any status -> any status; "strict": see review_workflow.STRICT_TRANSITIONS
    KAIZEN_TRANSITION_POLICY = os.getenv("KAIZEN_TRANSITION_POLICY", "permissive")
    # Off: a repeated identical transition awards points again.
    KAIZEN_AWARD_ONLY_ON_STATUS_CHANGE = _env_flag("KAIZEN_AWARD_ONLY_ON_STATUS_CHANGE")
    KAIZEN_REWARD_POINTS = {"approved": 10, "implemented": 20}
    # Off: notification listing matches on role only.
    KAIZEN_NOTIFY_MATCH_EMPLOYEE = _env_flag("KAIZEN_NOTIFY_MATCH_EMPLOYEE")


class DevelopmentConfig(Config):
    """Development environment configuration."""

    DEBUG = True
    SQLALCHEMY_DATABASE_URI = _database_url(_SQLITE_DEV)
    # Auth disabled by default in development for convenience
    API_AUTH_ENABLED = os.getenv("API_AUTH_ENABLED", "false")


class TestingConfig(Config):
    """Testing environment configuration."""

    TESTING = True
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", _SQLITE_TEST)
    # Header-based identity in tests
    API_AUTH_ENABLED = "false"
    RATELIMIT_ENABLED = False


class ProductionConfig(Config):
    """Production environment configuration."""

    DEBUG = False
    SQLALCHEMY_DATABASE_URI = _database_url()
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "")  # Must be set explicitly in production

    def __init__(self):
        if not self.SQLALCHEMY_DATABASE_URI:
            raise RuntimeError("DATABASE_URL environment variable is required in production")
        if not os.getenv("SECRET_KEY"):
            raise RuntimeError("SECRET_KEY environment variable must be set in production")


# Configuration mapping: environment name -> config class
config = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "default": DevelopmentConfig,
}
