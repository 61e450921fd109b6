"""
Shared pytest fixtures for the Kaizen Idea Tracker test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - make_employee / make_idea / make_notification: ORM row factories
    - headers_for: trusted identity headers for API calls
"""

from datetime import datetime, timezone

import pytest

from kaizen import create_app
from kaizen.models import db as _db
from kaizen.models.employee import Employee
from kaizen.models.idea import Idea
from kaizen.models.notification import Notification


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield _db.session
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture()
def app_config(app):
    """Override app config for a single test, restoring it afterwards."""
    saved = {}

    def _set(**values):
        for key, value in values.items():
            saved.setdefault(key, app.config.get(key))
            app.config[key] = value

    yield _set
    app.config.update(saved)


# ── Row factories ────────────────────────────────────────────────────────


@pytest.fixture()
def make_employee():
    def _make(employee_number="EMP001", *, name=None, email=None, department="Production",
              role="employee", credit_points=0, is_active=True):
        emp = Employee(
            employee_number=employee_number,
            name=name or f"Employee {employee_number}",
            email=email or f"{employee_number.lower()}@example.com",
            department=department,
            role=role,
            credit_points=credit_points,
            is_active=is_active,
        )
        _db.session.add(emp)
        _db.session.commit()
        return emp
    return _make


@pytest.fixture()
def make_idea():
    def _make(title="Reduce changeover time", *, submitted_by="EMP001", name="Ayse Demir",
              department="Production", status="under_review", priority="medium",
              problem="Changeover takes 45 minutes", estimated_savings=0,
              is_active=True, created_at=None):
        idea = Idea(
            title=title,
            problem=problem,
            improvement="Pre-stage tooling",
            benefit="Less downtime",
            department=department,
            status=status,
            priority=priority,
            submitted_by_employee_number=submitted_by,
            submitted_by_name=name,
            estimated_savings=estimated_savings,
            is_active=is_active,
            created_at=created_at or datetime.now(timezone.utc),
        )
        _db.session.add(idea)
        _db.session.commit()
        return idea
    return _make


@pytest.fixture()
def make_notification():
    def _make(*, role="all", employee_number=None, is_read=False, is_active=True,
              notification_type="system_update", title="Heads up", message="Details"):
        notif = Notification(
            type=notification_type,
            title=title,
            message=message,
            recipient_role=role,
            recipient_employee_number=employee_number,
            is_read=is_read,
            is_active=is_active,
        )
        _db.session.add(notif)
        _db.session.commit()
        return notif
    return _make


# ── Identity ─────────────────────────────────────────────────────────────


@pytest.fixture()
def headers_for():
    """Trusted gateway headers (API_AUTH_ENABLED=false in testing)."""
    def _headers(role="admin", caller_id="u-admin", employee_number=None):
        headers = {"X-User-Id": caller_id, "X-User-Role": role}
        if employee_number:
            headers["X-Employee-Number"] = employee_number
        return headers
    return _headers
