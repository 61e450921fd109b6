"""
Kaizen Idea Tracker
Tests - Review Workflow Engine.

Covers:
    1. Reward amounts and notification fan-out per target status
    2. Authorization and input validation (no side effects)
    3. Missing / soft-deleted ideas and missing ledger entries
    4. Transition policies (permissive default, strict graph)
    5. Award guard flag
    6. Atomicity: mid-transition failures roll everything back
"""

import pytest
from sqlalchemy import exc as sa_exc
from sqlalchemy import func, select

from kaizen.core.exceptions import (
    NotFoundError,
    ServerError,
    StoreTimeoutError,
    UnauthorizedError,
    ValidationError,
)
from kaizen.models import db
from kaizen.models.employee import Employee
from kaizen.models.idea import Idea
from kaizen.models.notification import Notification
from kaizen.services.credit_ledger import CreditLedger
from kaizen.services.notification import NotificationService
from kaizen.services.review_workflow import (
    PERMISSIVE_TRANSITIONS,
    STRICT_TRANSITIONS,
    ReviewWorkflowEngine,
    is_transition_allowed,
)


def _engine(**kwargs):
    notifier = NotificationService(db.session)
    return ReviewWorkflowEngine(db.session, notifier, CreditLedger(db.session, notifier), **kwargs)


def _notifications_for(employee_number):
    return db.session.execute(
        select(Notification)
        .where(Notification.recipient_employee_number == employee_number)
        .order_by(Notification.id)
    ).scalars().all()


def _notification_total():
    return db.session.execute(select(func.count(Notification.id))).scalar_one()


def _balance(employee_number):
    return db.session.execute(
        select(Employee.credit_points).where(Employee.employee_number == employee_number)
    ).scalar_one()


# ═══════════════════════════════════════════════════════════════════════════
#  TEST CLASS 1: Rewards & fan-out
# ═══════════════════════════════════════════════════════════════════════════

class TestRewards:

    def test_implemented_scenario(self, make_employee, make_idea):
        make_employee("EMP003", credit_points=5)
        idea = make_idea("Label the racks", submitted_by="EMP003")

        updated = _engine().update_status(idea.id, "u-admin", "admin", "implemented")

        assert updated.status == "implemented"
        assert _balance("EMP003") == 25
        notes = _notifications_for("EMP003")
        assert [n.type for n in notes] == ["idea_status_updated", "credit_points_updated"]
        assert notes[0].message == 'Your idea "Label the racks" status has been updated to implemented'
        assert "20" in notes[1].message
        assert all(n.related_id == idea.id and n.related_model == "Idea" for n in notes)

    def test_approved_awards_ten(self, make_employee, make_idea):
        make_employee("EMP001")
        idea = make_idea(submitted_by="EMP001")
        _engine().update_status(idea.id, "u-rev", "reviewer", "approved")
        assert _balance("EMP001") == 10
        assert len(_notifications_for("EMP001")) == 2

    @pytest.mark.parametrize("status", ["ongoing", "rejected", "under_review"])
    def test_non_reward_status_notifies_once(self, make_employee, make_idea, status):
        make_employee("EMP001", credit_points=3)
        idea = make_idea(submitted_by="EMP001", status="approved")
        _engine().update_status(idea.id, "u-rev", "reviewer", status)
        assert _balance("EMP001") == 3
        notes = _notifications_for("EMP001")
        assert [n.type for n in notes] == ["idea_status_updated"]

    def test_review_fields_recorded(self, make_employee, make_idea):
        make_employee("EMP001")
        idea = make_idea(submitted_by="EMP001", priority="low")
        updated = _engine().update_status(
            idea.id, "u-42", "admin", "ongoing",
            review_comments="Pilot on line 2", priority="urgent",
        )
        assert updated.reviewed_by == "u-42"
        assert updated.reviewed_at is not None
        assert updated.review_comments == "Pilot on line 2"
        assert updated.priority == "urgent"

    def test_empty_comments_keep_previous(self, make_employee, make_idea):
        make_employee("EMP001")
        idea = make_idea(submitted_by="EMP001")
        engine = _engine()
        engine.update_status(idea.id, "u-1", "admin", "ongoing", review_comments="First look")
        engine.update_status(idea.id, "u-1", "admin", "rejected", review_comments="")
        assert db.session.get(Idea, idea.id).review_comments == "First look"

    def test_repeated_approval_awards_again_by_default(self, make_employee, make_idea):
        make_employee("EMP001")
        idea = make_idea(submitted_by="EMP001")
        engine = _engine()
        engine.update_status(idea.id, "u-1", "admin", "approved")
        engine.update_status(idea.id, "u-1", "admin", "approved")
        assert _balance("EMP001") == 20

    def test_award_guard_skips_repeat(self, make_employee, make_idea):
        make_employee("EMP001")
        idea = make_idea(submitted_by="EMP001")
        engine = _engine(award_only_on_status_change=True)
        engine.update_status(idea.id, "u-1", "admin", "approved")
        engine.update_status(idea.id, "u-1", "admin", "approved")
        assert _balance("EMP001") == 10
        types = [n.type for n in _notifications_for("EMP001")]
        assert types.count("credit_points_updated") == 1
        assert types.count("idea_status_updated") == 2

    def test_custom_reward_points(self, make_employee, make_idea):
        make_employee("EMP001")
        idea = make_idea(submitted_by="EMP001")
        _engine(reward_points={"approved": 7}).update_status(idea.id, "u-1", "admin", "approved")
        assert _balance("EMP001") == 7


# ═══════════════════════════════════════════════════════════════════════════
#  TEST CLASS 2: Rejections before mutation
# ═══════════════════════════════════════════════════════════════════════════

class TestRejections:

    @pytest.mark.parametrize("role", ["employee", "guest", None])
    def test_non_reviewer_is_unauthorized(self, make_employee, make_idea, role):
        make_employee("EMP001")
        idea = make_idea(submitted_by="EMP001")
        with pytest.raises(UnauthorizedError):
            _engine().update_status(idea.id, "u-9", role, "approved")
        assert db.session.get(Idea, idea.id).status == "under_review"
        assert _balance("EMP001") == 0
        assert _notification_total() == 0

    def test_missing_caller_id_is_unauthorized(self, make_idea):
        idea = make_idea()
        with pytest.raises(UnauthorizedError) as exc_info:
            _engine().update_status(idea.id, "", "admin", "approved")
        assert exc_info.value.role is None

    def test_unknown_status(self, make_idea):
        idea = make_idea()
        with pytest.raises(ValidationError) as exc_info:
            _engine().update_status(idea.id, "u-1", "admin", "done")
        assert "status" in exc_info.value.details
        assert _notification_total() == 0

    def test_unknown_priority(self, make_idea):
        idea = make_idea()
        with pytest.raises(ValidationError) as exc_info:
            _engine().update_status(idea.id, "u-1", "admin", "ongoing", priority="critical")
        assert "priority" in exc_info.value.details

    def test_missing_idea(self):
        with pytest.raises(NotFoundError):
            _engine().update_status(999, "u-1", "admin", "approved")

    def test_soft_deleted_idea(self, make_employee, make_idea):
        make_employee("EMP001")
        idea = make_idea(submitted_by="EMP001", is_active=False)
        with pytest.raises(NotFoundError):
            _engine().update_status(idea.id, "u-1", "admin", "approved")
        assert _balance("EMP001") == 0

    def test_missing_ledger_entry_aborts_transition(self, make_idea):
        idea = make_idea(submitted_by="EMP404")
        with pytest.raises(NotFoundError):
            _engine().update_status(idea.id, "u-1", "admin", "approved")
        assert db.session.get(Idea, idea.id).status == "under_review"
        assert _notification_total() == 0


# ═══════════════════════════════════════════════════════════════════════════
#  TEST CLASS 3: Transition policies
# ═══════════════════════════════════════════════════════════════════════════

class TestTransitionPolicy:

    def test_permissive_allows_everything(self):
        assert is_transition_allowed("implemented", "under_review")
        assert is_transition_allowed("rejected", "implemented", PERMISSIVE_TRANSITIONS)

    def test_strict_graph(self):
        assert is_transition_allowed("under_review", "approved", STRICT_TRANSITIONS)
        assert is_transition_allowed("approved", "implemented", STRICT_TRANSITIONS)
        assert is_transition_allowed("rejected", "under_review", STRICT_TRANSITIONS)
        assert not is_transition_allowed("under_review", "implemented", STRICT_TRANSITIONS)
        assert not is_transition_allowed("implemented", "approved", STRICT_TRANSITIONS)
        assert not is_transition_allowed("approved", "approved", STRICT_TRANSITIONS)

    def test_strict_engine_rejects_illegal_move(self, make_employee, make_idea):
        make_employee("EMP001")
        idea = make_idea(submitted_by="EMP001", status="implemented")
        with pytest.raises(ValidationError):
            _engine(policy=STRICT_TRANSITIONS).update_status(idea.id, "u-1", "admin", "under_review")
        assert db.session.get(Idea, idea.id).status == "implemented"
        assert _notification_total() == 0

    def test_policy_from_config(self, app_config, make_employee, make_idea):
        app_config(KAIZEN_TRANSITION_POLICY="strict")
        make_employee("EMP001")
        idea = make_idea(submitted_by="EMP001")
        engine = ReviewWorkflowEngine.from_app()
        assert engine.policy is STRICT_TRANSITIONS
        with pytest.raises(ValidationError):
            engine.update_status(idea.id, "u-1", "admin", "implemented")

    def test_unknown_policy_name(self, app_config):
        app_config(KAIZEN_TRANSITION_POLICY="anything-goes")
        with pytest.raises(RuntimeError):
            ReviewWorkflowEngine.from_app()


# ═══════════════════════════════════════════════════════════════════════════
#  TEST CLASS 4: Atomicity
# ═══════════════════════════════════════════════════════════════════════════

class TestAtomicity:

    def test_store_timeout_rolls_back(self, make_employee, make_idea, monkeypatch):
        make_employee("EMP001", credit_points=5)
        idea = make_idea(submitted_by="EMP001")
        engine = _engine()

        def _locked(*args, **kwargs):
            raise sa_exc.OperationalError("UPDATE employees", {}, Exception("database is locked"))

        monkeypatch.setattr(engine.ledger, "increment_credits", _locked)
        with pytest.raises(StoreTimeoutError):
            engine.update_status(idea.id, "u-1", "admin", "approved")

        fresh = db.session.get(Idea, idea.id)
        assert fresh.status == "under_review"
        assert fresh.reviewed_by is None
        assert _balance("EMP001") == 5
        assert _notification_total() == 0

    def test_failed_award_notification_rolls_back_points(self, make_employee, make_idea, monkeypatch):
        make_employee("EMP001", credit_points=5)
        idea = make_idea(submitted_by="EMP001")
        engine = _engine()
        original = engine.notifier.notify

        def _notify(notification_type, *args, **kwargs):
            if notification_type == "credit_points_updated":
                raise sa_exc.IntegrityError("INSERT INTO notifications", {}, Exception("boom"))
            return original(notification_type, *args, **kwargs)

        monkeypatch.setattr(engine.notifier, "notify", _notify)
        with pytest.raises(ServerError):
            engine.update_status(idea.id, "u-1", "admin", "implemented")

        assert db.session.get(Idea, idea.id).status == "under_review"
        assert _balance("EMP001") == 5
        assert _notification_total() == 0
