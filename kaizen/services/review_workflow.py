"""
Kaizen Idea Tracker
Review Workflow Engine.

Manages idea status transitions with:
  - Role check (admin / reviewer only)
  - Input validation against IDEA_STATUSES / IDEA_PRIORITIES
  - Transition legality via is_transition_allowed (permissive by default)
  - Side effects: review audit fields, submitter notification, credit award
    and award notification for approved / implemented

The status write, the ledger increment and both notifications run in one
unit of work, so a transition is applied completely or not at all.

Usage:
    from kaizen.services.review_workflow import ReviewWorkflowEngine

    engine = ReviewWorkflowEngine.from_app()
    idea = engine.update_status(
        idea_id=7,
        caller_id="u-1",
        caller_role="admin",
        new_status="implemented",
        review_comments="Great work",
        priority="high",
    )
"""

import logging
from datetime import datetime, timezone

from flask import current_app
from sqlalchemy import select

from kaizen.core.exceptions import NotFoundError, UnauthorizedError, ValidationError
from kaizen.models import db
from kaizen.models.idea import IDEA_PRIORITIES, IDEA_STATUSES, Idea
from kaizen.services.credit_ledger import CreditLedger
from kaizen.services.notification import NotificationService
from kaizen.services.unit_of_work import unit_of_work

logger = logging.getLogger(__name__)

REVIEWER_ROLES = frozenset({"admin", "reviewer"})

# Points awarded to the submitter when an idea enters these statuses.
DEFAULT_REWARD_POINTS = {"approved": 10, "implemented": 20}


# ── Transition policy ────────────────────────────────────────────────────────


class TransitionPolicy:
    """Status adjacency rules. ``allowed=None`` accepts any move."""

    def __init__(self, name: str, allowed: dict[str, frozenset[str]] | None = None):
        self.name = name
        self.allowed = allowed

    def allows(self, current: str, target: str) -> bool:
        if self.allowed is None:
            return True
        return target in self.allowed.get(current, frozenset())

    def __repr__(self):
        return f"<TransitionPolicy {self.name}>"


PERMISSIVE_TRANSITIONS = TransitionPolicy("permissive")

STRICT_TRANSITIONS = TransitionPolicy("strict", {
    "under_review": frozenset({"ongoing", "approved", "rejected"}),
    "ongoing": frozenset({"under_review", "approved", "rejected"}),
    "approved": frozenset({"ongoing", "implemented", "rejected"}),
    "implemented": frozenset(),
    "rejected": frozenset({"under_review"}),
})

TRANSITION_POLICIES = {
    PERMISSIVE_TRANSITIONS.name: PERMISSIVE_TRANSITIONS,
    STRICT_TRANSITIONS.name: STRICT_TRANSITIONS,
}


def is_transition_allowed(current: str, target: str,
                          policy: TransitionPolicy = PERMISSIVE_TRANSITIONS) -> bool:
    """Single legality check for every idea status change."""
    return policy.allows(current, target)


# ── Engine ───────────────────────────────────────────────────────────────────


class ReviewWorkflowEngine:
    """
    Transaction coordinator for idea review.

    Owns none of the stores: it mutates the Idea, asks the CreditLedger for
    an atomic increment and asks the NotificationService to dispatch, all on
    the same session.
    """

    def __init__(
        self,
        session,
        notifier: NotificationService,
        ledger: CreditLedger,
        *,
        policy: TransitionPolicy = PERMISSIVE_TRANSITIONS,
        reward_points: dict[str, int] | None = None,
        award_only_on_status_change: bool = False,
    ):
        self.session = session
        self.notifier = notifier
        self.ledger = ledger
        self.policy = policy
        self.reward_points = dict(reward_points or DEFAULT_REWARD_POINTS)
        self.award_only_on_status_change = award_only_on_status_change

    @classmethod
    def from_app(cls, session=None):
        """Wire an engine from the current app config and the request session."""
        cfg = current_app.config
        session = session if session is not None else db.session
        policy_name = cfg.get("KAIZEN_TRANSITION_POLICY", PERMISSIVE_TRANSITIONS.name)
        policy = TRANSITION_POLICIES.get(policy_name)
        if policy is None:
            raise RuntimeError(
                f"Unknown KAIZEN_TRANSITION_POLICY {policy_name!r}; "
                f"expected one of {sorted(TRANSITION_POLICIES)}"
            )
        notifier = NotificationService.from_app(session)
        return cls(
            session,
            notifier,
            CreditLedger(session, notifier=notifier),
            policy=policy,
            reward_points=cfg.get("KAIZEN_REWARD_POINTS"),
            award_only_on_status_change=bool(cfg.get("KAIZEN_AWARD_ONLY_ON_STATUS_CHANGE", False)),
        )

    def reward_for(self, status: str) -> int:
        return self.reward_points.get(status, 0)

    # ── Transition ────────────────────────────────────────────────────────

    def update_status(
        self,
        idea_id: int,
        caller_id: str,
        caller_role: str,
        new_status: str,
        review_comments: str | None = None,
        priority: str | None = None,
    ) -> Idea:
        """
        Move an idea to ``new_status`` and fire the review side effects.

        Returns:
            The updated Idea.

        Raises:
            UnauthorizedError: caller is not an admin or reviewer.
            ValidationError: unknown status/priority or a transition the
                active policy rejects.
            NotFoundError: idea missing or soft-deleted, or (during an
                award) the submitter has no active ledger entry.
            StoreTimeoutError, ServerError: store failure; nothing applied.
        """
        if not caller_id or caller_role not in REVIEWER_ROLES:
            raise UnauthorizedError(caller_role if caller_id else None, REVIEWER_ROLES)

        errors = {}
        if new_status not in IDEA_STATUSES:
            errors["status"] = f"must be one of {list(IDEA_STATUSES)}"
        if priority and priority not in IDEA_PRIORITIES:
            errors["priority"] = f"must be one of {list(IDEA_PRIORITIES)}"
        if errors:
            raise ValidationError("Invalid status update", details=errors)

        with unit_of_work(self.session, resource="Idea"):
            idea = self._load_for_update(idea_id)
            previous_status = idea.status
            if not is_transition_allowed(previous_status, new_status, self.policy):
                raise ValidationError(
                    f"Cannot move idea {idea_id} from '{previous_status}' to '{new_status}'",
                    details={"status": f"transition not allowed by {self.policy.name} policy"},
                )

            idea.status = new_status
            idea.reviewed_by = str(caller_id)
            idea.reviewed_at = datetime.now(timezone.utc)
            if review_comments:
                idea.review_comments = review_comments
            if priority:
                idea.priority = priority

            self.notifier.notify(
                "idea_status_updated",
                "Idea Status Updated",
                f'Your idea "{idea.title}" status has been updated to {new_status}',
                employee_number=idea.submitted_by_employee_number,
                related_id=idea.id,
                related_model="Idea",
                commit=False,
            )
            awarded = self._award(idea, previous_status, new_status)

        logger.info(
            "Idea %s: %s -> %s by %s (%s), awarded=%d",
            idea_id, previous_status, new_status, caller_id, caller_role, awarded,
            extra={"idea_id": idea_id, "event_type": "idea_status_updated",
                   "employee_number": idea.submitted_by_employee_number},
        )
        return idea

    def _load_for_update(self, idea_id):
        idea = self.session.execute(
            select(Idea).where(Idea.id == idea_id).with_for_update()
        ).scalar_one_or_none()
        if idea is None or not idea.is_active:
            raise NotFoundError(resource="Idea", resource_id=idea_id)
        return idea

    def _award(self, idea, previous_status, new_status):
        """Credit the submitter for approved / implemented. Returns points awarded."""
        amount = self.reward_for(new_status)
        if not amount:
            return 0
        if self.award_only_on_status_change and previous_status == new_status:
            return 0

        self.ledger.increment_credits(idea.submitted_by_employee_number, amount, commit=False)
        self.notifier.notify(
            "credit_points_updated",
            "Credit Points Awarded",
            f'You have been awarded {amount} credit points for your idea "{idea.title}"',
            employee_number=idea.submitted_by_employee_number,
            related_id=idea.id,
            related_model="Idea",
            commit=False,
        )
        return amount
