"""
Kaizen Idea Tracker
Idea domain model.

Models:
    - Idea: one submitted improvement proposal and its review state
"""

from datetime import datetime, timezone

from sqlalchemy.orm import validates

from kaizen.core.exceptions import ValidationError
from kaizen.models import db
from kaizen.models.soft_delete import SoftDeleteMixin


# ── Constants ────────────────────────────────────────────────────────────────

# Ordered: the listing endpoint returns these as-is for filter dropdowns.
IDEA_STATUSES = ("under_review", "ongoing", "approved", "implemented", "rejected")
IDEA_PRIORITIES = ("low", "medium", "high", "urgent")

DEFAULT_STATUS = "under_review"
DEFAULT_PRIORITY = "medium"


def _utcnow():
    return datetime.now(timezone.utc)


class Idea(SoftDeleteMixin, db.Model):
    """
    Improvement idea entity.

    Created on submission, mutated only by the review workflow engine,
    never hard-deleted.
    """

    __tablename__ = "ideas"
    __table_args__ = (
        db.CheckConstraint("estimated_savings >= 0", name="ck_ideas_estimated_savings_non_negative"),
        db.Index("ix_ideas_status_active", "status", "is_active"),
    )

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(300), nullable=False)
    problem = db.Column(db.Text, nullable=False, default="")
    improvement = db.Column(db.Text, nullable=False, default="")
    benefit = db.Column(db.Text, nullable=False, default="")
    department = db.Column(db.String(120), nullable=False, index=True)
    priority = db.Column(db.String(20), nullable=False, default=DEFAULT_PRIORITY)
    status = db.Column(db.String(30), nullable=False, default=DEFAULT_STATUS)

    submitted_by_employee_number = db.Column(db.String(50), nullable=False, index=True)
    submitted_by_name = db.Column(db.String(200), nullable=False, default="")
    estimated_savings = db.Column(db.Float, nullable=False, default=0)

    # Review audit - set together, only by an admin/reviewer transition
    reviewed_by = db.Column(db.String(150), nullable=True)
    reviewed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    review_comments = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow, index=True)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    @validates("estimated_savings")
    def _validate_estimated_savings(self, key, value):
        if value is None:
            return 0
        if value < 0:
            raise ValidationError(
                "estimatedSavings must be >= 0",
                details={"estimatedSavings": value},
            )
        return value

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "problem": self.problem,
            "improvement": self.improvement,
            "benefit": self.benefit,
            "department": self.department,
            "priority": self.priority,
            "status": self.status,
            "submittedByEmployeeNumber": self.submitted_by_employee_number,
            "submittedByName": self.submitted_by_name,
            "estimatedSavings": self.estimated_savings,
            "reviewedBy": self.reviewed_by,
            "reviewedAt": self.reviewed_at.isoformat() if self.reviewed_at else None,
            "reviewComments": self.review_comments,
            "isActive": self.is_active,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Idea {self.id}: {self.title[:40]} [{self.status}]>"
