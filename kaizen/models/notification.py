"""
Kaizen Idea Tracker
Notification domain model.

Models:
    - Notification: in-app notification record with read tracking
"""

from datetime import datetime, timezone

from kaizen.models import db
from kaizen.models.soft_delete import SoftDeleteMixin


# ── Constants ────────────────────────────────────────────────────────────────

NOTIFICATION_TYPES = frozenset({
    "idea_submitted",
    "idea_status_updated",
    "credit_points_updated",
    "new_reviewer_added",
    "idea_reviewed",
    "system_update",
    "employee_deleted",
})
RECIPIENT_ROLES = frozenset({"admin", "reviewer", "employee", "all"})
RELATED_MODELS = frozenset({"Idea", "Employee", "User"})
NOTIFICATION_PRIORITIES = frozenset({"low", "medium", "high", "urgent"})

BROADCAST_ROLE = "all"


class Notification(SoftDeleteMixin, db.Model):
    """
    In-app notification entity.

    One record per fan-out event, addressed to a role (``all`` is the
    catch-all) and optionally to a specific employee number. Never deleted;
    only the read state changes after creation.
    """

    __tablename__ = "notifications"
    __table_args__ = (
        db.Index("ix_notifications_employee_read", "recipient_employee_number", "is_read"),
        db.Index("ix_notifications_role_read", "recipient_role", "is_read"),
    )

    id = db.Column(db.Integer, primary_key=True)
    type = db.Column(db.String(40), nullable=False, index=True)
    title = db.Column(db.String(300), nullable=False)
    message = db.Column(db.Text, nullable=False)

    recipient_employee_number = db.Column(db.String(50), nullable=True)
    recipient_role = db.Column(db.String(20), nullable=False, default=BROADCAST_ROLE,
                               comment="Role name or 'all' for broadcast")

    # Link to source entity
    related_id = db.Column(db.Integer, nullable=True)
    related_model = db.Column(db.String(30), nullable=True, comment="Idea/Employee/User")

    priority = db.Column(db.String(20), nullable=False, default="medium")
    action_url = db.Column(db.String(500), nullable=True)

    # Read tracking
    is_read = db.Column(db.Boolean, nullable=False, default=False)
    read_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
                           index=True)

    def mark_read(self):
        self.is_read = True
        self.read_at = datetime.now(timezone.utc)

    def to_dict(self):
        return {
            "id": self.id,
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "recipientEmployeeNumber": self.recipient_employee_number,
            "recipientRole": self.recipient_role,
            "relatedId": self.related_id,
            "relatedModel": self.related_model,
            "priority": self.priority,
            "actionUrl": self.action_url,
            "isRead": self.is_read,
            "readAt": self.read_at.isoformat() if self.read_at else None,
            "isActive": self.is_active,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Notification {self.id}: {self.title[:40]}>"
