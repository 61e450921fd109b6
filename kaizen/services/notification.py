"""
Kaizen Idea Tracker
Notification Service.

Central dispatcher for creating, listing and acknowledging notifications.
The review workflow writes through ``notify(..., commit=False)`` so that the
notification joins the transition's unit of work.

Recipient matching lives in ``recipient_predicate`` only: listing, unread
counts and mark-all-read all use it, so widening the match to the
recipient employee number is a configuration change
(``KAIZEN_NOTIFY_MATCH_EMPLOYEE``) rather than a code change.
"""

import logging
from datetime import datetime, timezone

from flask import current_app
from sqlalchemy import and_, func, or_, select, update

from kaizen.core.exceptions import NotFoundError, ValidationError
from kaizen.models import db
from kaizen.models.notification import (
    BROADCAST_ROLE,
    NOTIFICATION_PRIORITIES,
    NOTIFICATION_TYPES,
    RECIPIENT_ROLES,
    RELATED_MODELS,
    Notification,
)
from kaizen.services.pagination import PageRequest
from kaizen.services.unit_of_work import store_call, unit_of_work

logger = logging.getLogger(__name__)


def _is_one_of(value, allowed):
    return isinstance(value, str) and value in allowed


def recipient_predicate(role, employee_number=None, *, match_employee=False):
    """
    SQL clause selecting the active notifications visible to a recipient.

    Default rule: ``recipient_role == role OR recipient_role == 'all'``.
    With ``match_employee`` the clause also matches rows addressed to
    ``employee_number`` directly.
    """
    audience = or_(
        Notification.recipient_role == role,
        Notification.recipient_role == BROADCAST_ROLE,
    )
    if match_employee and employee_number:
        audience = or_(audience, Notification.recipient_employee_number == employee_number)
    return and_(audience, Notification.active_clause())


class NotificationService:
    """Notification dispatcher bound to one store session."""

    def __init__(self, session, *, match_employee=False):
        self.session = session
        self.match_employee = match_employee

    @classmethod
    def from_app(cls, session=None):
        """Build a service from the current app config and the request session."""
        return cls(
            session if session is not None else db.session,
            match_employee=bool(current_app.config.get("KAIZEN_NOTIFY_MATCH_EMPLOYEE", False)),
        )

    # ── Create ────────────────────────────────────────────────────────────

    def notify(self, notification_type, title, message, *, employee_number=None,
               role=BROADCAST_ROLE, related_id=None, related_model=None,
               priority="medium", action_url=None, commit=True):
        """
        Create a single notification record.

        Args:
            employee_number: specific recipient, if any.
            role: recipient role; ``all`` reaches every role.
            commit: False joins the caller's open transaction (flush only).

        Returns:
            The created Notification instance.

        Raises:
            ValidationError: unknown type/role/priority/related_model or an
                empty title/message.
        """
        errors = {}
        if not _is_one_of(notification_type, NOTIFICATION_TYPES):
            errors["type"] = f"must be one of {sorted(NOTIFICATION_TYPES)}"
        if not _is_one_of(role, RECIPIENT_ROLES):
            errors["recipientRole"] = f"must be one of {sorted(RECIPIENT_ROLES)}"
        if not _is_one_of(priority, NOTIFICATION_PRIORITIES):
            errors["priority"] = f"must be one of {sorted(NOTIFICATION_PRIORITIES)}"
        if related_model is not None and not _is_one_of(related_model, RELATED_MODELS):
            errors["relatedModel"] = f"must be one of {sorted(RELATED_MODELS)}"
        for field, value in (("title", title), ("message", message)):
            if value is not None and not isinstance(value, str):
                errors[field] = "must be a string"
            elif not (value or "").strip():
                errors[field] = "is required"
        if employee_number is not None and not isinstance(employee_number, str):
            errors["recipientEmployeeNumber"] = "must be a string"
        if related_id is not None and (isinstance(related_id, bool) or not isinstance(related_id, int)):
            errors["relatedId"] = "must be an integer"
        if action_url is not None and not isinstance(action_url, str):
            errors["actionUrl"] = "must be a string"
        if errors:
            raise ValidationError("Invalid notification", details=errors)

        notif = Notification(
            type=notification_type,
            title=title.strip(),
            message=message.strip(),
            recipient_employee_number=employee_number,
            recipient_role=role,
            related_id=related_id,
            related_model=related_model,
            priority=priority,
            action_url=action_url,
        )
        if commit:
            with unit_of_work(self.session, resource="Notification"):
                self.session.add(notif)
        else:
            self.session.add(notif)
            self.session.flush()

        logger.info(
            "Notification dispatched",
            extra={"event_type": notification_type, "employee_number": employee_number,
                   "recipient_role": role},
        )
        return notif

    # ── Query ─────────────────────────────────────────────────────────────

    def _predicate(self, role, employee_number=None):
        return recipient_predicate(role, employee_number, match_employee=self.match_employee)

    @store_call("Notification")
    def list_for_recipient(self, role, employee_number=None, is_read=None, page=1, limit=20):
        """
        Retrieve notifications for a recipient, newest first.

        Returns:
            {notifications, unreadCount, total, totalPages, currentPage}
        """
        window = PageRequest.of(page, limit)
        where = self._predicate(role, employee_number)
        if is_read is not None:
            where = and_(where, Notification.is_read.is_(bool(is_read)))

        total = self.session.execute(
            select(func.count(Notification.id)).where(where)
        ).scalar_one()
        items = self.session.execute(
            select(Notification)
            .where(where)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .offset(window.offset)
            .limit(window.limit)
        ).scalars().all()

        return {
            "notifications": [n.to_dict() for n in items],
            "unreadCount": self.unread_count(role, employee_number),
            "total": total,
            "totalPages": window.total_pages(total),
            "currentPage": window.page,
        }

    @store_call("Notification")
    def unread_count(self, role, employee_number=None):
        """Return count of unread notifications."""
        return self.session.execute(
            select(func.count(Notification.id)).where(
                self._predicate(role, employee_number),
                Notification.is_read.is_(False),
            )
        ).scalar_one()

    # ── Actions ───────────────────────────────────────────────────────────

    def mark_read(self, notification_id):
        """Mark a single notification as read."""
        with unit_of_work(self.session, resource="Notification"):
            notif = self.session.get(Notification, notification_id)
            if notif is None:
                raise NotFoundError(resource="Notification", resource_id=notification_id)
            notif.mark_read()
        return notif

    def mark_all_read(self, role, employee_number=None):
        """Mark every active, unread notification for a recipient as read.

        Returns:
            Number of rows changed (0 is a valid result).
        """
        now = datetime.now(timezone.utc)
        with unit_of_work(self.session, resource="Notification"):
            result = self.session.execute(
                update(Notification)
                .where(self._predicate(role, employee_number), Notification.is_read.is_(False))
                .values(is_read=True, read_at=now)
                .execution_options(synchronize_session="fetch")
            )
            count = result.rowcount
        logger.info("Marked %d notifications read role=%s", count, role)
        return count
