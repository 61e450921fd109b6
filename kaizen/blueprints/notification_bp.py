"""
Kaizen Idea Tracker
Notification Blueprint.

Every route resolves the recipient from the caller's identity (role and
employee number); ``POST /notifications`` is the admin broadcast.
"""

import logging

from flask import Blueprint, jsonify, request

from kaizen.blueprints.errors import register_error_handlers
from kaizen.middleware.identity import current_identity, require_roles
from kaizen.services.notification import NotificationService
from kaizen.utils.helpers import json_object, parse_bool

logger = logging.getLogger(__name__)

notification_bp = Blueprint("notification", __name__, url_prefix="/api/v1")
register_error_handlers(notification_bp)


@notification_bp.route("/notifications", methods=["GET"])
@require_roles()
def list_notifications():
    """
    Notifications visible to the caller, newest first.

    Query params: page, limit, isRead (true/false)
    """
    identity = current_identity()
    result = NotificationService.from_app().list_for_recipient(
        identity.role,
        identity.employee_number,
        is_read=parse_bool(request.args.get("isRead")),
        page=request.args.get("page", 1, type=int),
        limit=request.args.get("limit", 20, type=int),
    )
    return jsonify(result), 200


@notification_bp.route("/notifications/unread-count", methods=["GET"])
@require_roles()
def unread_count():
    identity = current_identity()
    count = NotificationService.from_app().unread_count(identity.role, identity.employee_number)
    return jsonify({"count": count}), 200


@notification_bp.route("/notifications/read-all", methods=["PATCH"])
@require_roles()
def mark_all_read():
    identity = current_identity()
    count = NotificationService.from_app().mark_all_read(identity.role, identity.employee_number)
    return jsonify({"message": "All notifications marked as read", "count": count}), 200


@notification_bp.route("/notifications/<int:notification_id>/read", methods=["PATCH"])
@require_roles()
def mark_read(notification_id):
    notif = NotificationService.from_app().mark_read(notification_id)
    return jsonify(notif.to_dict()), 200


@notification_bp.route("/notifications", methods=["POST"])
@require_roles("admin")
def create_notification():
    """
    Dispatch a notification.

    Body: {type, title, message, recipientEmployeeNumber?, recipientRole?,
           relatedId?, relatedModel?, priority?, actionUrl?}
    """
    data = json_object(request.get_json(silent=True))
    notif = NotificationService.from_app().notify(
        data.get("type"),
        data.get("title"),
        data.get("message"),
        employee_number=data.get("recipientEmployeeNumber"),
        role=data.get("recipientRole") or "all",
        related_id=data.get("relatedId"),
        related_model=data.get("relatedModel"),
        priority=data.get("priority") or "medium",
        action_url=data.get("actionUrl"),
    )
    return jsonify(notif.to_dict()), 201
