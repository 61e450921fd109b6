"""
Kaizen Idea Tracker
Idea Blueprint.

Endpoints:
    GET   /api/v1/ideas                   - filtered, sorted, paginated listing
    GET   /api/v1/ideas/<id>              - single active idea
    PATCH /api/v1/ideas/<id>/status       - review transition (admin, reviewer)
    GET   /api/v1/ideas/stats/dashboard   - dashboard aggregates

Query params for listing:
    page, limit, status, department, priority, search, sortBy, sortOrder
"""

import logging

from flask import Blueprint, jsonify, request

from kaizen.blueprints.errors import register_error_handlers
from kaizen.middleware.identity import current_identity, require_roles
from kaizen.services.idea_query import IdeaFilter, IdeaQueryService, IdeaSort
from kaizen.services.review_workflow import REVIEWER_ROLES, ReviewWorkflowEngine
from kaizen.utils.helpers import json_object, string_field

logger = logging.getLogger(__name__)

idea_bp = Blueprint("idea", __name__, url_prefix="/api/v1")
register_error_handlers(idea_bp)


@idea_bp.route("/ideas", methods=["GET"])
@require_roles()
def list_ideas():
    """List active ideas with filter-UI metadata."""
    result = IdeaQueryService.from_app().list_ideas(
        IdeaFilter.from_args(request.args),
        IdeaSort.from_args(request.args),
        page=request.args.get("page", 1, type=int),
        limit=request.args.get("limit", 20, type=int),
    )
    return jsonify(result), 200


@idea_bp.route("/ideas/stats/dashboard", methods=["GET"])
@require_roles()
def dashboard_stats():
    return jsonify(IdeaQueryService.from_app().dashboard_stats()), 200


@idea_bp.route("/ideas/<int:idea_id>", methods=["GET"])
@require_roles()
def get_idea(idea_id):
    idea = IdeaQueryService.from_app().get_idea(idea_id)
    return jsonify(idea.to_dict()), 200


@idea_bp.route("/ideas/<int:idea_id>/status", methods=["PATCH"])
@require_roles(*REVIEWER_ROLES)
def update_idea_status(idea_id):
    """
    Move an idea through the review workflow.

    Body: {status, reviewComments?, priority?}
    Returns: the updated idea.
    """
    data = json_object(request.get_json(silent=True))
    status = string_field(data, "status", required=True)

    identity = current_identity()
    idea = ReviewWorkflowEngine.from_app().update_status(
        idea_id,
        caller_id=identity.caller_id,
        caller_role=identity.role,
        new_status=status,
        review_comments=string_field(data, "reviewComments"),
        priority=string_field(data, "priority"),
    )
    return jsonify({"message": "Idea status updated successfully", "idea": idea.to_dict()}), 200
