"""
Kaizen Idea Tracker
Employee Blueprint - leaderboard and employee administration.

Endpoints:
    GET    /api/v1/employees                   - filtered, sorted, paginated listing
    GET    /api/v1/employees/leaderboard       - credit leaderboard
    POST   /api/v1/employees                   - create (admin)
    GET    /api/v1/employees/<id>              - single active employee
    PUT    /api/v1/employees/<id>              - profile update (admin)
    PATCH  /api/v1/employees/<id>/credits      - credit correction (admin)
    DELETE /api/v1/employees/<id>              - soft delete (admin)

Query params for listing and leaderboard:
    department, search, sortBy, sortOrder, limit (+ page for the listing)
"""

import logging

from flask import Blueprint, jsonify, request

from kaizen.blueprints.errors import register_error_handlers
from kaizen.middleware.identity import require_roles
from kaizen.services.credit_ledger import CreditLedger
from kaizen.services.employee_query import EmployeeFilter, EmployeeSort
from kaizen.services.employee_service import EmployeeService
from kaizen.services.notification import NotificationService
from kaizen.utils.helpers import json_object, string_field

logger = logging.getLogger(__name__)

employee_bp = Blueprint("employee", __name__, url_prefix="/api/v1")
register_error_handlers(employee_bp)


def _employee_service():
    return EmployeeService.from_app(NotificationService.from_app())


@employee_bp.route("/employees", methods=["GET"])
@require_roles()
def list_employees():
    result = _employee_service().list_employees(
        EmployeeFilter.from_args(request.args),
        EmployeeSort.from_args(request.args),
        page=request.args.get("page", 1, type=int),
        limit=request.args.get("limit", 50, type=int),
    )
    return jsonify(result), 200


@employee_bp.route("/employees/leaderboard", methods=["GET"])
@require_roles()
def leaderboard():
    result = CreditLedger.from_app().leaderboard(
        department=request.args.get("department"),
        search=request.args.get("search"),
        limit=request.args.get("limit", 100, type=int),
        sort=EmployeeSort.from_args(request.args),
    )
    return jsonify(result), 200


@employee_bp.route("/employees", methods=["POST"])
@require_roles("admin")
def create_employee():
    data = json_object(request.get_json(silent=True))
    employee = _employee_service().create_employee(data)
    return jsonify(employee.to_dict()), 201


@employee_bp.route("/employees/<int:employee_id>", methods=["GET"])
@require_roles()
def get_employee(employee_id):
    return jsonify(_employee_service().get_employee(employee_id).to_dict()), 200


@employee_bp.route("/employees/<int:employee_id>", methods=["PUT"])
@require_roles("admin")
def update_employee(employee_id):
    """Body: any of {name, email, department, role, phoneNumber}"""
    data = json_object(request.get_json(silent=True))
    employee = _employee_service().update_employee(employee_id, data)
    return jsonify(employee.to_dict()), 200


@employee_bp.route("/employees/<int:employee_id>/credits", methods=["PATCH"])
@require_roles("admin")
def update_credits(employee_id):
    """Body: {creditPoints, reason?}"""
    data = json_object(request.get_json(silent=True))
    ledger = CreditLedger.from_app(notifier=NotificationService.from_app())
    employee = ledger.set_credits(employee_id, data.get("creditPoints"), string_field(data, "reason"))
    return jsonify(employee.to_dict()), 200


@employee_bp.route("/employees/<int:employee_id>", methods=["DELETE"])
@require_roles("admin")
def delete_employee(employee_id):
    _employee_service().deactivate_employee(employee_id)
    return jsonify({"message": "Employee deleted successfully"}), 200
