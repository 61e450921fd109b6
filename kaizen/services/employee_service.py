"""
Kaizen Idea Tracker
Employee administration service.

Lists, creates, updates and deactivates employee (credit ledger) records.
Uniqueness of employee_number and email is checked up front and again by
the database constraint, both surfacing as ConflictError naming the field.
Admins are notified when employees are added or removed.

Balances are never written here: corrections go through CreditLedger.
"""


import logging

from email_validator import EmailNotValidError, validate_email
from sqlalchemy import func, or_, select

from kaizen.core.exceptions import ConflictError, NotFoundError, ValidationError
from kaizen.models import db
from kaizen.models.employee import DEFAULT_ROLE, EMPLOYEE_ROLES, Employee
from kaizen.services.employee_query import EmployeeFilter, EmployeeSort, active_departments
from kaizen.services.pagination import PageRequest
from kaizen.services.unit_of_work import store_call, unit_of_work
from kaizen.utils.helpers import string_field

logger = logging.getLogger(__name__)

_REQUIRED_FIELDS = ("employeeNumber", "name", "email", "department")
_TEXT_FIELDS = _REQUIRED_FIELDS + ("role", "phoneNumber")

# Payload key -> column for PUT /employees/<id>.
_UPDATABLE_FIELDS = {
    "name": "name",
    "email": "email",
    "department": "department",
    "role": "role",
    "phoneNumber": "phone_number",
}


def _read_text_fields(data, keys, required=()):
    """string_field over ``keys`` present in ``data``, collecting every error."""
    values, errors = {}, {}
    for key in keys:
        try:
            values[key] = string_field(data, key, required=key in required)
        except ValidationError as e:
            errors.update(e.details)
    if errors:
        raise ValidationError("Invalid employee fields", details=errors)
    return values


def _normalise_email(raw):
    try:
        return validate_email(raw, check_deliverability=False).normalized.lower()
    except EmailNotValidError as e:
        raise ValidationError(f"Invalid email: {e}", details={"email": str(e)}) from e


def _check_role(role):
    if role not in EMPLOYEE_ROLES:
        raise ValidationError(
            "Invalid role",
            details={"role": f"must be one of {sorted(EMPLOYEE_ROLES)}"},
        )


class EmployeeService:
    """Employee administration bound to one store session."""

    def __init__(self, session, notifier):
        self.session = session
        self.notifier = notifier

    @classmethod
    def from_app(cls, notifier, session=None):
        return cls(session if session is not None else db.session, notifier)

    # ── Read ──────────────────────────────────────────────────────────────

    @store_call("Employee")
    def get_employee(self, employee_id: int) -> Employee:
        employee = self.session.get(Employee, employee_id)
        if employee is None or not employee.is_active:
            raise NotFoundError(resource="Employee", resource_id=employee_id)
        return employee

    @store_call("Employee")
    def list_employees(self, employee_filter: EmployeeFilter | None = None,
                       sort: EmployeeSort | None = None, page=1, limit=50) -> dict:
        """
        Paginated listing of active employees for the admin screen.

        Returns:
            {employees, total, departments, totalPages, currentPage}
        """
        employee_filter = employee_filter or EmployeeFilter()
        sort = sort or EmployeeSort()
        window = PageRequest.of(page, limit)
        where = employee_filter.clauses()

        total = self.session.execute(
            select(func.count(Employee.id)).where(*where)
        ).scalar_one()
        employees = self.session.execute(
            select(Employee)
            .where(*where)
            .order_by(*sort.order_by())
            .offset(window.offset)
            .limit(window.limit)
        ).scalars().all()

        return {
            "employees": [e.to_dict() for e in employees],
            "total": total,
            "departments": active_departments(self.session),
            "totalPages": window.total_pages(total),
            "currentPage": window.page,
        }

    # ── Create ────────────────────────────────────────────────────────────

    def create_employee(self, data: dict) -> Employee:
        """
        Persist a new employee.

        Args:
            data: camelCase payload (employeeNumber, name, email, department,
                  role?, creditPoints?, phoneNumber?).

        Raises:
            ValidationError: missing or non-string fields, bad email, role or
                             credit value.
            ConflictError: employeeNumber or email already taken.
        """
        fields = _read_text_fields(data, _TEXT_FIELDS, required=_REQUIRED_FIELDS)
        email = _normalise_email(fields["email"])
        role = fields["role"] or DEFAULT_ROLE
        _check_role(role)

        credit_points = data.get("creditPoints", 0) or 0
        if isinstance(credit_points, bool) or not isinstance(credit_points, int) or credit_points < 0:
            raise ValidationError(
                "creditPoints must be a non-negative integer",
                details={"creditPoints": credit_points},
            )

        employee_number = fields["employeeNumber"]

        with unit_of_work(self.session, resource="Employee"):
            self._ensure_unique(employee_number, email)
            employee = Employee(
                employee_number=employee_number,
                name=fields["name"],
                email=email,
                department=fields["department"],
                role=role,
                credit_points=credit_points,
                phone_number=fields["phoneNumber"],
            )
            self.session.add(employee)
            self.session.flush()

            self.notifier.notify(
                "system_update",
                "New Employee Added",
                f"Employee {employee.name} ({employee.employee_number}) has been added to the system",
                role="admin",
                related_id=employee.id,
                related_model="Employee",
                commit=False,
            )

        logger.info("Employee created id=%s number=%s", employee.id, employee.employee_number)
        return employee

    def _ensure_unique(self, employee_number, email, exclude_id=None):
        clauses = []
        if employee_number is not None:
            clauses.append(Employee.employee_number == employee_number)
        if email is not None:
            clauses.append(func.lower(Employee.email) == email)
        stmt = select(Employee.employee_number, Employee.email).where(or_(*clauses))
        if exclude_id is not None:
            stmt = stmt.where(Employee.id != exclude_id)
        clash = self.session.execute(stmt.limit(1)).first()
        if clash is None:
            return
        if employee_number is not None and clash.employee_number == employee_number:
            raise ConflictError("Employee", "employee_number", employee_number)
        raise ConflictError("Employee", "email", email)

    # ── Update ────────────────────────────────────────────────────────────

    def update_employee(self, employee_id: int, data: dict) -> Employee:
        """
        Admin edit of profile fields (name, email, department, role,
        phoneNumber). Absent keys are left unchanged.

        Raises:
            ValidationError: non-string or blank field, bad email or role,
                             creditPoints in the payload (balances change
                             through CreditLedger only), or an attempt to
                             change employeeNumber.
            NotFoundError: employee missing or inactive.
            ConflictError: email already taken by another employee.
        """
        if "creditPoints" in data:
            raise ValidationError(
                "creditPoints cannot be changed here",
                details={"creditPoints": "use PATCH /employees/<id>/credits"},
            )

        present = [key for key in _UPDATABLE_FIELDS if key in data]
        fields = _read_text_fields(data, present, required=_REQUIRED_FIELDS)
        if "email" in fields:
            fields["email"] = _normalise_email(fields["email"])
        if "role" in fields:
            fields["role"] = fields["role"] or DEFAULT_ROLE
            _check_role(fields["role"])
        employee_number = string_field(data, "employeeNumber")

        with unit_of_work(self.session, resource="Employee"):
            employee = self.session.get(Employee, employee_id)
            if employee is None or not employee.is_active:
                raise NotFoundError(resource="Employee", resource_id=employee_id)

            if employee_number is not None and employee_number != employee.employee_number:
                raise ValidationError(
                    "employeeNumber cannot be changed",
                    details={"employeeNumber": "is immutable"},
                )
            if "email" in fields:
                self._ensure_unique(None, fields["email"], exclude_id=employee.id)

            for key, value in fields.items():
                setattr(employee, _UPDATABLE_FIELDS[key], value)

        logger.info("Employee updated id=%s fields=%s", employee.id, sorted(fields))
        return employee

    # ── Delete (soft) ─────────────────────────────────────────────────────

    def deactivate_employee(self, employee_id: int) -> Employee:
        """Soft-delete an employee and notify admins."""
        with unit_of_work(self.session, resource="Employee"):
            employee = self.session.get(Employee, employee_id)
            if employee is None or not employee.is_active:
                raise NotFoundError(resource="Employee", resource_id=employee_id)
            employee.soft_delete()

            self.notifier.notify(
                "employee_deleted",
                "Employee Removed",
                f"Employee {employee.name} ({employee.employee_number}) has been removed from the system",
                role="admin",
                related_id=employee.id,
                related_model="Employee",
                commit=False,
            )

        logger.info("Employee deactivated id=%s number=%s", employee.id, employee.employee_number)
        return employee
