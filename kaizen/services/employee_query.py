"""
Kaizen Idea Tracker
Employee filter and sort shared by the leaderboard and the admin listing.

Both views read active employees only, narrowed by department and a
case-insensitive search over name, employee number and email, and
ordered by a whitelisted column (credit points, highest first, unless
the caller asks otherwise).
"""

from dataclasses import dataclass

from sqlalchemy import func, or_, select

from kaizen.core.exceptions import ValidationError
from kaizen.models.employee import Employee
from kaizen.utils.helpers import escape_like

NO_FILTER = "all"

SORT_COLUMNS = {
    "creditPoints": Employee.credit_points,
    "name": Employee.name,
    "employeeNumber": Employee.employee_number,
    "email": Employee.email,
    "department": Employee.department,
    "role": Employee.role,
    "joiningDate": Employee.joining_date,
    "createdAt": Employee.created_at,
}
_SNAKE_ALIASES = {
    "credit_points": "creditPoints",
    "employee_number": "employeeNumber",
    "joining_date": "joiningDate",
    "created_at": "createdAt",
}


@dataclass(frozen=True)
class EmployeeFilter:
    """Department and free-text search. ``None`` means no filter."""

    department: str | None = None
    search: str | None = None

    @classmethod
    def of(cls, department=None, search=None) -> "EmployeeFilter":
        """Normalise raw values; empty or ``"all"`` department means no filter."""
        department = (department or "").strip()
        search = (search or "").strip()
        return cls(
            department=department if department and department != NO_FILTER else None,
            search=search or None,
        )

    @classmethod
    def from_args(cls, args) -> "EmployeeFilter":
        return cls.of(args.get("department"), args.get("search"))

    def clauses(self) -> list:
        where = [Employee.active_clause()]
        if self.department:
            where.append(Employee.department == self.department)
        if self.search:
            pattern = f"%{escape_like(self.search.lower())}%"
            where.append(or_(
                func.lower(Employee.name).like(pattern, escape="\\"),
                func.lower(Employee.employee_number).like(pattern, escape="\\"),
                func.lower(Employee.email).like(pattern, escape="\\"),
            ))
        return where


@dataclass(frozen=True)
class EmployeeSort:
    """Validated sort over SORT_COLUMNS; name breaks ties."""

    field: str = "creditPoints"
    order: str = "desc"

    @classmethod
    def from_args(cls, args) -> "EmployeeSort":
        field = (args.get("sortBy") or "creditPoints").strip()
        field = _SNAKE_ALIASES.get(field, field)
        order = (args.get("sortOrder") or "desc").strip().lower()

        errors = {}
        if field not in SORT_COLUMNS:
            errors["sortBy"] = f"must be one of {sorted(SORT_COLUMNS)}"
        if order not in ("asc", "desc"):
            errors["sortOrder"] = "must be 'asc' or 'desc'"
        if errors:
            raise ValidationError("Invalid sort", details=errors)
        return cls(field=field, order=order)

    def order_by(self) -> tuple:
        column = SORT_COLUMNS[self.field]
        primary = column.desc() if self.order == "desc" else column.asc()
        return primary, Employee.name.asc(), Employee.id.asc()


def active_departments(session) -> list[str]:
    """Distinct departments among active employees, alphabetical."""
    return list(session.execute(
        select(Employee.department).where(Employee.active_clause())
        .distinct().order_by(Employee.department)
    ).scalars().all())
