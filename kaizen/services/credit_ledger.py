"""
Kaizen Idea Tracker
Credit Ledger Service.

Owns every write to ``Employee.credit_points``:
    - increment_credits: SQL-side atomic ``credit_points + :amount`` used by
      the review workflow (never a read-then-write, so concurrent awards to
      the same employee are all reflected)
    - set_credits: explicit administrative correction
Also serves the credit leaderboard.
"""

import logging

from sqlalchemy import select, update

from kaizen.core.exceptions import NotFoundError, ValidationError
from kaizen.models import db
from kaizen.models.employee import Employee
from kaizen.services.employee_query import EmployeeFilter, EmployeeSort, active_departments
from kaizen.services.unit_of_work import store_call, unit_of_work

logger = logging.getLogger(__name__)


class CreditLedger:
    """Credit-point ledger bound to one store session."""

    def __init__(self, session, notifier=None):
        self.session = session
        self.notifier = notifier

    @classmethod
    def from_app(cls, session=None, notifier=None):
        return cls(session if session is not None else db.session, notifier=notifier)

    # ── Writes ────────────────────────────────────────────────────────────

    def increment_credits(self, employee_number: str, amount: int, *, commit: bool = True) -> int:
        """
        Atomically add ``amount`` points to an active employee's balance.

        Args:
            commit: False joins the caller's open transaction.

        Returns:
            The new balance.

        Raises:
            ValidationError: amount is negative or not an integer.
            NotFoundError: no active employee with that number.
        """
        if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
            raise ValidationError(
                "Credit increment must be a non-negative integer",
                details={"amount": amount},
            )
        if not commit:
            return self._increment(employee_number, amount)
        with unit_of_work(self.session, resource="Employee"):
            balance = self._increment(employee_number, amount)
        return balance

    def _increment(self, employee_number, amount):
        result = self.session.execute(
            update(Employee)
            .where(Employee.employee_number == employee_number, Employee.active_clause())
            .values(credit_points=Employee.credit_points + amount)
            .execution_options(synchronize_session="fetch")
        )
        if result.rowcount == 0:
            raise NotFoundError(resource="Employee", resource_id=employee_number)

        balance = self.session.execute(
            select(Employee.credit_points).where(Employee.employee_number == employee_number)
        ).scalar_one()
        logger.info(
            "Credits incremented by %d -> %d",
            amount, balance,
            extra={"employee_number": employee_number, "event_type": "credit_increment"},
        )
        return balance

    def set_credits(self, employee_id: int, credit_points, reason: str | None = None) -> Employee:
        """
        Administrative correction: overwrite an employee's balance.

        Notifies the employee with ``credit_points_updated``.

        Raises:
            ValidationError: negative or non-integer value.
            NotFoundError: employee missing or inactive.
        """
        if isinstance(credit_points, bool) or not isinstance(credit_points, int) or credit_points < 0:
            raise ValidationError(
                "creditPoints must be a non-negative integer",
                details={"creditPoints": credit_points},
            )

        with unit_of_work(self.session, resource="Employee"):
            employee = self.session.get(Employee, employee_id)
            if employee is None or not employee.is_active:
                raise NotFoundError(resource="Employee", resource_id=employee_id)
            previous = employee.credit_points
            employee.credit_points = credit_points

            if self.notifier is not None:
                message = f"Your credit points have been updated to {credit_points}."
                if reason:
                    message += f" {reason.strip()}"
                self.notifier.notify(
                    "credit_points_updated",
                    "Credit Points Updated",
                    message,
                    employee_number=employee.employee_number,
                    related_id=employee.id,
                    related_model="Employee",
                    commit=False,
                )

        logger.info(
            "Credits corrected %d -> %d",
            previous, credit_points,
            extra={"employee_number": employee.employee_number, "event_type": "credit_correction"},
        )
        return employee

    # ── Reads ─────────────────────────────────────────────────────────────

    @store_call("Employee")
    def get_balance(self, employee_number: str) -> int:
        balance = self.session.execute(
            select(Employee.credit_points).where(
                Employee.employee_number == employee_number, Employee.active_clause(),
            )
        ).scalar_one_or_none()
        if balance is None:
            raise NotFoundError(resource="Employee", resource_id=employee_number)
        return balance

    @store_call("Employee")
    def leaderboard(self, department=None, search=None, limit=100, sort: EmployeeSort | None = None) -> dict:
        """
        Active employees ordered by ``sort`` (credit points, highest first,
        by default).

        Returns:
            {"users": [...], "departments": [...]}
        """
        try:
            limit = min(max(int(limit), 1), 500)
        except (TypeError, ValueError):
            limit = 100
        sort = sort or EmployeeSort()

        rows = self.session.execute(
            select(Employee)
            .where(*EmployeeFilter.of(department, search).clauses())
            .order_by(*sort.order_by())
            .limit(limit)
        ).scalars().all()

        return {"users": [e.to_dict() for e in rows], "departments": active_departments(self.session)}
