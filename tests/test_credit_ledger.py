"""
Kaizen Idea Tracker
Tests - Credit Ledger and employee administration.

Covers:
    1. Atomic increments, balance reads, missing / inactive entries
    2. Administrative corrections and their notification
    3. Leaderboard ordering, sorting and filters
    4. EmployeeService list / create / update / deactivate / get
"""

import pytest
from sqlalchemy import event, select

from kaizen.core.exceptions import ConflictError, NotFoundError, ValidationError
from kaizen.models import db
from kaizen.models.notification import Notification
from kaizen.services.credit_ledger import CreditLedger
from kaizen.services.employee_query import EmployeeFilter, EmployeeSort
from kaizen.services.employee_service import EmployeeService
from kaizen.services.notification import NotificationService


@pytest.fixture()
def notifier():
    return NotificationService(db.session)


@pytest.fixture()
def ledger(notifier):
    return CreditLedger(db.session, notifier=notifier)


def _notifications(notification_type):
    return db.session.execute(
        select(Notification).where(Notification.type == notification_type)
    ).scalars().all()


# ═══════════════════════════════════════════════════════════════════════════
#  TEST CLASS 1: Increments
# ═══════════════════════════════════════════════════════════════════════════

class TestIncrement:

    def test_increment_returns_new_balance(self, ledger, make_employee):
        make_employee("EMP001", credit_points=5)
        assert ledger.increment_credits("EMP001", 20) == 25
        assert ledger.get_balance("EMP001") == 25

    def test_increments_accumulate(self, ledger, make_employee):
        make_employee("EMP001")
        for _ in range(4):
            ledger.increment_credits("EMP001", 10)
        assert ledger.get_balance("EMP001") == 40

    def test_zero_is_allowed(self, ledger, make_employee):
        make_employee("EMP001", credit_points=7)
        assert ledger.increment_credits("EMP001", 0) == 7

    @pytest.mark.parametrize("amount", [-1, 2.5, "10", True])
    def test_rejects_bad_amounts(self, ledger, make_employee, amount):
        make_employee("EMP001", credit_points=7)
        with pytest.raises(ValidationError):
            ledger.increment_credits("EMP001", amount)
        assert ledger.get_balance("EMP001") == 7

    def test_missing_employee(self, ledger):
        with pytest.raises(NotFoundError):
            ledger.increment_credits("EMP404", 10)

    def test_inactive_employee(self, ledger, make_employee):
        make_employee("EMP001", is_active=False)
        with pytest.raises(NotFoundError):
            ledger.increment_credits("EMP001", 10)
        with pytest.raises(NotFoundError):
            ledger.get_balance("EMP001")

    def test_commit_false_is_rolled_back_with_caller(self, ledger, make_employee):
        make_employee("EMP001", credit_points=1)
        ledger.increment_credits("EMP001", 10, commit=False)
        db.session.rollback()
        assert ledger.get_balance("EMP001") == 1

    def test_increment_is_a_single_sql_side_update(self, ledger, make_employee):
        make_employee("EMP001", credit_points=5)
        statements = []

        def _record(conn, cursor, statement, parameters, context, executemany):
            statements.append(" ".join(statement.split()))

        event.listen(db.engine, "before_cursor_execute", _record)
        try:
            ledger.increment_credits("EMP001", 20)
        finally:
            event.remove(db.engine, "before_cursor_execute", _record)

        updates = [i for i, s in enumerate(statements) if s.startswith("UPDATE employees")]
        assert len(updates) == 1
        assert "credit_points=(employees.credit_points + " in statements[updates[0]]
        balance_reads = [s for s in statements[:updates[0]] if s.startswith("SELECT") and "credit_points" in s]
        assert balance_reads == []
        assert ledger.get_balance("EMP001") == 25


# ═══════════════════════════════════════════════════════════════════════════
#  TEST CLASS 2: Administrative correction
# ═══════════════════════════════════════════════════════════════════════════

class TestSetCredits:

    def test_sets_balance_and_notifies(self, ledger, make_employee):
        emp = make_employee("EMP001", credit_points=50)
        updated = ledger.set_credits(emp.id, 30, reason="Duplicate award reversed.")
        assert updated.credit_points == 30
        notes = _notifications("credit_points_updated")
        assert len(notes) == 1
        assert notes[0].recipient_employee_number == "EMP001"
        assert notes[0].message == (
            "Your credit points have been updated to 30. Duplicate award reversed."
        )

    def test_rejects_negative(self, ledger, make_employee):
        emp = make_employee("EMP001", credit_points=50)
        with pytest.raises(ValidationError):
            ledger.set_credits(emp.id, -5)
        assert ledger.get_balance("EMP001") == 50

    def test_missing_employee(self, ledger):
        with pytest.raises(NotFoundError):
            ledger.set_credits(999, 10)


# ═══════════════════════════════════════════════════════════════════════════
#  TEST CLASS 3: Leaderboard
# ═══════════════════════════════════════════════════════════════════════════

class TestLeaderboard:

    def test_ordered_by_points(self, ledger, make_employee):
        make_employee("EMP001", name="Low", credit_points=5, department="Quality")
        make_employee("EMP002", name="High", credit_points=90, department="Assembly")
        make_employee("EMP003", name="Mid", credit_points=40, department="Quality")
        make_employee("EMP004", name="Gone", credit_points=500, is_active=False, department="Paint")

        board = ledger.leaderboard()
        assert [u["name"] for u in board["users"]] == ["High", "Mid", "Low"]
        assert board["departments"] == ["Assembly", "Quality"]

    def test_department_and_search(self, ledger, make_employee):
        make_employee("EMP001", name="Deniz Aydin", department="Quality")
        make_employee("EMP002", name="Deniz Kaya", department="Assembly")
        make_employee("EMP003", name="Ali Celik", department="Quality")

        assert [u["employeeNumber"] for u in ledger.leaderboard(department="Quality", search="deniz")["users"]] \
            == ["EMP001"]
        assert len(ledger.leaderboard(department="all")["users"]) == 3

    def test_limit(self, ledger, make_employee):
        for i in range(5):
            make_employee(f"EMP00{i}", credit_points=i)
        assert len(ledger.leaderboard(limit=2)["users"]) == 2

    def test_sort_by_request(self, ledger, make_employee):
        make_employee("EMP001", name="Cem", credit_points=10)
        make_employee("EMP002", name="Ali", credit_points=30)
        make_employee("EMP003", name="Banu", credit_points=30)

        board = ledger.leaderboard(sort=EmployeeSort.from_args({"sortBy": "name", "sortOrder": "asc"}))
        assert [u["name"] for u in board["users"]] == ["Ali", "Banu", "Cem"]

        board = ledger.leaderboard(sort=EmployeeSort.from_args({"sortBy": "credit_points", "sortOrder": "ASC"}))
        assert [u["name"] for u in board["users"]] == ["Cem", "Ali", "Banu"]

    def test_ties_broken_by_name(self, ledger, make_employee):
        make_employee("EMP001", name="Zeynep", credit_points=30)
        make_employee("EMP002", name="Ali", credit_points=30)
        assert [u["name"] for u in ledger.leaderboard()["users"]] == ["Ali", "Zeynep"]

    @pytest.mark.parametrize("args, field", [
        ({"sortBy": "password"}, "sortBy"),
        ({"sortOrder": "sideways"}, "sortOrder"),
    ])
    def test_invalid_sort(self, args, field):
        with pytest.raises(ValidationError) as exc_info:
            EmployeeSort.from_args(args)
        assert field in exc_info.value.details


# ═══════════════════════════════════════════════════════════════════════════
#  TEST CLASS 4: Employee administration
# ═══════════════════════════════════════════════════════════════════════════

def _payload(**overrides):
    data = {
        "employeeNumber": "EMP100",
        "name": "Elif Sahin",
        "email": "Elif.Sahin@Acme.com",
        "department": "Maintenance",
    }
    data.update(overrides)
    return data


class TestEmployeeService:

    def test_create(self, notifier):
        emp = EmployeeService(db.session, notifier).create_employee(_payload(role="reviewer"))
        assert emp.id is not None
        assert emp.email == "elif.sahin@acme.com"
        assert emp.role == "reviewer"
        assert emp.credit_points == 0
        notes = _notifications("system_update")
        assert len(notes) == 1
        assert notes[0].recipient_role == "admin"
        assert notes[0].related_model == "Employee"

    def test_missing_fields(self, notifier):
        with pytest.raises(ValidationError) as exc_info:
            EmployeeService(db.session, notifier).create_employee({"name": "X"})
        assert set(exc_info.value.details) == {"employeeNumber", "email", "department"}

    def test_invalid_email(self, notifier):
        with pytest.raises(ValidationError) as exc_info:
            EmployeeService(db.session, notifier).create_employee(_payload(email="not-an-email"))
        assert "email" in exc_info.value.details

    def test_invalid_role(self, notifier):
        with pytest.raises(ValidationError):
            EmployeeService(db.session, notifier).create_employee(_payload(role="owner"))

    def test_duplicate_employee_number(self, notifier, make_employee):
        make_employee("EMP100")
        with pytest.raises(ConflictError) as exc_info:
            EmployeeService(db.session, notifier).create_employee(_payload())
        assert exc_info.value.field == "employee_number"

    def test_duplicate_email_case_insensitive(self, notifier, make_employee):
        make_employee("EMP200", email="elif.sahin@acme.com")
        with pytest.raises(ConflictError) as exc_info:
            EmployeeService(db.session, notifier).create_employee(_payload())
        assert exc_info.value.field == "email"

    def test_deactivate(self, notifier, make_employee):
        emp = make_employee("EMP001")
        svc = EmployeeService(db.session, notifier)
        svc.deactivate_employee(emp.id)
        assert emp.is_active is False
        assert len(_notifications("employee_deleted")) == 1
        with pytest.raises(NotFoundError):
            svc.get_employee(emp.id)
        with pytest.raises(NotFoundError):
            svc.deactivate_employee(emp.id)

    def test_list_employees(self, notifier, make_employee):
        make_employee("EMP001", name="Deniz Aydin", credit_points=10, department="Quality")
        make_employee("EMP002", name="Deniz Kaya", credit_points=40, department="Assembly")
        make_employee("EMP003", name="Ali Celik", credit_points=99, department="Quality")
        make_employee("EMP004", name="Deniz Gone", is_active=False, department="Paint")
        svc = EmployeeService(db.session, notifier)

        page = svc.list_employees()
        assert [e["employeeNumber"] for e in page["employees"]] == ["EMP003", "EMP002", "EMP001"]
        assert page["total"] == 3
        assert page["departments"] == ["Assembly", "Quality"]

        page = svc.list_employees(EmployeeFilter.of(search="deniz"), EmployeeSort(field="name", order="asc"))
        assert [e["name"] for e in page["employees"]] == ["Deniz Aydin", "Deniz Kaya"]

        page = svc.list_employees(EmployeeFilter.of(department="Quality"), page=2, limit=1)
        assert page["totalPages"] == 2
        assert page["currentPage"] == 2
        assert [e["employeeNumber"] for e in page["employees"]] == ["EMP001"]

    def test_search_escapes_like_wildcards(self, notifier, make_employee):
        make_employee("EMP001", name="100% Quality")
        make_employee("EMP002", name="1000 Quality")
        page = EmployeeService(db.session, notifier).list_employees(EmployeeFilter.of(search="100%"))
        assert [e["employeeNumber"] for e in page["employees"]] == ["EMP001"]

    def test_non_string_fields(self, notifier):
        with pytest.raises(ValidationError) as exc_info:
            EmployeeService(db.session, notifier).create_employee(_payload(employeeNumber=1234, department=["QA"]))
        assert exc_info.value.details == {"employeeNumber": "must be a string", "department": "must be a string"}

    def test_update(self, notifier, make_employee):
        emp = make_employee("EMP001", credit_points=12)
        updated = EmployeeService(db.session, notifier).update_employee(
            emp.id, {"email": "New.Mail@Acme.com", "phoneNumber": " 555 ", "employeeNumber": "EMP001"},
        )
        assert updated.email == "new.mail@acme.com"
        assert updated.phone_number == "555"
        assert updated.credit_points == 12
        assert updated.name == "Employee EMP001"

    def test_update_keeps_own_email(self, notifier, make_employee):
        emp = make_employee("EMP001", email="same@acme.com")
        updated = EmployeeService(db.session, notifier).update_employee(emp.id, {"email": "SAME@acme.com"})
        assert updated.email == "same@acme.com"

    @pytest.mark.parametrize("data, field", [
        ({"creditPoints": 500}, "creditPoints"),
        ({"employeeNumber": "EMP999"}, "employeeNumber"),
        ({"name": ""}, "name"),
        ({"role": "owner"}, "role"),
        ({"email": "nope"}, "email"),
    ])
    def test_update_rejects(self, notifier, make_employee, data, field):
        emp = make_employee("EMP001", credit_points=12)
        with pytest.raises(ValidationError) as exc_info:
            EmployeeService(db.session, notifier).update_employee(emp.id, data)
        assert field in exc_info.value.details
        db.session.refresh(emp)
        assert emp.credit_points == 12
        assert emp.employee_number == "EMP001"

    def test_update_email_conflict(self, notifier, make_employee):
        make_employee("EMP001", email="taken@acme.com")
        emp = make_employee("EMP002")
        with pytest.raises(ConflictError) as exc_info:
            EmployeeService(db.session, notifier).update_employee(emp.id, {"email": "taken@acme.com"})
        assert exc_info.value.field == "email"

    def test_update_inactive(self, notifier, make_employee):
        emp = make_employee("EMP001", is_active=False)
        with pytest.raises(NotFoundError):
            EmployeeService(db.session, notifier).update_employee(emp.id, {"name": "X"})
