"""
Kaizen Idea Tracker
Employee domain model - also the credit ledger.

Models:
    - Employee: one record per employee, holding the cumulative
      credit-point balance awarded for ideas
"""

from datetime import datetime, timezone

from kaizen.models import db
from kaizen.models.soft_delete import SoftDeleteMixin


# ── Constants ────────────────────────────────────────────────────────────────

EMPLOYEE_ROLES = frozenset({"admin", "reviewer", "employee"})
DEFAULT_ROLE = "employee"


def _utcnow():
    return datetime.now(timezone.utc)


class Employee(SoftDeleteMixin, db.Model):
    """
    Employee entity and credit ledger entry.

    credit_points is only ever changed through CreditLedger: atomic
    increments from the review workflow or an explicit admin correction.
    """

    __tablename__ = "employees"
    __table_args__ = (
        db.CheckConstraint("credit_points >= 0", name="ck_employees_credit_points_non_negative"),
    )

    id = db.Column(db.Integer, primary_key=True)
    employee_number = db.Column(db.String(50), nullable=False, unique=True, index=True)
    name = db.Column(db.String(200), nullable=False)
    email = db.Column(db.String(255), nullable=False, unique=True)
    department = db.Column(db.String(120), nullable=False, index=True)
    role = db.Column(db.String(30), nullable=False, default=DEFAULT_ROLE)
    credit_points = db.Column(db.Integer, nullable=False, default=0, index=True)
    phone_number = db.Column(db.String(50), nullable=True)
    joining_date = db.Column(db.DateTime(timezone=True), default=_utcnow)

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "employeeNumber": self.employee_number,
            "name": self.name,
            "email": self.email,
            "department": self.department,
            "role": self.role,
            "creditPoints": self.credit_points,
            "phoneNumber": self.phone_number,
            "joiningDate": self.joining_date.isoformat() if self.joining_date else None,
            "isActive": self.is_active,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Employee {self.employee_number}: {self.name} ({self.credit_points} pts)>"
