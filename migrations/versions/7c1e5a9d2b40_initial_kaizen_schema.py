"""initial_kaizen_schema

Create `employees`, `ideas` and `notifications` tables.

Revision ID: 7c1e5a9d2b40
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = "7c1e5a9d2b40"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing_tables = set(inspector.get_table_names())

    if "employees" not in existing_tables:
        op.create_table(
            "employees",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("employee_number", sa.String(length=50), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("email", sa.String(length=255), nullable=False),
            sa.Column("department", sa.String(length=120), nullable=False),
            sa.Column("role", sa.String(length=30), nullable=False, server_default="employee"),
            sa.Column("credit_points", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("phone_number", sa.String(length=50), nullable=True),
            sa.Column("joining_date", sa.DateTime(timezone=True), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("email"),
            sa.CheckConstraint("credit_points >= 0", name="ck_employees_credit_points_non_negative"),
        )
        op.create_index("ix_employees_employee_number", "employees", ["employee_number"], unique=True)
        op.create_index("ix_employees_department", "employees", ["department"])
        op.create_index("ix_employees_credit_points", "employees", ["credit_points"])
        op.create_index("ix_employees_is_active", "employees", ["is_active"])

    if "ideas" not in existing_tables:
        op.create_table(
            "ideas",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("title", sa.String(length=300), nullable=False),
            sa.Column("problem", sa.Text(), nullable=False),
            sa.Column("improvement", sa.Text(), nullable=False),
            sa.Column("benefit", sa.Text(), nullable=False),
            sa.Column("department", sa.String(length=120), nullable=False),
            sa.Column("priority", sa.String(length=20), nullable=False, server_default="medium"),
            sa.Column("status", sa.String(length=30), nullable=False, server_default="under_review"),
            sa.Column("submitted_by_employee_number", sa.String(length=50), nullable=False),
            sa.Column("submitted_by_name", sa.String(length=200), nullable=False),
            sa.Column("estimated_savings", sa.Float(), nullable=False, server_default="0"),
            sa.Column("reviewed_by", sa.String(length=150), nullable=True),
            sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("review_comments", sa.Text(), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("id"),
            sa.CheckConstraint("estimated_savings >= 0", name="ck_ideas_estimated_savings_non_negative"),
        )
        op.create_index("ix_ideas_department", "ideas", ["department"])
        op.create_index("ix_ideas_submitted_by_employee_number", "ideas", ["submitted_by_employee_number"])
        op.create_index("ix_ideas_created_at", "ideas", ["created_at"])
        op.create_index("ix_ideas_is_active", "ideas", ["is_active"])
        op.create_index("ix_ideas_status_active", "ideas", ["status", "is_active"])

    if "notifications" not in existing_tables:
        op.create_table(
            "notifications",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("type", sa.String(length=40), nullable=False),
            sa.Column("title", sa.String(length=300), nullable=False),
            sa.Column("message", sa.Text(), nullable=False),
            sa.Column("recipient_employee_number", sa.String(length=50), nullable=True),
            sa.Column("recipient_role", sa.String(length=20), nullable=False, server_default="all",
                      comment="Role name or 'all' for broadcast"),
            sa.Column("related_id", sa.Integer(), nullable=True),
            sa.Column("related_model", sa.String(length=30), nullable=True, comment="Idea/Employee/User"),
            sa.Column("priority", sa.String(length=20), nullable=False, server_default="medium"),
            sa.Column("action_url", sa.String(length=500), nullable=True),
            sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_notifications_type", "notifications", ["type"])
        op.create_index("ix_notifications_created_at", "notifications", ["created_at"])
        op.create_index("ix_notifications_is_active", "notifications", ["is_active"])
        op.create_index(
            "ix_notifications_employee_read", "notifications",
            ["recipient_employee_number", "is_read"],
        )
        op.create_index("ix_notifications_role_read", "notifications", ["recipient_role", "is_read"])


def downgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing_tables = set(inspector.get_table_names())

    if "notifications" in existing_tables:
        op.drop_index("ix_notifications_role_read", table_name="notifications")
        op.drop_index("ix_notifications_employee_read", table_name="notifications")
        op.drop_index("ix_notifications_is_active", table_name="notifications")
        op.drop_index("ix_notifications_created_at", table_name="notifications")
        op.drop_index("ix_notifications_type", table_name="notifications")
        op.drop_table("notifications")

    if "ideas" in existing_tables:
        op.drop_index("ix_ideas_status_active", table_name="ideas")
        op.drop_index("ix_ideas_is_active", table_name="ideas")
        op.drop_index("ix_ideas_created_at", table_name="ideas")
        op.drop_index("ix_ideas_submitted_by_employee_number", table_name="ideas")
        op.drop_index("ix_ideas_department", table_name="ideas")
        op.drop_table("ideas")

    if "employees" in existing_tables:
        op.drop_index("ix_employees_is_active", table_name="employees")
        op.drop_index("ix_employees_credit_points", table_name="employees")
        op.drop_index("ix_employees_department", table_name="employees")
        op.drop_index("ix_employees_employee_number", table_name="employees")
        op.drop_table("employees")
