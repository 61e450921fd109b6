"""
Kaizen Idea Tracker
Idea Query & Aggregation Service.

Read model over active ideas:
  - typed filter (IdeaFilter) and sort (IdeaSort) built from untrusted
    query parameters and validated against the fixed enumerations
  - paginated listing with filter-UI metadata (departments, statuses,
    priorities)
  - dashboard aggregates: status / department distributions and a
    trailing-year monthly trend

Soft-deleted ideas (is_active = false) never reach a listing or a count.
Reads take no locks.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from sqlalchemy import extract, func, or_, select

from kaizen.core.exceptions import NotFoundError, ValidationError
from kaizen.models import db
from kaizen.models.idea import IDEA_PRIORITIES, IDEA_STATUSES, Idea
from kaizen.services.pagination import PageRequest
from kaizen.services.unit_of_work import store_call
from kaizen.utils.helpers import escape_like

logger = logging.getLogger(__name__)

NO_FILTER = "all"
TREND_WINDOW_DAYS = 365

# Public sort keys (camelCase as sent by the UI, snake_case accepted too).
SORT_COLUMNS = {
    "createdAt": Idea.created_at,
    "updatedAt": Idea.updated_at,
    "reviewedAt": Idea.reviewed_at,
    "title": Idea.title,
    "status": Idea.status,
    "priority": Idea.priority,
    "department": Idea.department,
    "estimatedSavings": Idea.estimated_savings,
    "submittedByName": Idea.submitted_by_name,
    "submittedByEmployeeNumber": Idea.submitted_by_employee_number,
}
_SNAKE_ALIASES = {
    "created_at": "createdAt",
    "updated_at": "updatedAt",
    "reviewed_at": "reviewedAt",
    "estimated_savings": "estimatedSavings",
    "submitted_by_name": "submittedByName",
    "submitted_by_employee_number": "submittedByEmployeeNumber",
}


def _optional(args, key):
    value = (args.get(key) or "").strip()
    if not value or value == NO_FILTER:
        return None
    return value


@dataclass(frozen=True)
class IdeaFilter:
    """Validated listing filter. ``None`` on a field means "no filter"."""

    status: str | None = None
    department: str | None = None
    priority: str | None = None
    search: str | None = None

    @classmethod
    def from_args(cls, args) -> "IdeaFilter":
        """Build from a query-string mapping; ``"all"`` or empty means no filter."""
        status = _optional(args, "status")
        priority = _optional(args, "priority")

        errors = {}
        if status is not None and status not in IDEA_STATUSES:
            errors["status"] = f"must be one of {list(IDEA_STATUSES)} or 'all'"
        if priority is not None and priority not in IDEA_PRIORITIES:
            errors["priority"] = f"must be one of {list(IDEA_PRIORITIES)} or 'all'"
        if errors:
            raise ValidationError("Invalid idea filter", details=errors)

        search = (args.get("search") or "").strip() or None
        return cls(
            status=status,
            department=_optional(args, "department"),
            priority=priority,
            search=search,
        )

    def clauses(self) -> list:
        """SQL clauses for this filter, always including the active-only rule."""
        where = [Idea.active_clause()]
        if self.status:
            where.append(Idea.status == self.status)
        if self.department:
            where.append(Idea.department == self.department)
        if self.priority:
            where.append(Idea.priority == self.priority)
        if self.search:
            pattern = f"%{escape_like(self.search.lower())}%"
            where.append(or_(
                func.lower(Idea.title).like(pattern, escape="\\"),
                func.lower(Idea.problem).like(pattern, escape="\\"),
                func.lower(Idea.submitted_by_name).like(pattern, escape="\\"),
                func.lower(Idea.submitted_by_employee_number).like(pattern, escape="\\"),
            ))
        return where


@dataclass(frozen=True)
class IdeaSort:
    """Validated sort: whitelisted field and asc/desc direction."""

    field: str = "createdAt"
    order: str = "desc"

    @classmethod
    def from_args(cls, args) -> "IdeaSort":
        field = (args.get("sortBy") or "createdAt").strip()
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
        if self.order == "desc":
            return column.desc(), Idea.id.desc()
        return column.asc(), Idea.id.asc()


class IdeaQueryService:
    """Read-only idea queries bound to one store session."""

    def __init__(self, session):
        self.session = session

    @classmethod
    def from_app(cls, session=None):
        return cls(session if session is not None else db.session)

    @store_call("Idea")
    def get_idea(self, idea_id: int) -> Idea:
        idea = self.session.get(Idea, idea_id)
        if idea is None or not idea.is_active:
            raise NotFoundError(resource="Idea", resource_id=idea_id)
        return idea

    # ── Listing ───────────────────────────────────────────────────────────

    @store_call("Idea")
    def list_ideas(self, idea_filter: IdeaFilter | None = None, sort: IdeaSort | None = None,
                   page=1, limit=20) -> dict:
        """
        Paginated, filtered, sorted listing of active ideas.

        Returns:
            {ideas, total, departments, statuses, priorities, totalPages, currentPage}
        """
        idea_filter = idea_filter or IdeaFilter()
        sort = sort or IdeaSort()
        window = PageRequest.of(page, limit)
        where = idea_filter.clauses()

        total = self.session.execute(
            select(func.count(Idea.id)).where(*where)
        ).scalar_one()
        ideas = self.session.execute(
            select(Idea)
            .where(*where)
            .order_by(*sort.order_by())
            .offset(window.offset)
            .limit(window.limit)
        ).scalars().all()

        return {
            "ideas": [i.to_dict() for i in ideas],
            "total": total,
            "departments": self.active_departments(),
            "statuses": list(IDEA_STATUSES),
            "priorities": list(IDEA_PRIORITIES),
            "totalPages": window.total_pages(total),
            "currentPage": window.page,
        }

    def active_departments(self) -> list[str]:
        """Distinct departments among active ideas, alphabetical."""
        return list(self.session.execute(
            select(Idea.department)
            .where(Idea.active_clause())
            .distinct()
            .order_by(Idea.department)
        ).scalars().all())

    # ── Dashboard ─────────────────────────────────────────────────────────

    @store_call("Idea")
    def dashboard_stats(self, now: datetime | None = None) -> dict:
        """
        Aggregate KPIs over active ideas.

        Returns:
            {
                "totalIdeas": int,
                "underReview": int, "approved": int, "implemented": int,
                "statusDistribution": [{"status", "count"}, ...],
                "departmentStats": [{"department", "count"}, ...],   # count desc
                "monthlyTrends": [{"year", "month", "count"}, ...],  # oldest first
            }
        """
        active = Idea.active_clause()

        status_rows = self.session.execute(
            select(Idea.status, func.count(Idea.id))
            .where(active)
            .group_by(Idea.status)
        ).all()
        by_status = {status: count for status, count in status_rows}

        dept_count = func.count(Idea.id)
        department_rows = self.session.execute(
            select(Idea.department, dept_count)
            .where(active)
            .group_by(Idea.department)
            .order_by(dept_count.desc(), Idea.department.asc())
        ).all()

        return {
            "totalIdeas": sum(by_status.values()),
            "underReview": by_status.get("under_review", 0),
            "approved": by_status.get("approved", 0),
            "implemented": by_status.get("implemented", 0),
            "statusDistribution": [
                {"status": s, "count": by_status.get(s, 0)} for s in IDEA_STATUSES
            ] + [
                # Statuses outside the enumeration are still counted.
                {"status": s, "count": c} for s, c in sorted(by_status.items())
                if s not in IDEA_STATUSES
            ],
            "departmentStats": [
                {"department": d, "count": c} for d, c in department_rows
            ],
            "monthlyTrends": self.monthly_trends(now=now),
        }

    def monthly_trends(self, now: datetime | None = None,
                       days: int = TREND_WINDOW_DAYS) -> list[dict]:
        """Ideas created per (year, month) over the trailing window, oldest first."""
        since = (now or datetime.now(timezone.utc)) - timedelta(days=days)
        year = extract("year", Idea.created_at)
        month = extract("month", Idea.created_at)
        rows = self.session.execute(
            select(year.label("year"), month.label("month"), func.count(Idea.id).label("count"))
            .where(Idea.active_clause(), Idea.created_at >= since)
            .group_by(year, month)
            .order_by(year, month)
        ).all()
        return [
            {"year": int(r.year), "month": int(r.month), "count": r.count}
            for r in rows
        ]
