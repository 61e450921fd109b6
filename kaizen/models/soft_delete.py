"""
Soft Delete Mixin.

Adds an ``is_active`` flag. Records that include this mixin are
deactivated rather than physically removed, so they stay available for
audit while dropping out of every listing and aggregate.

Usage:
    class MyModel(SoftDeleteMixin, db.Model):
        ...

    obj.soft_delete()
    db.session.commit()

    select(MyModel).where(MyModel.active_clause())
"""

from kaizen.models import db


class SoftDeleteMixin:
    """Mixin that adds soft delete support to any SQLAlchemy model."""

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    def soft_delete(self):
        """Mark this record as inactive."""
        self.is_active = False

    @classmethod
    def active_clause(cls):
        """SQL expression matching active rows, for use in select()/update()."""
        return cls.is_active.is_(True)
