"""
Soft delete for rows that other tables keep pointing at.

A deleted user still owns content rows, events and workflow history, so the
row stays and only ``deleted_at`` / ``deleted_by_user_id`` are filled in.

    class User(SoftDeleteMixin, db.Model):
        ...

    user.soft_delete(actor_id=admin.id)
    User.query_active()            # hides deleted rows
"""

from datetime import datetime, timezone

from collab_portal.models import db


class SoftDeleteMixin:

    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True, index=True)
    deleted_by_user_id = db.Column(db.Integer, nullable=True)

    def soft_delete(self, actor_id: int | None = None):
        self.deleted_at = datetime.now(timezone.utc)
        self.deleted_by_user_id = actor_id

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @classmethod
    def query_active(cls):
        return cls.query.filter(cls.deleted_at.is_(None))
