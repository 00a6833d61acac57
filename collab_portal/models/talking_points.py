"""
Talking-points workflow tables.

ContentItem ("tp_content")
    One row per (event, country, section).  Holds the authored HTML body,
    the per-section status and the last-writer stamps.  No version history
    is kept; the latest write wins.

DocumentStatus ("document_status")
    One row per (event, country).  Its status enum is distinct from the
    ContentItem enum and is moved only by explicit submit / approve / return
    actions; it is NOT recomputed from the section rows.

Both rows are created lazily on first touch through an insert-if-absent
statement, so the unique constraints below are the only concurrency guard.
"""

from datetime import datetime, timezone

from collab_portal.models import db

# ── Section (ContentItem) statuses ────────────────────────────────────────────

TP_DRAFT = "draft"
TP_SUBMITTED = "submitted"
TP_RETURNED = "returned"
TP_APPROVED_BY_SUPERVISOR = "approved_by_supervisor"
TP_APPROVED_BY_CHAIRMAN = "approved_by_chairman"

TP_STATUSES = (
    TP_DRAFT,
    TP_SUBMITTED,
    TP_RETURNED,
    TP_APPROVED_BY_SUPERVISOR,
    TP_APPROVED_BY_CHAIRMAN,
)

TP_APPROVED_STATUSES = frozenset({TP_APPROVED_BY_SUPERVISOR, TP_APPROVED_BY_CHAIRMAN})

# ── Document statuses ─────────────────────────────────────────────────────────

DOC_IN_PROGRESS = "in_progress"
DOC_SUBMITTED_TO_SUPERVISOR = "submitted_to_supervisor"
DOC_SUBMITTED_TO_CHAIRMAN = "submitted_to_chairman"
DOC_APPROVED = "approved"
DOC_RETURNED = "returned"

DOC_STATUSES = (
    DOC_IN_PROGRESS,
    DOC_SUBMITTED_TO_SUPERVISOR,
    DOC_SUBMITTED_TO_CHAIRMAN,
    DOC_APPROVED,
    DOC_RETURNED,
)


def _utcnow():
    return datetime.now(timezone.utc)


class ContentItem(db.Model):
    __tablename__ = "tp_content"

    id = db.Column(db.Integer, primary_key=True)
    event_id = db.Column(
        db.Integer, db.ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    country_id = db.Column(db.Integer, db.ForeignKey("countries.id"), nullable=False, index=True)
    section_id = db.Column(db.Integer, db.ForeignKey("sections.id"), nullable=False, index=True)
    html_content = db.Column(db.Text, nullable=False, default="")
    status = db.Column(
        db.String(30), nullable=False, default=TP_DRAFT, index=True,
        comment="draft | submitted | returned | approved_by_supervisor | approved_by_chairman",
    )
    status_comment = db.Column(db.Text, comment="Populated only when the section is returned")
    last_updated_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"))
    last_updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    __table_args__ = (
        db.UniqueConstraint(
            "event_id", "country_id", "section_id", name="uq_tp_content_event_country_section",
        ),
    )

    section = db.relationship("Section")
    last_updated_by = db.relationship("User")

    def stamp(self, user_id: int | None):
        """Record the last writer."""
        self.last_updated_by_user_id = user_id
        self.last_updated_at = _utcnow()

    def to_dict(self):
        return {
            "id": self.id,
            "event_id": self.event_id,
            "country_id": self.country_id,
            "section_id": self.section_id,
            "html_content": self.html_content or "",
            "status": self.status,
            "status_comment": self.status_comment,
            "last_updated_by_user_id": self.last_updated_by_user_id,
            "last_updated_by": self.last_updated_by.full_name if self.last_updated_by else None,
            "last_updated_at": self.last_updated_at.isoformat() if self.last_updated_at else None,
        }

    def __repr__(self) -> str:
        return (
            f"<ContentItem #{self.id} event={self.event_id} country={self.country_id} "
            f"section={self.section_id} {self.status}>"
        )


class DocumentStatus(db.Model):
    __tablename__ = "document_status"

    id = db.Column(db.Integer, primary_key=True)
    event_id = db.Column(
        db.Integer, db.ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    country_id = db.Column(db.Integer, db.ForeignKey("countries.id"), nullable=False, index=True)
    status = db.Column(
        db.String(30), nullable=False, default=DOC_IN_PROGRESS, index=True,
        comment="in_progress | submitted_to_supervisor | submitted_to_chairman | approved | returned",
    )
    comment = db.Column(db.Text)
    updated_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"))
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    __table_args__ = (
        db.UniqueConstraint("event_id", "country_id", name="uq_document_status_event_country"),
    )

    def stamp(self, user_id: int | None):
        self.updated_by_user_id = user_id
        self.updated_at = _utcnow()

    def to_dict(self):
        return {
            "id": self.id,
            "event_id": self.event_id,
            "country_id": self.country_id,
            "status": self.status,
            "comment": self.comment,
            "updated_by_user_id": self.updated_by_user_id,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self) -> str:
        return f"<DocumentStatus event={self.event_id} country={self.country_id} {self.status}>"
