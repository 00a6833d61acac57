"""
Event catalog: events and the sections each event requires.

An event belongs to one country and carries a deadline.  ``is_active`` is
the soft on/off flag; ``ended_at`` is a separate one-way terminal marker set
when a supervisor, deputy, protocol officer or admin closes the event.
"""

from datetime import datetime, timezone

from collab_portal.models import db


def _utcnow():
    return datetime.now(timezone.utc)


class Event(db.Model):
    __tablename__ = "events"

    id = db.Column(db.Integer, primary_key=True)
    country_id = db.Column(db.Integer, db.ForeignKey("countries.id"), nullable=False, index=True)
    title = db.Column(db.String(300), nullable=False)
    occasion = db.Column(db.Text)
    deadline_date = db.Column(db.Date, index=True)
    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"))
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    ended_at = db.Column(db.DateTime(timezone=True))
    ended_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"))
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    country = db.relationship("Country")
    required_sections = db.relationship(
        "EventRequiredSection", back_populates="event",
        cascade="all, delete-orphan", lazy="selectin",
    )

    @property
    def is_ended(self):
        return self.ended_at is not None

    @property
    def required_section_ids(self) -> set[int]:
        return {rs.section_id for rs in self.required_sections}

    def to_dict(self, include_sections=False):
        d = {
            "id": self.id,
            "country_id": self.country_id,
            "country_name_en": self.country.name_en if self.country else None,
            "title": self.title,
            "occasion": self.occasion,
            "deadline_date": self.deadline_date.isoformat() if self.deadline_date else None,
            "created_by_user_id": self.created_by_user_id,
            "is_active": self.is_active,
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
            "ended_by_user_id": self.ended_by_user_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_sections:
            ordered = sorted(
                (rs.section for rs in self.required_sections),
                key=lambda s: (s.order_index, s.id),
            )
            d["required_sections"] = [s.to_dict() for s in ordered]
        return d

    def __repr__(self) -> str:
        return f"<Event #{self.id} {self.title!r}>"


class EventRequiredSection(db.Model):
    __tablename__ = "event_required_sections"

    id = db.Column(db.Integer, primary_key=True)
    event_id = db.Column(
        db.Integer, db.ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    section_id = db.Column(db.Integer, db.ForeignKey("sections.id"), nullable=False, index=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    __table_args__ = (
        db.UniqueConstraint("event_id", "section_id", name="uq_event_required_sections"),
    )

    event = db.relationship("Event", back_populates="required_sections")
    section = db.relationship("Section", lazy="joined")
