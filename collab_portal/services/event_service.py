"""
Event Catalog Service: events, required sections, end-of-life marker.

Layer contract:
    - Blueprints parse the request and call these functions with the
      authenticated ``user``; every visibility and role decision is made here.
    - Event creation and required-section replacement commit as one unit so
      an event is never visible without its required sections.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import select

from collab_portal.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from collab_portal.core.roles import EVENT_EDITORS, EVENT_ENDERS
from collab_portal.models import db
from collab_portal.models.directory import Country, Section
from collab_portal.models.event import Event, EventRequiredSection
from collab_portal.services.access_scope import (
    AccessScope,
    can_see_event,
    resolve_scope,
    visible_events_query,
)
from collab_portal.services.helpers.queries import coerce_id, get_or_raise
from collab_portal.utils.helpers import atomic, clean_str, parse_bool, parse_date

logger = logging.getLogger(__name__)


# ── Private helpers ────────────────────────────────────────────────────────────


def _require_role(user, allowed: frozenset, action: str) -> None:
    if user.role_key not in allowed:
        logger.warning(
            "User %s (%s) denied: %s", user.id, user.role_key, action,
        )
        raise ForbiddenError(f"Your role cannot {action}", required=allowed)


def _ordered(query):
    # Events without a deadline go last
    return query.order_by(
        Event.deadline_date.is_(None),
        Event.deadline_date.asc(),
        Event.id.asc(),
    )


def _clean_section_ids(raw) -> list[int]:
    if raw is None:
        return []
    if not isinstance(raw, (list, tuple, set)):
        raise ValidationError(
            "required_section_ids must be a list of section ids",
            details={"required_section_ids": "invalid"},
            status=400,
        )
    ids: list[int] = []
    for value in raw:
        sid = coerce_id(value, "required_section_ids")
        if sid not in ids:
            ids.append(sid)
    return ids


def _validate_sections(section_ids: list[int], existing: set[int] | None = None) -> None:
    """All ids must exist; newly required ones must also be active."""
    if not section_ids:
        raise ValidationError(
            "At least one required section is needed",
            details={"required_section_ids": "required"},
        )
    rows = db.session.execute(
        select(Section).where(Section.id.in_(section_ids))
    ).scalars().all()
    found = {s.id: s for s in rows}
    missing = [sid for sid in section_ids if sid not in found]
    if missing:
        raise NotFoundError(resource="Section", resource_id=missing[0])
    existing = existing or set()
    inactive = [sid for sid in section_ids if sid not in existing and not found[sid].is_active]
    if inactive:
        raise ValidationError(
            f"Section {inactive[0]} is inactive and cannot be required",
            details={"required_section_ids": "inactive"},
        )


def _resolve_country(value) -> Country:
    country_id = coerce_id(value, "country_id")
    return get_or_raise(Country, country_id)


def _replace_required_sections(event: Event, section_ids: list[int]) -> None:
    wanted = set(section_ids)
    for rs in list(event.required_sections):
        if rs.section_id not in wanted:
            event.required_sections.remove(rs)
    current = event.required_section_ids
    for sid in section_ids:
        if sid not in current:
            event.required_sections.append(EventRequiredSection(section_id=sid))


# ── Reads ──────────────────────────────────────────────────────────────────────


def load_visible_event(user, event_id, scope: AccessScope | None = None) -> Event:
    """Return the event or raise NotFoundError / ForbiddenError for ``user``."""
    event = get_or_raise(Event, coerce_id(event_id, "event_id"))
    if not can_see_event(user, event, scope):
        raise ForbiddenError("You are not assigned to this event")
    return event


def list_visible_events(user, *, is_active: bool | None = None, country_id=None) -> list[Event]:
    """Events the user can see, optionally filtered by active flag and country."""
    query = visible_events_query(user, Event.query)
    if query is None:
        return []
    if is_active is not None:
        query = query.filter(Event.is_active.is_(is_active))
    if country_id is not None:
        query = query.filter(Event.country_id == coerce_id(country_id, "country_id"))
    return _ordered(query).all()


def list_upcoming_events(user) -> list[Event]:
    """Visible events that are active and not yet ended, by deadline."""
    query = visible_events_query(user, Event.query)
    if query is None:
        return []
    query = query.filter(Event.is_active.is_(True), Event.ended_at.is_(None))
    return _ordered(query).all()


def get_event_detail(user, event_id) -> dict:
    """Event metadata with its ordered required sections (403 if not visible)."""
    event = load_visible_event(user, event_id)
    return event.to_dict(include_sections=True)


# ── Mutations ──────────────────────────────────────────────────────────────────


def create_event(user, data: dict) -> Event:
    """Create an event together with its required sections (one transaction)."""
    _require_role(user, EVENT_EDITORS, "create events")

    title = clean_str(data.get("title"), "title")
    if not title:
        raise ValidationError("title is required", details={"title": "required"}, status=400)
    country = _resolve_country(data.get("country_id"))
    if not country.is_active:
        raise ValidationError("Country is inactive", details={"country_id": "inactive"})
    section_ids = _clean_section_ids(data.get("required_section_ids"))
    _validate_sections(section_ids)

    event = Event(
        country_id=country.id,
        title=title,
        occasion=clean_str(data.get("occasion"), "occasion") or None,
        deadline_date=parse_date(data.get("deadline_date"), "deadline_date"),
        created_by_user_id=user.id,
        is_active=parse_bool(data.get("is_active", True), "is_active"),
    )
    with atomic():
        db.session.add(event)
        for sid in section_ids:
            event.required_sections.append(EventRequiredSection(section_id=sid))

    logger.info(
        "Event created",
        extra={"event_id": event.id, "country_id": country.id, "user_id": user.id},
    )
    return event


def update_event(user, event_id, data: dict) -> Event:
    """Update event fields; ``required_section_ids`` replaces the whole set."""
    _require_role(user, EVENT_EDITORS, "edit events")
    event = get_or_raise(Event, coerce_id(event_id, "event_id"))

    with atomic():
        if "title" in data:
            title = clean_str(data.get("title"), "title")
            if not title:
                raise ValidationError("title cannot be empty", details={"title": "required"}, status=400)
            event.title = title
        if "occasion" in data:
            event.occasion = clean_str(data.get("occasion"), "occasion") or None
        if "deadline_date" in data:
            event.deadline_date = parse_date(data.get("deadline_date"), "deadline_date")
        if "country_id" in data:
            country = _resolve_country(data.get("country_id"))
            # An event may keep a country that was retired after it was created
            if not country.is_active and country.id != event.country_id:
                raise ValidationError("Country is inactive", details={"country_id": "inactive"})
            event.country_id = country.id
        if "is_active" in data:
            event.is_active = parse_bool(data["is_active"], "is_active")
        if "required_section_ids" in data:
            section_ids = _clean_section_ids(data.get("required_section_ids"))
            _validate_sections(section_ids, existing=event.required_section_ids)
            _replace_required_sections(event, section_ids)

    logger.info("Event updated", extra={"event_id": event.id, "user_id": user.id})
    return event


def end_event(user, event_id) -> Event:
    """Set the one-way ``ended`` marker."""
    _require_role(user, EVENT_ENDERS, "end events")
    event = get_or_raise(Event, coerce_id(event_id, "event_id"))
    if event.is_ended:
        raise ValidationError("Event has already ended")

    event.ended_at = datetime.now(timezone.utc)
    event.ended_by_user_id = user.id
    db.session.commit()

    logger.info("Event ended", extra={"event_id": event.id, "user_id": user.id})
    return event


def ordered_required_sections(event: Event) -> list[Section]:
    """Required sections by ``order_index`` then id, i.e. document order."""
    return sorted(
        (rs.section for rs in event.required_sections),
        key=lambda s: (s.order_index, s.id),
    )


def resolve_event_country(event: Event, country_id=None) -> int:
    """Country of a (event, country) pair; defaults to the event's own country."""
    if country_id in (None, ""):
        return event.country_id
    return get_or_raise(Country, coerce_id(country_id, "country_id")).id


def resolve_event_scope(user, event_id, country_id=None) -> tuple[Event, int, AccessScope]:
    """Load a visible event and its target country in one step.

    Raises NotFoundError for an unknown event or country and ForbiddenError
    when a collaborator cannot see the event or the requested country.
    """
    scope = resolve_scope(user)
    event = load_visible_event(user, event_id, scope)
    target_country = resolve_event_country(event, country_id)
    if not scope.covers_country(target_country):
        raise ForbiddenError("You are not assigned to this country")
    return event, target_country, scope
