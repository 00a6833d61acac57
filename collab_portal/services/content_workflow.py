"""
Talking Points: Section Content State Machine

Manages the per-(event, country, section) ContentItem with:
  - Lazy row creation (insert-if-absent, draft / empty body)
  - Assignment-scoped access (collaborators) vs. global access (elevated roles)
  - Status transitions with return-for-revision loops
  - Bulk approval of every required section of one document

Transitions:
  save                 collaborator  any -> draft (body updated, comment kept)
  save                 elevated      status unchanged (body updated)
  submit               collaborator  draft | returned | submitted -> submitted
  approve_supervisor   supervisor    draft | submitted | returned | approved_by_supervisor
                                     -> approved_by_supervisor
  approve_chairman     chairman      any -> approved_by_chairman
  return               reviewers     any -> returned (comment required)

Business Rule: when the aggregate document is approved, every required
section is forced to approved_by_chairman (see ``_cascade_document_approval``).

Usage:
    from collab_portal.services.content_workflow import submit_content

    item = submit_content(user, event_id=3, section_id=7, html_content="<p>...</p>")
"""

import logging

from sqlalchemy import select

from collab_portal.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from collab_portal.core.roles import (
    BULK_APPROVERS,
    CHAIRMAN,
    COLLABORATOR_ROLES,
    CONTENT_CHAIRMAN_APPROVERS,
    CONTENT_ELEVATED_EDITORS,
    CONTENT_RETURNERS,
    CONTENT_SUPERVISOR_APPROVERS,
)
from collab_portal.models import db
from collab_portal.models.directory import Country, Section
from collab_portal.models.event import Event
from collab_portal.models.talking_points import (
    TP_APPROVED_BY_CHAIRMAN,
    TP_APPROVED_BY_SUPERVISOR,
    TP_DRAFT,
    TP_RETURNED,
    TP_STATUSES,
    TP_SUBMITTED,
    ContentItem,
)
from collab_portal.services import workflow_events
from collab_portal.services.access_scope import can_access_section, resolve_scope
from collab_portal.services.event_service import (
    ordered_required_sections,
    resolve_event_scope,
)
from collab_portal.services.helpers.queries import coerce_id, get_or_raise, insert_if_absent
from collab_portal.utils.helpers import atomic, clean_str

logger = logging.getLogger(__name__)


# Section transition rules
CONTENT_TRANSITIONS = {
    "submit": {
        "from": [TP_DRAFT, TP_RETURNED],
        "to": TP_SUBMITTED,
    },
    "approve_supervisor": {
        "from": [TP_DRAFT, TP_SUBMITTED, TP_RETURNED, TP_APPROVED_BY_SUPERVISOR],
        "to": TP_APPROVED_BY_SUPERVISOR,
    },
    "approve_chairman": {"from": list(TP_STATUSES), "to": TP_APPROVED_BY_CHAIRMAN},
    "return": {"from": list(TP_STATUSES), "to": TP_RETURNED},
}

_ACTION_ROLES = {
    "submit": COLLABORATOR_ROLES,
    "approve_supervisor": CONTENT_SUPERVISOR_APPROVERS,
    "approve_chairman": CONTENT_CHAIRMAN_APPROVERS,
    "return": CONTENT_RETURNERS,
}


def validate_content_transition(item: ContentItem, action: str) -> dict:
    """Validate whether an action is valid for the item's current status."""
    rule = CONTENT_TRANSITIONS.get(action)
    if not rule:
        return {"valid": False, "from": item.status, "to": None,
                "reason": f"Unknown action: {action}"}

    if item.status not in rule["from"]:
        return {"valid": False, "from": item.status, "to": rule["to"],
                "reason": f"Cannot '{action}' a section in status '{item.status}'"}

    return {"valid": True, "from": item.status, "to": rule["to"], "reason": None}


# ── Private helpers ────────────────────────────────────────────────────────────


def _require_role(user, allowed, action: str) -> None:
    if user.role_key not in allowed:
        logger.warning("User %s (%s) denied: %s", user.id, user.role_key, action)
        raise ForbiddenError(f"Your role cannot {action.replace('_', ' ')}", required=allowed)


def _check_body(html_content):
    """HTML bodies are stored as sent; only the type is checked."""
    if html_content is not None and not isinstance(html_content, str):
        raise ValidationError(
            "html_content must be a string", details={"html_content": "invalid"}, status=400,
        )
    return html_content


def _resolve_target(user, event_id, section_id, country_id=None):
    """Load (event, section, country) and check the caller may touch it.

    Order of checks: unknown event or section (404), collaborator outside
    assignment scope (403), section not required for the event (404).
    """
    event = get_or_raise(Event, coerce_id(event_id, "event_id"))
    section = get_or_raise(Section, coerce_id(section_id, "section_id"))
    if country_id in (None, ""):
        target_country = event.country_id
    else:
        target_country = get_or_raise(Country, coerce_id(country_id, "country_id")).id

    scope = resolve_scope(user)
    explicit_country = None if target_country == event.country_id else target_country
    if not can_access_section(user, event, section.id, explicit_country, scope):
        logger.warning(
            "User %s denied section access",
            user.id,
            extra={"event_id": event.id, "section_id": section.id, "country_id": target_country},
        )
        raise ForbiddenError("You are not assigned to this section")

    if section.id not in event.required_section_ids:
        raise NotFoundError(resource="Required section", resource_id=section.id)

    return event, section, target_country


def ensure_content_item(event_id: int, country_id: int, section_id: int) -> ContentItem:
    """Return the ContentItem for the triple, creating a draft row if absent.

    Runs in the caller's transaction; the caller commits.
    """
    insert_if_absent(
        ContentItem,
        event_id=event_id,
        country_id=country_id,
        section_id=section_id,
        html_content="",
        status=TP_DRAFT,
    )
    return db.session.execute(
        select(ContentItem).where(
            ContentItem.event_id == event_id,
            ContentItem.country_id == country_id,
            ContentItem.section_id == section_id,
        )
    ).scalar_one()


def _transition(item: ContentItem, action: str, user) -> str:
    check = validate_content_transition(item, action)
    if not check["valid"]:
        raise ValidationError(check["reason"], details={"status": item.status})
    previous = item.status
    item.status = check["to"]
    item.stamp(user.id)
    return previous


def _log_transition(action: str, item: ContentItem, user, previous: str) -> None:
    logger.info(
        "Section %s: %s -> %s", action, previous, item.status,
        extra={
            "event_id": item.event_id,
            "section_id": item.section_id,
            "country_id": item.country_id,
            "user_id": user.id,
            "action": action,
        },
    )


def _single_action(user, action: str, event_id, section_id, country_id=None, html_content=None):
    _require_role(user, _ACTION_ROLES[action], action)
    event, section, target_country = _resolve_target(user, event_id, section_id, country_id)
    html_content = _check_body(html_content)
    item = ensure_content_item(event.id, target_country, section.id)

    previous = _transition(item, action, user)
    if html_content is not None:
        item.html_content = html_content
    item.status_comment = None
    db.session.commit()

    _log_transition(action, item, user, previous)
    return item


# ── Reads ──────────────────────────────────────────────────────────────────────


def get_content(user, event_id, section_id, country_id=None) -> dict:
    """Load (lazily creating) one section with its display context."""
    event, section, target_country = _resolve_target(user, event_id, section_id, country_id)
    item = ensure_content_item(event.id, target_country, section.id)
    db.session.commit()

    country = db.session.get(Country, target_country)
    d = item.to_dict()
    d.update({
        "event_title": event.title,
        "country_name_en": country.name_en if country else None,
        "section_key": section.key,
        "section_label": section.label,
    })
    return d


def get_status_grid(user, event_id, country_id=None) -> list[dict]:
    """Status of every required section of one document, in display order."""
    event, target_country, _scope = resolve_event_scope(user, event_id, country_id)

    grid = []
    for section in ordered_required_sections(event):
        item = ensure_content_item(event.id, target_country, section.id)
        grid.append({
            "section_id": section.id,
            "section_key": section.key,
            "section_label": section.label,
            "status": item.status,
            "status_comment": item.status_comment,
            "last_updated_at": item.last_updated_at.isoformat() if item.last_updated_at else None,
            "last_updated_by": item.last_updated_by.full_name if item.last_updated_by else None,
        })
    db.session.commit()
    return grid


# ── Mutations ──────────────────────────────────────────────────────────────────


def save_content(user, event_id, section_id, html_content, country_id=None) -> ContentItem:
    """Persist a new body.

    A collaborator save always lands in ``draft`` so re-edited content must
    be approved again; the return comment is kept so the author still sees
    it.  Elevated editors keep the current status.
    """
    role = user.role_key
    if role not in COLLABORATOR_ROLES and role not in CONTENT_ELEVATED_EDITORS:
        _require_role(user, COLLABORATOR_ROLES | CONTENT_ELEVATED_EDITORS, "save")

    event, section, target_country = _resolve_target(user, event_id, section_id, country_id)
    html_content = _check_body(html_content)
    item = ensure_content_item(event.id, target_country, section.id)

    previous = item.status
    item.html_content = html_content or ""
    if role in COLLABORATOR_ROLES:
        item.status = TP_DRAFT
    item.stamp(user.id)
    db.session.commit()

    _log_transition("save", item, user, previous)
    return item


def submit_content(user, event_id, section_id, country_id=None, html_content=None) -> ContentItem:
    """Collaborator hands a section over for review."""
    return _single_action(
        user, "submit", event_id, section_id, country_id, html_content=html_content,
    )


def approve_section_supervisor(user, event_id, section_id, country_id=None) -> ContentItem:
    """First-stage approval (supervisor / admin)."""
    return _single_action(user, "approve_supervisor", event_id, section_id, country_id)


def approve_section_chairman(user, event_id, section_id, country_id=None) -> ContentItem:
    """Final approval (chairman / admin)."""
    return _single_action(user, "approve_chairman", event_id, section_id, country_id)


def return_content(user, event_id, section_id, comment, country_id=None) -> ContentItem:
    """Send a section back to its authors with a mandatory reason."""
    _require_role(user, CONTENT_RETURNERS, "return")
    event, section, target_country = _resolve_target(user, event_id, section_id, country_id)

    reason = clean_str(comment, "comment")
    if not reason:
        raise ValidationError("A return comment is required", details={"comment": "required"})

    item = ensure_content_item(event.id, target_country, section.id)
    previous = _transition(item, "return", user)
    item.status_comment = reason
    db.session.commit()

    _log_transition("return", item, user, previous)
    return item


def approve_all_sections(user, event_id, country_id=None) -> dict:
    """Approve every eligible required section at the caller's stage.

    Chairman approves at the final stage; supervisor and admin at the first.
    Ineligible sections are skipped.  All changes commit together.
    """
    _require_role(user, BULK_APPROVERS, "approve all sections")
    event, target_country, _scope = resolve_event_scope(user, event_id, country_id)
    action = "approve_chairman" if user.role_key == CHAIRMAN else "approve_supervisor"
    rule = CONTENT_TRANSITIONS[action]

    updated = 0
    with atomic():
        for section in ordered_required_sections(event):
            item = ensure_content_item(event.id, target_country, section.id)
            if item.status not in rule["from"] or item.status == rule["to"]:
                continue
            item.status = rule["to"]
            item.status_comment = None
            item.stamp(user.id)
            updated += 1

    logger.info(
        "Bulk %s updated %d section(s)", action, updated,
        extra={
            "event_id": event.id,
            "country_id": target_country,
            "user_id": user.id,
            "action": "approve_all",
        },
    )
    return {"ok": True, "updated": updated}


# ── Document approval cascade ──────────────────────────────────────────────────


@workflow_events.subscribe(workflow_events.DOCUMENT_APPROVED)
def _cascade_document_approval(*, event, country_id, actor):
    """Force every required section of an approved document to final approval.

    Runs inside the document transaction; the emitter commits.
    """
    changed = 0
    for section in ordered_required_sections(event):
        item = ensure_content_item(event.id, country_id, section.id)
        if item.status == TP_APPROVED_BY_CHAIRMAN and item.status_comment is None:
            continue
        item.status = TP_APPROVED_BY_CHAIRMAN
        item.status_comment = None
        item.stamp(actor.id)
        changed += 1

    logger.info(
        "Document approval cascaded to %d section(s)", changed,
        extra={"event_id": event.id, "country_id": country_id, "user_id": actor.id},
    )
    return changed
