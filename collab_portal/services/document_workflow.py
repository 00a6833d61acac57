"""
Talking Points: Document Aggregation State Machine

One DocumentStatus row per (event, country).  Its status is moved only by
the explicit actions below; it is never recomputed from the section rows.

Transitions:
  submit_to_supervisor   collaborators, chairman, admin   in_progress | returned
  submit_to_chairman     supervisor, admin                in_progress | submitted_to_supervisor | returned
  approve                chairman, admin                  any -> approved  (cascades to sections)
  return                 chairman, admin                  any -> returned  (comment required)

When ``DOCUMENT_SUBMIT_REQUIRES_SECTION_APPROVAL`` is on (the default),
submit_to_chairman additionally requires every required section to carry a
supervisor or chairman approval.
"""

import logging

from flask import current_app
from sqlalchemy import select

from collab_portal.core.exceptions import ForbiddenError, ValidationError
from collab_portal.core.roles import (
    DOCUMENT_CHAIRMAN_SUBMITTERS,
    DOCUMENT_DECIDERS,
    DOCUMENT_SUPERVISOR_SUBMITTERS,
)
from collab_portal.models import db
from collab_portal.models.talking_points import (
    DOC_APPROVED,
    DOC_IN_PROGRESS,
    DOC_RETURNED,
    DOC_STATUSES,
    DOC_SUBMITTED_TO_CHAIRMAN,
    DOC_SUBMITTED_TO_SUPERVISOR,
    TP_APPROVED_STATUSES,
    ContentItem,
    DocumentStatus,
)
from collab_portal.services import workflow_events
from collab_portal.services.event_service import resolve_event_scope
from collab_portal.services.helpers.queries import insert_if_absent
from collab_portal.utils.helpers import atomic, clean_str

logger = logging.getLogger(__name__)


DOCUMENT_TRANSITIONS = {
    "submit_to_supervisor": {
        "from": [DOC_IN_PROGRESS, DOC_RETURNED],
        "to": DOC_SUBMITTED_TO_SUPERVISOR,
    },
    "submit_to_chairman": {
        "from": [DOC_IN_PROGRESS, DOC_SUBMITTED_TO_SUPERVISOR, DOC_RETURNED],
        "to": DOC_SUBMITTED_TO_CHAIRMAN,
    },
    "approve": {"from": list(DOC_STATUSES), "to": DOC_APPROVED},
    "return": {"from": list(DOC_STATUSES), "to": DOC_RETURNED},
}

_ACTION_ROLES = {
    "submit_to_supervisor": DOCUMENT_SUPERVISOR_SUBMITTERS,
    "submit_to_chairman": DOCUMENT_CHAIRMAN_SUBMITTERS,
    "approve": DOCUMENT_DECIDERS,
    "return": DOCUMENT_DECIDERS,
}


def ensure_document_status(event_id: int, country_id: int) -> DocumentStatus:
    """Return the document row for the pair, creating it ``in_progress`` if absent."""
    insert_if_absent(
        DocumentStatus, event_id=event_id, country_id=country_id, status=DOC_IN_PROGRESS,
    )
    return db.session.execute(
        select(DocumentStatus).where(
            DocumentStatus.event_id == event_id,
            DocumentStatus.country_id == country_id,
        )
    ).scalar_one()


def _load(user, action: str, event_id, country_id):
    allowed = _ACTION_ROLES[action]
    if user.role_key not in allowed:
        logger.warning("User %s (%s) denied: document %s", user.id, user.role_key, action)
        raise ForbiddenError(
            f"Your role cannot {action.replace('_', ' ')} the document", required=allowed,
        )
    event, target_country, _scope = resolve_event_scope(user, event_id, country_id)
    return event, target_country, ensure_document_status(event.id, target_country)


def _move(doc: DocumentStatus, action: str, user) -> str:
    rule = DOCUMENT_TRANSITIONS[action]
    if doc.status not in rule["from"]:
        raise ValidationError(
            f"Cannot '{action}' a document in status '{doc.status}'",
            details={"status": doc.status},
        )
    previous = doc.status
    doc.status = rule["to"]
    doc.stamp(user.id)
    return previous


def _log(action: str, doc: DocumentStatus, user, previous: str) -> None:
    logger.info(
        "Document %s: %s -> %s", action, previous, doc.status,
        extra={
            "event_id": doc.event_id,
            "country_id": doc.country_id,
            "user_id": user.id,
            "action": f"document_{action}",
        },
    )


def _unapproved_sections(event, country_id: int) -> list[int]:
    required = event.required_section_ids
    if not required:
        return []
    approved = set(db.session.execute(
        select(ContentItem.section_id).where(
            ContentItem.event_id == event.id,
            ContentItem.country_id == country_id,
            ContentItem.section_id.in_(required),
            ContentItem.status.in_(TP_APPROVED_STATUSES),
        )
    ).scalars())
    return sorted(required - approved)


# ── Reads ──────────────────────────────────────────────────────────────────────


def get_document_status(user, event_id, country_id=None) -> DocumentStatus:
    event, target_country, _scope = resolve_event_scope(user, event_id, country_id)
    doc = ensure_document_status(event.id, target_country)
    db.session.commit()
    return doc


# ── Mutations ──────────────────────────────────────────────────────────────────


def submit_to_supervisor(user, event_id, country_id=None) -> DocumentStatus:
    _event, _country, doc = _load(user, "submit_to_supervisor", event_id, country_id)
    previous = _move(doc, "submit_to_supervisor", user)
    db.session.commit()
    _log("submit_to_supervisor", doc, user, previous)
    return doc


def submit_to_chairman(user, event_id, country_id=None) -> DocumentStatus:
    """Hand the document to the chairman.

    Raises:
        ValidationError: the event has no required sections, or (with the
            section-approval gate on) a required section is not yet approved.
    """
    event, target_country, doc = _load(user, "submit_to_chairman", event_id, country_id)

    if current_app.config.get("DOCUMENT_SUBMIT_REQUIRES_SECTION_APPROVAL", True):
        if not event.required_section_ids:
            raise ValidationError("The event has no required sections")
        pending = _unapproved_sections(event, target_country)
        if pending:
            raise ValidationError(
                "All required sections must be approved before submitting to the chairman",
                details={"pending_section_ids": pending},
            )

    previous = _move(doc, "submit_to_chairman", user)
    db.session.commit()
    _log("submit_to_chairman", doc, user, previous)
    return doc


def approve_document(user, event_id, country_id=None) -> DocumentStatus:
    """Final document approval; every required section follows in the same commit."""
    event, target_country, doc = _load(user, "approve", event_id, country_id)

    with atomic():
        previous = _move(doc, "approve", user)
        doc.comment = None
        workflow_events.emit(
            workflow_events.DOCUMENT_APPROVED,
            event=event, country_id=target_country, actor=user,
        )

    _log("approve", doc, user, previous)
    return doc


def return_document(user, event_id, comment, country_id=None) -> DocumentStatus:
    _event, _country, doc = _load(user, "return", event_id, country_id)

    reason = clean_str(comment, "comment")
    if not reason:
        raise ValidationError("A return comment is required", details={"comment": "required"})

    previous = _move(doc, "return", user)
    doc.comment = reason
    db.session.commit()
    _log("return", doc, user, previous)
    return doc
