"""
Library Projector: read path over approved talking-points documents.

The only write performed here is lazy creation of missing ContentItem /
DocumentStatus rows so that a document always renders every required
section.
"""

import logging

from collab_portal.core.exceptions import ForbiddenError
from collab_portal.core.roles import LIBRARY_READERS
from collab_portal.models import db
from collab_portal.models.directory import Country
from collab_portal.models.event import Event
from collab_portal.models.talking_points import DOC_APPROVED, DocumentStatus
from collab_portal.services.access_scope import visible_events_query
from collab_portal.services.content_workflow import ensure_content_item
from collab_portal.services.document_workflow import ensure_document_status
from collab_portal.services.event_service import (
    ordered_required_sections,
    resolve_event_scope,
)
from collab_portal.services.helpers.queries import coerce_id, get_or_raise

logger = logging.getLogger(__name__)


def _require_reader(user) -> None:
    if user.role_key not in LIBRARY_READERS:
        logger.warning("User %s (%s) denied: library", user.id, user.role_key)
        raise ForbiddenError("Your role cannot read the library", required=LIBRARY_READERS)


def list_library(user, country_id) -> list[dict]:
    """Approved documents for one country, most recently approved first."""
    _require_reader(user)
    country = get_or_raise(Country, coerce_id(country_id, "country_id"))

    query = visible_events_query(user, Event.query)
    if query is None:
        return []
    rows = (
        query.join(DocumentStatus, DocumentStatus.event_id == Event.id)
        .filter(
            DocumentStatus.country_id == country.id,
            DocumentStatus.status == DOC_APPROVED,
        )
        .add_columns(DocumentStatus)
        .order_by(DocumentStatus.updated_at.desc(), Event.id.desc())
        .all()
    )

    return [
        {
            "event_id": event.id,
            "title": event.title,
            "country_id": country.id,
            "deadline_date": event.deadline_date.isoformat() if event.deadline_date else None,
            "last_updated": doc.updated_at.isoformat() if doc.updated_at else None,
        }
        for event, doc in rows
    ]


def get_library_document(user, event_id, country_id=None) -> dict:
    """Assemble one document: event, document status and ordered sections."""
    _require_reader(user)
    event, target_country, _scope = resolve_event_scope(user, event_id, country_id)
    country = db.session.get(Country, target_country)

    doc = ensure_document_status(event.id, target_country)
    sections = []
    for section in ordered_required_sections(event):
        item = ensure_content_item(event.id, target_country, section.id)
        sections.append({
            "section_id": section.id,
            "section_key": section.key,
            "section_label": section.label,
            "order_index": section.order_index,
            "status": item.status,
            "html_content": item.html_content or "",
            "last_updated_at": item.last_updated_at.isoformat() if item.last_updated_at else None,
        })
    db.session.commit()

    return {
        "event": event.to_dict(),
        "country": country.to_dict() if country else None,
        "document_status": doc.to_dict(),
        "sections": sections,
    }
