"""
Assignment Resolver: which events and sections a user may see or edit.

Two independent assignment dimensions restrict collaborators:

    countries  (country_assignments)   x   sections  (section_assignments)

Every other role is global: it sees every event and every section.

The algebra is deliberately explicit:

    can_see_event       event.country ∈ countries
                        AND required_sections(event) ∩ sections ≠ ∅   (existential)

    can_access_section  can_see_event
                        AND section ∈ sections
                        AND section ∈ required_sections(event)        (conjunctive)

A collaborator with no countries or no sections sees nothing; that case is
short-circuited before any event query is built, so an empty IN () list can
never turn into a vacuous match.

All functions here are pure reads.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy import select

from collab_portal.core.roles import is_collaborator_role
from collab_portal.models import db
from collab_portal.models.directory import CountryAssignment, SectionAssignment
from collab_portal.models.event import Event, EventRequiredSection

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccessScope:
    """Resolved visibility of one user.

    ``is_global`` is the elevated-role branch; otherwise ``country_ids`` and
    ``section_ids`` are the user's two owned assignment sets.
    """

    is_global: bool
    country_ids: frozenset[int] = field(default_factory=frozenset)
    section_ids: frozenset[int] = field(default_factory=frozenset)

    @classmethod
    def global_scope(cls) -> "AccessScope":
        return cls(is_global=True)

    @property
    def is_empty(self) -> bool:
        return not self.is_global and (not self.country_ids or not self.section_ids)

    def covers_country(self, country_id: int) -> bool:
        return self.is_global or country_id in self.country_ids

    def covers_section(self, section_id: int) -> bool:
        return self.is_global or section_id in self.section_ids


def resolve_scope(user) -> AccessScope:
    """Build the AccessScope for ``user`` from its role and assignment rows."""
    if not is_collaborator_role(user.role_key):
        return AccessScope.global_scope()

    country_ids = db.session.execute(
        select(CountryAssignment.country_id).where(CountryAssignment.user_id == user.id)
    ).scalars().all()
    section_ids = db.session.execute(
        select(SectionAssignment.section_id).where(SectionAssignment.user_id == user.id)
    ).scalars().all()
    return AccessScope(
        is_global=False,
        country_ids=frozenset(country_ids),
        section_ids=frozenset(section_ids),
    )


def can_see_event(user, event: Event, scope: AccessScope | None = None) -> bool:
    """True when ``user`` may see ``event`` (existential section match)."""
    scope = scope or resolve_scope(user)
    if scope.is_global:
        return True
    if scope.is_empty:
        return False
    if event.country_id not in scope.country_ids:
        return False
    return bool(event.required_section_ids & scope.section_ids)


def can_access_section(
    user,
    event: Event,
    section_id: int,
    country_id: int | None = None,
    scope: AccessScope | None = None,
) -> bool:
    """True when ``user`` may open ``section_id`` of ``event`` (conjunctive match).

    ``country_id`` defaults to the event's own country.  An explicit country
    must also be one of the collaborator's assigned countries.
    """
    scope = scope or resolve_scope(user)
    if scope.is_global:
        return True
    if not can_see_event(user, event, scope):
        return False
    if country_id is not None and country_id not in scope.country_ids:
        return False
    return section_id in scope.section_ids and section_id in event.required_section_ids


def visible_events_query(user, query, scope: AccessScope | None = None):
    """Restrict an ``Event`` query to the events ``user`` can see.

    Returns None when the user can see no events at all; callers must treat
    that as an empty result without executing anything.
    """
    scope = scope or resolve_scope(user)
    if scope.is_global:
        return query
    if scope.is_empty:
        logger.debug(
            "User %s has an empty assignment scope; skipping event query", user.id,
        )
        return None

    matching_requirement = (
        select(EventRequiredSection.event_id)
        .where(EventRequiredSection.section_id.in_(scope.section_ids))
    )
    return query.filter(
        Event.country_id.in_(scope.country_ids),
        Event.id.in_(matching_requirement),
    )
