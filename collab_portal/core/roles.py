"""
Role keys and capability sets.

Roles are flat tags, not a hierarchy.  Every capability check in the
services is an explicit membership test against one of the frozensets
below, e.g.:

    if role not in CONTENT_SUPERVISOR_APPROVERS:
        raise ForbiddenError(...)

"chairman" is surfaced to end users as "Deputy"; both spellings are
accepted on input and normalised to the canonical "chairman" key.
"""

ADMIN = "admin"
MINISTER = "minister"
CHAIRMAN = "chairman"
SUPERVISOR = "supervisor"
PROTOCOL = "protocol"
SUPER_COLLABORATOR = "super_collaborator"
COLLABORATOR = "collaborator"
VIEWER = "viewer"

ROLE_KEYS = (
    ADMIN,
    MINISTER,
    CHAIRMAN,
    SUPERVISOR,
    PROTOCOL,
    SUPER_COLLABORATOR,
    COLLABORATOR,
    VIEWER,
)

ROLE_LABELS = {
    ADMIN: "Admin",
    MINISTER: "Minister",
    CHAIRMAN: "Deputy",
    SUPERVISOR: "Supervisor",
    PROTOCOL: "Protocol",
    SUPER_COLLABORATOR: "Super-collaborator",
    COLLABORATOR: "Collaborator",
    VIEWER: "Viewer",
}

_ROLE_ALIASES = {
    "deputy": CHAIRMAN,
    "super-collaborator": SUPER_COLLABORATOR,
    "supercollaborator": SUPER_COLLABORATOR,
}

# Roles whose visibility is limited by section + country assignments
COLLABORATOR_ROLES = frozenset({COLLABORATOR, SUPER_COLLABORATOR})

# Calendar: create/update events and their required sections
EVENT_EDITORS = frozenset({ADMIN, CHAIRMAN, MINISTER, SUPERVISOR, PROTOCOL})
EVENT_ENDERS = frozenset({ADMIN, SUPERVISOR, CHAIRMAN, PROTOCOL})

# Talking-points content
CONTENT_ELEVATED_EDITORS = frozenset({ADMIN, CHAIRMAN, SUPERVISOR})
CONTENT_SUPERVISOR_APPROVERS = frozenset({SUPERVISOR, ADMIN})
CONTENT_CHAIRMAN_APPROVERS = frozenset({CHAIRMAN, ADMIN})
CONTENT_RETURNERS = frozenset({SUPERVISOR, CHAIRMAN, ADMIN})
BULK_APPROVERS = frozenset({SUPERVISOR, CHAIRMAN, ADMIN})

# Aggregate document
DOCUMENT_SUPERVISOR_SUBMITTERS = frozenset({COLLABORATOR, SUPER_COLLABORATOR, CHAIRMAN, ADMIN})
DOCUMENT_CHAIRMAN_SUBMITTERS = frozenset({SUPERVISOR, ADMIN})
DOCUMENT_DECIDERS = frozenset({CHAIRMAN, ADMIN})

LIBRARY_READERS = frozenset({ADMIN, CHAIRMAN, MINISTER, SUPERVISOR, PROTOCOL, SUPER_COLLABORATOR})


def normalize_role(value) -> str | None:
    """Return the canonical role key for ``value`` or None if unknown.

    >>> normalize_role("Deputy")
    'chairman'
    """
    if value is None:
        return None
    key = str(value).strip().lower()
    key = _ROLE_ALIASES.get(key, key)
    return key if key in ROLE_KEYS else None


def role_label(key: str) -> str:
    return ROLE_LABELS.get(key, key)


def is_collaborator_role(key: str | None) -> bool:
    return key in COLLABORATOR_ROLES
