"""JSON error bodies shared by every blueprint.

    from collab_portal.utils.errors import api_error, E

    return api_error(E.NOT_FOUND, "Event not found")
    return api_error(E.WORKFLOW_STATE, "Cannot submit",
                     details={"status": "approved_by_chairman"})

Every error body has the same keys: ``error`` (text for the browser),
``code`` (one of the ``E`` constants) and, when there is something to add,
``details``.
"""

from __future__ import annotations

from flask import jsonify


class E:
    """Error codes the browser client can branch on."""

    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"
    UNAUTHENTICATED = "ERR_UNAUTHENTICATED"
    FORBIDDEN = "ERR_FORBIDDEN"
    NOT_FOUND = "ERR_NOT_FOUND"
    CONFLICT_DUPLICATE = "ERR_CONFLICT_DUPLICATE"
    WORKFLOW_STATE = "ERR_WORKFLOW_STATE"
    RATE_LIMITED = "ERR_RATE_LIMITED"
    DATABASE = "ERR_DATABASE"
    INTERNAL = "ERR_INTERNAL"


# Status used when the caller does not pass one
_STATUS_BY_CODE: dict[str, int] = {
    E.VALIDATION_REQUIRED: 400,
    E.VALIDATION_INVALID: 400,
    E.UNAUTHENTICATED: 401,
    E.FORBIDDEN: 403,
    E.NOT_FOUND: 404,
    E.CONFLICT_DUPLICATE: 409,
    E.WORKFLOW_STATE: 422,
    E.RATE_LIMITED: 429,
    E.DATABASE: 500,
    E.INTERNAL: 500,
}


def api_error(code: str, message: str, *, status: int | None = None, details: dict | None = None):
    """Build a ``(response, status)`` pair for a failed request.

    ``status`` wins over the code's default; unknown codes fall back to 400.
    Empty ``details`` are left out of the body.
    """
    body: dict = {"error": message, "code": code}
    if details:
        body["details"] = details
    return jsonify(body), status or _STATUS_BY_CODE.get(code, 400)
