"""
Talking-Points Collaboration Portal
Blueprint registry and shared request helpers.
"""

import logging

from flask import request
from werkzeug.exceptions import HTTPException

from collab_portal.core.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    UnauthenticatedError,
    ValidationError,
)
from collab_portal.utils.errors import E, api_error
from collab_portal.utils.helpers import first_present

logger = logging.getLogger(__name__)


def json_body() -> dict:
    """Request JSON as a dict (empty when the body is missing or not an object)."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def param(data: dict, name: str, default=None):
    """Read ``name`` from a body or query dict, accepting its camelCase twin.

    ``param(data, "event_id")`` also matches ``eventId``.
    """
    head, *rest = name.split("_")
    camel = head + "".join(part.title() for part in rest)
    return first_present(data, name, camel, default=default)


def with_snake_keys(data: dict, *names: str) -> dict:
    """Copy camelCase variants of ``names`` onto their snake_case keys."""
    out = dict(data)
    for name in names:
        value = param(data, name)
        if value is not None:
            out[name] = value
    return out


def query_flag(name: str) -> bool | None:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return None
    return raw.strip().lower() in ("1", "true", "yes", "on")


def register_error_handlers(app):
    """Map the portal exception hierarchy onto JSON error responses."""

    @app.errorhandler(NotFoundError)
    def _handle_not_found(error: NotFoundError):
        return api_error(E.NOT_FOUND, str(error))

    @app.errorhandler(ValidationError)
    def _handle_validation(error: ValidationError):
        code = E.VALIDATION_INVALID if error.status == 400 else E.WORKFLOW_STATE
        return api_error(code, str(error), status=error.status, details=error.details)

    @app.errorhandler(ConflictError)
    def _handle_conflict(error: ConflictError):
        return api_error(E.CONFLICT_DUPLICATE, str(error), details={"field": error.field})

    @app.errorhandler(ForbiddenError)
    def _handle_forbidden(error: ForbiddenError):
        details = {"required_roles": error.required} if error.required else None
        return api_error(E.FORBIDDEN, str(error), details=details)

    @app.errorhandler(UnauthenticatedError)
    def _handle_unauthenticated(error: UnauthenticatedError):
        return api_error(E.UNAUTHENTICATED, str(error))

    @app.errorhandler(404)
    def _not_found(e):
        return {"error": "Not found", "path": request.path}, 404

    @app.errorhandler(405)
    def _method_not_allowed(e):
        return {"error": "Method not allowed"}, 405

    @app.errorhandler(429)
    def _rate_limited(e):
        return api_error(E.RATE_LIMITED, "Too many requests", details={"retry_after": e.description})

    @app.errorhandler(Exception)
    def _handle_unexpected(error: Exception):
        if isinstance(error, HTTPException):
            return error
        logger.exception("Unexpected error endpoint=%s", request.endpoint)
        return api_error(E.INTERNAL, "Internal server error")
