"""
JWT Auth Middleware: resolves the bearer token of every API request.

Every ``/api/v1/*`` path except the ones in ``JWT_SKIP_PREFIXES`` requires
``Authorization: Bearer <token>``.  On success the loaded user is stored on
``g.current_user``; otherwise the request is answered with 401 before any
view runs.
"""

import logging

from flask import g, request

from collab_portal.core.exceptions import UnauthenticatedError
from collab_portal.services.auth_service import resolve_user_from_token
from collab_portal.utils.errors import E, api_error

logger = logging.getLogger(__name__)

# Paths that skip JWT auth entirely
JWT_SKIP_PREFIXES = (
    "/api/v1/auth/login",
    "/api/v1/health",
)


def current_user():
    """The authenticated user of this request (set by the middleware)."""
    user = getattr(g, "current_user", None)
    if user is None:
        raise UnauthenticatedError()
    return user


def init_jwt_middleware(app):
    """Register JWT middleware as a before_request hook."""

    @app.before_request
    def _jwt_auth():
        g.current_user = None

        path = request.path
        if request.method == "OPTIONS" or not path.startswith("/api/v1/"):
            return None
        for prefix in JWT_SKIP_PREFIXES:
            if path.startswith(prefix):
                return None

        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer "):
            return api_error(E.UNAUTHENTICATED, "Authentication required")

        token = auth_header[7:].strip()  # Strip "Bearer "
        try:
            g.current_user = resolve_user_from_token(token)
        except UnauthenticatedError as exc:
            logger.info("Rejected token on %s: %s", path, exc)
            return api_error(E.UNAUTHENTICATED, str(exc))
        return None
