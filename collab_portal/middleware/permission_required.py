"""
Role Decorators: route protection by role key.

Workflow endpoints leave role decisions to the services (they depend on
assignments and the current status); administrative endpoints use these
decorators instead.

Usage:
    @bp.route("/users", methods=["POST"])
    @require_role(ADMIN)
    def create_user():
        ...
"""

import functools
import logging

from collab_portal.core.exceptions import ForbiddenError
from collab_portal.middleware.jwt_auth import current_user

logger = logging.getLogger(__name__)


def require_role(*roles: str):
    """
    Decorator: require the authenticated user to hold one of ``roles``.

    Raises ForbiddenError (403) otherwise; the app-wide handler renders it.
    """
    allowed = frozenset(roles)

    def decorator(f):
        @functools.wraps(f)
        def decorated(*args, **kwargs):
            user = current_user()
            if user.role_key not in allowed:
                logger.warning(
                    "User %d denied: role '%s' not in %s on %s",
                    user.id, user.role_key, sorted(allowed), f.__name__,
                )
                raise ForbiddenError("Permission denied", required=allowed)
            return f(*args, **kwargs)
        return decorated
    return decorator
