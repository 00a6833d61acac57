"""
Auth Service: password login and bearer-token resolution.

Used by the auth blueprint (login) and by the JWT middleware (every other
API request).  Only the identity and role of the caller are established
here; what the caller may do is decided by the workflow services.
"""

import logging
from datetime import timezone

import jwt

from collab_portal.core.exceptions import UnauthenticatedError
from collab_portal.models import db
from collab_portal.models.directory import User
from collab_portal.services.directory_service import get_user_by_username
from collab_portal.services.jwt_service import (
    decode_access_token,
    generate_access_token,
    get_access_expires,
)
from collab_portal.utils.crypto import verify_password

logger = logging.getLogger(__name__)


def authenticate(username: str, password: str) -> User:
    """Return the user for valid credentials or raise UnauthenticatedError."""
    user = get_user_by_username(username or "")
    if user is None or not verify_password(password or "", user.password_hash):
        logger.warning("Failed login for username=%r", (username or "")[:100])
        raise UnauthenticatedError("Invalid username or password")
    if not user.can_authenticate:
        logger.warning("Login refused for disabled user %s", user.id)
        raise UnauthenticatedError("Account is disabled")
    return user


def login(username: str, password: str) -> dict:
    user = authenticate(username, password)
    token = generate_access_token(user.id, user.role_key)
    logger.info("User logged in", extra={"user_id": user.id})
    return {
        "access_token": token,
        "token_type": "Bearer",
        "expires_in": get_access_expires(),
        "user": user.to_dict(),
    }


def _issued_before_revocation(payload: dict, user: User) -> bool:
    revoked_at = user.tokens_revoked_at
    if revoked_at is None:
        return False
    # SQLite hands back naive datetimes; they were written as UTC
    if revoked_at.tzinfo is None:
        revoked_at = revoked_at.replace(tzinfo=timezone.utc)
    issued = payload.get("auth_time", payload.get("iat", 0))
    return float(issued) < revoked_at.timestamp()


def resolve_user_from_token(token: str) -> User:
    """Decode ``token`` and load its user.

    Raises:
        UnauthenticatedError: invalid or expired token, unknown, inactive or
            deleted user, or a token issued before the user's revocation stamp.
    """
    try:
        payload = decode_access_token(token)
    except jwt.ExpiredSignatureError:
        raise UnauthenticatedError("Token has expired")
    except jwt.InvalidTokenError:
        raise UnauthenticatedError("Invalid token")

    try:
        user_id = int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        raise UnauthenticatedError("Invalid token")

    user = db.session.get(User, user_id)
    if user is None or not user.can_authenticate:
        raise UnauthenticatedError("User is inactive or no longer exists")
    if _issued_before_revocation(payload, user):
        raise UnauthenticatedError("Token has been revoked")
    return user
