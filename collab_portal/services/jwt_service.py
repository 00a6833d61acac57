"""
Access tokens for the portal API (PyJWT, HS256).

Claims:
    sub        user id as a string
    role       role key at login time (informational, re-read from the DB per request)
    type       always "access"
    iat / exp  issue and expiry instants
    auth_time  issue instant as float seconds, compared with User.tokens_revoked_at
    jti        random id

Tokens live JWT_ACCESS_EXPIRES seconds (8 hours by default). There is no
refresh token; clients sign in again.
"""

import uuid
from datetime import datetime, timedelta, timezone

import jwt
from flask import current_app

DEFAULT_ACCESS_EXPIRES = 8 * 3600
ALGORITHM = "HS256"
TOKEN_TYPE = "access"


def _signing_key() -> str:
    cfg = current_app.config
    return cfg.get("JWT_SECRET_KEY") or cfg["SECRET_KEY"]


def get_access_expires() -> int:
    """Token lifetime in seconds."""
    return int(current_app.config.get("JWT_ACCESS_EXPIRES", DEFAULT_ACCESS_EXPIRES))


def generate_access_token(user_id: int, role: str | None) -> str:
    issued = datetime.now(timezone.utc)
    claims = {
        "sub": str(user_id),
        "role": role,
        "type": TOKEN_TYPE,
        "iat": issued,
        "auth_time": issued.timestamp(),
        "exp": issued + timedelta(seconds=get_access_expires()),
        "jti": uuid.uuid4().hex,
    }
    return jwt.encode(claims, _signing_key(), algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Verify ``token`` and return its claims.

    PyJWT errors (expired, bad signature, missing claims) propagate; a token
    of another type is rejected with ``jwt.InvalidTokenError``.
    """
    claims = jwt.decode(
        token,
        _signing_key(),
        algorithms=[ALGORITHM],
        options={"require": ["sub", "iat", "exp"]},
    )
    if claims.get("type") != TOKEN_TYPE:
        raise jwt.InvalidTokenError(f"Not an access token: type={claims.get('type')!r}")
    return claims
