"""
Crypto utilities: bcrypt password hashing.

Hashes produced by other bcrypt implementations ($2a$ / $2b$ / $2y$) verify
unchanged, so accounts migrated from an earlier deployment keep working.
"""

import bcrypt

BCRYPT_ROUNDS = 12
_BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")


def hash_password(plain_password: str, rounds: int = BCRYPT_ROUNDS) -> str:
    """Hash a plain-text password with bcrypt."""
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(plain_password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain_password: str, password_hash: str | None) -> bool:
    """Verify a plain-text password against its bcrypt hash."""
    if not password_hash or not plain_password:
        return False
    if not password_hash.startswith(_BCRYPT_PREFIXES):
        return False
    # bcrypt.checkpw only understands the $2b$ / $2a$ identifiers
    if password_hash.startswith("$2y$"):
        password_hash = "$2b$" + password_hash[4:]
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False
