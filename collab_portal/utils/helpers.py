"""Small helpers shared by services and blueprints."""

import logging
from contextlib import contextmanager
from datetime import date, datetime

from sqlalchemy.exc import IntegrityError, OperationalError

from collab_portal.core.exceptions import ValidationError
from collab_portal.models import db

logger = logging.getLogger(__name__)

# Tried in order; the browser client sends ISO, clerks type DD.MM.YYYY
_DATE_FORMATS = ("%Y-%m-%d", "%d.%m.%Y")


def parse_date(value, field: str = "date"):
    """Turn a request value into a ``date``.

    Accepts ``date``/``datetime`` objects, ISO dates, ISO datetimes (the time
    part is dropped) and DD.MM.YYYY. Empty input gives None; anything else
    raises a 400 ``ValidationError`` naming ``field``.
    """
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        raise ValidationError(
            f"Invalid {field}. Use YYYY-MM-DD or DD.MM.YYYY.",
            details={field: "invalid"},
            status=400,
        ) from None


_TRUE_WORDS = frozenset({"1", "true", "yes", "on"})
_FALSE_WORDS = frozenset({"0", "false", "no", "off"})


def clean_str(value, field: str) -> str:
    """Stripped text of a request value; None gives ``""``.

    Numbers, lists and objects are rejected with a 400 rather than coerced.
    """
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError(
            f"{field} must be a string", details={field: "invalid"}, status=400,
        )
    return value.strip()


def parse_bool(value, field: str) -> bool:
    """Strict flag parsing: real booleans, 0/1, or true/false/yes/no/on/off.

    ``"false"`` is False here, unlike ``bool("false")``. Anything else is a 400.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        word = value.strip().lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
    raise ValidationError(
        f"{field} must be true or false", details={field: "invalid"}, status=400,
    )


def first_present(data: dict, *keys, default=None):
    """Value of the first of ``keys`` that is set (not None) in ``data``."""
    return next((data[k] for k in keys if data.get(k) is not None), default)


@contextmanager
def atomic():
    """Commit the block as one transaction, or roll all of it back.

        with atomic():
            db.session.add(event)
            db.session.add_all(required_rows)
    """
    try:
        yield db.session
        db.session.commit()
    except Exception as exc:
        db.session.rollback()
        if isinstance(exc, IntegrityError):
            logger.warning("Commit rejected by a constraint: %s", exc.orig)
        elif isinstance(exc, OperationalError):
            logger.exception("Database unavailable during commit")
        raise
