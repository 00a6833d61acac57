"""
Shared query helpers for the service layer.

get_or_raise / get_or_none
    Primary-key lookups that surface a ``NotFoundError`` (HTTP 404) instead
    of returning None into business logic.

insert_if_absent
    Lazy-row creation.  Issues ``INSERT ... ON CONFLICT DO NOTHING`` against
    the table's unique constraint so that two concurrent first touches of the
    same key converge on one row without raising.  Callers re-select the row
    afterwards.

Usage:
    event = get_or_raise(Event, event_id)

    insert_if_absent(ContentItem, event_id=1, country_id=2, section_id=3)
    item = ContentItem.query.filter_by(event_id=1, country_id=2, section_id=3).one()
"""

import logging

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError

from collab_portal.core.exceptions import NotFoundError, ValidationError
from collab_portal.models import db

logger = logging.getLogger(__name__)

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def coerce_id(value, field: str) -> int:
    """Parse an id coming from a query string or JSON body.

    Raises:
        ValidationError(status=400): value is missing or not a positive integer.
    """
    if value is None or value == "":
        raise ValidationError(f"{field} is required", details={field: "required"}, status=400)
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer", details={field: "invalid"}, status=400)
    if parsed <= 0:
        raise ValidationError(f"{field} must be positive", details={field: "invalid"}, status=400)
    return parsed


def get_or_none(model, pk):
    """Fetch a model instance by primary key, None when absent."""
    if pk is None:
        return None
    return db.session.execute(select(model).where(model.id == pk)).scalar_one_or_none()


def get_or_raise(model, pk, label: str | None = None):
    """Fetch a model instance by primary key or raise NotFoundError."""
    obj = get_or_none(model, pk)
    if obj is None:
        raise NotFoundError(resource=label or model.__name__, resource_id=pk)
    return obj


def insert_if_absent(model, **values) -> bool:
    """Insert a row unless one with the same unique key already exists.

    Runs inside the caller's transaction; the caller owns the commit.

    Returns:
        True when this call inserted the row, False when it already existed.
    """
    table = model.__table__
    dialect = db.session.get_bind().dialect.name
    insert_fn = _UPSERT_DIALECTS.get(dialect)

    if insert_fn is not None:
        stmt = insert_fn(table).values(**values).on_conflict_do_nothing()
        result = db.session.execute(stmt)
        return bool(result.rowcount)

    # Other dialects: savepoint + IntegrityError as the conflict signal
    try:
        with db.session.begin_nested():
            db.session.execute(table.insert().values(**values))
        return True
    except IntegrityError:
        logger.debug("insert_if_absent: %s %s already present", table.name, values)
        return False
