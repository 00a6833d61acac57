"""
Shared pytest fixtures for the talking-points portal test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate, roles seeded (autouse)
    - client: Flask test client (function-scoped)
    - make_user / make_section / make_country / make_event: ORM factories
    - assign: give a collaborator section + country assignments
    - auth_headers: bearer header for a user
    - world: one country, three sections, one event and a cast of users
"""

import itertools

import pytest

from collab_portal import create_app
from collab_portal.models import db as _db
from collab_portal.models.directory import (
    Country,
    CountryAssignment,
    Role,
    Section,
    SectionAssignment,
    User,
)
from collab_portal.models.event import Event, EventRequiredSection
from collab_portal.services.directory_service import seed_roles
from collab_portal.services.jwt_service import generate_access_token
from collab_portal.utils.crypto import hash_password

TEST_PASSWORD = "Pass1234!"

# Cheap bcrypt cost for fixtures; verification does not depend on the cost
_TEST_HASH = None

_seq = itertools.count(1)


def _password_hash():
    global _TEST_HASH
    if _TEST_HASH is None:
        _TEST_HASH = hash_password(TEST_PASSWORD, rounds=4)
    return _TEST_HASH


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        seed_roles()
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Factories ────────────────────────────────────────────────────────────


@pytest.fixture()
def make_user():
    def _make_user(role="collaborator", username=None, **kwargs) -> User:
        role_row = Role.query.filter_by(key=role).one()
        n = next(_seq)
        user = User(
            username=username or f"{role}{n}",
            full_name=kwargs.pop("full_name", f"{role.title()} {n}"),
            password_hash=_password_hash(),
            role_id=role_row.id,
            **kwargs,
        )
        _db.session.add(user)
        _db.session.commit()
        return user
    return _make_user


@pytest.fixture()
def make_section():
    def _make_section(key=None, order_index=0, **kwargs) -> Section:
        n = next(_seq)
        section = Section(
            key=key or f"section_{n}",
            label=kwargs.pop("label", f"Section {n}"),
            order_index=order_index,
            **kwargs,
        )
        _db.session.add(section)
        _db.session.commit()
        return section
    return _make_section


@pytest.fixture()
def make_country():
    def _make_country(name=None, code=None, **kwargs) -> Country:
        n = next(_seq)
        country = Country(
            name_en=name or f"Country {n}",
            code=code or f"C{n % 100:02d}"[:3],
            **kwargs,
        )
        _db.session.add(country)
        _db.session.commit()
        return country
    return _make_country


@pytest.fixture()
def make_event():
    def _make_event(country, sections, title="State visit", **kwargs) -> Event:
        event = Event(country_id=country.id, title=title, **kwargs)
        _db.session.add(event)
        for section in sections:
            event.required_sections.append(EventRequiredSection(section_id=section.id))
        _db.session.commit()
        return event
    return _make_event


@pytest.fixture()
def assign():
    def _assign(user, sections=(), countries=()):
        for section in sections:
            _db.session.add(SectionAssignment(user_id=user.id, section_id=section.id))
        for country in countries:
            _db.session.add(CountryAssignment(user_id=user.id, country_id=country.id))
        _db.session.commit()
        return user
    return _assign


@pytest.fixture()
def auth_headers():
    def _auth_headers(user) -> dict:
        token = generate_access_token(user.id, user.role_key)
        return {"Authorization": f"Bearer {token}"}
    return _auth_headers


# ── Scenario ─────────────────────────────────────────────────────────────


class World:
    """Named handles for the standard scenario."""

    def __init__(self, **kwargs):
        self.__dict__.update(kwargs)


@pytest.fixture()
def world(make_user, make_section, make_country, make_event, assign):
    """
    One country with one event requiring three sections (ordered s1, s2, s3).

    ``collab`` is assigned to s1 + the event's country; ``other_collab`` is
    assigned to s3 only in a different country.
    """
    country = make_country(name="Freedonia", code="FRE")
    elsewhere = make_country(name="Sylvania", code="SYL")
    s1 = make_section(key="politics", label="Politics", order_index=10)
    s2 = make_section(key="economy", label="Economy", order_index=20)
    s3 = make_section(key="culture", label="Culture", order_index=30)
    event = make_event(country, [s1, s2, s3], title="Freedonia state visit")

    collab = assign(make_user("collaborator"), sections=[s1], countries=[country])
    other_collab = assign(make_user("collaborator"), sections=[s3], countries=[elsewhere])

    return World(
        country=country,
        elsewhere=elsewhere,
        s1=s1,
        s2=s2,
        s3=s3,
        event=event,
        collab=collab,
        other_collab=other_collab,
        admin=make_user("admin"),
        supervisor=make_user("supervisor"),
        chairman=make_user("chairman"),
        minister=make_user("minister"),
        protocol=make_user("protocol"),
        viewer=make_user("viewer"),
    )
