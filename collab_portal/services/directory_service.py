"""
Directory Service: roles, users, sections, countries and assignments.

Business rules:
  - Usernames are unique and stored lower-case.
  - Users are never physically deleted; ``delete_user`` soft-deletes.
  - Deactivation, soft delete and any role change revoke issued tokens.
  - Section / country assignments belong only to collaborator roles; moving
    a user to any other role purges both assignment sets in the same commit.
  - Sections and countries are deactivated, never deleted.
"""

import logging
from datetime import datetime, timezone

from email_validator import EmailNotValidError, validate_email
from sqlalchemy import delete, select

from collab_portal.core.exceptions import ConflictError, NotFoundError, ValidationError
from collab_portal.core.roles import (
    ROLE_KEYS,
    ROLE_LABELS,
    is_collaborator_role,
    normalize_role,
)
from collab_portal.models import db
from collab_portal.models.directory import (
    Country,
    CountryAssignment,
    Role,
    Section,
    SectionAssignment,
    User,
)
from collab_portal.services.helpers.queries import coerce_id, get_or_raise, insert_if_absent
from collab_portal.utils.crypto import hash_password
from collab_portal.utils.helpers import atomic, clean_str, parse_bool

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8

DEFAULT_SECTIONS = (
    ("bilateral_relations", "Bilateral Relations"),
    ("political_dialogue", "Political Dialogue"),
    ("economy_trade", "Economy and Trade"),
    ("investment", "Investment"),
    ("energy", "Energy"),
    ("security_defence", "Security and Defence"),
    ("culture_education", "Culture and Education"),
    ("consular_affairs", "Consular Affairs"),
    ("multilateral_issues", "Multilateral Issues"),
)

DEFAULT_COUNTRIES = (
    ("France", "FRA"),
    ("Germany", "DEU"),
    ("Italy", "ITA"),
    ("Japan", "JPN"),
    ("United Kingdom", "GBR"),
    ("United States", "USA"),
)


# ═══════════════════════════════════════════════════════════════
# Private helpers
# ═══════════════════════════════════════════════════════════════
def _clean_text(data: dict, field: str, required: bool = True, max_len: int | None = None):
    value = clean_str(data.get(field), field)
    if required and not value:
        raise ValidationError(f"{field} is required", details={field: "required"}, status=400)
    if max_len and len(value) > max_len:
        raise ValidationError(
            f"{field} must be at most {max_len} characters", details={field: "too_long"}, status=400,
        )
    return value or None


def _clean_email(raw):
    if raw in (None, ""):
        return None
    try:
        return validate_email(clean_str(raw, "email"), check_deliverability=False).normalized
    except EmailNotValidError as e:
        raise ValidationError(f"Invalid email: {e}", details={"email": "invalid"}, status=400)


def _check_password(password) -> str:
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
            details={"password": "too_short"},
            status=400,
        )
    return password


def _clean_order_index(value) -> int:
    if value in (None, ""):
        return 0
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError("order_index must be an integer", details={"order_index": "invalid"}, status=400)


def _clean_country_code(value) -> str:
    code = clean_str(value, "code").upper()
    if not (2 <= len(code) <= 3) or not code.isalpha():
        raise ValidationError(
            "code must be a 2 or 3 letter ISO country code", details={"code": "invalid"}, status=400,
        )
    return code


def _collaborator_or_raise(user: User) -> None:
    if not is_collaborator_role(user.role_key):
        raise ValidationError(
            "Assignments can only be given to collaborators",
            details={"role": user.role_key},
        )


def _purge_assignments(user_id: int) -> None:
    db.session.execute(delete(SectionAssignment).where(SectionAssignment.user_id == user_id))
    db.session.execute(delete(CountryAssignment).where(CountryAssignment.user_id == user_id))


def revoke_tokens(user: User) -> None:
    """Invalidate every token issued to ``user`` so far. Caller commits."""
    user.tokens_revoked_at = datetime.now(timezone.utc)


# ═══════════════════════════════════════════════════════════════
# Roles
# ═══════════════════════════════════════════════════════════════
def seed_roles() -> int:
    """Create the fixed role rows that are missing; return how many were added."""
    existing = set(db.session.execute(select(Role.key)).scalars())
    added = 0
    for key in ROLE_KEYS:
        if key not in existing:
            db.session.add(Role(key=key, label=ROLE_LABELS[key]))
            added += 1
    db.session.commit()
    if added:
        logger.info("Seeded %d role(s)", added)
    return added


def list_roles() -> list[Role]:
    return Role.query.order_by(Role.id).all()


def get_role(value) -> Role:
    """Look up a role by key (``deputy`` is accepted for ``chairman``)."""
    key = normalize_role(value)
    if key is None:
        raise ValidationError(f"Unknown role: {value!r}", details={"role": "invalid"}, status=400)
    role = Role.query.filter_by(key=key).first()
    if role is None:
        raise NotFoundError(resource="Role", resource_id=key)
    return role


def seed_reference_data() -> dict:
    """Roles, the default sections and a starter country list; only what is missing."""
    roles = seed_roles()
    existing = set(db.session.execute(select(Section.key)).scalars())
    sections = 0
    for index, (key, label) in enumerate(DEFAULT_SECTIONS, start=1):
        if key not in existing:
            db.session.add(Section(key=key, label=label, order_index=index * 10))
            sections += 1
    known_codes = set(db.session.execute(select(Country.code)).scalars())
    known_names = set(db.session.execute(select(Country.name_en)).scalars())
    countries = 0
    for name, code in DEFAULT_COUNTRIES:
        if code not in known_codes and name not in known_names:
            db.session.add(Country(name_en=name, code=code))
            countries += 1
    db.session.commit()
    return {"roles": roles, "sections": sections, "countries": countries}


# ═══════════════════════════════════════════════════════════════
# Users
# ═══════════════════════════════════════════════════════════════
def list_users(include_deleted: bool = False) -> list[User]:
    q = User.query if include_deleted else User.query_active()
    return q.order_by(User.username).all()


def get_user(user_id) -> User:
    return get_or_raise(User, coerce_id(user_id, "user_id"))


def get_user_by_username(username: str) -> User | None:
    if not username:
        return None
    return User.query.filter_by(username=username.strip().lower()).first()


def create_user(data: dict, actor: User | None = None) -> User:
    """Create a user; ``role`` accepts any role key or the ``deputy`` alias."""
    username = _clean_text(data, "username", max_len=100).lower()
    full_name = _clean_text(data, "full_name", max_len=200)
    password = _check_password(data.get("password"))
    role = get_role(data.get("role"))
    email = _clean_email(data.get("email"))

    if get_user_by_username(username):
        raise ConflictError(resource="User", field="username", value=username)

    user = User(
        username=username,
        full_name=full_name,
        email=email,
        password_hash=hash_password(password),
        role_id=role.id,
        is_active=parse_bool(data.get("is_active", True), "is_active"),
    )
    db.session.add(user)
    db.session.commit()

    logger.info(
        "User created: %s (%s)", username, role.key,
        extra={"user_id": actor.id if actor else None},
    )
    return user


def update_user(user_id, data: dict, actor: User | None = None) -> User:
    """Update profile fields, password, active flag and role.

    A role change revokes the user's tokens; leaving the collaborator roles
    also deletes all section and country assignments, atomically.
    """
    user = get_user(user_id)
    if user.is_deleted:
        raise NotFoundError(resource="User", resource_id=user.id)

    with atomic():
        if "full_name" in data:
            user.full_name = _clean_text(data, "full_name", max_len=200)
        if "email" in data:
            user.email = _clean_email(data.get("email"))
        if data.get("password"):
            user.password_hash = hash_password(_check_password(data["password"]))
        if "is_active" in data:
            active = parse_bool(data["is_active"], "is_active")
            if user.is_active and not active:
                revoke_tokens(user)
            user.is_active = active
        if data.get("role") is not None:
            role = get_role(data["role"])
            if role.id != user.role_id:
                previous = user.role_key
                user.role = role
                user.role_id = role.id
                if not is_collaborator_role(role.key):
                    _purge_assignments(user.id)
                revoke_tokens(user)
                logger.info(
                    "User %s role changed %s -> %s", user.username, previous, role.key,
                    extra={"user_id": actor.id if actor else None},
                )

    return user


def deactivate_user(user_id, actor: User | None = None) -> User:
    """Switch a user off without deleting it."""
    return update_user(user_id, {"is_active": False}, actor)


def delete_user(user_id, actor: User | None = None) -> User:
    """Soft-delete a user; assignments stay for the record."""
    user = get_user(user_id)
    if actor is not None and actor.id == user.id:
        raise ValidationError("You cannot delete your own account")
    if user.is_deleted:
        return user

    user.soft_delete(actor.id if actor else None)
    user.is_active = False
    revoke_tokens(user)
    db.session.commit()

    logger.info(
        "User soft-deleted: %s", user.username,
        extra={"user_id": actor.id if actor else None},
    )
    return user


# ═══════════════════════════════════════════════════════════════
# Sections
# ═══════════════════════════════════════════════════════════════
def list_sections(include_inactive: bool = True) -> list[Section]:
    q = Section.query
    if not include_inactive:
        q = q.filter(Section.is_active.is_(True))
    return q.order_by(Section.order_index, Section.id).all()


def list_user_sections(user: User) -> list[Section]:
    """Sections assigned to ``user`` (``/sections?mine=1``)."""
    return (
        Section.query
        .join(SectionAssignment, SectionAssignment.section_id == Section.id)
        .filter(SectionAssignment.user_id == user.id)
        .order_by(Section.order_index, Section.id)
        .all()
    )


def create_section(data: dict) -> Section:
    key = _clean_text(data, "key", max_len=100).lower()
    label = _clean_text(data, "label", max_len=200)
    if Section.query.filter_by(key=key).first():
        raise ConflictError(resource="Section", field="key", value=key)

    section = Section(
        key=key,
        label=label,
        order_index=_clean_order_index(data.get("order_index")),
        is_active=parse_bool(data.get("is_active", True), "is_active"),
    )
    db.session.add(section)
    db.session.commit()
    logger.info("Section created: %s", key)
    return section


def update_section(section_id, data: dict) -> Section:
    section = get_or_raise(Section, coerce_id(section_id, "section_id"))
    if "key" in data:
        key = _clean_text(data, "key", max_len=100).lower()
        clash = Section.query.filter(Section.key == key, Section.id != section.id).first()
        if clash:
            raise ConflictError(resource="Section", field="key", value=key)
        section.key = key
    if "label" in data:
        section.label = _clean_text(data, "label", max_len=200)
    if "order_index" in data:
        section.order_index = _clean_order_index(data.get("order_index"))
    if "is_active" in data:
        section.is_active = parse_bool(data["is_active"], "is_active")
    db.session.commit()
    return section


def deactivate_section(section_id) -> Section:
    return update_section(section_id, {"is_active": False})


# ═══════════════════════════════════════════════════════════════
# Countries
# ═══════════════════════════════════════════════════════════════
def list_countries(active_only: bool = False) -> list[Country]:
    q = Country.query
    if active_only:
        q = q.filter(Country.is_active.is_(True))
    return q.order_by(Country.name_en).all()


def create_country(data: dict) -> Country:
    name = _clean_text(data, "name_en", max_len=200)
    code = _clean_country_code(data.get("code"))
    if Country.query.filter_by(name_en=name).first():
        raise ConflictError(resource="Country", field="name_en", value=name)
    if Country.query.filter_by(code=code).first():
        raise ConflictError(resource="Country", field="code", value=code)

    country = Country(
        name_en=name,
        code=code,
        is_active=parse_bool(data.get("is_active", True), "is_active"),
    )
    db.session.add(country)
    db.session.commit()
    logger.info("Country created: %s (%s)", name, code)
    return country


def update_country(country_id, data: dict) -> Country:
    country = get_or_raise(Country, coerce_id(country_id, "country_id"))
    if "name_en" in data:
        name = _clean_text(data, "name_en", max_len=200)
        if Country.query.filter(Country.name_en == name, Country.id != country.id).first():
            raise ConflictError(resource="Country", field="name_en", value=name)
        country.name_en = name
    if "code" in data:
        code = _clean_country_code(data.get("code"))
        if Country.query.filter(Country.code == code, Country.id != country.id).first():
            raise ConflictError(resource="Country", field="code", value=code)
        country.code = code
    if "is_active" in data:
        country.is_active = parse_bool(data["is_active"], "is_active")
    db.session.commit()
    return country


def deactivate_country(country_id) -> Country:
    return update_country(country_id, {"is_active": False})


# ═══════════════════════════════════════════════════════════════
# Section assignments
# ═══════════════════════════════════════════════════════════════
def list_section_assignments(user_id=None, section_id=None) -> list[SectionAssignment]:
    q = SectionAssignment.query
    if user_id not in (None, ""):
        q = q.filter(SectionAssignment.user_id == coerce_id(user_id, "user_id"))
    if section_id not in (None, ""):
        q = q.filter(SectionAssignment.section_id == coerce_id(section_id, "section_id"))
    return q.order_by(SectionAssignment.user_id, SectionAssignment.section_id).all()


def add_section_assignment(user_id, section_id) -> SectionAssignment:
    """Assign a section to a collaborator; re-assigning is a no-op."""
    user = get_user(user_id)
    section = get_or_raise(Section, coerce_id(section_id, "section_id"))
    _collaborator_or_raise(user)

    created = insert_if_absent(SectionAssignment, user_id=user.id, section_id=section.id)
    db.session.commit()
    if created:
        logger.info(
            "Section %s assigned to %s", section.key, user.username,
            extra={"user_id": user.id, "section_id": section.id},
        )
    return SectionAssignment.query.filter_by(user_id=user.id, section_id=section.id).one()


def remove_section_assignment(assignment_id) -> None:
    assignment = get_or_raise(
        SectionAssignment, coerce_id(assignment_id, "assignment_id"), label="Section assignment",
    )
    db.session.delete(assignment)
    db.session.commit()


# ═══════════════════════════════════════════════════════════════
# Country assignments
# ═══════════════════════════════════════════════════════════════
def list_country_assignments(user_id) -> list[CountryAssignment]:
    user = get_user(user_id)
    return (
        CountryAssignment.query
        .filter(CountryAssignment.user_id == user.id)
        .order_by(CountryAssignment.country_id)
        .all()
    )


def add_country_assignment(user_id, country_id) -> CountryAssignment:
    user = get_user(user_id)
    country = get_or_raise(Country, coerce_id(country_id, "country_id"))
    _collaborator_or_raise(user)

    insert_if_absent(CountryAssignment, user_id=user.id, country_id=country.id)
    db.session.commit()
    return db.session.get(CountryAssignment, (user.id, country.id))


def replace_country_assignments(user_id, country_ids) -> list[int]:
    """Replace the user's whole country set in one transaction."""
    user = get_user(user_id)
    if not isinstance(country_ids, (list, tuple, set)):
        raise ValidationError(
            "country_ids must be a list", details={"country_ids": "invalid"}, status=400,
        )
    wanted = sorted({coerce_id(cid, "country_ids") for cid in country_ids})
    if wanted:
        _collaborator_or_raise(user)
        found = set(db.session.execute(
            select(Country.id).where(Country.id.in_(wanted))
        ).scalars())
        missing = [cid for cid in wanted if cid not in found]
        if missing:
            raise NotFoundError(resource="Country", resource_id=missing[0])

    with atomic():
        db.session.execute(delete(CountryAssignment).where(CountryAssignment.user_id == user.id))
        for cid in wanted:
            db.session.add(CountryAssignment(user_id=user.id, country_id=cid))

    logger.info(
        "Country assignments replaced for %s: %s", user.username, wanted,
        extra={"user_id": user.id},
    )
    return wanted
