"""
Directory Models: roles, users, sections, countries and the two
collaborator assignment relations.

Reference data only; the workflow tables live in ``event.py`` and
``talking_points.py``.  Sections, countries and users are never physically
deleted: sections and countries carry an ``is_active`` flag, users carry
``is_active`` plus the soft-delete marker from ``SoftDeleteMixin``.
"""

from datetime import datetime, timezone

from collab_portal.models import db
from collab_portal.models.soft_delete import SoftDeleteMixin


def _utcnow():
    return datetime.now(timezone.utc)


def _iso(value):
    return value.isoformat() if value else None


# ═══════════════════════════════════════════════════════════════
# 1. ROLES
# ═══════════════════════════════════════════════════════════════
class Role(db.Model):
    __tablename__ = "roles"

    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(50), unique=True, nullable=False)
    label = db.Column(db.String(100), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    users = db.relationship("User", back_populates="role", lazy="dynamic")

    def to_dict(self):
        return {"id": self.id, "key": self.key, "label": self.label}


# ═══════════════════════════════════════════════════════════════
# 2. USERS
# ═══════════════════════════════════════════════════════════════
class User(SoftDeleteMixin, db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(100), unique=True, nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)
    full_name = db.Column(db.String(200), nullable=False)
    email = db.Column(db.String(200))
    role_id = db.Column(db.Integer, db.ForeignKey("roles.id"), nullable=False, index=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    # Access tokens issued before this instant are rejected
    tokens_revoked_at = db.Column(db.DateTime(timezone=True))
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    role = db.relationship("Role", back_populates="users")
    section_assignments = db.relationship(
        "SectionAssignment", back_populates="user", lazy="dynamic",
        cascade="all, delete-orphan",
    )
    country_assignments = db.relationship(
        "CountryAssignment", back_populates="user", lazy="dynamic",
        cascade="all, delete-orphan",
    )

    @property
    def role_key(self):
        return self.role.key if self.role else None

    @property
    def can_authenticate(self):
        """Deactivated and soft-deleted users authenticate to nothing."""
        return bool(self.is_active) and not self.is_deleted

    def to_dict(self):
        return {
            "id": self.id,
            "username": self.username,
            "full_name": self.full_name,
            "email": self.email,
            "role": self.role_key,
            "role_label": self.role.label if self.role else None,
            "is_active": self.is_active,
            "deleted_at": _iso(self.deleted_at),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


# ═══════════════════════════════════════════════════════════════
# 3. SECTIONS
# ═══════════════════════════════════════════════════════════════
class Section(db.Model):
    __tablename__ = "sections"

    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(100), unique=True, nullable=False)
    label = db.Column(db.String(200), nullable=False)
    order_index = db.Column(db.Integer, nullable=False, default=0, index=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "key": self.key,
            "label": self.label,
            "order_index": self.order_index,
            "is_active": self.is_active,
        }


# ═══════════════════════════════════════════════════════════════
# 4. COUNTRIES
# ═══════════════════════════════════════════════════════════════
class Country(db.Model):
    __tablename__ = "countries"

    id = db.Column(db.Integer, primary_key=True)
    name_en = db.Column(db.String(200), unique=True, nullable=False)
    code = db.Column(db.String(3), unique=True, nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "name_en": self.name_en,
            "code": self.code,
            "is_active": self.is_active,
        }


# ═══════════════════════════════════════════════════════════════
# 5. SECTION_ASSIGNMENTS (collaborator -> section)
# ═══════════════════════════════════════════════════════════════
class SectionAssignment(db.Model):
    __tablename__ = "section_assignments"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    section_id = db.Column(
        db.Integer, db.ForeignKey("sections.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    __table_args__ = (
        db.UniqueConstraint("user_id", "section_id", name="uq_section_assignments_user_section"),
    )

    user = db.relationship("User", back_populates="section_assignments")
    section = db.relationship("Section")

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "username": self.user.username if self.user else None,
            "full_name": self.user.full_name if self.user else None,
            "section_id": self.section_id,
            "section_label": self.section.label if self.section else None,
            "created_at": _iso(self.created_at),
        }


# ═══════════════════════════════════════════════════════════════
# 6. COUNTRY_ASSIGNMENTS (collaborator -> country)
# ═══════════════════════════════════════════════════════════════
class CountryAssignment(db.Model):
    __tablename__ = "country_assignments"

    user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True,
    )
    country_id = db.Column(
        db.Integer, db.ForeignKey("countries.id", ondelete="CASCADE"), primary_key=True,
    )
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    user = db.relationship("User", back_populates="country_assignments")
    country = db.relationship("Country")

    def to_dict(self):
        return {
            "user_id": self.user_id,
            "country_id": self.country_id,
            "country_name_en": self.country.name_en if self.country else None,
        }
