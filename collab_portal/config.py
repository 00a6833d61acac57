"""
Configuration classes for the portal's app factory.

    app.config.from_object(config[os.getenv("APP_ENV", "development")]())

Everything deployment-specific comes from the environment; the classes only
decide defaults per environment.
"""

import os
import secrets

basedir = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))

_LOCAL_DB = "sqlite:///" + os.path.join(basedir, "instance", "collab_portal_dev.db")

# Sessions signed with this die on restart; production refuses to start without SECRET_KEY
_EPHEMERAL_SECRET = secrets.token_hex(32)

_POSTGRES_POOL = {
    "pool_pre_ping": True,
    "pool_size": 5,
    "max_overflow": 10,
    "pool_recycle": 300,
    "pool_timeout": 20,
}


def _env_flag(name: str, default: str = "true") -> bool:
    return os.getenv(name, default).lower() not in ("false", "0", "no", "off")


def _database_url() -> str | None:
    raw = os.getenv("DATABASE_URL", "")
    if not raw:
        return None
    # SQLAlchemy 2.x only accepts the postgresql:// scheme
    if raw.startswith("postgres://"):
        raw = "postgresql://" + raw[len("postgres://"):]
    return raw


class Config:
    """Defaults shared by every environment."""

    SECRET_KEY = os.getenv("SECRET_KEY", _EPHEMERAL_SECRET)
    DEBUG = False
    TESTING = False

    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = dict(_POSTGRES_POOL)

    # Access tokens; JWT_SECRET_KEY falls back to SECRET_KEY when unset
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY")
    JWT_ACCESS_EXPIRES = int(os.getenv("JWT_ACCESS_EXPIRES", str(8 * 3600)))

    # Flask-Limiter
    REDIS_URL = os.getenv("REDIS_URL", "memory://")
    LOGIN_RATE_LIMIT = os.getenv("LOGIN_RATE_LIMIT", "10/minute")

    # Comma separated list, "*" allows any origin
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")

    # Supervisor may only forward a document once all its required sections are approved
    DOCUMENT_SUBMIT_REQUIRES_SECTION_APPROVAL = _env_flag("DOCUMENT_SUBMIT_REQUIRES_SECTION_APPROVAL")


class DevelopmentConfig(Config):
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = _database_url() or _LOCAL_DB
    if SQLALCHEMY_DATABASE_URI == _LOCAL_DB:
        SQLALCHEMY_ENGINE_OPTIONS = {"pool_pre_ping": True}


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    SQLALCHEMY_ENGINE_OPTIONS = {}
    RATELIMIT_ENABLED = False
    REDIS_URL = "memory://"
    DOCUMENT_SUBMIT_REQUIRES_SECTION_APPROVAL = True


class ProductionConfig(Config):
    """Production: PostgreSQL only, explicit secrets and origins."""

    SQLALCHEMY_DATABASE_URI = _database_url()
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "")
    # 30s server-side statement timeout
    SQLALCHEMY_ENGINE_OPTIONS = {
        **_POSTGRES_POOL,
        "connect_args": {"options": "-c statement_timeout=30000"},
    }

    def __init__(self):
        if not self.SQLALCHEMY_DATABASE_URI:
            raise RuntimeError("DATABASE_URL must be set in production")
        if not os.getenv("SECRET_KEY"):
            raise RuntimeError("SECRET_KEY must be set in production")


config = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "default": DevelopmentConfig,
}
