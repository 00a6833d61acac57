"""
Talking-Points Collaboration Portal
Flask Application Factory.

Usage:
    from collab_portal import create_app
    app = create_app()           # defaults to APP_ENV or "development"
    app = create_app("testing")  # explicit config
"""

import importlib
import logging
import os

import click
from flask import Flask
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate

from collab_portal.config import config
from collab_portal.middleware.logging_config import configure_logging
from collab_portal.middleware.rate_limiter import init_rate_limits
from collab_portal.middleware.security_headers import init_security_headers
from collab_portal.middleware.timing import init_request_timing
from collab_portal.models import db

logger = logging.getLogger(__name__)

# ── SQLite FK enforcement (global engine event) ─────────────────────────
from sqlalchemy import event as _sa_event, engine as _sa_engine


@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _enable_sqlite_fk(dbapi_conn, connection_record):
    """Enable foreign key enforcement for SQLite connections."""
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


migrate = Migrate()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],                     # per-route limits only
    storage_uri=os.getenv("REDIS_URL", "memory://"),  # Redis in production, memory for dev
)

# Modules whose import registers workflow hook listeners
_HOOK_MODULES = ("collab_portal.services.content_workflow",)


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name.
                     One of: "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    # Instantiate so ProductionConfig can refuse to start without its env vars
    app.config.from_object(config[config_name]())

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins and cors_origins != "*":
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()])
    else:
        CORS(app)

    # ── Security headers ─────────────────────────────────────────────────
    init_security_headers(app)

    # ── Request timing middleware ────────────────────────────────────────
    init_request_timing(app)

    # ── JWT auth middleware (sets g.current_user) ────────────────────────
    from collab_portal.middleware.jwt_auth import init_jwt_middleware
    init_jwt_middleware(app)

    app.config.setdefault("MAX_CONTENT_LENGTH", 2 * 1024 * 1024)  # 2 MB

    # ── Models (import so Flask-Migrate sees every table) ────────────────
    from collab_portal.models import directory as _directory_models      # noqa: F401
    from collab_portal.models import event as _event_models              # noqa: F401
    from collab_portal.models import talking_points as _tp_models        # noqa: F401

    # ── Blueprints ───────────────────────────────────────────────────────
    from collab_portal.blueprints import register_error_handlers
    from collab_portal.blueprints.admin_bp import admin_bp
    from collab_portal.blueprints.auth_bp import auth_bp
    from collab_portal.blueprints.document_bp import document_bp
    from collab_portal.blueprints.event_bp import event_bp
    from collab_portal.blueprints.health_bp import health_bp
    from collab_portal.blueprints.library_bp import library_bp
    from collab_portal.blueprints.tp_bp import tp_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(event_bp)
    app.register_blueprint(tp_bp)
    app.register_blueprint(document_bp)
    app.register_blueprint(library_bp)
    app.register_blueprint(health_bp)

    register_error_handlers(app)

    # ── Workflow hook listeners ──────────────────────────────────────────
    for module in _HOOK_MODULES:
        importlib.import_module(module)

    # ── CLI commands ─────────────────────────────────────────────────────
    @app.cli.command("seed-reference-data")
    def seed_reference_data_cmd():
        """Seed roles and the default section list (idempotent)."""
        from collab_portal.services.directory_service import seed_reference_data
        result = seed_reference_data()
        click.echo(
            f"Seeded {result['roles']} role(s), {result['sections']} section(s), "
            f"{result['countries']} country(ies)."
        )

    @app.cli.command("create-admin")
    @click.argument("username")
    @click.argument("password")
    @click.option("--full-name", default="Administrator", show_default=True)
    def create_admin_cmd(username, password, full_name):
        """Create an administrator account."""
        from collab_portal.services.directory_service import create_user, seed_roles
        seed_roles()
        user = create_user(
            {"username": username, "password": password, "full_name": full_name, "role": "admin"}
        )
        click.echo(f"Created admin user {user.username} (id={user.id}).")

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app, limiter)

    return app
