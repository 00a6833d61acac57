"""
Rate limiting configuration.

The Limiter instance is created in ``collab_portal/__init__.py`` with no
default limits; this module applies the per-route limits.

Limits (per remote IP):
    - Login:          LOGIN_RATE_LIMIT (default 10/minute), set on the view
                      in blueprints/auth_bp.py
    - Write blueprints: 120/minute
    - Health check:   exempt

Usage:
    from collab_portal.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

WRITE_LIMIT = "120/minute"


def init_rate_limits(app, limiter):
    """Apply rate limits to API blueprints (disabled in testing mode)."""

    if app.config.get("TESTING"):
        app.logger.info("Rate limiter disabled (TESTING=True)")
        return

    for bp_name in ("talking_points", "document", "admin", "events"):
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit(WRITE_LIMIT)(bp)

    bp = app.blueprints.get("health")
    if bp:
        limiter.exempt(bp)

    app.logger.info(
        "Rate limiter configured, login: %s, API: %s",
        app.config.get("LOGIN_RATE_LIMIT", "10/minute"), WRITE_LIMIT,
    )
