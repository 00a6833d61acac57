"""
Response hardening headers.

The portal answers with JSON only; the browser client is hosted elsewhere
and calls in through CORS, so the CSP can refuse every resource type.

    from collab_portal.middleware.security_headers import init_security_headers
    init_security_headers(app)
"""

_STATIC_HEADERS = {
    "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none'",
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
    "Referrer-Policy": "no-referrer",
}


def init_security_headers(app):
    """Add the hardening headers to every response a view has not set itself."""

    @app.after_request
    def _add_security_headers(response):
        for name, value in _STATIC_HEADERS.items():
            response.headers.setdefault(name, value)

        # Talking points are confidential; keep them out of shared caches
        if response.mimetype == "application/json":
            response.headers.setdefault("Cache-Control", "no-store")

        response.headers.pop("Server", None)
        return response
