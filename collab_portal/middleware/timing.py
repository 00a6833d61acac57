"""
Per-request timing and correlation ids.

Every response carries X-Request-ID (echoed from the client when present)
and X-Request-Duration-Ms. API calls are logged once on the way out, at
WARNING when slow, ERROR on a 5xx and DEBUG otherwise.
"""

import logging
import time
import uuid

from flask import Flask, g, request

logger = logging.getLogger(__name__)

SLOW_THRESHOLD_MS = 1000

# Polled by load balancers
_QUIET_PATHS = frozenset({"/api/v1/health"})


def _log_level(status: int, duration_ms: float) -> int:
    if status >= 500:
        return logging.ERROR
    if duration_ms > SLOW_THRESHOLD_MS:
        return logging.WARNING
    return logging.DEBUG


def init_request_timing(app: Flask):

    @app.before_request
    def _start_timer():
        g.request_start = time.perf_counter()
        g.request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:12]

    @app.after_request
    def _finish_timer(response):
        started = g.pop("request_start", None)
        if started is None:
            return response

        elapsed = (time.perf_counter() - started) * 1000
        request_id = g.get("request_id", "")
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Request-Duration-Ms"] = f"{elapsed:.1f}"

        if not request.path.startswith("/api/") or request.path in _QUIET_PATHS:
            return response

        user = g.get("current_user")
        logger.log(
            _log_level(response.status_code, elapsed),
            "%s %s -> %d in %.0fms",
            request.method, request.path, response.status_code, elapsed,
            extra={
                "method": request.method,
                "path": request.path,
                "status": response.status_code,
                "duration_ms": elapsed,
                "remote_addr": request.remote_addr,
                "request_id": request_id,
                "user_id": user.id if user is not None else None,
            },
        )
        return response
