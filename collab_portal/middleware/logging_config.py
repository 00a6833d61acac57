"""
Logging setup for the portal.

Two output shapes share one root handler:
  * JSON lines when the app runs without DEBUG (shipped to the log collector)
  * a short coloured line per record while developing

Request timing and the workflow services attach their context with
``extra=`` (event_id, section_id, country_id, user_id, action). Both
formatters pick those attributes up; nothing else needs to know about them.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

# Request context (timing middleware) + workflow context (services)
EXTRA_FIELDS = (
    "method",
    "path",
    "status",
    "duration_ms",
    "remote_addr",
    "request_id",
    "user_id",
    "event_id",
    "country_id",
    "section_id",
    "action",
)

_WORKFLOW_KEYS = ("event_id", "country_id", "section_id", "user_id", "action")
_NOISY_LOGGERS = ("werkzeug", "sqlalchemy.engine", "alembic.runtime.migration")


def _record_context(record: logging.LogRecord, keys) -> dict:
    return {k: getattr(record, k) for k in keys if getattr(record, k, None) is not None}


class JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "where": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        payload.update(_record_context(record, EXTRA_FIELDS))
        if record.exc_info and record.exc_info[0] is not None:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


class ReadableFormatter(logging.Formatter):
    """Coloured single-line output for a terminal."""

    LEVEL_COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        stamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        level = f"{self.LEVEL_COLORS.get(record.levelname, '')}{record.levelname:<8}{self.RESET}"
        parts = [f"{stamp} {level} {record.name}: {record.getMessage()}"]

        ctx = _record_context(record, _WORKFLOW_KEYS)
        if ctx:
            parts.append("(" + " ".join(f"{k}={v}" for k, v in ctx.items()) + ")")
        duration = getattr(record, "duration_ms", None)
        if duration is not None:
            parts.append(f"[{duration:.0f}ms]")

        line = " ".join(parts)
        if record.exc_info and record.exc_info[0] is not None:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def configure_logging(app):
    """
    Attach a single stderr handler to the root logger.

    LOG_LEVEL overrides the default level (INFO outside DEBUG, DEBUG otherwise).
    Called once from the app factory; repeated calls replace the handler.
    """
    testing = bool(app.config.get("TESTING"))
    structured = not app.config.get("DEBUG") and not testing

    default_level = "INFO" if structured else "DEBUG"
    level_name = os.getenv("LOG_LEVEL", default_level).upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level_name, level = "INFO", logging.INFO

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(JSONFormatter() if structured else ReadableFormatter())

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    app.logger.setLevel(level)

    if not testing:
        app.logger.info(
            "Logging ready: level=%s output=%s", level_name, "json" if structured else "text",
        )
