"""
Structured logging configuration.

JSON lines in production, readable text in development. Inside a request
every record carries the request id, the signed-in user and, on exam-session
routes, a short prefix of the session token, so a student's whole exam can be
followed through the log.
"""

from __future__ import annotations

import json
import logging
import time
import uuid

from flask import Flask, g, has_request_context, request

# Exam clients poll GET /api/sessions/<token> for the countdown; those
# access lines go to DEBUG.
POLL_ENDPOINTS = {"sessions.api_session_get"}
TOKEN_PREFIX_LEN = 8

CONTEXT_FIELDS = ("request_id", "user_id", "exam_session")


def _request_fields() -> dict:
    if not has_request_context():
        return {}
    fields = {"request_id": getattr(g, "request_id", "-")}
    # must not trigger a user load from inside a log call
    user = g.get("_login_user")
    if user is not None and user.is_authenticated:
        fields["user_id"] = user.id
    token = (request.view_args or {}).get("token")
    if token:
        fields["exam_session"] = token[:TOKEN_PREFIX_LEN]
    return fields


class RequestContextFilter(logging.Filter):
    """Copy request id, user id and exam-session prefix onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in _request_fields().items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True


class JSONFormatter(logging.Formatter):
    """Emit log records as single-line JSON."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in CONTEXT_FIELDS:
            if hasattr(record, key):
                entry[key] = getattr(record, key)
        if record.exc_info and record.exc_info[0]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class TextFormatter(logging.Formatter):
    def __init__(self) -> None:
        super().__init__("%(asctime)s [%(levelname)s] %(name)s%(ctx)s: %(message)s",
                         datefmt="%Y-%m-%d %H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        parts = [f"{k}={getattr(record, k)}" for k in CONTEXT_FIELDS if hasattr(record, k)]
        record.ctx = f" [{' '.join(parts)}]" if parts else ""
        return super().format(record)


def init_logging(app: Flask) -> None:
    """Configure the root logger from app config and install request hooks."""
    log_level = app.config.get("LOG_LEVEL", "INFO")

    root = logging.getLogger()
    root.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    root.handlers.clear()

    handler = logging.StreamHandler()
    handler.addFilter(RequestContextFilter())
    if app.config.get("LOG_FORMAT", "text") == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(TextFormatter())
    root.addHandler(handler)

    logging.getLogger("werkzeug").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)

    @app.before_request
    def _attach_request_id():
        g.request_id = request.headers.get("X-Request-ID", "")[:32] or uuid.uuid4().hex[:12]
        g.request_start = time.monotonic()

    @app.after_request
    def _log_request(response):
        duration_ms = (time.monotonic() - getattr(g, "request_start", time.monotonic())) * 1000
        level = logging.DEBUG if request.endpoint in POLL_ENDPOINTS else logging.INFO
        app.logger.log(level, "%s %s %s %.0fms",
                       request.method, request.path, response.status_code, duration_ms)
        response.headers["X-Request-ID"] = getattr(g, "request_id", "")
        return response
