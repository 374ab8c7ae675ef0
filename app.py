"""
Homework Helper: Flask JSON API

Teachers generate English homework with an LLM and share it with students,
who take it as a timed, optionally anti-cheat exam. A daily question with
points, streaks and a power-up shop keeps learners coming back.
"""

from __future__ import annotations

import os
from typing import Any

from flask import Flask, Response
from flask_compress import Compress

import database
from auth import auth_bp, login_manager
from blueprints import register_blueprints
from errors import register_error_handlers
from extensions import exam_sessions, limiter


def create_app(test_config: dict[str, Any] | None = None) -> Flask:
    app = Flask(__name__)

    # Load config
    from config import config_by_name
    if test_config is not None:
        app.config.from_object(config_by_name["testing"])
        app.config.update(test_config)
    else:
        env = os.environ.get("FLASK_ENV", "development")
        cfg = config_by_name.get(env, config_by_name["development"])
        app.config.from_object(cfg)
        if hasattr(cfg, "validate"):
            cfg.validate()

    app.secret_key = app.config["SECRET_KEY"]

    # Structured logging
    from logging_config import init_logging
    init_logging(app)

    Compress(app)

    # Register database teardown
    database.init_app(app)

    # Rate limiter (disabled in testing)
    limiter.init_app(app)
    if app.config.get("TESTING"):
        limiter.enabled = False

    exam_sessions.init_app(app)

    # Register auth blueprint and login manager
    app.register_blueprint(auth_bp)
    login_manager.init_app(app)

    register_blueprints(app)
    register_error_handlers(app)

    @app.after_request
    def set_security_headers(response: Response) -> Response:
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "SAMEORIGIN"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Content-Security-Policy"] = "default-src 'self'"
        if not app.debug:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response

    return app


if __name__ == "__main__":
    create_app().run(debug=True, port=5001)
