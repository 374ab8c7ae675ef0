"""
Error taxonomy and JSON error handlers.

Domain errors are expected outcomes (already answered, not enough points)
and map to 400. Anything unexpected maps to a generic 500 and is logged.
"""

from __future__ import annotations

import logging

from flask import Flask, jsonify
from pydantic import ValidationError
from werkzeug.exceptions import HTTPException

logger = logging.getLogger(__name__)


class DomainError(Exception):
    """A rule of the domain rejected the request."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AlreadyAnswered(DomainError):
    pass


class QuestionMismatch(DomainError):
    pass


class InsufficientPoints(DomainError):
    pass


class UnknownPowerup(DomainError):
    pass


class PowerupUnavailable(DomainError):
    pass


class InvalidTransition(DomainError):
    """An exam session action is not legal in the current state."""


class NotFound(Exception):
    """Missing or not owned by the caller. The two are never told apart."""

    def __init__(self, message: str = "Not found"):
        super().__init__(message)
        self.message = message


class GenerationError(Exception):
    """The LLM call failed or returned unusable content."""


def validation_error_body(exc: ValidationError) -> dict:
    first = exc.errors()[0]
    field = ".".join(str(part) for part in first.get("loc", ()))
    return {"message": first.get("msg", "Invalid input"), "field": field}


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(ValidationError)
    def _validation(exc: ValidationError):
        return jsonify(validation_error_body(exc)), 400

    @app.errorhandler(DomainError)
    def _domain(exc: DomainError):
        return jsonify({"message": exc.message}), exc.status_code

    @app.errorhandler(NotFound)
    def _not_found(exc: NotFound):
        return jsonify({"message": exc.message}), 404

    @app.errorhandler(HTTPException)
    def _http(exc: HTTPException):
        return jsonify({"message": exc.description or exc.name}), exc.code

    @app.errorhandler(Exception)
    def _unexpected(exc: Exception):
        logger.error("Unhandled error: %s", exc, exc_info=True)
        return jsonify({"message": "Internal server error"}), 500
