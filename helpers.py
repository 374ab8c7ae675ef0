"""
Shared helpers used across blueprints.
"""

from __future__ import annotations

from typing import TypeVar

from flask import request
from flask_login import current_user
from pydantic import BaseModel

M = TypeVar("M", bound=BaseModel)


def current_user_id() -> int:
    """The authenticated user's id. Call only behind @login_required."""
    return current_user.id


def json_body() -> dict:
    """Request JSON as a dict; form posts and empty bodies become dicts too."""
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    if request.form:
        return request.form.to_dict()
    return {}


def parse_body(model: type[M]) -> M:
    """Validate the request body. ValidationError is mapped to 400 by errors.py."""
    return model.model_validate(json_body())
