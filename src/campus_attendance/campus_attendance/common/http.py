from __future__ import annotations

import logging
from functools import wraps
from typing import Any, Optional

from flask import Flask, jsonify, request, session
from werkzeug.exceptions import HTTPException

from ..core.enums import Role
from ..core.exceptions import (
    AlreadyFinalizedError,
    AuthorizationError,
    ConflictError,
    DomainError,
    InconsistentStateError,
    NotFoundError,
    ValidationError,
)
from ..users.model import Actor
from .datetime_utils import parse_display_date

logger = logging.getLogger(__name__)

# Checked in order, so subclasses must come before their parents.
_STATUS_BY_ERROR: tuple[tuple[type[DomainError], int], ...] = (
    (ValidationError, 400),
    (AuthorizationError, 403),
    (NotFoundError, 404),
    (ConflictError, 409),
    (AlreadyFinalizedError, 409),
    (InconsistentStateError, 422),
)


def status_for(error: DomainError) -> int:
    for kind, status in _STATUS_BY_ERROR:
        if isinstance(error, kind):
            return status
    return 400


def error_response(message: str, status: int):
    return jsonify({"success": False, "message": message}), status


def ok(data: Any = None, *, message: Optional[str] = None, status: int = 200, **extra: Any):
    body: dict[str, Any] = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    body.update(extra)
    return jsonify(body), status


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(e: DomainError):
        return error_response(str(e), status_for(e))

    @app.errorhandler(HTTPException)
    def handle_http_error(e: HTTPException):
        return error_response(e.description or e.name, e.code or 500)

    @app.errorhandler(Exception)
    def handle_unexpected(e: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        message = str(e) if app.config.get("DEBUG") else "Internal server error"
        return error_response(message, 500)


def current_actor() -> Optional[Actor]:
    """Identity facts placed in the session by the login layer."""

    user_id = session.get("user_id")
    if not user_id:
        return None
    try:
        role = Role(session.get("role"))
    except ValueError:
        return None
    profile_id = session.get("profile_id")
    return Actor(user_id=str(user_id), role=role, profile_id=str(profile_id) if profile_id else None)


def roles_required(*roles: Role):
    """Resolve the caller once and pass it to the view as `actor`."""

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            actor = current_actor()
            if actor is None:
                return error_response("Authentication required", 401)
            if roles and actor.role not in roles:
                return error_response("You do not have permission to access this resource", 403)
            return view(actor, *args, **kwargs)

        return wrapper

    return decorator


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def query_date(name: str):
    raw = request.args.get(name)
    if not raw:
        return None
    return parse_display_date(raw, field_name=name)


def query_int(name: str, default: int) -> int:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f'Query parameter "{name}" must be an integer')


def pick(data: dict, camel: str, snake: str, default: Any = None) -> Any:
    """Read a payload field sent either as camelCase or snake_case."""

    if camel in data:
        return data[camel]
    return data.get(snake, default)
