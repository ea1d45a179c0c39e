from __future__ import annotations

import logging
from functools import wraps

from flask import jsonify, request

from ..core.exceptions import (
    CaptureError,
    ConflictError,
    DomainError,
    NoStudentsForParent,
    NotFoundError,
    StateError,
    ValidationError,
)

logger = logging.getLogger(__name__)

# First match wins, so subclasses go before their bases.
_STATUS_BY_ERROR = (
    (NoStudentsForParent, 404),
    (ValidationError, 400),
    (ConflictError, 409),
    (StateError, 409),
    (NotFoundError, 404),
    (CaptureError, 503),
)


def error_status(exc: DomainError) -> int:
    for cls, status in _STATUS_BY_ERROR:
        if isinstance(exc, cls):
            return status
    return 400


def error_response(exc: DomainError):
    return jsonify({"success": False, "error": exc.code, "message": str(exc)}), error_status(exc)


def json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def json_api(view):
    """Translate domain errors to JSON responses; anything else is a logged 500."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        try:
            return view(*args, **kwargs)
        except DomainError as e:
            logger.warning("%s %s refused: %s (%s)", request.method, request.path, e.code, e)
            return error_response(e)
        except Exception:
            logger.exception("%s %s failed", request.method, request.path)
            return jsonify({"success": False, "error": "InternalError", "message": "Unexpected server error"}), 500

    return wrapper
