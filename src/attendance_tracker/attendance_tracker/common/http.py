from __future__ import annotations

import logging
from dataclasses import asdict, is_dataclass
from typing import Any, Optional

from flask import Flask, jsonify, request

from ..core.exceptions import AuthenticationError, DomainError, NotFoundError, RemoteWriteError, ValidationError

logger = logging.getLogger(__name__)


def json_body() -> dict[str, Any]:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def required(data: dict[str, Any], key: str) -> Any:
    value = data.get(key)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"{key} is required")
    return value


def optional_str(data: dict[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    return str(value) if value not in (None, "") else None


def read_model(value: Any) -> Any:
    """JSON-ready form of a read-model dataclass (entities use their own ``to_json``)."""

    if is_dataclass(value):
        return asdict(value)
    return value


def register_error_handlers(app: Flask) -> None:
    def _error(message: str, status: int):
        return jsonify({"error": message}), status

    @app.errorhandler(NotFoundError)
    def _not_found(e: NotFoundError):
        return _error(str(e), 404)

    @app.errorhandler(ValidationError)
    def _invalid(e: ValidationError):
        return _error(str(e), 400)

    @app.errorhandler(AuthenticationError)
    def _unauthenticated(e: AuthenticationError):
        return _error(str(e), 401)

    @app.errorhandler(RemoteWriteError)
    def _remote_write(e: RemoteWriteError):
        logger.warning("%s %s: %s", request.method, request.path, e)
        return _error(str(e), 502)

    @app.errorhandler(DomainError)
    def _domain(e: DomainError):
        logger.error("%s %s failed: %s", request.method, request.path, e)
        return _error(str(e), 500)
