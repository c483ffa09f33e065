# Overview: Shared response helpers for the API blueprints.

from flask import current_app, jsonify, request

from ..errors import OrderingError, ValidationFailure, internal_error_body


def json_body() -> dict:
    """Request JSON object; a missing body is {} and anything but an object is rejected."""
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationFailure("Invalid JSON payload")
    return payload


def query_flag(name: str, default: bool = False) -> bool:
    raw = request.args.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes"}


def error_response(e: OrderingError):
    return jsonify(e.to_dict()), e.status_code


def server_error(e: Exception, action: str):
    current_app.logger.exception("Failed to %s", action)
    return jsonify(internal_error_body(e, current_app.config["EXPOSE_ERROR_DETAILS"])), 500
