# Overview: Shared helpers for route modules; maps service errors to JSON responses.

from flask import jsonify, request

from ..errors import PdvError, ValidationError


def error_response(exc: PdvError):
    """Translate a typed service error into (json body, status)."""
    return jsonify(exc.to_dict()), exc.status


def json_body() -> dict:
    """
    Request JSON as a dict.

    A missing body is an empty dict; anything that is not a JSON object is
    rejected.
    """
    payload = request.get_json(silent=True)
    if payload is None:
        if request.get_data(cache=True):
            raise ValidationError("Invalid JSON payload")
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("JSON body must be an object")
    return payload
