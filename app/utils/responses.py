"""Helpers for the JSON envelope shared by every API route."""
from flask import jsonify, request

from app.exceptions import FieldError, ValidationError
from app.utils.formatters import parse_datetime


def success(data=None, status: int = 200, **extra):
    """{"success": true, "data": ...} plus any extra top-level keys."""
    body = {'success': True, 'data': data}
    body.update(extra)
    return jsonify(body), status


def json_body() -> dict:
    """Decoded JSON object of the request, or ValidationError."""
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise ValidationError(FieldError('body', 'Request body must be a JSON object'))
    return payload


def int_arg(name: str, default=None):
    """Integer query argument; malformed values are a ValidationError."""
    raw = request.args.get(name)
    if raw in (None, ''):
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(FieldError(name, f'{name} must be an integer'))


def date_arg(name: str):
    """Date/datetime query argument parsed as ISO 8601."""
    raw = request.args.get(name)
    if not raw:
        return None
    value = parse_datetime(raw)
    if value is None:
        raise ValidationError(FieldError(name, f'{name} is not a valid date'))
    return value
