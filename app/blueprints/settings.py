"""
Settings blueprint - typed lookup values (tax rates, company info, delivery
settings) read by pricing and documents.
"""
from flask import Blueprint, request

from app.database import get_session
from app.exceptions import FieldError, ValidationError
from app.services import lookup_service
from app.utils.responses import json_body, success

settings_bp = Blueprint('settings', __name__, url_prefix='/api/lookup')


@settings_bp.route('', methods=['GET'])
def list_lookup_values():
    """?category= narrows to a category, ?key= to a single entry."""
    entries = lookup_service.list_lookups(
        get_session(),
        category=request.args.get('category'),
        key=request.args.get('key')
    )
    return success([lookup_service.entry_to_dict(e) for e in entries])


@settings_bp.route('', methods=['POST'])
def create_lookup_value():
    payload = json_body()
    entry = lookup_service.create_lookup_value(
        get_session(),
        category=payload.get('category'),
        key=payload.get('key'),
        value=payload.get('value'),
        description=payload.get('description'),
        data_type=payload.get('data_type', 'STRING')
    )
    return success(lookup_service.entry_to_dict(entry), 201)


@settings_bp.route('', methods=['PUT'])
def update_lookup_value():
    payload = json_body()
    errors = [FieldError(name, f'{name} is required') for name in ('category', 'key')
              if not payload.get(name)]
    if 'value' not in payload or payload['value'] is None:
        errors.append(FieldError('value', 'value is required'))
    if errors:
        raise ValidationError(errors)

    entry = lookup_service.set_lookup_value(get_session(), payload['category'], payload['key'], payload['value'])
    return success(lookup_service.entry_to_dict(entry))
