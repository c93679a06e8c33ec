"""
Lookup table service - typed key/value configuration.

Values are stored as strings and interpreted through their data type:
NUMBER -> Decimal, BOOLEAN -> bool, JSON -> parsed object, STRING as is.
"""
import json
import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError

from app.exceptions import ConflictError, NotFoundError, ValidationError, FieldError
from app.models import AuditAction, LookupEntry, LookupDataType
from app.services import audit_service

logger = logging.getLogger(__name__)

FALLBACK_TAX_RATE = Decimal('18')
FALLBACK_CURRENCY_SYMBOL = '₺'

# (category, key, value, data_type, description)
DEFAULT_LOOKUPS = [
    ('TAX_RATES', 'DEFAULT_VAT', 'VAT_18', 'STRING', 'Key of the VAT rate applied by default'),
    ('TAX_RATES', 'VAT_1', '1', 'NUMBER', 'Reduced VAT 1%'),
    ('TAX_RATES', 'VAT_8', '8', 'NUMBER', 'Reduced VAT 8%'),
    ('TAX_RATES', 'VAT_18', '18', 'NUMBER', 'Standard VAT 18%'),
    ('PROFIT_MARGINS', 'DEFAULT_MARGIN', '15', 'NUMBER', 'Default profit margin (%)'),
    ('SYSTEM_SETTINGS', 'CURRENCY_SYMBOL', '₺', 'STRING', 'Currency symbol'),
    ('SYSTEM_SETTINGS', 'ORDER_NUMBER_PREFIX', 'SIP', 'STRING', 'Prefix for printed order numbers'),
    ('SYSTEM_SETTINGS', 'MINIMUM_ORDER_AMOUNT', '50', 'NUMBER', 'Minimum order amount'),
    ('DELIVERY_SETTINGS', 'DEFAULT_DELIVERY_FEE', '25', 'NUMBER', 'Default delivery fee'),
    ('DELIVERY_SETTINGS', 'FREE_DELIVERY_THRESHOLD', '300', 'NUMBER', 'Order amount above which delivery is free'),
    ('DELIVERY_SETTINGS', 'DELIVERY_ZONES', '["Merkez", "Kuzey", "Güney"]', 'JSON', 'Delivery zones'),
    ('COMPANY_INFO', 'COMPANY_NAME', 'My Business', 'STRING', 'Company name'),
    ('COMPANY_INFO', 'COMPANY_ADDRESS', '', 'STRING', 'Company address'),
    ('COMPANY_INFO', 'COMPANY_PHONE', '', 'STRING', 'Company phone'),
    ('COMPANY_INFO', 'COMPANY_EMAIL', '', 'STRING', 'Company email'),
    ('COMPANY_INFO', 'COMPANY_TAX_NUMBER', '', 'STRING', 'Company tax number'),
]


def _data_type(value) -> LookupDataType:
    if isinstance(value, LookupDataType):
        return value
    try:
        return LookupDataType(str(value or 'STRING').upper())
    except ValueError:
        raise ValidationError(FieldError('data_type', 'data_type must be STRING, NUMBER, BOOLEAN or JSON'))


def process_value(value: str, data_type) -> Any:
    """Interpret a stored string according to its data type."""
    data_type = _data_type(data_type)
    if data_type == LookupDataType.NUMBER:
        try:
            return Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            return Decimal('0')
    if data_type == LookupDataType.BOOLEAN:
        return str(value).strip().lower() == 'true'
    if data_type == LookupDataType.JSON:
        try:
            return json.loads(value)
        except (TypeError, ValueError):
            return value
    return value


def _serialize_value(value: Any, data_type: LookupDataType) -> str:
    if data_type == LookupDataType.JSON and not isinstance(value, str):
        return json.dumps(value)
    if data_type == LookupDataType.BOOLEAN and isinstance(value, bool):
        return 'true' if value else 'false'
    return str(value)


def entry_to_dict(entry: LookupEntry) -> Dict[str, Any]:
    return {
        'id': entry.id,
        'category': entry.category,
        'key': entry.key,
        'value': entry.value,
        'data_type': entry.data_type.value,
        'description': entry.description,
        'processed_value': process_value(entry.value, entry.data_type)
    }


def list_lookups(session, category: str = None, key: str = None) -> List[LookupEntry]:
    query = session.query(LookupEntry).filter(LookupEntry.is_active.is_(True))
    if category:
        query = query.filter(LookupEntry.category == category)
    if key:
        query = query.filter(LookupEntry.key == key)
    return query.order_by(LookupEntry.category, LookupEntry.key).all()


def get_lookup_by_category(session, category: str) -> List[Dict[str, Any]]:
    """Active entries of a category with their typed value."""
    return [entry_to_dict(e) for e in list_lookups(session, category=category)]


def _get_entry(session, category: str, key: str) -> Optional[LookupEntry]:
    return session.query(LookupEntry).filter(
        LookupEntry.category == category,
        LookupEntry.key == key,
        LookupEntry.is_active.is_(True)
    ).first()


def get_lookup_value(session, category: str, key: str, default: Any = None) -> Any:
    """Typed value of category.key, or `default` when absent."""
    entry = _get_entry(session, category, key)
    if entry is None:
        return default
    return process_value(entry.value, entry.data_type)


def create_lookup_value(session, category: str, key: str, value: Any,
                        description: str = None, data_type='STRING') -> LookupEntry:
    """Create a new entry. Raises ConflictError if category+key exists."""
    category = (category or '').strip()
    key = (key or '').strip()
    errors = []
    if not category:
        errors.append(FieldError('category', 'Category is required'))
    if not key:
        errors.append(FieldError('key', 'Key is required'))
    if value is None:
        errors.append(FieldError('value', 'Value is required'))
    if errors:
        raise ValidationError(errors)

    data_type = _data_type(data_type)
    existing = session.query(LookupEntry).filter_by(category=category, key=key).first()
    if existing:
        raise ConflictError(f'Lookup value {category}.{key} already exists')

    entry = LookupEntry(
        category=category,
        key=key,
        value=_serialize_value(value, data_type),
        description=description,
        data_type=data_type
    )
    try:
        session.add(entry)
        session.commit()
    except IntegrityError:
        session.rollback()
        raise ConflictError(f'Lookup value {category}.{key} already exists')
    return entry


def set_lookup_value(session, category: str, key: str, value: Any) -> LookupEntry:
    """Update the value of an existing entry."""
    entry = _get_entry(session, category, key)
    if entry is None:
        raise NotFoundError(f'Lookup value {category}.{key} not found')
    previous = entry.value
    entry.value = _serialize_value(value, entry.data_type)
    audit_service.log_action(
        session,
        AuditAction.SETTINGS_CHANGED,
        description=f"Lookup {category}.{key} changed",
        details={"previous": previous, "value": entry.value}
    )
    session.commit()
    logger.info(f"Lookup {category}.{key} updated")
    return entry


def seed_default_lookups(session) -> int:
    """Insert the default entries that are missing. Returns how many were added."""
    added = 0
    for category, key, value, data_type, description in DEFAULT_LOOKUPS:
        exists = session.query(LookupEntry.id).filter_by(category=category, key=key).first()
        if exists:
            continue
        session.add(LookupEntry(
            category=category,
            key=key,
            value=value,
            data_type=LookupDataType(data_type),
            description=description
        ))
        added += 1
    session.commit()
    return added


# =====================================================
# Frequently used values
# =====================================================

def _config_value(name: str, default: Any) -> Any:
    try:
        from flask import current_app
        return current_app.config.get(name, default)
    except RuntimeError:
        return default


def get_default_tax_rate(session) -> Decimal:
    """
    VAT applied when an order does not state one.

    TAX_RATES.DEFAULT_VAT either holds a rate or names the key of one.
    """
    default_vat = get_lookup_value(session, 'TAX_RATES', 'DEFAULT_VAT')
    if isinstance(default_vat, Decimal):
        return default_vat
    if default_vat:
        rate = get_lookup_value(session, 'TAX_RATES', default_vat)
        if rate is not None:
            return Decimal(str(rate))
    return Decimal(str(_config_value('DEFAULT_TAX_RATE', FALLBACK_TAX_RATE)))


def get_currency_symbol(session) -> str:
    return (get_lookup_value(session, 'SYSTEM_SETTINGS', 'CURRENCY_SYMBOL')
            or _config_value('CURRENCY_SYMBOL', FALLBACK_CURRENCY_SYMBOL))


def get_company_info(session) -> Dict[str, Any]:
    """COMPANY_INFO entries keyed without the COMPANY_ prefix, config as fallback."""
    info = {
        'name': _config_value('BUSINESS_NAME', ''),
        'address': _config_value('BUSINESS_ADDRESS', ''),
        'phone': _config_value('BUSINESS_PHONE', ''),
        'email': _config_value('BUSINESS_EMAIL', ''),
    }
    for item in get_lookup_by_category(session, 'COMPANY_INFO'):
        name = item['key'].replace('COMPANY_', '', 1).lower()
        if item['processed_value'] not in (None, ''):
            info[name] = item['processed_value']
    return info
