"""
Unit tests for typed lookup values.
"""

from decimal import Decimal

import pytest

from app.exceptions import ConflictError, NotFoundError, ValidationError
from app.models import AuditAction, AuditLog, LookupDataType
from app.services import lookup_service


class TestProcessValue:

    @pytest.mark.parametrize('value,data_type,expected', [
        ('18', 'NUMBER', Decimal('18')),
        ('7.5', LookupDataType.NUMBER, Decimal('7.5')),
        ('oops', 'NUMBER', Decimal('0')),
        ('true', 'BOOLEAN', True),
        ('False', 'BOOLEAN', False),
        ('["a", "b"]', 'JSON', ['a', 'b']),
        ('{broken', 'JSON', '{broken'),
        ('hello', 'STRING', 'hello'),
    ])
    def test_typing(self, value, data_type, expected):
        assert lookup_service.process_value(value, data_type) == expected

    def test_unknown_type(self):
        with pytest.raises(ValidationError):
            lookup_service.process_value('1', 'DATE')


class TestLookupStore:

    def test_create_and_read_back(self, session):
        lookup_service.create_lookup_value(session, 'DELIVERY_SETTINGS', 'ZONES', ['North', 'South'],
                                           data_type='JSON')

        assert lookup_service.get_lookup_value(session, 'DELIVERY_SETTINGS', 'ZONES') == ['North', 'South']

    def test_duplicate_key(self, session):
        lookup_service.create_lookup_value(session, 'SYSTEM_SETTINGS', 'CURRENCY_SYMBOL', '$')

        with pytest.raises(ConflictError):
            lookup_service.create_lookup_value(session, 'SYSTEM_SETTINGS', 'CURRENCY_SYMBOL', '€')

    def test_missing_fields(self, session):
        with pytest.raises(ValidationError) as exc_info:
            lookup_service.create_lookup_value(session, ' ', '', None)

        assert exc_info.value.fields == ['category', 'key', 'value']

    def test_absent_value_uses_default(self, session):
        assert lookup_service.get_lookup_value(session, 'NOPE', 'NOPE', 'fallback') == 'fallback'

    def test_set_value_is_audited(self, session):
        lookup_service.create_lookup_value(session, 'PROFIT_MARGINS', 'DEFAULT_MARGIN', '15',
                                           data_type='NUMBER')

        entry = lookup_service.set_lookup_value(session, 'PROFIT_MARGINS', 'DEFAULT_MARGIN', 20)

        assert entry.value == '20'
        audit = session.query(AuditLog).one()
        assert audit.action == AuditAction.SETTINGS_CHANGED

    def test_set_unknown_value(self, session):
        with pytest.raises(NotFoundError):
            lookup_service.set_lookup_value(session, 'NOPE', 'NOPE', 1)

    def test_seed_is_idempotent(self, session):
        first = lookup_service.seed_default_lookups(session)

        assert first == len(lookup_service.DEFAULT_LOOKUPS)
        assert lookup_service.seed_default_lookups(session) == 0


class TestDefaultTaxRate:

    def test_config_fallback(self, session):
        assert lookup_service.get_default_tax_rate(session) == Decimal('18')

    def test_indirect_key(self, session):
        lookup_service.seed_default_lookups(session)
        lookup_service.set_lookup_value(session, 'TAX_RATES', 'DEFAULT_VAT', 'VAT_1')

        assert lookup_service.get_default_tax_rate(session) == Decimal('1')

    def test_direct_number(self, session):
        lookup_service.create_lookup_value(session, 'TAX_RATES', 'DEFAULT_VAT', '20', data_type='NUMBER')

        assert lookup_service.get_default_tax_rate(session) == Decimal('20')

    def test_company_info_overrides_config(self, session):
        lookup_service.create_lookup_value(session, 'COMPANY_INFO', 'COMPANY_NAME', 'Oak & Co')

        info = lookup_service.get_company_info(session)

        assert info['name'] == 'Oak & Co'
        assert info['address'] == ''
