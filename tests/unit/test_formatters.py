"""
Unit tests for amount and date formatting.
"""

from datetime import date, datetime, timezone, timedelta
from decimal import Decimal

import pytest

from app.utils.formatters import date_tr, datetime_tr, money_tr, parse_datetime, percent_tr


class TestMoneyTr:

    @pytest.mark.parametrize('value,expected', [
        (0, '0,00'),
        (1500, '1.500,00'),
        (Decimal('1234567.5'), '1.234.567,50'),
        ('99.999', '100,00'),
        (-2500.5, '-2.500,50'),
        (None, '-'),
        ('abc', '-'),
    ])
    def test_values(self, value, expected):
        assert money_tr(value) == expected

    def test_symbol(self):
        assert money_tr(Decimal('255'), '₺') == '255,00 ₺'


class TestPercentAndDates:

    def test_percent(self):
        assert percent_tr(18) == '%18'
        assert percent_tr(Decimal('7.50')) == '%7,5'

    def test_dates(self):
        assert date_tr(date(2024, 1, 12)) == '12.01.2024'
        assert date_tr(datetime(2024, 1, 12, 23, 59)) == '12.01.2024'
        assert date_tr(None) == '-'
        assert datetime_tr(datetime(2024, 1, 12, 8, 5)) == '12.01.2024 08:05'


class TestParseDatetime:

    def test_accepted_forms(self):
        assert parse_datetime('2024-03-01') == datetime(2024, 3, 1)
        assert parse_datetime('2024-03-01T10:15:00Z') == datetime(2024, 3, 1, 10, 15)
        assert parse_datetime(date(2024, 3, 1)) == datetime(2024, 3, 1)
        aware = datetime(2024, 3, 1, 10, tzinfo=timezone(timedelta(hours=3)))
        assert parse_datetime(aware) == datetime(2024, 3, 1, 10)

    @pytest.mark.parametrize('value', [None, '', '   ', '01/03/2024', 20240301])
    def test_rejected_forms(self, value):
        assert parse_datetime(value) is None
