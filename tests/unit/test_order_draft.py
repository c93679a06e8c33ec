"""
Unit tests for order draft validation.
"""

from decimal import Decimal

import pytest

from app.exceptions import ValidationError
from app.models import DiscountType
from app.services.order_draft import validate_order_draft


def valid_payload(**overrides):
    payload = {
        'customer_id': 1,
        'items': [
            {'product_id': 3, 'quantity': 2, 'unit_price': '100'},
            {'is_manual': True, 'manual_name': '  Installation ', 'quantity': 1, 'price': 40},
        ],
        'labor_cost': '50',
        'delivery_fee': 25,
        'tax_rate': 18,
        'discount_type': 'percentage',
        'discount_value': '10',
        'address': ' Main street 1 ',
    }
    payload.update(overrides)
    return payload


class TestValidDraft:

    def test_typed_draft(self):
        result = validate_order_draft(valid_payload())

        assert result.ok
        draft = result.unwrap()
        assert draft.customer_id == 1
        assert draft.labor_cost == Decimal('50')
        assert draft.tax_rate == Decimal('18')
        assert draft.discount_type == DiscountType.PERCENTAGE
        assert draft.address == 'Main street 1'
        assert len(draft.items) == 2

    def test_manual_item_keeps_trimmed_name_and_drops_product(self):
        payload = valid_payload(items=[
            {'is_manual': True, 'manual_name': ' Repair ', 'product_id': 9, 'quantity': 1, 'unit_price': 5}
        ])
        item = validate_order_draft(payload).unwrap().items[0]

        assert item.is_manual
        assert item.manual_name == 'Repair'
        assert item.product_id is None

    def test_optional_costs_default_to_zero(self):
        payload = {'customer_id': 1, 'items': [{'product_id': 1, 'quantity': 1, 'unit_price': 1}]}
        draft = validate_order_draft(payload).unwrap()

        assert draft.labor_cost == 0
        assert draft.delivery_fee == 0
        assert draft.discount_value == 0
        assert draft.tax_rate is None
        assert draft.discount_type == DiscountType.AMOUNT


class TestInvalidDraft:

    def test_requires_items(self):
        result = validate_order_draft(valid_payload(items=[]))

        assert not result.ok
        assert [e.field for e in result.errors] == ['items']

    def test_reports_every_failing_field(self):
        payload = valid_payload(
            customer_id=None,
            items=[
                {'is_manual': True, 'manual_name': '   ', 'quantity': 0, 'unit_price': 0},
                {'product_id': None, 'quantity': 1.5, 'unit_price': 'abc'},
            ],
            labor_cost=-1,
            delivery_fee='x',
            discount_value=-5,
            tax_rate=101,
            discount_type='coupon'
        )
        result = validate_order_draft(payload)

        fields = [e.field for e in result.errors]
        assert fields == [
            'customer_id',
            'items[0].manual_name',
            'items[0].quantity',
            'items[0].unit_price',
            'items[1].product_id',
            'items[1].quantity',
            'items[1].unit_price',
            'labor_cost',
            'delivery_fee',
            'discount_value',
            'tax_rate',
            'discount_type',
        ]

    def test_unwrap_raises_validation_error_with_details(self):
        result = validate_order_draft(valid_payload(customer_id=0))

        with pytest.raises(ValidationError) as exc_info:
            result.unwrap()

        error = exc_info.value
        assert error.status_code == 400
        assert error.fields == ['customer_id']
        assert error.to_dict()['details'][0]['field'] == 'customer_id'

    def test_non_object_payload(self):
        result = validate_order_draft(['not', 'an', 'object'])

        assert not result.ok
        assert result.errors[0].field == 'body'

    @pytest.mark.parametrize('rate', [0, 100, '7.5'])
    def test_tax_rate_bounds_are_inclusive(self, rate):
        assert validate_order_draft(valid_payload(tax_rate=rate)).ok


class TestDraftScale:
    """Amounts are rounded to the two decimals they are stored with."""

    def test_price_and_tax_rate_rounded_half_up(self):
        draft = validate_order_draft(valid_payload(
            items=[{'product_id': 3, 'quantity': 3, 'unit_price': '10.005'}],
            tax_rate='18.125',
            labor_cost='0.015'
        )).unwrap()

        assert draft.items[0].unit_price == Decimal('10.01')
        assert draft.tax_rate == Decimal('18.13')
        assert draft.labor_cost == Decimal('0.02')

    def test_price_rounding_to_zero_is_rejected(self):
        result = validate_order_draft(valid_payload(
            items=[{'product_id': 3, 'quantity': 1, 'unit_price': '0.004'}]
        ))

        assert [e.field for e in result.errors] == ['items[0].unit_price']


class TestManualFlag:

    @pytest.mark.parametrize('flag', ['false', 'False', '0', 'no', 0, False, None])
    def test_false_strings_mean_catalog_line(self, flag):
        draft = validate_order_draft(valid_payload(
            items=[{'is_manual': flag, 'product_id': 3, 'quantity': 1, 'unit_price': 5}]
        )).unwrap()

        assert draft.items[0].is_manual is False
        assert draft.items[0].product_id == 3

    @pytest.mark.parametrize('flag', ['true', 'TRUE', '1', 'yes', 1, True])
    def test_true_strings_mean_manual_line(self, flag):
        draft = validate_order_draft(valid_payload(
            items=[{'is_manual': flag, 'manual_name': 'Repair', 'quantity': 1, 'unit_price': 5}]
        )).unwrap()

        assert draft.items[0].is_manual is True

    def test_unrecognised_flag(self):
        result = validate_order_draft(valid_payload(
            items=[{'is_manual': 'maybe', 'product_id': 3, 'quantity': 1, 'unit_price': 5}]
        ))

        assert [e.field for e in result.errors] == ['items[0].is_manual']
