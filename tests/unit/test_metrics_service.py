"""
Unit tests for business counters recorded by the services.
"""

from datetime import datetime

import pytest
from prometheus_client import REGISTRY

from app.exceptions import InsufficientStockError
from app.services.order_service import create_order
from app.services.payment_service import record_payment


def sample(name, **labels):
    return REGISTRY.get_sample_value(name, labels) or 0.0


class TestBusinessCounters:

    def test_order_and_payment_events(self, session, customer, product, build_order_payload):
        created = sample('orderdesk_orders_total', event='created')
        paid = sample('orderdesk_payments_total', status='PAID')

        order = create_order(session, build_order_payload(customer.id, [
            {'product_id': product.id, 'quantity': 1, 'unit_price': '40'}
        ]))
        record_payment(session, order.id, customer.id, 40, datetime(2024, 6, 1))

        assert sample('orderdesk_orders_total', event='created') == created + 1
        assert sample('orderdesk_payments_total', status='PAID') == paid + 1

    def test_stock_rejection(self, session, customer, product, build_order_payload):
        rejected = sample('orderdesk_stock_rejections_total')

        with pytest.raises(InsufficientStockError):
            create_order(session, build_order_payload(customer.id, [
                {'product_id': product.id, 'quantity': 50, 'unit_price': '40'}
            ]))

        assert sample('orderdesk_stock_rejections_total') == rejected + 1
