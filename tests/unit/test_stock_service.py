"""
Unit tests for stock deduction and restoration around the order lifecycle.
"""

import pytest

from app.exceptions import BusinessLogicError, InsufficientStockError, NotFoundError
from app.models import Order, OrderItem
from app.services import stock_service
from app.services.order_service import cancel_order, create_order, update_order


def current_stock(session, product):
    session.refresh(product)
    return product.stock


class TestCancellationRestoresStock:

    def test_cancel_restores_deducted_units(self, session, customer, product, build_order_payload):
        """Stock 10, order of 3 -> 7, cancel -> 10."""
        payload = build_order_payload(customer.id, [
            {'product_id': product.id, 'quantity': 3, 'unit_price': '100'}
        ])
        order = create_order(session, payload)

        assert current_stock(session, product) == 7
        assert order.items[0].stock_deducted == 3

        cancel_order(session, order.id)

        assert current_stock(session, product) == 10

    def test_repeated_lines_of_same_product(self, session, customer, product, build_order_payload):
        payload = build_order_payload(customer.id, [
            {'product_id': product.id, 'quantity': 2, 'unit_price': '100'},
            {'product_id': product.id, 'quantity': 4, 'unit_price': '90'},
        ])
        order = create_order(session, payload)
        assert current_stock(session, product) == 4

        cancel_order(session, order.id)
        assert current_stock(session, product) == 10

    def test_manual_items_never_touch_stock(self, session, customer, product, build_order_payload):
        payload = build_order_payload(customer.id, [
            {'is_manual': True, 'manual_name': 'Assembly', 'quantity': 5, 'unit_price': '30'}
        ])
        order = create_order(session, payload)
        assert current_stock(session, product) == 10
        assert order.items[0].stock_deducted == 0

        cancel_order(session, order.id)
        assert current_stock(session, product) == 10


class TestStockPolicies:

    def test_reject_leaves_everything_untouched(self, session, customer, product, second_product,
                                                build_order_payload):
        payload = build_order_payload(customer.id, [
            {'product_id': product.id, 'quantity': 2, 'unit_price': '100'},
            {'product_id': second_product.id, 'quantity': 8, 'unit_price': '40'},
        ])

        with pytest.raises(InsufficientStockError) as exc_info:
            create_order(session, payload, stock_policy='reject')

        assert exc_info.value.status_code == 409
        assert exc_info.value.payload == {'product': 'Oak Chair', 'required': 8, 'available': 5}
        assert current_stock(session, product) == 10
        assert current_stock(session, second_product) == 5
        assert session.query(Order).count() == 0
        assert session.query(OrderItem).count() == 0

    def test_reject_is_the_configured_default(self, session, customer, second_product, build_order_payload):
        payload = build_order_payload(customer.id, [
            {'product_id': second_product.id, 'quantity': 6, 'unit_price': '40'}
        ])

        with pytest.raises(InsufficientStockError):
            create_order(session, payload)

    def test_clamp_takes_what_is_available(self, session, customer, second_product, build_order_payload):
        payload = build_order_payload(customer.id, [
            {'product_id': second_product.id, 'quantity': 8, 'unit_price': '40'}
        ])
        order = create_order(session, payload, stock_policy='clamp')

        assert current_stock(session, second_product) == 0
        assert order.items[0].stock_deducted == 5

        cancel_order(session, order.id)
        assert current_stock(session, second_product) == 5

    def test_allow_goes_negative_and_round_trips(self, session, customer, second_product,
                                                 build_order_payload):
        payload = build_order_payload(customer.id, [
            {'product_id': second_product.id, 'quantity': 8, 'unit_price': '40'}
        ])
        order = create_order(session, payload, stock_policy='allow')

        assert current_stock(session, second_product) == -3

        cancel_order(session, order.id)
        assert current_stock(session, second_product) == 5

    def test_unknown_policy(self):
        with pytest.raises(BusinessLogicError):
            stock_service.resolve_policy('borrow')


class TestEditMovesStock:

    def test_edit_gives_back_old_items_and_takes_new_ones(self, session, customer, product,
                                                         second_product, build_order_payload):
        order = create_order(session, build_order_payload(customer.id, [
            {'product_id': product.id, 'quantity': 3, 'unit_price': '100'}
        ]))

        update_order(session, order.id, build_order_payload(customer.id, [
            {'product_id': product.id, 'quantity': 1, 'unit_price': '100'},
            {'product_id': second_product.id, 'quantity': 2, 'unit_price': '40'},
        ]))

        assert current_stock(session, product) == 9
        assert current_stock(session, second_product) == 3
        assert len(order.active_items) == 2

    def test_rejected_edit_keeps_previous_state(self, session, customer, product, build_order_payload):
        order = create_order(session, build_order_payload(customer.id, [
            {'product_id': product.id, 'quantity': 3, 'unit_price': '100'}
        ]))

        with pytest.raises(InsufficientStockError):
            update_order(session, order.id, build_order_payload(customer.id, [
                {'product_id': product.id, 'quantity': 11, 'unit_price': '100'}
            ]))

        assert current_stock(session, product) == 7
        reloaded = session.get(Order, order.id)
        session.refresh(reloaded)
        assert [i.quantity for i in reloaded.active_items] == [3]


class TestSetStock:

    def test_manual_correction(self, session, product):
        stock_service.set_stock(session, product.id, 42)
        session.commit()

        assert current_stock(session, product) == 42

    def test_negative_rejected(self, session, product):
        with pytest.raises(BusinessLogicError):
            stock_service.set_stock(session, product.id, -1)

    def test_unknown_product(self, session):
        with pytest.raises(NotFoundError):
            stock_service.set_stock(session, 999, 1)
