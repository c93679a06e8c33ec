"""
Integration tests for the order and payment HTTP API.
These tests go through routing, error handlers and the JSON envelope.
"""

import pytest


@pytest.fixture
def create_via_api(client, customer, product, build_order_payload):
    """POST an order for the test customer and return the decoded response."""
    def _create(quantity=2, unit_price='100', **fields):
        payload = build_order_payload(customer.id, [
            {'product_id': product.id, 'quantity': quantity, 'unit_price': unit_price}
        ], **fields)
        return client.post('/api/orders', json=payload)
    return _create


class TestCreateOrderApi:
    """Order creation envelope and error mapping."""

    def test_created(self, create_via_api):
        """A valid order returns 201 with its persisted totals."""
        response = create_via_api(labor_cost=50, delivery_fee=25, discount_value=20)

        assert response.status_code == 201
        body = response.get_json()
        assert body['success'] is True
        assert body['data']['total_price'] == '255.00'
        assert body['data']['status']['name'] == 'PENDING'
        assert len(body['data']['items']) == 1

    def test_validation_details(self, client, customer):
        """Every failing field is listed under details."""
        response = client.post('/api/orders', json={
            'customer_id': customer.id,
            'items': [{'product_id': None, 'quantity': 0, 'unit_price': 10}],
            'tax_rate': 150
        })

        assert response.status_code == 400
        body = response.get_json()
        assert body['success'] is False
        assert [d['field'] for d in body['details']] == [
            'items[0].product_id', 'items[0].quantity', 'tax_rate'
        ]

    def test_body_must_be_json_object(self, client):
        response = client.post('/api/orders', data='nope', content_type='text/plain')

        assert response.status_code == 400
        assert response.get_json()['details'][0]['field'] == 'body'

    def test_insufficient_stock(self, create_via_api):
        """Asking for more than the 10 units in stock is a conflict."""
        response = create_via_api(quantity=11)

        assert response.status_code == 409
        body = response.get_json()
        assert body['success'] is False
        assert body['required'] == 11
        assert body['available'] == 10

    def test_unknown_customer(self, client, product, build_order_payload):
        response = client.post('/api/orders', json=build_order_payload(999, [
            {'product_id': product.id, 'quantity': 1, 'unit_price': '10'}
        ]))

        assert response.status_code == 404


class TestOrderReadApi:

    def test_preview(self, client, customer, product, build_order_payload):
        payload = build_order_payload(customer.id, [
            {'product_id': product.id, 'quantity': 2, 'unit_price': '100'}
        ], labor_cost=50, delivery_fee=25, discount_type='percentage', discount_value=10)

        response = client.post('/api/orders/preview', json=payload)

        assert response.status_code == 200
        assert response.get_json()['data']['grand_total'] == '247.50'

    def test_list_and_filter(self, client, create_via_api):
        create_via_api()
        create_via_api()

        body = client.get('/api/orders?per_page=1').get_json()
        assert body['pagination']['total'] == 2
        assert body['pagination']['pages'] == 2
        assert len(body['data']) == 1

        assert client.get('/api/orders?status=paid').get_json()['pagination']['total'] == 0

    def test_unknown_status_filter(self, client):
        response = client.get('/api/orders?status=shipped')

        assert response.status_code == 400
        assert response.get_json()['details'][0]['field'] == 'status'

    def test_summary(self, client, create_via_api):
        order_id = create_via_api().get_json()['data']['id']

        data = client.get(f'/api/orders/{order_id}').get_json()['data']

        assert data['totals']['items_total'] == '200.00'
        assert data['remaining'] == '200.00'
        assert data['payments'] == []

    def test_missing_order(self, client):
        response = client.get('/api/orders/404')

        assert response.status_code == 404
        assert response.get_json()['success'] is False

    def test_pdf(self, client, create_via_api):
        order_id = create_via_api().get_json()['data']['id']

        response = client.get(f'/api/orders/{order_id}/pdf')

        assert response.status_code == 200
        assert response.mimetype == 'application/pdf'
        assert response.data.startswith(b'%PDF')


class TestOrderLifecycleApi:

    def test_update_and_cancel(self, client, customer, product, create_via_api, build_order_payload):
        """Edit the order, then cancel it and get every unit back."""
        order_id = create_via_api(quantity=3).get_json()['data']['id']

        response = client.put(f'/api/orders/{order_id}', json=build_order_payload(customer.id, [
            {'product_id': product.id, 'quantity': 4, 'unit_price': '100'}
        ]))
        assert response.status_code == 200
        assert response.get_json()['data']['total_price'] == '400.00'
        assert client.get(f'/api/products/{product.id}').get_json()['data']['stock'] == 6

        response = client.delete(f'/api/orders/{order_id}')
        assert response.status_code == 200
        assert response.get_json()['data']['status'] == 'CANCELLED'
        assert response.get_json()['message'] == 'Order cancelled'
        assert client.get(f'/api/products/{product.id}').get_json()['data']['stock'] == 10

        assert client.get(f'/api/orders/{order_id}').status_code == 404

    def test_paid_order_is_final(self, client, customer, create_via_api):
        order_id = create_via_api(quantity=1).get_json()['data']['id']
        client.post('/api/payments', json={
            'order_id': order_id, 'customer_id': customer.id,
            'amount': '100', 'payment_date': '2024-05-01'
        })

        response = client.delete(f'/api/orders/{order_id}')

        assert response.status_code == 409
        assert response.get_json()['success'] is False


class TestPaymentsApi:

    def test_partial_then_full(self, client, customer, create_via_api):
        """Total 1200: two payments of 600 settle the order."""
        order_id = create_via_api(quantity=1, unit_price='1200').get_json()['data']['id']
        payment = {'order_id': order_id, 'customer_id': customer.id,
                   'amount': 600, 'payment_date': '2024-05-01T10:00:00'}

        first = client.post('/api/payments', json=payment)
        assert first.status_code == 201
        data = first.get_json()['data']
        assert data['order_status']['name'] == 'PARTIALLY_PAID'
        assert data['remaining'] == '600.00'

        second = client.post('/api/payments', json=payment).get_json()['data']
        assert second['order_status']['name'] == 'PAID'
        assert second['total_paid'] == '1200.00'
        assert second['remaining'] == '0.00'

        listed = client.get(f'/api/payments?order_id={order_id}').get_json()['data']
        assert len(listed) == 2

    def test_invalid_payment(self, client):
        response = client.post('/api/payments', json={'amount': 0})

        assert response.status_code == 400
        fields = [d['field'] for d in response.get_json()['details']]
        assert fields == ['order_id', 'customer_id', 'amount', 'payment_date']

    def test_wrong_customer(self, client, other_customer, create_via_api):
        order_id = create_via_api().get_json()['data']['id']

        response = client.post('/api/payments', json={
            'order_id': order_id, 'customer_id': other_customer.id,
            'amount': 10, 'payment_date': '2024-05-01'
        })

        assert response.status_code == 400
        assert response.get_json()['details'][0]['field'] == 'customer_id'

    def test_bad_date_filter(self, client):
        response = client.get('/api/payments?start=yesterday')

        assert response.status_code == 400
