"""
Unit tests for customers, products and expenses.
"""

from datetime import datetime
from decimal import Decimal

import pytest

from app.exceptions import BusinessLogicError, ConflictError, NotFoundError, ValidationError
from app.models import AuditAction, AuditLog, ExpenseType, ProductType
from app.services import customer_service, expense_service, product_service
from app.services.order_service import cancel_order, create_order


class TestCustomerService:

    def test_create_normalizes_email(self, session):
        customer = customer_service.create_customer(session, {
            'name': '  Bora Mobilya ', 'email': ' Sales@Bora.TEST ', 'is_company': True
        })

        assert customer.name == 'Bora Mobilya'
        assert customer.email == 'sales@bora.test'
        assert session.query(AuditLog).one().action == AuditAction.CUSTOMER_CREATED

    def test_validation(self, session):
        with pytest.raises(ValidationError) as exc_info:
            customer_service.create_customer(session, {'name': '', 'email': 'nope'})

        assert exc_info.value.fields == ['name', 'email']

    def test_duplicate_email(self, session, customer):
        with pytest.raises(ConflictError):
            customer_service.create_customer(session, {'name': 'Copy', 'email': 'BILLING@acme.test'})

    def test_update_keeps_own_email(self, session, customer):
        updated = customer_service.update_customer(session, customer.id, {
            'name': 'Acme Holding', 'email': 'billing@acme.test'
        })

        assert updated.name == 'Acme Holding'

    def test_search_and_soft_delete(self, session, customer, other_customer):
        assert [c.id for c in customer_service.list_customers(session, 'jane')] == [other_customer.id]

        customer_service.delete_customer(session, other_customer.id)

        assert [c.id for c in customer_service.list_customers(session)] == [customer.id]
        with pytest.raises(NotFoundError):
            customer_service.get_customer(session, other_customer.id)

    def test_delete_refused_while_orders_are_active(self, session, customer, product, build_order_payload):
        order = create_order(session, build_order_payload(customer.id, [
            {'product_id': product.id, 'quantity': 1, 'unit_price': '100'}
        ]))

        with pytest.raises(BusinessLogicError) as exc_info:
            customer_service.delete_customer(session, customer.id)

        assert exc_info.value.status_code == 400
        assert exc_info.value.payload == {'active_orders': 1}
        session.refresh(customer)
        assert customer.is_active is True

        cancel_order(session, order.id)
        customer_service.delete_customer(session, customer.id)
        assert customer_service.list_customers(session) == []


class TestProductService:

    def test_create(self, session, product_type):
        product = product_service.create_product(session, {
            'name': 'Pine Shelf', 'current_price': '59.90', 'stock': 4, 'type_id': product_type.id
        })

        assert product.current_price == Decimal('59.90')
        assert product.stock == 4

    def test_validation(self, session):
        with pytest.raises(ValidationError) as exc_info:
            product_service.create_product(session, {
                'name': ' ', 'current_price': 'x', 'stock': '1.5', 'type_id': 999
            })

        assert exc_info.value.fields == ['name', 'current_price', 'stock', 'type_id']

    def test_duplicate_name_ignores_case(self, session, product):
        with pytest.raises(ConflictError):
            product_service.create_product(session, {'name': 'oak table', 'current_price': 1})

    def test_partial_update_with_stock(self, session, product):
        updated = product_service.update_product(session, product.id, {'current_price': '120', 'stock': 3})

        session.refresh(updated)
        assert updated.current_price == Decimal('120.00')
        assert updated.stock == 3
        assert updated.name == 'Oak Table'

    def test_empty_update(self, session, product):
        with pytest.raises(ValidationError):
            product_service.update_product(session, product.id, {})

    def test_adjust_stock_is_audited(self, session, product):
        product_service.adjust_stock(session, product.id, '25')

        session.refresh(product)
        assert product.stock == 25
        audit = session.query(AuditLog).filter(AuditLog.action == AuditAction.STOCK_ADJUSTED).one()
        assert '"previous": 10' in audit.details

    def test_in_stock_filter_and_delete(self, session, product, second_product):
        product_service.adjust_stock(session, second_product.id, 0)

        assert [p.id for p in product_service.list_products(session, in_stock_only=True)] == [product.id]

        product_service.delete_product(session, product.id)
        assert product_service.list_products(session, in_stock_only=True) == []

    def test_seed_types(self, session):
        assert product_service.seed_product_types(session) == 2
        assert product_service.seed_product_types(session) == 0
        assert session.query(ProductType).count() == 2


class TestExpenseService:

    def test_create(self, session, expense_type):
        expense = expense_service.create_expense(session, {
            'expense_type_id': expense_type.id, 'amount': '1500.5', 'expense_date': '2024-04-01',
            'description': ' April rent '
        })

        assert expense.amount == Decimal('1500.50')
        assert expense.description == 'April rent'
        assert expense.expense_date == datetime(2024, 4, 1)

    def test_validation(self, session):
        with pytest.raises(ValidationError) as exc_info:
            expense_service.create_expense(session, {'expense_type_id': 42, 'amount': -1})

        assert exc_info.value.fields == ['expense_type_id', 'amount', 'expense_date']

    def test_list_with_stats(self, session, expense_type, make_expense):
        fuel = ExpenseType(name='Fuel')
        session.add(fuel)
        session.commit()
        make_expense('100', datetime(2024, 1, 10))
        make_expense('300', datetime(2024, 2, 10), expense_type_id=fuel.id)
        make_expense('50', datetime(2024, 3, 10))

        result = expense_service.list_expenses(session, per_page=2)

        assert result['pagination'] == {'page': 1, 'per_page': 2, 'total': 3, 'pages': 2}
        assert [e.amount for e in result['items']] == [Decimal('50.00'), Decimal('300.00')]
        assert result['stats']['total_amount'] == Decimal('450.00')
        assert [(row['expense_type_name'], row['total_amount'])
                for row in result['stats']['expenses_by_type']] == [
            ('Fuel', Decimal('300.00')), ('Rent', Decimal('150.00'))
        ]

        february = expense_service.list_expenses(
            session, start=datetime(2024, 2, 1), end=datetime(2024, 2, 28)
        )
        assert february['stats']['total_count'] == 1

    def test_expense_types(self, session, expense_type):
        with pytest.raises(ConflictError):
            expense_service.create_expense_type(session, {'name': 'rent'})

        created = expense_service.create_expense_type(session, {'name': 'Marketing'})
        assert created.color == '#6C757D'
        assert [t.name for t in expense_service.list_expense_types(session)] == ['Marketing', 'Rent']
