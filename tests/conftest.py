import pytest
from datetime import datetime
from decimal import Decimal

from app import create_app
from app.database import get_database
from app.models import Customer, Product, ProductType, ExpenseType, Expense


@pytest.fixture(scope='function')
def app():
    """Create application instance with a fresh in-memory database."""
    app = create_app('config.TestingConfig')
    database = get_database(app)

    ctx = app.app_context()
    ctx.push()
    database.create_all()

    yield app

    database.session.remove()
    database.drop_all()
    database.close()
    ctx.pop()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def session(app):
    """Database session bound to the test app."""
    session = get_database(app).session
    yield session
    session.rollback()


@pytest.fixture(scope='function')
def customer(session):
    """Create a test customer."""
    customer = Customer(
        name='Acme Ltd',
        email='billing@acme.test',
        phone='+90 555 000 0001',
        is_company=True
    )
    session.add(customer)
    session.commit()
    return customer


@pytest.fixture(scope='function')
def other_customer(session):
    """Create a second customer for ownership and aggregation tests."""
    customer = Customer(name='Jane Doe', email='jane@example.test')
    session.add(customer)
    session.commit()
    return customer


@pytest.fixture(scope='function')
def product_type(session):
    product_type = ProductType(name='Piece', description='Sold by the piece')
    session.add(product_type)
    session.commit()
    return product_type


@pytest.fixture(scope='function')
def product(session, product_type):
    """Create a product with 10 units in stock."""
    product = Product(
        name='Oak Table',
        current_price=Decimal('100.00'),
        stock=10,
        type_id=product_type.id
    )
    session.add(product)
    session.commit()
    return product


@pytest.fixture(scope='function')
def second_product(session, product_type):
    """Create a product with 5 units in stock."""
    product = Product(
        name='Oak Chair',
        current_price=Decimal('40.00'),
        stock=5,
        type_id=product_type.id
    )
    session.add(product)
    session.commit()
    return product


@pytest.fixture(scope='function')
def expense_type(session):
    expense_type = ExpenseType(name='Rent', color='#6F42C1')
    session.add(expense_type)
    session.commit()
    return expense_type


@pytest.fixture(scope='function')
def make_expense(session, expense_type):
    """Factory for expenses of the test expense type."""
    def _make(amount, expense_date: datetime, expense_type_id=None):
        expense = Expense(
            expense_type_id=expense_type_id or expense_type.id,
            amount=Decimal(str(amount)),
            expense_date=expense_date
        )
        session.add(expense)
        session.commit()
        return expense
    return _make


def order_payload(customer_id, items, **fields):
    """Build an order payload in the shape the API accepts."""
    payload = {'customer_id': customer_id, 'items': items, 'tax_rate': 0}
    payload.update(fields)
    return payload


@pytest.fixture
def build_order_payload():
    return order_payload
