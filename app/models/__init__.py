"""Models package - exports all SQLAlchemy models."""
from app.models.customer import Customer
from app.models.product import Product, ProductType
from app.models.order import Order, OrderStatus, DiscountType
from app.models.order_item import OrderItem
from app.models.payment import Payment
from app.models.expense import Expense, ExpenseType
from app.models.lookup import LookupEntry, LookupDataType
from app.models.audit_log import AuditLog, AuditAction

__all__ = [
    'Customer',
    'Product', 'ProductType',
    'Order', 'OrderStatus', 'DiscountType', 'OrderItem',
    'Payment',
    'Expense', 'ExpenseType',
    'LookupEntry', 'LookupDataType',
    'AuditLog', 'AuditAction',
]
