"""
Audit Log model for tracking order, payment and catalog actions.
"""
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship
from datetime import datetime
import enum


class AuditAction(enum.Enum):
    """Enumeration of auditable actions."""
    # Orders
    ORDER_CREATED = "ORDER_CREATED"
    ORDER_UPDATED = "ORDER_UPDATED"
    ORDER_CANCELLED = "ORDER_CANCELLED"
    ORDER_STATUS_RECONCILED = "ORDER_STATUS_RECONCILED"

    # Payments
    ORDER_PARTIAL_PAYMENT = "ORDER_PARTIAL_PAYMENT"
    ORDER_PAYMENT_COMPLETED = "ORDER_PAYMENT_COMPLETED"

    # Customers
    CUSTOMER_CREATED = "CUSTOMER_CREATED"
    CUSTOMER_UPDATED = "CUSTOMER_UPDATED"
    CUSTOMER_DELETED = "CUSTOMER_DELETED"

    # Catalog
    PRODUCT_CREATED = "PRODUCT_CREATED"
    PRODUCT_UPDATED = "PRODUCT_UPDATED"
    PRODUCT_DELETED = "PRODUCT_DELETED"
    STOCK_ADJUSTED = "STOCK_ADJUSTED"

    # Finance
    EXPENSE_CREATED = "EXPENSE_CREATED"

    # Settings
    SETTINGS_CHANGED = "SETTINGS_CHANGED"


from app.database import Base

class AuditLog(Base):
    """
    Audit log entry, written in the same transaction as the change it describes.
    """
    __tablename__ = 'audit_log'

    id = Column(Integer, primary_key=True)
    action = Column(SQLEnum(AuditAction), nullable=False, index=True)
    description = Column(String(255))
    details = Column(Text)  # JSON with additional details
    customer_id = Column(Integer, ForeignKey('customer.id'), nullable=True, index=True)
    order_id = Column(Integer, ForeignKey('orders.id'), nullable=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    # Relationships
    customer = relationship('Customer')
    order = relationship('Order')

    def __repr__(self):
        return f"<AuditLog {self.action.value} order={self.order_id} at {self.created_at}>"
