"""Order model."""
from decimal import Decimal
from sqlalchemy import Column, Integer, String, Text, Numeric, DateTime, Boolean, Enum, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base
import enum


class OrderStatus(enum.Enum):
    """Settlement state of an order."""
    PENDING = "PENDING"
    PARTIALLY_PAID = "PARTIALLY_PAID"
    PAID = "PAID"
    CANCELLED = "CANCELLED"


class DiscountType(enum.Enum):
    """How discount_value is interpreted."""
    PERCENTAGE = "percentage"
    AMOUNT = "amount"


class Order(Base):
    """Customer order. total_price is the grand total cached at last save."""

    __tablename__ = 'orders'

    id = Column(Integer, primary_key=True, autoincrement=True)
    customer_id = Column(Integer, ForeignKey('customer.id'), nullable=False, index=True)
    status = Column(Enum(OrderStatus, name='order_status'), nullable=False, default=OrderStatus.PENDING)
    address = Column(Text, nullable=True)
    description = Column(Text, nullable=True)
    labor_cost = Column(Numeric(12, 2), nullable=False, default=Decimal('0'))
    delivery_fee = Column(Numeric(12, 2), nullable=False, default=Decimal('0'))
    tax_rate = Column(Numeric(5, 2), nullable=False, default=Decimal('18'))
    discount_type = Column(Enum(DiscountType, name='discount_type'), nullable=False, default=DiscountType.AMOUNT)
    discount_value = Column(Numeric(12, 2), nullable=False, default=Decimal('0'))
    total_price = Column(Numeric(12, 2), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    customer = relationship('Customer', back_populates='orders')
    items = relationship('OrderItem', back_populates='order', cascade='all, delete-orphan',
                         order_by='OrderItem.id')
    payments = relationship('Payment', back_populates='order', order_by='Payment.payment_date')

    @property
    def active_items(self):
        return [item for item in self.items if item.is_active]

    @property
    def active_payments(self):
        return [p for p in self.payments if p.is_active]

    def __repr__(self):
        return f"<Order(id={self.id}, total_price={self.total_price}, status={self.status.value})>"
