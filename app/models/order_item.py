"""Order Item model."""
from sqlalchemy import Column, Integer, String, Numeric, Boolean, ForeignKey
from sqlalchemy.orm import relationship
from app.database import Base


class OrderItem(Base):
    """Order line: either a catalog product or a manual (free-text) entry."""

    __tablename__ = 'order_item'

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey('orders.id'), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey('product.id'), nullable=True)
    quantity = Column(Integer, nullable=False)
    price = Column(Numeric(12, 2), nullable=False)
    is_manual = Column(Boolean, nullable=False, default=False)
    manual_name = Column(String(200), nullable=True)
    # Units actually taken from product stock, given back on cancel/edit
    stock_deducted = Column(Integer, nullable=False, default=0, server_default='0')
    is_active = Column(Boolean, nullable=False, default=True)

    # Relationships
    order = relationship('Order', back_populates='items')
    product = relationship('Product')

    @property
    def display_name(self):
        if self.is_manual:
            return self.manual_name
        return self.product.name if self.product else None

    @property
    def line_total(self):
        return self.quantity * self.price

    def __repr__(self):
        return f"<OrderItem(id={self.id}, product_id={self.product_id}, quantity={self.quantity})>"
