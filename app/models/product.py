"""Product and product type models."""
from sqlalchemy import Column, Integer, String, Text, Boolean, Numeric, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base


class ProductType(Base):
    """Unit of sale (sold by piece, sold by weight)."""

    __tablename__ = 'product_type'

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False, unique=True)
    description = Column(Text, nullable=True)

    def __repr__(self):
        return f"<ProductType(id={self.id}, name='{self.name}')>"


class Product(Base):
    """Catalog product. Stock is only changed through atomic SQL updates."""

    __tablename__ = 'product'

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    current_price = Column(Numeric(12, 2), nullable=False)
    stock = Column(Integer, nullable=False, default=0, server_default='0')
    type_id = Column(Integer, ForeignKey('product_type.id'), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    type = relationship('ProductType')

    def __repr__(self):
        return f"<Product(id={self.id}, name='{self.name}', stock={self.stock})>"
