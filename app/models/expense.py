"""Expense and expense type models."""
from sqlalchemy import Column, Integer, String, Numeric, DateTime, Text, Boolean, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base


class ExpenseType(Base):
    """Expense category (rent, fuel, salaries...)."""

    __tablename__ = 'expense_type'

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False, unique=True)
    color = Column(String(20), nullable=False, default='#6C757D')
    is_active = Column(Boolean, nullable=False, default=True)

    def __repr__(self):
        return f"<ExpenseType(id={self.id}, name='{self.name}')>"


class Expense(Base):
    """Business expense, recognized at expense_date."""

    __tablename__ = 'expense'

    id = Column(Integer, primary_key=True, autoincrement=True)
    expense_type_id = Column(Integer, ForeignKey('expense_type.id'), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    expense_date = Column(DateTime, nullable=False, index=True)
    description = Column(Text, nullable=True)
    receipt_number = Column(String(100), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    expense_type = relationship('ExpenseType')

    def __repr__(self):
        return f"<Expense(id={self.id}, amount={self.amount}, date={self.expense_date})>"
