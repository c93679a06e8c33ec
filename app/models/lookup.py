"""Lookup table: generic typed key/value configuration store."""
from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean, Enum, UniqueConstraint
from sqlalchemy.sql import func
from app.database import Base
import enum


class LookupDataType(enum.Enum):
    """How the stored string value is interpreted."""
    STRING = "STRING"
    NUMBER = "NUMBER"
    BOOLEAN = "BOOLEAN"
    JSON = "JSON"


class LookupEntry(Base):
    """One configuration value (tax rates, currency, company info, delivery zones...)."""

    __tablename__ = 'lookup_table'
    __table_args__ = (
        UniqueConstraint('category', 'key', name='uq_lookup_category_key'),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    category = Column(String(100), nullable=False, index=True)
    key = Column(String(100), nullable=False)
    value = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    data_type = Column(Enum(LookupDataType, name='lookup_data_type'), nullable=False, default=LookupDataType.STRING)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<LookupEntry({self.category}.{self.key}={self.value!r})>"
