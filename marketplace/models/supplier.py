"""Supplier model."""
from sqlalchemy import Column, String, Boolean, DateTime
from sqlalchemy.sql import func
from marketplace.database import Base


class Supplier(Base):
    """Supplier storefront selling on the marketplace."""

    __tablename__ = 'supplier'

    id = Column(String(64), primary_key=True)
    name = Column(String(200), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    def __repr__(self):
        return f"<Supplier(id='{self.id}', name='{self.name}')>"
