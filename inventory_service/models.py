# inventory_service/models.py

"""
SQLAlchemy database models for the inventory service.
These classes define the structure of tables in the database.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Integer, Numeric, String, Text, Uuid

from .db import Base


def utcnow():
    return datetime.now(timezone.utc)


class Product(Base):
    """
    SQLAlchemy model for the 'products' table.
    A product is either active or soft-deleted (is_active == False).
    """

    __tablename__ = "products"

    # Primary Key: assigned once at creation, never changed.
    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    name = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=False, default="")

    # Numeric with 10 total digits and 2 decimal places.
    price = Column(Numeric(10, 2), nullable=False)
    stock_quantity = Column(Integer, nullable=False, default=0)

    # Free-text label, matched case-insensitively by the list filters.
    category = Column(String(100), nullable=False, default="", index=True)

    is_active = Column(Boolean, nullable=False, default=True, index=True)

    # Timestamps are set from Python so they keep sub-second resolution on
    # every backend. updated_at is refreshed explicitly by the service.
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    def __repr__(self):
        return (
            f"<Product(id={self.id}, name='{self.name}', "
            f"stock={self.stock_quantity}, active={self.is_active})>"
        )
