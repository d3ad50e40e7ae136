# inventory_service/store.py

"""
Persistence for Product records. Every mutating call commits before it
returns; a failed commit is rolled back and re-raised.
"""
import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from .models import Product

logger = logging.getLogger(__name__)


class ProductStore:
    """Thin wrapper around a SQLAlchemy session, scoped to the products table."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, product_id, active=True):
        """Fetch a product by id, only if its is_active flag matches `active`."""
        stmt = select(Product).where(
            Product.id == product_id, Product.is_active == active
        )
        return self.db.scalars(stmt).first()

    def get_any(self, product_id):
        """Fetch a product by id whatever its state."""
        return self.db.get(Product, product_id)

    def find(self, criteria, order_by=(), skip=0, take=None):
        stmt = select(Product).where(*criteria).order_by(*order_by).offset(skip)
        if take is not None:
            stmt = stmt.limit(take)
        return list(self.db.scalars(stmt).all())

    def add(self, product: Product) -> Product:
        self.db.add(product)
        self._commit()
        self.db.refresh(product)
        return product

    def save(self, product: Product) -> Product:
        """Commit pending changes made to an already loaded product."""
        self.db.add(product)
        self._commit()
        self.db.refresh(product)
        return product

    def delete(self, product: Product):
        self.db.delete(product)
        self._commit()

    def _commit(self):
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.error("Commit failed, transaction rolled back.", exc_info=True)
            raise
