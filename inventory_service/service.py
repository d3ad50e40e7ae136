# inventory_service/service.py

"""
Product query service.

Composes the list filters (active flag, category, text search, stock
threshold) and pagination on top of a ProductStore, and implements the
product lifecycle: create, full/partial update, soft delete, reactivate and
permanent delete.

Failures are raised as the exceptions in `exceptions.py`. "Not found" and
"wrong state" are kept apart so callers can tell them apart even when they
map to the same HTTP status.
"""
import logging
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import or_

from .exceptions import ProductNotFoundError, ProductStateError, ProductValidationError
from .models import Product, utcnow
from .store import ProductStore

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10
DEFAULT_LOW_STOCK_THRESHOLD = 25

UPDATABLE_FIELDS = ("name", "description", "price", "stock_quantity", "category")

# Largest value a Numeric(10, 2) column holds
MAX_PRICE = Decimal("99999999.99")
CENT = Decimal("0.01")


def _field_values(fields) -> dict:
    """Accept either a Pydantic model or a plain mapping of field values."""
    if hasattr(fields, "model_dump"):
        return fields.model_dump()
    return dict(fields)


def _coerce(field, value):
    if field == "price":
        # Go through str() so 9.99 is stored as 9.99 and not its binary float
        return Decimal(str(value))
    return value


def _check_price(value):
    """The price has to fit the Numeric(10, 2) column without rounding."""
    price = _coerce("price", value)
    if not price.is_finite() or price <= 0:
        raise ProductValidationError("Price must be greater than 0.")
    if price > MAX_PRICE:
        raise ProductValidationError(f"Price cannot exceed {MAX_PRICE}.")
    if price != price.quantize(CENT):
        raise ProductValidationError("Price cannot have more than 2 decimal places.")


def _validate(values, check_name=True):
    if check_name and values.get("name") is not None and not values["name"].strip():
        raise ProductValidationError("Name must not be empty.")
    if values.get("price") is not None:
        _check_price(values["price"])
    stock = values.get("stock_quantity")
    if stock is not None and stock < 0:
        raise ProductValidationError("StockQuantity cannot be negative.")


def _contains_pattern(term):
    """LIKE pattern matching `term` literally anywhere in the value."""
    escaped = term.strip().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def merge_full_update(product: Product, fields) -> Product:
    """Overwrite every field that is given; null fields keep the existing value."""
    values = _field_values(fields)
    for field in UPDATABLE_FIELDS:
        value = values.get(field)
        if value is not None:
            setattr(product, field, _coerce(field, value))
    return product


def merge_partial_update(product: Product, fields) -> Product:
    """Overwrite only the fields that are given and non-empty."""
    values = _field_values(fields)
    for field in UPDATABLE_FIELDS:
        value = values.get(field)
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        setattr(product, field, _coerce(field, value))
    return product


class ProductService:
    def __init__(self, store: ProductStore):
        self.store = store

    # -----------------------------
    # Queries
    # -----------------------------

    def list_active(
        self,
        category: Optional[str] = None,
        search: Optional[str] = None,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> List[Product]:
        """Active products, cheapest first."""
        criteria = [Product.is_active.is_(True)]
        criteria += self._text_filters(category, search)
        return self._page(criteria, (Product.price, Product.id), page, page_size)

    def list_low_stock(
        self,
        category: Optional[str] = None,
        search: Optional[str] = None,
        threshold: int = DEFAULT_LOW_STOCK_THRESHOLD,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> List[Product]:
        """Active products whose stock is strictly below `threshold`, lowest stock first."""
        if threshold < 0:
            raise ProductValidationError("Threshold cannot be negative.")
        criteria = [Product.is_active.is_(True), Product.stock_quantity < threshold]
        criteria += self._text_filters(category, search)
        return self._page(
            criteria, (Product.stock_quantity, Product.id), page, page_size
        )

    def list_inactive(
        self,
        category: Optional[str] = None,
        search: Optional[str] = None,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> List[Product]:
        criteria = [Product.is_active.is_(False)]
        criteria += self._text_filters(category, search)
        return self._page(criteria, (Product.name, Product.id), page, page_size)

    def get_active_by_id(self, product_id) -> Optional[Product]:
        return self.store.get(product_id, active=True)

    def get_inactive_by_id(self, product_id) -> Optional[Product]:
        return self.store.get(product_id, active=False)

    # -----------------------------
    # Mutations
    # -----------------------------

    def create(self, fields) -> Product:
        values = _field_values(fields)
        for required in ("name", "price", "stock_quantity"):
            if values.get(required) is None:
                raise ProductValidationError(f"Field '{required}' is required.")
        _validate(values)

        now = utcnow()
        product = Product(
            name=values["name"],
            description=values.get("description") or "",
            price=_coerce("price", values["price"]),
            stock_quantity=values["stock_quantity"],
            category=values.get("category") or "",
            is_active=True,
            created_at=now,
            updated_at=now,
        )
        product = self.store.add(product)
        logger.info(f"Product '{product.name}' (ID: {product.id}) created.")
        return product

    def full_update(self, product_id, fields) -> Product:
        values = _field_values(fields)
        _validate(values)
        product = self._require(product_id, active=True)
        merge_full_update(product, values)
        product.updated_at = utcnow()
        product = self.store.save(product)
        logger.info(f"Product '{product.name}' (ID: {product_id}) updated.")
        return product

    def partial_update(self, product_id, fields) -> Product:
        values = _field_values(fields)
        # Blank names are skipped by the partial merge, so they are not an error here
        _validate(values, check_name=False)
        product = self._require(product_id, active=True)
        merge_partial_update(product, values)
        product.updated_at = utcnow()
        product = self.store.save(product)
        logger.info(f"Product '{product.name}' (ID: {product_id}) patched.")
        return product

    def soft_delete(self, product_id) -> Product:
        product = self._require(
            product_id,
            active=True,
            message=f"Product with ID {product_id} is already inactive.",
        )
        product.is_active = False
        product = self.store.save(product)
        logger.info(f"Product (ID: {product_id}) marked inactive.")
        return product

    def reactivate(self, product_id) -> Product:
        product = self._require(
            product_id,
            active=False,
            message=f"Product with ID {product_id} is already active.",
        )
        product.is_active = True
        product.updated_at = utcnow()
        product = self.store.save(product)
        logger.info(f"Product (ID: {product_id}) reactivated.")
        return product

    def permanent_delete(self, product_id):
        product = self._require(
            product_id,
            active=False,
            message="Only inactive products can be deleted permanently.",
        )
        self.store.delete(product)
        logger.info(f"Product (ID: {product_id}) deleted permanently.")

    # -----------------------------
    # Helpers
    # -----------------------------

    def _require(self, product_id, active, message=None) -> Product:
        """Load a product that must exist and be in the given state."""
        product = self.store.get_any(product_id)
        if product is None:
            logger.warning(f"Product with ID: {product_id} not found.")
            raise ProductNotFoundError(product_id)
        if product.is_active != active:
            logger.warning(
                f"Product with ID: {product_id} has is_active={product.is_active}, "
                f"expected {active}."
            )
            raise ProductStateError(product_id, expected_active=active, message=message)
        return product

    @staticmethod
    def _text_filters(category, search):
        criteria = []
        if category and category.strip():
            pattern = _contains_pattern(category)
            criteria.append(Product.category.ilike(pattern, escape="\\"))
        if search and search.strip():
            pattern = _contains_pattern(search)
            criteria.append(
                or_(
                    Product.name.ilike(pattern, escape="\\"),
                    Product.description.ilike(pattern, escape="\\"),
                )
            )
        return criteria

    def _page(self, criteria, order_by, page, page_size):
        if page < 1:
            raise ProductValidationError("Page number must be at least 1.")
        if page_size < 1:
            raise ProductValidationError("Page size must be at least 1.")
        skip = (page - 1) * page_size
        products = self.store.find(criteria, order_by=order_by, skip=skip, take=page_size)
        logger.info(
            f"Retrieved {len(products)} products (skip={skip}, take={page_size})."
        )
        return products
