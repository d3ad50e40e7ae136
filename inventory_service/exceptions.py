# inventory_service/exceptions.py

"""
Errors raised by the product service. The API layer maps each kind to an
HTTP status code.
"""


class InventoryError(Exception):
    """Base class for all inventory errors."""

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class ProductValidationError(InventoryError):
    """A field value breaks a product invariant (blank name, price <= 0, ...)."""


class ProductNotFoundError(InventoryError):
    def __init__(self, product_id):
        super().__init__(f"Product with ID {product_id} not found.")
        self.product_id = product_id


class ProductStateError(InventoryError):
    """The product exists but is not in the active/inactive state the operation needs."""

    def __init__(self, product_id, expected_active, message=None):
        if message is None:
            state = "active" if expected_active else "inactive"
            message = f"Product with ID {product_id} is not {state}."
        super().__init__(message)
        self.product_id = product_id
        self.expected_active = expected_active
