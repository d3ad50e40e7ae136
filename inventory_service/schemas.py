# inventory_service/schemas.py

"""
Pydantic schemas for the inventory API.
These define the data structures for incoming requests and outgoing responses,
ensuring data validation and clear API contracts.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

T = TypeVar("T")

# Prices are stored as Numeric(10, 2)
MAX_PRICE = 99999999.99


def _whole_cents(value):
    if value is None:
        return value
    price = Decimal(str(value))
    if price != price.quantize(Decimal("0.01")):
        raise ValueError("Price cannot have more than 2 decimal places.")
    return value


# Schema for creating a new product.
# Used in POST /products endpoint.
class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255, description="Name of the product.")
    description: str = Field("", max_length=2000, description="Detailed description of the product.")
    price: float = Field(..., gt=0, le=MAX_PRICE, description="Price of the product. Must be greater than 0, with at most 2 decimal places.")
    stock_quantity: int = Field(..., ge=0, description="Current stock quantity. Must be non-negative.")
    category: str = Field("", max_length=100, description="Category label used for filtering.")

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Name must not be blank.")
        return value

    @field_validator("price")
    @classmethod
    def price_in_cents(cls, value: float) -> float:
        return _whole_cents(value)


# Schema for updating an existing product.
# All fields are Optional. PUT overwrites every field that is not null,
# PATCH additionally skips empty strings. Name emptiness is checked by the
# service since the two verbs treat "" differently.
# Used in PUT and PATCH /products/{id} endpoints.
class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=255, description="New name of the product.")
    description: Optional[str] = Field(None, max_length=2000, description="New detailed description of the product.")
    price: Optional[float] = Field(None, gt=0, le=MAX_PRICE, description="New price of the product. Must be greater than 0, with at most 2 decimal places.")
    stock_quantity: Optional[int] = Field(None, ge=0, description="New stock quantity. Must be non-negative.")
    category: Optional[str] = Field(None, max_length=100, description="New category label.")

    @field_validator("price")
    @classmethod
    def price_in_cents(cls, value: Optional[float]) -> Optional[float]:
        return _whole_cents(value)


# Schema for representing a product in API responses.
class ProductResponse(BaseModel):
    id: uuid.UUID = Field(..., description="Unique identifier of the product.")
    name: str
    description: str
    price: float
    stock_quantity: int
    category: str
    is_active: bool = Field(..., description="False once the product has been soft-deleted.")
    created_at: datetime = Field(..., description="Timestamp when the product was created.")
    updated_at: datetime = Field(..., description="Timestamp when the product was last updated.")

    model_config = ConfigDict(from_attributes=True)


# Uniform envelope wrapped around every response body.
class ApiResponse(BaseModel, Generic[T]):
    success: bool
    message: str
    data: Optional[T] = None


# Body of the 500 response produced by the catch-all error handler.
class ErrorResponse(ApiResponse[Any]):
    details: Optional[str] = None


ProductListResponse = ApiResponse[List[ProductResponse]]
