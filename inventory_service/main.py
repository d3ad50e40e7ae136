# inventory_service/main.py

"""
FastAPI Product Inventory API.
Manages the product inventory: creation, retrieval with filtering, search and
pagination, full and partial updates, soft deletion, reactivation and
permanent deletion. Every response body is wrapped in the same
`{success, message, data}` envelope.
"""
import os
import logging
import sys
import time
import uuid
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Query, Request, Response, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from .db import Base, engine, get_db
from .exceptions import (
    InventoryError,
    ProductStateError,
    ProductValidationError,
)
from .schemas import (
    ApiResponse,
    ErrorResponse,
    ProductCreate,
    ProductListResponse,
    ProductResponse,
    ProductUpdate,
)
from .service import DEFAULT_LOW_STOCK_THRESHOLD, DEFAULT_PAGE_SIZE, ProductService
from .store import ProductStore

# -----------------------------
# Configure Logging
# -----------------------------
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)

# Suppress noisy logs from third-party libraries for cleaner output
logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
logging.getLogger("uvicorn.error").setLevel(logging.INFO)

# Load environment variables
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "*").split(",")
    if origin.strip()
]
DB_CONNECT_RETRIES = int(os.getenv("DB_CONNECT_RETRIES", "10"))
DB_CONNECT_RETRY_DELAY = int(os.getenv("DB_CONNECT_RETRY_DELAY", "5"))


def create_tables():
    """
    Ensures database tables are created (if not exist).
    Includes a retry mechanism for database connection robustness.
    """
    for i in range(DB_CONNECT_RETRIES):
        try:
            logger.info(
                f"Attempting to connect to the database and create tables (attempt {i+1}/{DB_CONNECT_RETRIES})..."
            )
            Base.metadata.create_all(bind=engine)
            logger.info("Successfully connected to the database and ensured tables exist.")
            break
        except OperationalError as e:
            logger.warning(f"Failed to connect to the database: {e}")
            if i < DB_CONNECT_RETRIES - 1:
                logger.info(f"Retrying in {DB_CONNECT_RETRY_DELAY} seconds...")
                time.sleep(DB_CONNECT_RETRY_DELAY)
            else:
                logger.critical(
                    f"Failed to connect to the database after {DB_CONNECT_RETRIES} attempts. Exiting application."
                )
                sys.exit(1)  # Critical failure: exit if DB connection is unavailable
        except Exception as e:
            logger.critical(
                f"An unexpected error occurred during database startup: {e}",
                exc_info=True,
            )
            sys.exit(1)


@asynccontextmanager
async def lifespan(app: FastAPI):
    create_tables()
    yield


# -----------------------------
# FastAPI App Initialization
# -----------------------------
app = FastAPI(
    title="Product Inventory API",
    description=(
        "Manages a product inventory: filtered and paginated listings, "
        "low-stock reports, soft deletion and reactivation."
    ),
    version="1.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_product_service(db: Session = Depends(get_db)) -> ProductService:
    """Dependency building a ProductService over the request's session."""
    return ProductService(ProductStore(db))


def envelope(status_code: int, message: str, data=None) -> JSONResponse:
    body = ApiResponse(success=status_code < 400, message=message, data=data)
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


# --- Exception Handlers ---
@app.exception_handler(InventoryError)
async def inventory_error_handler(request: Request, exc: InventoryError):
    if isinstance(exc, ProductValidationError):
        status_code = status.HTTP_400_BAD_REQUEST
    else:
        # Missing products and products in the wrong state both surface as 404
        status_code = status.HTTP_404_NOT_FOUND
    return envelope(status_code, exc.message)


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    problems = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err["loc"][1:]) or str(err["loc"][0])
        problems.append(f"{location}: {err['msg']}")
    logger.warning(f"Rejected invalid input on {request.url.path}: {problems}")
    return envelope(
        status.HTTP_400_BAD_REQUEST, "Invalid request input. " + "; ".join(problems)
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
    body = ErrorResponse(success=False, message="Something went wrong!", details=str(exc))
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=jsonable_encoder(body),
    )


# --- Root Endpoint ---
@app.get("/", status_code=status.HTTP_200_OK, summary="Root endpoint")
async def read_root():
    """
    Returns a welcome message for the inventory service.
    """
    return {"message": "Welcome to the Product Inventory Service!"}


# --- Health Check Endpoint ---
@app.get("/health", status_code=status.HTTP_200_OK, summary="Health check endpoint")
async def health_check():
    """
    A simple health check endpoint to verify the service is running.
    """
    return {"status": "ok", "service": "inventory-service"}


# -----------------------------
# Listing Endpoints
# -----------------------------

# Fixed paths are registered before /products/{product_id} so they are not
# parsed as ids.


@app.get(
    "/products",
    response_model=ProductListResponse,
    summary="List active products with filtering, search and pagination",
)
def list_products(
    category: Optional[str] = Query(None, max_length=100, description="Case-insensitive category filter."),
    search: Optional[str] = Query(
        None,
        max_length=255,
        description="Search term for product name or description (case-insensitive).",
    ),
    page_number: int = Query(1, ge=1, description="Page number, starting at 1."),
    page_size: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=100, description="Items per page."),
    service: ProductService = Depends(get_product_service),
):
    """
    Retrieves active products, cheapest first.

    - `category` matches any product whose category contains the value.
    - `search` matches the product name or description.
    - An empty page is a successful, empty list.
    """
    logger.info(
        f"Listing products with category='{category}', search='{search}', "
        f"page_number={page_number}, page_size={page_size}"
    )
    products = service.list_active(category, search, page_number, page_size)
    return ProductListResponse(
        success=True,
        message="Products fetched successfully",
        data=[ProductResponse.model_validate(p) for p in products],
    )


@app.get(
    "/products/low-stock",
    response_model=ProductListResponse,
    responses={404: {"model": ApiResponse[str]}},
    summary="List active products with low stock",
)
def list_low_stock_products(
    category: Optional[str] = Query(None, max_length=100),
    search: Optional[str] = Query(None, max_length=255),
    threshold: int = Query(
        DEFAULT_LOW_STOCK_THRESHOLD, ge=0, description="Products with stock below this value are returned."
    ),
    page_number: int = Query(1, ge=1),
    page_size: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=100),
    service: ProductService = Depends(get_product_service),
):
    """
    Retrieves active products whose stock quantity is below `threshold`.
    Returns 404 when nothing matches.
    """
    logger.info(f"Listing low-stock products with threshold={threshold}")
    products = service.list_low_stock(category, search, threshold, page_number, page_size)
    if not products:
        return envelope(status.HTTP_404_NOT_FOUND, "No low-stock products found.")
    return ProductListResponse(
        success=True,
        message=f"Low-stock products (stock < {threshold}) retrieved successfully.",
        data=[ProductResponse.model_validate(p) for p in products],
    )


@app.get(
    "/products/inactive",
    response_model=ProductListResponse,
    responses={404: {"model": ApiResponse[str]}},
    summary="List inactive (soft-deleted) products",
)
def list_inactive_products(
    category: Optional[str] = Query(None, max_length=100),
    search: Optional[str] = Query(None, max_length=255),
    page_number: int = Query(1, ge=1),
    page_size: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=100),
    service: ProductService = Depends(get_product_service),
):
    """
    Retrieves soft-deleted products. Returns 404 when nothing matches.
    """
    products = service.list_inactive(category, search, page_number, page_size)
    if not products:
        return envelope(status.HTTP_404_NOT_FOUND, "No inactive products found.")
    return ProductListResponse(
        success=True,
        message="Inactive products retrieved successfully",
        data=[ProductResponse.model_validate(p) for p in products],
    )


# -----------------------------
# CRUD Endpoints
# -----------------------------


@app.get(
    "/products/{product_id}",
    response_model=ApiResponse[ProductResponse],
    responses={404: {"model": ApiResponse[str]}},
    summary="Retrieve an active product by ID",
)
def get_product(product_id: uuid.UUID, service: ProductService = Depends(get_product_service)):
    """
    Retrieves a single active product. Soft-deleted products are reported as not found.
    """
    logger.info(f"Fetching product with ID: {product_id}")
    product = service.get_active_by_id(product_id)
    if product is None:
        logger.warning(f"Product with ID: {product_id} not found.")
        return envelope(status.HTTP_404_NOT_FOUND, "Product not found")
    return ApiResponse[ProductResponse](
        success=True, message="Product fetched", data=ProductResponse.model_validate(product)
    )


@app.post(
    "/products",
    response_model=ApiResponse[ProductResponse],
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ApiResponse[str]}},
    summary="Create a new product",
)
def create_product(
    product: ProductCreate,
    response: Response,
    service: ProductService = Depends(get_product_service),
):
    """
    Creates a new, active product.

    - Rejects a blank name, a price that is not positive, or negative stock with 400.
    - Returns the stored product with its generated `id` and timestamps.
    """
    logger.info(f"Creating product: {product.name}")
    created = service.create(product)
    response.headers["Location"] = f"/products/{created.id}"
    return ApiResponse[ProductResponse](
        success=True,
        message="Product created successfully",
        data=ProductResponse.model_validate(created),
    )


@app.put(
    "/products/{product_id}",
    response_model=ApiResponse[ProductResponse],
    responses={400: {"model": ApiResponse[str]}, 404: {"model": ApiResponse[str]}},
    summary="Update an existing product",
)
def update_product(
    product_id: uuid.UUID,
    updated: ProductUpdate,
    service: ProductService = Depends(get_product_service),
):
    """
    Overwrites every field given in the body, empty strings included.
    Null or missing fields keep their current value.
    """
    logger.info(
        f"Updating product with ID: {product_id} with data: {updated.model_dump(exclude_unset=True)}"
    )
    product = service.full_update(product_id, updated)
    return ApiResponse[ProductResponse](
        success=True,
        message=f"Product with ID {product_id} updated successfully.",
        data=ProductResponse.model_validate(product),
    )


@app.patch(
    "/products/{product_id}",
    response_model=ApiResponse[ProductResponse],
    responses={400: {"model": ApiResponse[str]}, 404: {"model": ApiResponse[str]}},
    summary="Partially update an existing product",
)
def patch_product(
    product_id: uuid.UUID,
    updated: ProductUpdate,
    service: ProductService = Depends(get_product_service),
):
    """
    Updates only the fields that are given and non-empty.
    """
    logger.info(
        f"Patching product with ID: {product_id} with data: {updated.model_dump(exclude_unset=True)}"
    )
    product = service.partial_update(product_id, updated)
    return ApiResponse[ProductResponse](
        success=True,
        message="Product updated successfully.",
        data=ProductResponse.model_validate(product),
    )


@app.delete(
    "/products/delete/{product_id}",
    response_model=ApiResponse[str],
    responses={400: {"model": ApiResponse[str]}, 404: {"model": ApiResponse[str]}},
    summary="Permanently delete an inactive product",
)
def delete_product_permanently(
    product_id: uuid.UUID, service: ProductService = Depends(get_product_service)
):
    """
    Erases a product from the database. Only inactive products can be erased;
    an active product is rejected with 400.
    """
    logger.info(f"Attempting to permanently delete product with ID: {product_id}")
    try:
        service.permanent_delete(product_id)
    except ProductStateError as e:
        return envelope(status.HTTP_400_BAD_REQUEST, e.message)
    return ApiResponse[str](success=True, message="Product deleted permanently.")


@app.delete(
    "/products/{product_id}",
    response_model=ApiResponse[str],
    responses={404: {"model": ApiResponse[str]}},
    summary="Soft delete a product (mark as inactive)",
)
def delete_product(product_id: uuid.UUID, service: ProductService = Depends(get_product_service)):
    """
    Marks an active product as inactive. It can be brought back with
    `PUT /products/{id}/reactivate`.
    """
    logger.info(f"Attempting to soft delete product with ID: {product_id}")
    service.soft_delete(product_id)
    return ApiResponse[str](success=True, message="Product deleted successfully")


@app.put(
    "/products/{product_id}/reactivate",
    response_model=ApiResponse[ProductResponse],
    responses={404: {"model": ApiResponse[str]}},
    summary="Reactivate a soft-deleted product",
)
def reactivate_product(
    product_id: uuid.UUID, service: ProductService = Depends(get_product_service)
):
    """
    Only works if the product exists and is currently inactive; otherwise 404.
    """
    logger.info(f"Reactivating product with ID: {product_id}")
    product = service.reactivate(product_id)
    return ApiResponse[ProductResponse](
        success=True,
        message="Product reactivated successfully.",
        data=ProductResponse.model_validate(product),
    )
