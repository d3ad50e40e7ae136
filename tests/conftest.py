# tests/conftest.py

"""
Shared fixtures for the inventory API tests.
The tests run against an in-memory SQLite database unless TEST_DATABASE_URL
points somewhere else. The schema is recreated around every test so each one
starts from an empty products table.
"""

import logging
import os

# Must be set before the application modules create their engine
os.environ["DATABASE_URL"] = os.getenv("TEST_DATABASE_URL", "sqlite://")
os.environ.setdefault("DB_CONNECT_RETRIES", "1")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from inventory_service.db import Base, SessionLocal, engine, get_db
from inventory_service.main import app
from inventory_service.service import ProductService
from inventory_service.store import ProductStore

# Suppress noisy logs from SQLAlchemy/FastAPI during tests for cleaner output
logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
logging.getLogger("uvicorn.error").setLevel(logging.WARNING)
logging.getLogger("fastapi").setLevel(logging.WARNING)


# --- Pytest Fixtures ---
@pytest.fixture(autouse=True)
def setup_database():
    """Create all tables before a test and drop them afterwards."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session_for_test(setup_database):
    """
    Provides a database session for a test function and makes the app use the
    same session, so the test can inspect exactly what the endpoints wrote.
    """
    db = SessionLocal()

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield db
    finally:
        db.close()
        app.dependency_overrides.pop(get_db, None)


@pytest.fixture
def service(db_session_for_test: Session) -> ProductService:
    return ProductService(ProductStore(db_session_for_test))


@pytest.fixture(scope="module")
def client():
    """
    Provides a TestClient for making HTTP requests to the FastAPI application.
    The TestClient runs the app's startup events.
    """
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def widget_data():
    return {
        "name": "Widget",
        "description": "A small widget",
        "price": 9.99,
        "stock_quantity": 5,
        "category": "Tools",
    }
