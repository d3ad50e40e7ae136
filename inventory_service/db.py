# inventory_service/db.py

"""
Database configuration and session management for the inventory API.
"""
import os

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

# Read DB settings from environment variables, with defaults for local/dev
POSTGRES_USER = os.getenv("POSTGRES_USER", "postgres")
POSTGRES_PASSWORD = os.getenv("POSTGRES_PASSWORD", "postgres")
POSTGRES_DB = os.getenv("POSTGRES_DB", "postgres")
POSTGRES_HOST = os.getenv("POSTGRES_HOST", "localhost")
POSTGRES_PORT = os.getenv("POSTGRES_PORT", "5432")

# A full DATABASE_URL takes precedence over the individual POSTGRES_* parts
DATABASE_URL = os.getenv(
    "DATABASE_URL",
    "postgresql://"
    f"{POSTGRES_USER}:{POSTGRES_PASSWORD}@"
    f"{POSTGRES_HOST}:{POSTGRES_PORT}/{POSTGRES_DB}",
)


def _engine_options(url):
    """Extra create_engine() arguments for the given database URL."""
    if not url.startswith("sqlite"):
        # pool_pre_ping=True helps maintain healthy connections in a pool
        return {"pool_pre_ping": True}

    options = {"connect_args": {"check_same_thread": False}}
    if ":memory:" in url or url in ("sqlite://", "sqlite+pysqlite://"):
        # An in-memory database only lives as long as its connection
        options["poolclass"] = StaticPool
    return options


engine = create_engine(DATABASE_URL, **_engine_options(DATABASE_URL))

# Mutations are not visible until committed explicitly.
# expire_on_commit=False keeps committed rows readable after the commit.
SessionLocal = sessionmaker(
    autoflush=False, expire_on_commit=False, bind=engine
)

# Base class for the ORM models
Base = declarative_base()


def get_db():
    """
    Dependency to provide a new database session for FastAPI endpoints.
    A session is created for each request and automatically closed after use.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
