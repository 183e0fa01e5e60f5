"""Database session management.

This module provides the SQLAlchemy engine and session factory configured
from tire_insights.core.config settings. The engine pool is the bound on
concurrent reads issued by the analysis workers.
"""

from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from tire_insights.core.config import Settings, get_settings


def build_engine(settings: Settings) -> Engine:
    """Create engine with a bounded connection pool."""
    kwargs: dict = {
        "pool_pre_ping": True,  # Verify connections before using
        "future": True,
        "echo": False,
    }
    if settings.database_url.startswith("sqlite"):
        # SQLite connections are handed between worker threads
        kwargs["connect_args"] = {"check_same_thread": False}
    else:
        kwargs["pool_size"] = settings.db_pool_size
        kwargs["max_overflow"] = settings.db_max_overflow
        kwargs["pool_timeout"] = settings.db_pool_timeout_seconds

    return create_engine(settings.database_url, **kwargs)


# Create engine from settings
engine = build_engine(get_settings())

# Session factory
SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
    future=True,
)


def get_db():
    """Get database session (dependency injection for FastAPI)."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
