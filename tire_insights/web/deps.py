"""FastAPI dependencies for database access and common query parameters."""

from __future__ import annotations

from typing import Annotated, Callable

from fastapi import Depends, Query
from sqlalchemy.orm import Session

from tire_insights.db.session import SessionLocal, get_db


def get_session_factory() -> Callable[[], Session]:
    """Session factory for the analysis worker pool."""
    return SessionLocal


# Type aliases for cleaner endpoints
DBSession = Annotated[Session, Depends(get_db)]
SessionFactory = Annotated[Callable[[], Session], Depends(get_session_factory)]
StoreId = Annotated[
    str | None,
    Query(
        pattern=r"^[A-Za-z0-9_-]{1,64}$",
        description="Restrict to one store (omit for all stores)",
    ),
]
