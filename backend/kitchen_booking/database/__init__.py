"""
Database engine, session factory, and metadata shared across the application.
"""

from __future__ import annotations

import logging
from typing import Any, Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from kitchen_booking.core.config import settings

logger = logging.getLogger(__name__)

Base = declarative_base()

_DEFAULT_POOL_KWARGS: dict[str, Any] = {
    "pool_size": 5,
    "max_overflow": 10,
    "pool_timeout": 5,
    "pool_recycle": 300,
    "pool_pre_ping": True,
}


def build_engine(database_url: str, **overrides: Any) -> Engine:
    """Create an engine tuned for the given backend."""
    if database_url.startswith("sqlite"):
        kwargs: dict[str, Any] = {
            # Writers wait on the database lock instead of failing immediately.
            "connect_args": {"check_same_thread": False, "timeout": 30},
        }
    else:
        kwargs = dict(_DEFAULT_POOL_KWARGS)
    kwargs.update(overrides)
    return create_engine(database_url, echo=settings.database_echo, future=True, **kwargs)


engine: Engine = build_engine(settings.database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency yielding a request-scoped session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


__all__ = ["Base", "SessionLocal", "build_engine", "engine", "get_db"]
