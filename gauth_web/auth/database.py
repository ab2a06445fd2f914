"""
GAuth Web - Database Configuration

SQLModel database setup with connection pooling.
Supports PostgreSQL (production) and SQLite (development, tests).

Usage:
    from gauth_web.auth.database import get_engine, init_db

    engine = get_engine()
    init_db(engine)  # Creates tables
"""

import logging
from typing import Callable, Optional

from sqlalchemy.engine import Engine, make_url
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from gauth_web.config import settings


logger = logging.getLogger(__name__)


def is_memory_sqlite(url: str) -> bool:
    """True for sqlite:// and sqlite:///:memory: style URLs."""
    parsed = make_url(url)
    return parsed.get_backend_name() == "sqlite" and parsed.database in (None, "", ":memory:")


def get_engine(database_url: Optional[str] = None, echo: bool = False) -> Engine:
    """
    Create SQLAlchemy engine with appropriate configuration.

    Args:
        database_url: Override database URL
        echo: Log SQL statements

    Returns:
        SQLAlchemy Engine
    """
    url = database_url or settings.database_url()

    if is_memory_sqlite(url):
        # Single shared connection so the in-memory database survives across sessions
        engine = create_engine(
            url,
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    elif url.startswith("sqlite"):
        # One pooled connection per session; sessions may move between threadpool workers
        engine = create_engine(
            url,
            echo=echo,
            connect_args={"check_same_thread": False},
        )
    else:
        engine = create_engine(
            url,
            echo=echo,
            pool_size=5,
            max_overflow=10,
            pool_pre_ping=True,
        )

    return engine


def init_db(engine: Engine) -> None:
    """
    Create all credential store and audit tables.

    Safe to call multiple times (uses CREATE IF NOT EXISTS).
    """
    # Import models to register them with SQLModel
    from gauth_web.auth import models  # noqa: F401
    from gauth_web.audit import models as audit_models  # noqa: F401

    SQLModel.metadata.create_all(engine)
    logger.info("Database tables initialized")


def get_session_factory(engine: Engine) -> Callable[[], Session]:
    """
    Create a session factory bound to engine.

    Returns:
        Callable that creates new database sessions
    """
    def session_factory() -> Session:
        return Session(engine)

    return session_factory
