"""Database connection management for SQLModel ORM.

Supports SQLite (local dev, tests) and PostgreSQL (production) via
``DATABASE_URL``.
"""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

from .config import get_settings

_DB_URL: str | None = None
_engine: Engine | None = None


def get_database_url() -> str:
    """Get database URL from the override, settings, or default to SQLite.

    Handles the ``postgres://`` scheme by converting to ``postgresql://``.
    """
    if _DB_URL is not None:
        return _DB_URL

    database_url = get_settings().database_url
    if database_url:
        if database_url.startswith("postgres://"):
            database_url = database_url.replace("postgres://", "postgresql://", 1)
        return database_url

    data_dir = Path(get_settings().data_dir)
    data_dir.mkdir(parents=True, exist_ok=True)
    return f"sqlite:///{data_dir / 'formguard.db'}"


def set_database_url(url: str | None) -> None:
    """Set a custom database URL (useful for testing)."""
    global _DB_URL, _engine
    _DB_URL = url
    _engine = None  # Reset engine when URL changes


def set_db_path(path: Path | str) -> None:
    """Point the engine at a SQLite file."""
    set_database_url(f"sqlite:///{Path(path)}")


def get_engine() -> Engine:
    """Get SQLAlchemy engine for SQLModel operations."""
    global _engine
    if _engine is None:
        database_url = get_database_url()

        connect_args = {}
        if database_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False

        _engine = create_engine(database_url, echo=False, connect_args=connect_args)
    return _engine


def reset_engine() -> None:
    """Dispose and drop the cached engine."""
    global _engine
    if _engine is not None:
        _engine.dispose()
    _engine = None


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """Yield a SQLModel session.

    Usage:
        with session_scope() as session:
            rules = session.exec(select(ComplianceRuleRecord)).all()
    """
    with Session(get_engine()) as session:
        yield session


def init_db() -> None:
    """Create tables if they don't exist. Safe to call multiple times."""
    # Register table models on SQLModel.metadata
    from formguard.storage import models  # noqa: F401

    SQLModel.metadata.create_all(get_engine())


def drop_db() -> None:
    """Drop all tables. USE WITH CAUTION."""
    from formguard.storage import models  # noqa: F401

    SQLModel.metadata.drop_all(get_engine())
