"""Core package - configuration, logging and database plumbing."""

from .config import Settings, get_settings
from .database import (
    get_database_url,
    set_database_url,
    set_db_path,
    get_engine,
    reset_engine,
    session_scope,
    init_db,
    drop_db,
)
from .logging import configure_logging

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Logging
    "configure_logging",
    # Database
    "get_database_url",
    "set_database_url",
    "set_db_path",
    "get_engine",
    "reset_engine",
    "session_scope",
    "init_db",
    "drop_db",
]
