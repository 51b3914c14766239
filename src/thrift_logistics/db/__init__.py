"""Database engine, sessions and schema helpers."""

from .base import Base
from .session import (
    get_engine,
    get_session,
    get_sessionmaker,
    init_db,
    is_sqlite_memory_url,
    reset_database_state,
    session_scope,
)

__all__ = [
    "Base",
    "get_engine",
    "get_session",
    "get_sessionmaker",
    "init_db",
    "is_sqlite_memory_url",
    "reset_database_state",
    "session_scope",
]
