"""Engine and session factories for the logistics database."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from functools import lru_cache
from pathlib import Path
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, URL, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..config import settings
from .base import Base

logger = logging.getLogger(__name__)


def is_sqlite_memory_url(url: URL) -> bool:
    database = (url.database or "").strip()
    return database in {"", ":memory:"} or database.startswith("file::memory:")


def _ensure_sqlite_directory(url: URL) -> None:
    database = url.database
    if not database or is_sqlite_memory_url(url):
        return
    Path(database).expanduser().resolve().parent.mkdir(parents=True, exist_ok=True)


@lru_cache()
def get_engine(database_url: str | None = None) -> Engine:
    """Return a cached engine for ``database_url`` (defaults to settings)."""
    url = make_url(database_url or settings.database_url)
    kwargs: dict = {"echo": settings.database_echo}
    if url.get_backend_name() == "sqlite":
        kwargs["connect_args"] = {"check_same_thread": False, "timeout": 30}
        if is_sqlite_memory_url(url):
            # One shared connection, otherwise every checkout sees an empty database
            kwargs["poolclass"] = StaticPool
        else:
            _ensure_sqlite_directory(url)
    else:
        kwargs["pool_pre_ping"] = True
    logger.info(f"Creating database engine for backend '{url.get_backend_name()}'")
    return create_engine(url, **kwargs)


@lru_cache()
def get_sessionmaker(database_url: str | None = None) -> sessionmaker[Session]:
    return sessionmaker(
        bind=get_engine(database_url),
        expire_on_commit=False,
        autoflush=False,
    )


def init_db(engine: Engine | None = None) -> None:
    """Create all tables that do not exist yet."""
    # Importing the models registers them on Base.metadata
    from ..models import domain  # noqa: F401

    Base.metadata.create_all(engine or get_engine())


def reset_database_state() -> None:
    """Drop cached engines and session factories (useful for tests)."""
    get_sessionmaker.cache_clear()
    get_engine.cache_clear()


@contextmanager
def session_scope(factory: sessionmaker[Session] | None = None) -> Iterator[Session]:
    """Open a session for a unit of work outside of a request."""
    session = (factory or get_sessionmaker())()
    try:
        yield session
        if session.in_transaction():
            session.commit()
    except Exception:
        if session.in_transaction():
            session.rollback()
        raise
    finally:
        session.close()


def get_session() -> Iterator[Session]:
    """FastAPI dependency that yields a ``Session`` for the request."""
    session = get_sessionmaker()()
    try:
        yield session
        if session.in_transaction():
            session.commit()
    except Exception:
        if session.in_transaction():
            session.rollback()
        raise
    finally:
        session.close()
