"""Centralized SQLAlchemy engine/session helpers for the workspace.

Engines are created lazily, one per database URL, and shared for the life of
the process. The URL comes from the ``database_url`` argument or, when
omitted, the ``DATABASE_URL`` environment variable.

Usage
-----
from db.client import session_scope

with session_scope() as s:
    s.add(...)
"""

from __future__ import annotations

import os
import threading
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from .models.finance import Base

_ENGINES: dict[str, tuple[Engine, sessionmaker[Session]]] = {}
_LOCK = threading.Lock()


def _database_url(override: str | None = None) -> str:
    url = override or os.getenv("DATABASE_URL")
    if not url:
        raise RuntimeError("DATABASE_URL is not set; cannot initialize database client")
    return url


def _entry(url: str) -> tuple[Engine, sessionmaker[Session]]:
    with _LOCK:
        entry = _ENGINES.get(url)
        if entry is None:
            engine = create_engine(url, pool_pre_ping=True)
            entry = (engine, sessionmaker(bind=engine, expire_on_commit=False, class_=Session))
            _ENGINES[url] = entry
        return entry


def get_engine(*, database_url: str | None = None) -> Engine:
    """Return the shared SQLAlchemy engine for the URL, creating it on first use."""

    return _entry(_database_url(database_url))[0]


def get_session(*, database_url: str | None = None) -> Session:
    """Return a new SQLAlchemy session bound to the shared engine."""

    return _entry(_database_url(database_url))[1]()


@contextmanager
def session_scope(*, database_url: str | None = None) -> Iterator[Session]:
    """Provide a transactional scope around a series of operations."""

    session = get_session(database_url=database_url)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def create_schema(*, database_url: str | None = None) -> None:
    """Create any missing tables for the registered models."""

    Base.metadata.create_all(bind=get_engine(database_url=database_url))


def dispose_engines() -> None:
    """Dispose and forget every cached engine (tests and process shutdown)."""

    with _LOCK:
        for engine, _ in _ENGINES.values():
            engine.dispose()
        _ENGINES.clear()


__all__ = [
    "create_schema",
    "dispose_engines",
    "get_engine",
    "get_session",
    "session_scope",
]
