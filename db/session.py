"""
db/session.py

Lazily built engine and session factory for the ``scan_results`` database.
Nothing connects until the database result sink appends its first rows.
"""

from __future__ import annotations

import os
from functools import lru_cache

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from db.config import resolve_database_url


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, default))
    except ValueError:
        return default


def create_db_engine(database_url: str | None = None) -> Engine:
    """
    Build an engine for ``database_url`` (default: the configured URL).

    SQLite URLs are allowed for local runs; the APScheduler worker thread
    shares the connection, so thread checks are disabled for them.
    """

    url = database_url or resolve_database_url()
    echo = os.getenv("SQL_ECHO", "").strip().lower() in {"1", "true", "yes", "on"}
    if url.startswith("sqlite"):
        return create_engine(url, echo=echo, connect_args={"check_same_thread": False})

    return create_engine(
        url,
        echo=echo,
        pool_pre_ping=True,
        pool_recycle=_env_int("DB_POOL_RECYCLE", 1800),
        pool_size=_env_int("DB_POOL_SIZE", 5),
        max_overflow=_env_int("DB_MAX_OVERFLOW", 10),
    )


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return create_db_engine()


@lru_cache(maxsize=1)
def get_session_factory() -> sessionmaker[Session]:
    return sessionmaker(bind=get_engine(), autoflush=False, expire_on_commit=False)


def SessionLocal() -> Session:
    """Open a session on the shared engine, creating it on first call."""
    return get_session_factory()()
