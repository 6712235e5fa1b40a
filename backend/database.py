"""Database configuration for the ledger backend."""
from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from kakeibo.config import load_settings

Base = declarative_base()


def enable_sqlite_foreign_keys(target: Engine) -> None:
    """Turn on foreign key enforcement for every new SQLite connection."""

    if target.dialect.name != "sqlite":
        return

    @event.listens_for(target, "connect")
    def _set_pragma(dbapi_connection, _record) -> None:  # pragma: no cover - driver hook
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def build_engine(database_url: str) -> Engine:
    connect_args = {}
    if make_url(database_url).get_backend_name() == "sqlite":
        connect_args["check_same_thread"] = False
    new_engine = create_engine(database_url, connect_args=connect_args, future=True)
    enable_sqlite_foreign_keys(new_engine)
    return new_engine


DATABASE_URL = load_settings().database_url
engine = build_engine(DATABASE_URL)
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)


def configure_engine(database_url: str) -> Engine:
    """Point the application engine and session factory at ``database_url``."""
    global DATABASE_URL, engine, SessionLocal

    DATABASE_URL = database_url
    engine = build_engine(database_url)
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)
    return engine


def init_db(bind: Engine | None = None) -> None:
    """Create database tables if they do not already exist."""
    from . import models  # noqa: F401  # Import models for metadata registration

    target = bind or engine
    url = target.url
    if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    Base.metadata.create_all(bind=target)


@contextmanager
def session_scope() -> Iterator[Session]:
    """Provide a transactional scope around a series of operations."""
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_db() -> Iterator[Session]:
    """FastAPI dependency that provides a database session."""
    with session_scope() as session:
        yield session
