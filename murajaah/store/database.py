"""
Database - connection handle for the progress store

Wraps a SQLAlchemy engine and session factory. Repositories receive a
Database instance explicitly instead of reaching for a global connection.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from sqlalchemy import create_engine, event, inspect
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from murajaah.config import get_database_url
from murajaah.errors import PersistenceError
from murajaah.store.models import Base

logger = logging.getLogger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_db_engine(url: str) -> Engine:
    """
    Build an engine for the given URL.

    SQLite files get their parent directory created; in-memory SQLite uses a
    single shared connection so every session sees the same data.
    """
    parsed = make_url(url)
    if parsed.get_backend_name() == "sqlite":
        database = parsed.database
        if database and database != ":memory:":
            Path(database).parent.mkdir(parents=True, exist_ok=True)
            engine = create_engine(url, echo=False)
        else:
            engine = create_engine(
                url,
                echo=False,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
        return engine

    return create_engine(
        url,
        pool_size=5,           # Keep 5 connections open
        max_overflow=10,       # Allow up to 10 extra connections
        pool_pre_ping=True,    # Verify connections before use
        echo=False
    )


class Database:
    """
    Injected store handle.

    Usage:
        db = Database.from_env()
        db.init_db()
        with db.session_scope() as session:
            ...
    """

    def __init__(self, engine: Engine):
        self.engine = engine
        self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)

    @classmethod
    def from_url(cls, url: str) -> "Database":
        return cls(create_db_engine(url))

    @classmethod
    def from_env(cls, url: Optional[str] = None) -> "Database":
        return cls.from_url(url or get_database_url())

    def init_db(self) -> None:
        """
        Initialize database schema if tables don't exist.

        Safe to call multiple times - only creates missing tables.
        """
        existing = set(inspect(self.engine).get_table_names())
        missing = set(Base.metadata.tables) - existing
        if missing:
            Base.metadata.create_all(self.engine)
            logger.info("Created tables: %s", ", ".join(sorted(missing)))

    def reset_db(self) -> None:
        """
        DANGEROUS: Delete all data and recreate tables.

        Only use this for testing or when you want to start fresh.
        All review history will be lost!
        """
        Base.metadata.drop_all(self.engine)
        logger.warning("All tables dropped")
        self.init_db()

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """
        Transactional scope around a series of operations.

        Commits on success, rolls back on error. Database errors surface as
        PersistenceError so callers can retry.
        """
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            logger.error("Database operation failed: %s", exc)
            raise PersistenceError(str(exc)) from exc
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def dispose(self) -> None:
        self.engine.dispose()
