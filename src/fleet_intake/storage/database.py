"""
Database engine and session management for the intake store.
"""

import logging
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

Base = declarative_base()


def _configure_sqlite(engine: Engine) -> None:
    """Enable foreign keys and make SAVEPOINT work with the pysqlite driver."""

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_conn, connection_record):
        # Let SQLAlchemy emit BEGIN itself so nested savepoints behave
        dbapi_conn.isolation_level = None
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")


class Database:
    """Engine plus session factory for one database URL.

    Args:
        url: SQLAlchemy database URL
        echo: Log emitted SQL
    """

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        engine_config = {"echo": echo}
        if url.startswith("sqlite"):
            engine_config["connect_args"] = {"check_same_thread": False}
            if url in ("sqlite://", "sqlite:///:memory:"):
                engine_config["poolclass"] = StaticPool

        self.engine = create_engine(url, **engine_config)
        if url.startswith("sqlite"):
            _configure_sqlite(self.engine)

        self._session_factory = sessionmaker(
            bind=self.engine, autoflush=False, expire_on_commit=False
        )

    @classmethod
    def from_settings(cls, settings) -> "Database":
        return cls(settings.database_url)

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """
        Session context manager committing on success and rolling back on error.

        Yields:
            Database session
        """
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def create_all(self, drop_all: bool = False) -> None:
        """Create all tables (optionally dropping them first)."""
        # Import models so their tables are registered on Base.metadata
        from fleet_intake.storage import models  # noqa: F401

        if drop_all:
            Base.metadata.drop_all(bind=self.engine)
        Base.metadata.create_all(bind=self.engine)
        logger.debug(f"Schema ready for {self.engine.url!r}")

    def dispose(self) -> None:
        self.engine.dispose()
