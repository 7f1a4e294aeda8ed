"""Database handle and session management.

The record store is opened explicitly at process start (API lifespan, Celery
task) and disposed at shutdown. Components receive the Database handle at
construction; nothing connects at import time.
"""

import logging
from contextlib import contextmanager
from typing import Generator

from fastapi import Request
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session

from models.base import Base

logger = logging.getLogger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """Explicit record store handle.

    Usage:
        db = Database(settings.DATABASE_URL)
        with db.session() as session:
            session.query(ClubProfile).all()
        db.dispose()
    """

    def __init__(self, url: str, echo: bool = False):
        engine_kwargs = {
            "pool_pre_ping": True,  # Verify connections before using
            "echo": echo,
        }

        # Pool settings only apply to server databases (not SQLite)
        if url.startswith("sqlite"):
            engine_kwargs["connect_args"] = {"check_same_thread": False, "timeout": 30}
        else:
            engine_kwargs["pool_size"] = 5
            engine_kwargs["max_overflow"] = 10

        self.url = url
        self.engine: Engine = create_engine(url, **engine_kwargs)
        if self.engine.dialect.name == "sqlite":
            event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)

        self.session_factory = sessionmaker(
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
            bind=self.engine,
        )
        logger.info(f"Opened record store: dialect={self.engine.dialect.name}")

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """Transactional session scope.

        Automatically commits on success, rolls back on exception.
        """
        session = self.session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def create_schema(self) -> None:
        """Create all tables (development and tests)."""
        Base.metadata.create_all(bind=self.engine)

    def dispose(self) -> None:
        """Close every pooled connection."""
        self.engine.dispose()
        logger.info("Closed record store")


def get_database(request: Request) -> Database:
    """Dependency for FastAPI endpoints: the handle opened in the app lifespan."""
    return request.app.state.database
