"""Base SQLAlchemy declarative base for all models"""

from datetime import datetime, timezone

from sqlalchemy.orm import declarative_base
from sqlalchemy import TypeDecorator, JSON, DateTime
from sqlalchemy.dialects.postgresql import JSONB


class PortableJSONB(TypeDecorator):
    """JSON type that works with both PostgreSQL (JSONB) and SQLite (JSON).

    Uses JSONB on PostgreSQL for efficient indexing and querying,
    falls back to JSON on SQLite for testing compatibility.
    """
    impl = JSON
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == 'postgresql':
            return dialect.type_descriptor(JSONB())
        else:
            return dialect.type_descriptor(JSON())


class UTCDateTime(TypeDecorator):
    """Timestamp that is always timezone-aware UTC in Python.

    PostgreSQL keeps TIMESTAMPTZ; SQLite stores naive UTC and the value is
    re-tagged as UTC on load so comparisons with aware datetimes work on
    every dialect.
    """
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError("UTCDateTime requires a timezone-aware datetime")
        value = value.astimezone(timezone.utc)
        if dialect.name == 'sqlite':
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


Base = declarative_base()
