"""Database configuration and models."""

from seismistats.core.database.base import Base, TimestampMixin
from seismistats.core.database.session import (
    engine,
    async_session_factory,
    build_engine,
    build_session_factory,
    get_db,
)

__all__ = [
    "Base",
    "TimestampMixin",
    "engine",
    "async_session_factory",
    "build_engine",
    "build_session_factory",
    "get_db",
]
