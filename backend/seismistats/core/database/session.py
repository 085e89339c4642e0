"""Async engine and session factory."""

from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from seismistats.config import settings


def build_engine(url: str | None = None, use_null_pool: bool = False) -> AsyncEngine:
    """Create an async engine.

    Celery tasks call this with use_null_pool=True because each task runs
    its own event loop and pooled asyncpg connections cannot cross loops.
    """
    kwargs: dict = {"echo": False, "pool_pre_ping": True}
    if use_null_pool:
        kwargs = {"echo": False, "poolclass": NullPool}
    return create_async_engine(url or settings.database_url, **kwargs)


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


engine = build_engine()
async_session_factory = build_session_factory(engine)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding a session, rolled back on error."""
    async with async_session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
