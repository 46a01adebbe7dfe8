"""Process-wide database engine and Redis pool.

Opened once by the worker (or an embedding application) and shared by every
job. Redis responses are decoded to ``str`` because stream fields and
progress hashes are read back as text.
"""

from collections.abc import AsyncGenerator

import redis.asyncio as aioredis
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from mindscape.config import Settings
from mindscape.store.sql import SqlTableStore

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None
_redis: aioredis.Redis | None = None


async def open_resources(settings: Settings) -> None:
    """Create the engine, session factory and Redis pool from ``settings``."""
    global _engine, _session_factory, _redis  # noqa: PLW0603
    _engine = create_async_engine(
        settings.database_url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_pre_ping=True,
    )
    _session_factory = async_sessionmaker(_engine, class_=AsyncSession, expire_on_commit=False)
    _redis = aioredis.from_url(  # type: ignore[no-untyped-call]
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=settings.redis_max_connections,
    )


async def close_resources() -> None:
    global _engine, _session_factory, _redis  # noqa: PLW0603
    if _redis is not None:
        await _redis.aclose()
        _redis = None
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None


def get_redis() -> aioredis.Redis:
    if _redis is None:
        msg = "Redis not initialized. Call open_resources() first."
        raise RuntimeError(msg)
    return _redis


async def get_store() -> AsyncGenerator[SqlTableStore, None]:
    """Yield a table store bound to a fresh session."""
    if _session_factory is None:
        msg = "Database not initialized. Call open_resources() first."
        raise RuntimeError(msg)
    async with _session_factory() as session:
        yield SqlTableStore(session)
