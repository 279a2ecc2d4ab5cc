"""Async engine and session handling for PostgreSQL (asyncpg).

Request handlers get a session from ``get_db``; code outside a request,
such as the route guard middleware, opens one with ``get_session()``.
Both commit on success and roll back on any exception.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from carehome.core.config import Settings, get_settings
from carehome.core.logging import get_logger

logger = get_logger(__name__)


class Base(DeclarativeBase):
    pass


_engine: AsyncEngine | None = None
_async_session_factory: async_sessionmaker[AsyncSession] | None = None


def engine_options(settings: Settings) -> dict[str, Any]:
    return {
        "echo": settings.debug,
        "pool_size": settings.database_pool_size,
        "max_overflow": settings.database_max_overflow,
        "pool_pre_ping": True,
    }


def make_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Sessions keep loaded rows usable after commit, since responses are built from them."""
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


def get_engine() -> AsyncEngine:
    if _engine is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    if _async_session_factory is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")
    return _async_session_factory


async def init_db() -> None:
    """Create the engine and session factory at startup.

    Missing tables are created when ``database_create_schema`` is set;
    deployments that migrate with Alembic turn it off.
    """
    global _engine, _async_session_factory  # noqa: PLW0603

    settings = get_settings()
    _engine = create_async_engine(settings.database_url, **engine_options(settings))
    _async_session_factory = make_session_factory(_engine)

    if settings.database_create_schema:
        import carehome.models  # noqa: F401

        async with _engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info(f"Schema ensured for {len(Base.metadata.tables)} tables")


async def close_db() -> None:
    global _engine, _async_session_factory  # noqa: PLW0603

    engine, _engine, _async_session_factory = _engine, None, None
    if engine is not None:
        await engine.dispose()


@asynccontextmanager
async def get_session() -> AsyncGenerator[AsyncSession]:
    """Open a session outside FastAPI dependency injection.

    Usage:
        async with get_session() as session:
            profile = await session.get(Profile, profile_id)
    """
    async with get_session_factory()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_db() -> AsyncGenerator[AsyncSession]:
    """FastAPI dependency: one session per request, committed when the handler returns."""
    async with get_session_factory()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
