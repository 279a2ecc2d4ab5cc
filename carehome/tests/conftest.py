"""Pytest configuration and shared fixtures.

This module provides shared fixtures for all tests:
- engine / session_factory: Function-scoped in-memory SQLite database
- db_session: A session on that database
- policies / legacy_policies: Policy sets for the default and deployed options
- seed: Helper for inserting profiles and detail rows (see factories.py)
- mock_redis: Mock Redis client for the change feed

SQLite stands in for PostgreSQL here (see sqlite.py).
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from unittest.mock import AsyncMock

import pytest
from hypothesis import HealthCheck, settings
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

import carehome.models  # noqa: F401
from carehome.core.config import get_settings
from carehome.core.database import Base, make_session_factory
from carehome.policy import LEGACY_OPTIONS, PolicyOptions, build_policy_set, get_policy_set
from carehome.tests.factories import Seeder
from carehome.tests.sqlite import create_sqlite_engine

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Generator

    from carehome.policy import PolicySet

settings.register_profile("default", max_examples=100, deadline=None)
settings.register_profile(
    "ci", max_examples=300, deadline=None, suppress_health_check=[HealthCheck.too_slow]
)
settings.register_profile("fast", max_examples=20, deadline=None)
settings.load_profile("default")


@pytest.fixture(autouse=True)
def _reset_cached_settings() -> Generator[None]:
    """Drop cached settings and policies so env changes in one test don't leak."""
    get_settings.cache_clear()
    get_policy_set.cache_clear()
    yield
    get_settings.cache_clear()
    get_policy_set.cache_clear()


@pytest.fixture
async def engine() -> AsyncGenerator[AsyncEngine]:
    test_engine = create_sqlite_engine()
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return make_session_factory(engine)


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def seed(db_session: AsyncSession) -> Seeder:
    return Seeder(db_session)


@pytest.fixture
def policies() -> PolicySet:
    return build_policy_set(PolicyOptions())


@pytest.fixture
def legacy_policies() -> PolicySet:
    return build_policy_set(LEGACY_OPTIONS)


@pytest.fixture
def mock_redis() -> AsyncMock:
    """Mock Redis client with the calls the change feed makes."""
    client = AsyncMock()
    client.publish.return_value = 1
    client.health_check.return_value = {"status": "healthy", "connected": True}
    return client
