"""Integration test fixtures.

Key fixtures:
- people: One committed profile per role with open sessions
- storage: Resident file storage rooted in a temporary directory
- client: HTTP client for API testing, wired to the test database

The app is driven through httpx's ASGITransport on the test's own event
loop, so requests and fixtures share the in-memory SQLite connection. The
lifespan is not run; database, policies, Redis and storage are injected
through dependency overrides instead.

Seed data must be committed before requests are made: the app opens its
own sessions on the same connection.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import pytest
from httpx import ASGITransport, AsyncClient

from carehome.api.deps import get_change_feed, get_policies, get_storage
from carehome.core import database
from carehome.core.config import Settings
from carehome.core.database import get_db
from carehome.core.redis import get_redis_optional
from carehome.main import create_app
from carehome.models import Profile, Role
from carehome.services.change_feed import ChangeFeed
from carehome.services.storage import ResidentFileStorage
from carehome.tests.factories import TEST_PASSWORD

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator
    from unittest.mock import AsyncMock

    from fastapi import FastAPI
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from carehome.policy import PolicySet
    from carehome.tests.factories import Seeder


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@dataclass
class Person:
    profile: Profile
    token: str

    @property
    def id(self):
        return self.profile.id

    @property
    def headers(self) -> dict[str, str]:
        return bearer(self.token)


@dataclass
class People:
    admin: Person
    staff: Person
    family: Person
    resident: Person
    other_resident: Person


@pytest.fixture
async def people(seed: Seeder, db_session: AsyncSession) -> People:
    """Seed one person per role; the family member is linked to ``resident`` only."""
    admin, _ = await seed.staff(Role.ADMIN, password=TEST_PASSWORD, full_name="Ada Admin")
    staff, _ = await seed.staff(password=TEST_PASSWORD, full_name="Sam Staff")
    family = await seed.profile(Role.FAMILY, password=TEST_PASSWORD, full_name="Fay Family")
    resident, _ = await seed.resident(full_name="Rita Resident", room_number="1A")
    other, _ = await seed.resident(full_name="Otto Other", room_number="2B")
    await seed.link(family, resident)

    result = People(
        admin=Person(admin, await seed.token(admin)),
        staff=Person(staff, await seed.token(staff)),
        family=Person(family, await seed.token(family)),
        resident=Person(resident, await seed.token(resident)),
        other_resident=Person(other, await seed.token(other)),
    )
    await db_session.commit()
    return result


@pytest.fixture
def storage(tmp_path, policies: PolicySet) -> ResidentFileStorage:
    settings = Settings(storage_signing_key="integration-signing-key", max_upload_bytes=4096)
    return ResidentFileStorage(settings=settings, policies=policies, root=tmp_path / "files")


@pytest.fixture
def app(
    session_factory: async_sessionmaker[AsyncSession],
    policies: PolicySet,
    mock_redis: AsyncMock,
    storage: ResidentFileStorage,
    monkeypatch: pytest.MonkeyPatch,
) -> FastAPI:
    # The route guard middleware opens sessions through the module-level factory
    monkeypatch.setattr(database, "_async_session_factory", session_factory)

    async def override_get_db() -> AsyncGenerator[AsyncSession]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def override_get_redis() -> AsyncGenerator[AsyncMock]:
        yield mock_redis

    async def override_get_change_feed() -> AsyncGenerator[ChangeFeed]:
        yield ChangeFeed(mock_redis, policies, prefix="test")

    application = create_app()
    application.dependency_overrides[get_db] = override_get_db
    application.dependency_overrides[get_policies] = lambda: policies
    application.dependency_overrides[get_redis_optional] = override_get_redis
    application.dependency_overrides[get_change_feed] = override_get_change_feed
    application.dependency_overrides[get_storage] = lambda: storage
    return application


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
