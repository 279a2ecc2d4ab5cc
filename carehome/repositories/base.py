"""Generic repository base classes for database access.

``Repository`` is the unscoped, privileged data access layer used by
identity resolution and authentication. ``ScopedRepository`` binds a
repository to an actor and checks every read and write against the access
policy set, the way row-level security would inside the database.

Example:
    from carehome.repositories import ResidentRepository

    async with get_session() as session:
        repo = ResidentRepository(session, actor)
        residents = await repo.list_visible()
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Generic, TypeVar

from sqlalchemy import func, inspect, select

from carehome.core.exceptions import ResourceNotFoundError
from carehome.policy import Actor, Operation, PolicySet, Table, as_row, get_policy_set

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from sqlalchemy import Select
    from sqlalchemy.ext.asyncio import AsyncSession

    from carehome.core.database import Base

T = TypeVar("T", bound="Base")

# Requests exceeding this limit are silently capped
MAX_LIMIT = 1000

# Rows read per round trip while collecting a visible page
FETCH_BATCH_SIZE = 500


class Repository(Generic[T]):  # noqa: UP046
    """Repository providing common CRUD operations without access checks.

    Attributes:
        model_class: SQLAlchemy model class, set by subclasses
        session: The async database session used for all operations
    """

    model_class: type[T]

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_id(self, entity_id: Any) -> T | None:
        return await self.session.get(self.model_class, entity_id)

    async def list_paginated(self, *, skip: int = 0, limit: int = 100) -> Sequence[T]:
        """Retrieve entities with pagination support.

        Args:
            skip: Number of records to skip (offset).
            limit: Maximum number of records to return, capped to MAX_LIMIT.
        """
        capped_limit = min(limit, MAX_LIMIT)
        stmt = select(self.model_class).offset(skip).limit(capped_limit)
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def create(self, entity: T) -> T:
        """Add an entity and flush it so generated values are populated.

        The entity is not committed; the session's owner commits.
        """
        self.session.add(entity)
        await self.session.flush()
        await self.session.refresh(entity)
        return entity

    async def update(self, entity: T) -> T:
        await self.session.flush()
        await self.session.refresh(entity)
        return entity

    async def delete(self, entity: T) -> None:
        await self.session.delete(entity)
        await self.session.flush()

    async def count(self) -> int:
        stmt = select(func.count()).select_from(self.model_class)
        result = await self.session.execute(stmt)
        return result.scalar_one()


class ScopedRepository(Repository[T]):
    """Repository whose operations are checked against access policies.

    Rows the actor may not SELECT are treated as nonexistent, so a denied
    read surfaces as ResourceNotFoundError rather than leaking existence.
    Denied writes raise PolicyDeniedError.

    Attributes:
        table: Policy table guarding ``model_class``
        actor: Caller every check is made for
        policies: Policy set in force, defaults to the application-wide one
    """

    table: Table

    def __init__(
        self,
        session: AsyncSession,
        actor: Actor | None,
        policies: PolicySet | None = None,
    ) -> None:
        super().__init__(session)
        self.actor = actor
        self.policies = policies or get_policy_set()

    @property
    def resource_type(self) -> str:
        return self.table.value.removesuffix("s")

    def visibility_filter(self, stmt: Select[Any]) -> Select[Any]:
        """Narrow a SELECT to rows likely visible to the actor.

        Subclasses override this to push ownership conditions into SQL.
        Results are always re-checked against the policy set afterwards.
        """
        return stmt

    def base_query(self) -> Select[Any]:
        return self.visibility_filter(select(self.model_class))

    async def fetch_visible(self, stmt: Select[Any], *, skip: int = 0, limit: int = 100) -> list[T]:
        """Run ``stmt`` and return the page of rows the actor may SELECT.

        Rows are read in batches of FETCH_BATCH_SIZE and re-checked against
        the policy set until ``skip + limit`` visible rows are collected or
        the query is exhausted, so invisible rows never shrink a page.
        """
        capped_limit = min(limit, MAX_LIMIT)
        wanted = skip + capped_limit
        ordered = stmt.order_by(*inspect(self.model_class).primary_key)
        visible: list[T] = []
        offset = 0
        while len(visible) < wanted:
            result = await self.session.execute(ordered.offset(offset).limit(FETCH_BATCH_SIZE))
            batch = result.scalars().all()
            visible.extend(self.policies.filter_rows(self.actor, self.table, batch))
            if len(batch) < FETCH_BATCH_SIZE:
                break
            offset += FETCH_BATCH_SIZE
        return visible[skip:wanted]

    async def list_visible(self, *, skip: int = 0, limit: int = 100) -> list[T]:
        return await self.fetch_visible(self.base_query(), skip=skip, limit=limit)

    async def get_visible(self, entity_id: Any) -> T:
        """Get an entity by id, raising ResourceNotFoundError when not visible."""
        entity = await self.get_by_id(entity_id)
        if entity is None or not self.policies.permits(
            self.actor, self.table, Operation.SELECT, entity
        ):
            raise ResourceNotFoundError(self.resource_type, entity_id)
        return entity

    async def insert(self, entity: T) -> T:
        """Check INSERT against the new row, then persist it."""
        self.policies.require(self.actor, self.table, Operation.INSERT, entity)
        return await self.create(entity)

    async def apply_update(self, entity: T, changes: Mapping[str, Any]) -> T:
        """Apply ``changes`` to ``entity`` after checking the old and new row."""
        old_row = dict(as_row(entity))
        new_row = {**old_row, **changes}
        self.policies.require(self.actor, self.table, Operation.UPDATE, old_row, new_row)
        for key, value in changes.items():
            setattr(entity, key, value)
        return await self.update(entity)

    async def remove(self, entity: T) -> None:
        self.policies.require(self.actor, self.table, Operation.DELETE, entity)
        await self.delete(entity)
