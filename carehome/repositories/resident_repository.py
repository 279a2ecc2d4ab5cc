"""Repositories for residents, staff and family links."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import false, select

from carehome.core.exceptions import ResourceNotFoundError
from carehome.models import FamilyResidentLink, Resident, Role, Staff
from carehome.policy import Operation, Table
from carehome.repositories.base import ScopedRepository

if TYPE_CHECKING:
    import uuid

    from sqlalchemy import Select


class ResidentRepository(ScopedRepository[Resident]):
    model_class = Resident
    table = Table.RESIDENTS

    def visibility_filter(self, stmt: Select[Any]) -> Select[Any]:
        if self.actor is None:
            return stmt.where(false())
        if self.actor.role == Role.RESIDENT:
            return stmt.where(Resident.profile_id == self.actor.id)
        if self.actor.role == Role.FAMILY and self.policies.options.family_linked_only:
            return stmt.where(Resident.profile_id.in_(list(self.actor.linked_resident_profile_ids)))
        return stmt

    async def get_by_profile_id(self, profile_id: uuid.UUID) -> Resident:
        stmt = select(Resident).where(Resident.profile_id == profile_id)
        result = await self.session.execute(stmt)
        resident = result.scalar_one_or_none()
        if resident is None or not self.policies.permits(
            self.actor, self.table, Operation.SELECT, resident
        ):
            raise ResourceNotFoundError("resident", profile_id)
        return resident

    async def list_by_room(self, room_number: str) -> list[Resident]:
        stmt = self.base_query().where(Resident.room_number == room_number)
        return await self.fetch_visible(stmt)


class StaffRepository(ScopedRepository[Staff]):
    model_class = Staff
    table = Table.STAFF

    async def get_by_profile_id(self, profile_id: uuid.UUID) -> Staff:
        stmt = select(Staff).where(Staff.profile_id == profile_id)
        result = await self.session.execute(stmt)
        staff = result.scalar_one_or_none()
        if staff is None or not self.policies.permits(
            self.actor, self.table, Operation.SELECT, staff
        ):
            raise ResourceNotFoundError("staff", profile_id)
        return staff

    async def list_by_department(self, department: str) -> list[Staff]:
        stmt = self.base_query().where(Staff.department == department).order_by(Staff.position)
        return await self.fetch_visible(stmt)


class FamilyLinkRepository(ScopedRepository[FamilyResidentLink]):
    model_class = FamilyResidentLink
    table = Table.FAMILY_RESIDENT_LINKS

    @property
    def resource_type(self) -> str:
        return "family_link"

    def visibility_filter(self, stmt: Select[Any]) -> Select[Any]:
        if self.actor is None:
            return stmt.where(false())
        if self.actor.role not in (Role.ADMIN, Role.STAFF):
            return stmt.where(FamilyResidentLink.family_profile_id == self.actor.id)
        return stmt

    async def find(
        self, family_profile_id: uuid.UUID, resident_profile_id: uuid.UUID
    ) -> FamilyResidentLink | None:
        stmt = select(FamilyResidentLink).where(
            FamilyResidentLink.family_profile_id == family_profile_id,
            FamilyResidentLink.resident_profile_id == resident_profile_id,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_for_resident(self, resident_profile_id: uuid.UUID) -> list[FamilyResidentLink]:
        stmt = self.base_query().where(
            FamilyResidentLink.resident_profile_id == resident_profile_id
        )
        return await self.fetch_visible(stmt)
