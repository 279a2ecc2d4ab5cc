"""Repositories for incidents, medications and care plans.

All of these tables are readable by the care team only, so no SQL narrowing
is applied; the policy check alone decides visibility.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from carehome.models import (
    CarePlan,
    CareRoutine,
    Incident,
    IncidentStatus,
    Medication,
    MedicationLog,
)
from carehome.policy import Table
from carehome.repositories.base import ScopedRepository

if TYPE_CHECKING:
    import uuid


class IncidentRepository(ScopedRepository[Incident]):
    model_class = Incident
    table = Table.INCIDENTS

    async def list_filtered(
        self,
        *,
        status: IncidentStatus | None = None,
        resident_id: uuid.UUID | None = None,
        skip: int = 0,
        limit: int = 100,
    ) -> list[Incident]:
        stmt = self.base_query().order_by(Incident.created_at.desc())
        if status is not None:
            stmt = stmt.where(Incident.status == status)
        if resident_id is not None:
            stmt = stmt.where(Incident.resident_id == resident_id)
        return await self.fetch_visible(stmt, skip=skip, limit=limit)


class MedicationRepository(ScopedRepository[Medication]):
    model_class = Medication
    table = Table.MEDICATIONS

    async def list_for_resident(self, resident_id: uuid.UUID) -> list[Medication]:
        stmt = (
            self.base_query()
            .where(Medication.resident_id == resident_id)
            .order_by(Medication.start_date.desc())
        )
        return await self.fetch_visible(stmt)


class MedicationLogRepository(ScopedRepository[MedicationLog]):
    """Append-only dose log; policies grant no UPDATE or DELETE."""

    model_class = MedicationLog
    table = Table.MEDICATION_LOG

    async def list_for_medication(
        self, medication_id: uuid.UUID, *, skip: int = 0, limit: int = 100
    ) -> list[MedicationLog]:
        stmt = (
            self.base_query()
            .where(MedicationLog.medication_id == medication_id)
            .order_by(MedicationLog.administered_at.desc())
        )
        return await self.fetch_visible(stmt, skip=skip, limit=limit)


class CarePlanRepository(ScopedRepository[CarePlan]):
    model_class = CarePlan
    table = Table.CARE_PLANS

    async def list_for_resident(self, resident_id: uuid.UUID) -> list[CarePlan]:
        stmt = (
            self.base_query()
            .where(CarePlan.resident_id == resident_id)
            .order_by(CarePlan.updated_at.desc())
        )
        return await self.fetch_visible(stmt)


class CareRoutineRepository(ScopedRepository[CareRoutine]):
    model_class = CareRoutine
    table = Table.CARE_ROUTINES

    async def list_for_plan(self, care_plan_id: uuid.UUID) -> list[CareRoutine]:
        stmt = self.base_query().where(CareRoutine.care_plan_id == care_plan_id)
        return await self.fetch_visible(stmt)
