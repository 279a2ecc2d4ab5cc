"""API routes for incidents, medications, the dose log and care plans."""

from datetime import UTC, datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from carehome.api.deps import get_current_actor, get_policies
from carehome.api.schemas.clinical import (
    CarePlanCreate,
    CarePlanResponse,
    CarePlanUpdate,
    CareRoutineCreate,
    CareRoutineResponse,
    DoseLogCreate,
    DoseLogResponse,
    IncidentCreate,
    IncidentResponse,
    IncidentUpdate,
    MedicationCreate,
    MedicationResponse,
    MedicationUpdate,
)
from carehome.core.database import get_db
from carehome.models import (
    CarePlan,
    CareRoutine,
    Incident,
    IncidentStatus,
    Medication,
    MedicationLog,
)
from carehome.policy import Actor, PolicySet
from carehome.repositories import (
    CarePlanRepository,
    CareRoutineRepository,
    IncidentRepository,
    MedicationLogRepository,
    MedicationRepository,
)

router = APIRouter(prefix="/api", tags=["clinical"])


# Incidents


@router.get("/incidents", response_model=list[IncidentResponse])
async def list_incidents(
    status_filter: IncidentStatus | None = Query(None, alias="status"),
    resident_id: UUID | None = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    policies: PolicySet = Depends(get_policies),
) -> list[Incident]:
    return await IncidentRepository(db, actor, policies).list_filtered(
        status=status_filter, resident_id=resident_id, skip=skip, limit=limit
    )


@router.post("/incidents", response_model=IncidentResponse, status_code=status.HTTP_201_CREATED)
async def report_incident(
    data: IncidentCreate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    policies: PolicySet = Depends(get_policies),
) -> Incident:
    incident = Incident(
        title=data.title,
        description=data.description,
        severity=data.severity,
        status=IncidentStatus.OPEN,
        reported_by=actor.id,
        assigned_to=data.assigned_to,
        resident_id=data.resident_id,
    )
    incident = await IncidentRepository(db, actor, policies).insert(incident)
    await db.commit()
    return incident


@router.get("/incidents/{incident_id}", response_model=IncidentResponse)
async def get_incident(
    incident_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    policies: PolicySet = Depends(get_policies),
) -> Incident:
    return await IncidentRepository(db, actor, policies).get_visible(incident_id)


@router.patch("/incidents/{incident_id}", response_model=IncidentResponse)
async def update_incident(
    incident_id: UUID,
    data: IncidentUpdate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    policies: PolicySet = Depends(get_policies),
) -> Incident:
    repo = IncidentRepository(db, actor, policies)
    incident = await repo.get_visible(incident_id)
    incident = await repo.apply_update(incident, data.model_dump(exclude_unset=True))
    await db.commit()
    return incident


# Medications


@router.get("/medications", response_model=list[MedicationResponse])
async def list_medications(
    resident_id: UUID | None = Query(None),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    policies: PolicySet = Depends(get_policies),
) -> list[Medication]:
    repo = MedicationRepository(db, actor, policies)
    if resident_id is not None:
        return await repo.list_for_resident(resident_id)
    return await repo.list_visible()


@router.post(
    "/medications", response_model=MedicationResponse, status_code=status.HTTP_201_CREATED
)
async def prescribe_medication(
    data: MedicationCreate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    policies: PolicySet = Depends(get_policies),
) -> Medication:
    medication = Medication(**data.model_dump(), prescribed_by=actor.id)
    medication = await MedicationRepository(db, actor, policies).insert(medication)
    await db.commit()
    return medication


@router.patch("/medications/{medication_id}", response_model=MedicationResponse)
async def update_medication(
    medication_id: UUID,
    data: MedicationUpdate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    policies: PolicySet = Depends(get_policies),
) -> Medication:
    repo = MedicationRepository(db, actor, policies)
    medication = await repo.get_visible(medication_id)
    medication = await repo.apply_update(medication, data.model_dump(exclude_unset=True))
    await db.commit()
    return medication


@router.get("/medications/{medication_id}/log", response_model=list[DoseLogResponse])
async def list_doses(
    medication_id: UUID,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    policies: PolicySet = Depends(get_policies),
) -> list[MedicationLog]:
    await MedicationRepository(db, actor, policies).get_visible(medication_id)
    return await MedicationLogRepository(db, actor, policies).list_for_medication(
        medication_id, skip=skip, limit=limit
    )


@router.post(
    "/medications/{medication_id}/log",
    response_model=DoseLogResponse,
    status_code=status.HTTP_201_CREATED,
)
async def log_dose(
    medication_id: UUID,
    data: DoseLogCreate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    policies: PolicySet = Depends(get_policies),
) -> MedicationLog:
    """Record a dose as administered by the caller.

    The log is append-only; entries are never edited or removed.
    """
    medication = await MedicationRepository(db, actor, policies).get_visible(medication_id)
    entry = MedicationLog(
        medication_id=medication.id,
        resident_id=medication.resident_id,
        administered_at=data.administered_at or datetime.now(UTC),
        administered_by=actor.id,
        status=data.status,
        notes=data.notes,
    )
    entry = await MedicationLogRepository(db, actor, policies).insert(entry)
    await db.commit()
    return entry


# Care plans


@router.get("/care-plans", response_model=list[CarePlanResponse])
async def list_care_plans(
    resident_id: UUID | None = Query(None),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    policies: PolicySet = Depends(get_policies),
) -> list[CarePlan]:
    repo = CarePlanRepository(db, actor, policies)
    if resident_id is not None:
        return await repo.list_for_resident(resident_id)
    return await repo.list_visible()


@router.post("/care-plans", response_model=CarePlanResponse, status_code=status.HTTP_201_CREATED)
async def create_care_plan(
    data: CarePlanCreate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    policies: PolicySet = Depends(get_policies),
) -> CarePlan:
    plan = CarePlan(**data.model_dump(), created_by=actor.id)
    plan = await CarePlanRepository(db, actor, policies).insert(plan)
    await db.commit()
    return plan


@router.patch("/care-plans/{plan_id}", response_model=CarePlanResponse)
async def update_care_plan(
    plan_id: UUID,
    data: CarePlanUpdate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    policies: PolicySet = Depends(get_policies),
) -> CarePlan:
    repo = CarePlanRepository(db, actor, policies)
    plan = await repo.get_visible(plan_id)
    plan = await repo.apply_update(plan, data.model_dump(exclude_unset=True))
    await db.commit()
    return plan


@router.get("/care-plans/{plan_id}/routines", response_model=list[CareRoutineResponse])
async def list_care_routines(
    plan_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    policies: PolicySet = Depends(get_policies),
) -> list[CareRoutine]:
    await CarePlanRepository(db, actor, policies).get_visible(plan_id)
    return await CareRoutineRepository(db, actor, policies).list_for_plan(plan_id)


@router.post(
    "/care-plans/{plan_id}/routines",
    response_model=CareRoutineResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_care_routine(
    plan_id: UUID,
    data: CareRoutineCreate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    policies: PolicySet = Depends(get_policies),
) -> CareRoutine:
    plan = await CarePlanRepository(db, actor, policies).get_visible(plan_id)
    routine = CareRoutine(
        care_plan_id=plan.id,
        title=data.title,
        description=data.description,
        frequency=data.frequency,
        time_of_day=data.time_of_day,
        assigned_to=[str(profile_id) for profile_id in data.assigned_to],
    )
    routine = await CareRoutineRepository(db, actor, policies).insert(routine)
    await db.commit()
    return routine
