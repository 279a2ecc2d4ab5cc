"""API routes for residents, staff and family members.

Creating a person goes through the onboarding service, which writes the
profile, the login and the detail rows in one transaction.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from carehome.api.deps import get_current_actor, get_policies
from carehome.api.schemas.people import (
    FamilyCreate,
    FamilyLinkCreate,
    FamilyLinkResponse,
    OnboardingResponse,
    ResidentCreate,
    ResidentResponse,
    ResidentUpdate,
    StaffCreate,
    StaffResponse,
    StaffUpdate,
)
from carehome.core.database import get_db
from carehome.models import FamilyResidentLink, Resident, Staff
from carehome.policy import Actor, PolicySet
from carehome.repositories import FamilyLinkRepository, ResidentRepository, StaffRepository
from carehome.services.onboarding import LoginDetails, OnboardingResult, OnboardingService

router = APIRouter(prefix="/api", tags=["people"])


def _onboarding_response(result: OnboardingResult) -> OnboardingResponse:
    return OnboardingResponse.model_validate(
        {
            "profile": result.profile,
            "resident": result.resident,
            "staff": result.staff,
            "links": result.links,
        },
        from_attributes=True,
    )


# Residents


@router.get("/residents", response_model=list[ResidentResponse])
async def list_residents(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    policies: PolicySet = Depends(get_policies),
) -> list[Resident]:
    return await ResidentRepository(db, actor, policies).list_visible(skip=skip, limit=limit)


@router.post("/residents", response_model=OnboardingResponse, status_code=status.HTTP_201_CREATED)
async def create_resident(
    data: ResidentCreate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    policies: PolicySet = Depends(get_policies),
) -> OnboardingResponse:
    login = LoginDetails(data.login.email, data.login.password) if data.login else None
    result = await OnboardingService(db, actor, policies).create_resident(
        full_name=data.full_name,
        room_number=data.room_number,
        emergency_contact=data.emergency_contact,
        care_level=data.care_level,
        medical_conditions=data.medical_conditions,
        email=data.email,
        login=login,
    )
    await db.commit()
    return _onboarding_response(result)


@router.get("/residents/{resident_id}", response_model=ResidentResponse)
async def get_resident(
    resident_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    policies: PolicySet = Depends(get_policies),
) -> Resident:
    return await ResidentRepository(db, actor, policies).get_visible(resident_id)


@router.patch("/residents/{resident_id}", response_model=ResidentResponse)
async def update_resident(
    resident_id: UUID,
    data: ResidentUpdate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    policies: PolicySet = Depends(get_policies),
) -> Resident:
    repo = ResidentRepository(db, actor, policies)
    resident = await repo.get_visible(resident_id)
    resident = await repo.apply_update(resident, data.model_dump(exclude_unset=True))
    await db.commit()
    return resident


@router.delete("/residents/{resident_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_resident(
    resident_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    policies: PolicySet = Depends(get_policies),
) -> None:
    repo = ResidentRepository(db, actor, policies)
    resident = await repo.get_visible(resident_id)
    await repo.remove(resident)
    await db.commit()


# Staff


@router.get("/staff", response_model=list[StaffResponse])
async def list_staff(
    department: str | None = Query(None),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    policies: PolicySet = Depends(get_policies),
) -> list[Staff]:
    repo = StaffRepository(db, actor, policies)
    if department:
        return await repo.list_by_department(department)
    return await repo.list_visible()


@router.post("/staff", response_model=OnboardingResponse, status_code=status.HTTP_201_CREATED)
async def create_staff(
    data: StaffCreate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    policies: PolicySet = Depends(get_policies),
) -> OnboardingResponse:
    result = await OnboardingService(db, actor, policies).create_staff(
        full_name=data.full_name,
        login=LoginDetails(data.login.email, data.login.password),
        department=data.department,
        position=data.position,
        shift=data.shift,
        role=data.role,
    )
    await db.commit()
    return _onboarding_response(result)


@router.patch("/staff/{staff_id}", response_model=StaffResponse)
async def update_staff(
    staff_id: UUID,
    data: StaffUpdate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    policies: PolicySet = Depends(get_policies),
) -> Staff:
    repo = StaffRepository(db, actor, policies)
    staff = await repo.get_visible(staff_id)
    staff = await repo.apply_update(staff, data.model_dump(exclude_unset=True))
    await db.commit()
    return staff


@router.delete("/staff/{staff_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_staff(
    staff_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    policies: PolicySet = Depends(get_policies),
) -> None:
    repo = StaffRepository(db, actor, policies)
    staff = await repo.get_visible(staff_id)
    await repo.remove(staff)
    await db.commit()


# Family members and links


@router.post("/family", response_model=OnboardingResponse, status_code=status.HTTP_201_CREATED)
async def create_family_member(
    data: FamilyCreate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    policies: PolicySet = Depends(get_policies),
) -> OnboardingResponse:
    result = await OnboardingService(db, actor, policies).create_family(
        full_name=data.full_name,
        login=LoginDetails(data.login.email, data.login.password),
        resident_profile_ids=data.resident_profile_ids,
        relationship_label=data.relationship_label,
    )
    await db.commit()
    return _onboarding_response(result)


@router.get("/family-links", response_model=list[FamilyLinkResponse])
async def list_family_links(
    resident_profile_id: UUID | None = Query(None),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    policies: PolicySet = Depends(get_policies),
) -> list[FamilyResidentLink]:
    repo = FamilyLinkRepository(db, actor, policies)
    if resident_profile_id is not None:
        return await repo.list_for_resident(resident_profile_id)
    return await repo.list_visible()


@router.post(
    "/family-links", response_model=FamilyLinkResponse, status_code=status.HTTP_201_CREATED
)
async def create_family_link(
    data: FamilyLinkCreate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    policies: PolicySet = Depends(get_policies),
) -> FamilyResidentLink:
    link = await OnboardingService(db, actor, policies).link_family_member(
        data.family_profile_id, data.resident_profile_id, data.relationship_label
    )
    await db.commit()
    return link


@router.delete("/family-links/{link_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_family_link(
    link_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    policies: PolicySet = Depends(get_policies),
) -> None:
    repo = FamilyLinkRepository(db, actor, policies)
    link = await repo.get_visible(link_id)
    await repo.remove(link)
    await db.commit()
