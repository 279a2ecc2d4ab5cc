"""Role dashboards.

Navigation to these pages is gated by the route guard middleware. The
counts themselves come from policy-scoped repositories, so a dashboard
opened by the wrong role (for example while the guard fails open) only
ever summarizes rows the caller could read anyway.
"""

from datetime import UTC, datetime

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from carehome.api.deps import get_current_actor, get_policies
from carehome.api.schemas.system import DashboardResponse
from carehome.core.database import get_db
from carehome.models import IncidentStatus, Role, TaskStatus
from carehome.policy import Actor, PolicySet
from carehome.repositories import (
    AnnouncementRepository,
    CarePlanRepository,
    ChatMessageRepository,
    EventRepository,
    IncidentRepository,
    MedicationRepository,
    NotificationRepository,
    ProfileRepository,
    ResidentRepository,
    StaffRepository,
    TaskRepository,
)
from carehome.repositories.base import MAX_LIMIT

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


async def _common_counts(db: AsyncSession, actor: Actor, policies: PolicySet) -> dict[str, int]:
    notifications = await NotificationRepository(db, actor, policies).list_mine(
        unread_only=True, limit=MAX_LIMIT
    )
    announcements = await AnnouncementRepository(db, actor, policies).list_current(datetime.now(UTC))
    upcoming = await EventRepository(db, actor, policies).list_between(datetime.now(UTC), None)
    return {
        "unread_notifications": len(notifications),
        "unread_messages": await ChatMessageRepository(db, actor, policies).unread_count(),
        "announcements": len(announcements),
        "upcoming_events": len(upcoming),
    }


async def _open_incidents(db: AsyncSession, actor: Actor, policies: PolicySet) -> int:
    incidents = await IncidentRepository(db, actor, policies).list_filtered(
        status=IncidentStatus.OPEN, limit=MAX_LIMIT
    )
    return len(incidents)


@router.get("", response_model=DashboardResponse)
async def dashboard(
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    policies: PolicySet = Depends(get_policies),
) -> DashboardResponse:
    """Landing dashboard shared by every role."""
    counts = await _common_counts(db, actor, policies)
    return DashboardResponse(role=actor.role, profile_id=actor.id, counts=counts)


@router.get("/admin", response_model=DashboardResponse)
async def admin_dashboard(
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    policies: PolicySet = Depends(get_policies),
) -> DashboardResponse:
    counts = await _common_counts(db, actor, policies)
    profiles = ProfileRepository(db, actor, policies)
    for role in Role:
        visible = await profiles.list_visible_filtered(role=role, limit=MAX_LIMIT)
        counts[f"{role.value.lower()}_profiles"] = len(visible)
    counts["open_incidents"] = await _open_incidents(db, actor, policies)
    return DashboardResponse(role=actor.role, profile_id=actor.id, counts=counts)


@router.get("/staff", response_model=DashboardResponse)
async def staff_dashboard(
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    policies: PolicySet = Depends(get_policies),
) -> DashboardResponse:
    counts = await _common_counts(db, actor, policies)
    residents = await ResidentRepository(db, actor, policies).list_visible(limit=MAX_LIMIT)
    staff = await StaffRepository(db, actor, policies).list_visible(limit=MAX_LIMIT)
    tasks = await TaskRepository(db, actor, policies).list_mine(TaskStatus.TODO)
    counts.update(
        residents=len(residents),
        staff=len(staff),
        open_incidents=await _open_incidents(db, actor, policies),
        todo_tasks=len(tasks),
    )
    return DashboardResponse(role=actor.role, profile_id=actor.id, counts=counts)


@router.get("/family", response_model=DashboardResponse)
async def family_dashboard(
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    policies: PolicySet = Depends(get_policies),
) -> DashboardResponse:
    counts = await _common_counts(db, actor, policies)
    residents = await ResidentRepository(db, actor, policies).list_visible(limit=MAX_LIMIT)
    counts["linked_residents"] = len(residents)
    return DashboardResponse(role=actor.role, profile_id=actor.id, counts=counts)


@router.get("/resident", response_model=DashboardResponse)
async def resident_dashboard(
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    policies: PolicySet = Depends(get_policies),
) -> DashboardResponse:
    counts = await _common_counts(db, actor, policies)
    medications = await MedicationRepository(db, actor, policies).list_visible(limit=MAX_LIMIT)
    plans = await CarePlanRepository(db, actor, policies).list_visible(limit=MAX_LIMIT)
    counts.update(medications=len(medications), care_plans=len(plans))
    return DashboardResponse(role=actor.role, profile_id=actor.id, counts=counts)
