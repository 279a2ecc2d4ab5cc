"""API routes for profiles, including soft delete."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from carehome.api.deps import get_current_actor, get_policies
from carehome.api.schemas.people import ProfileResponse, ProfileUpdate
from carehome.core.database import get_db
from carehome.core.exceptions import PolicyDeniedError
from carehome.core.logging import get_logger
from carehome.models import Profile, ProfileStatus, Role
from carehome.policy import Actor, PolicySet, Table
from carehome.repositories import ProfileRepository, SessionRepository

logger = get_logger(__name__)

router = APIRouter(prefix="/api/profiles", tags=["profiles"])


@router.get("", response_model=list[ProfileResponse])
async def list_profiles(
    role: Role | None = Query(None, description="Filter by role"),
    include_inactive: bool = Query(False, description="Include deactivated profiles"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    policies: PolicySet = Depends(get_policies),
) -> list[Profile]:
    """List the profiles visible to the caller.

    Inactive profiles are only returned when asked for, and then only to
    callers the policy set lets see them.
    """
    repo = ProfileRepository(db, actor, policies)
    return await repo.list_visible_filtered(
        role=role, include_inactive=include_inactive, skip=skip, limit=limit
    )


@router.get("/{profile_id}", response_model=ProfileResponse)
async def get_profile(
    profile_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    policies: PolicySet = Depends(get_policies),
) -> Profile:
    return await ProfileRepository(db, actor, policies).get_visible(profile_id)


@router.patch("/{profile_id}", response_model=ProfileResponse)
async def update_profile(
    profile_id: UUID,
    data: ProfileUpdate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    policies: PolicySet = Depends(get_policies),
) -> Profile:
    repo = ProfileRepository(db, actor, policies)
    profile = await repo.get_visible(profile_id)
    changes = data.model_dump(exclude_unset=True)
    if "role" in changes and actor.role != Role.ADMIN:
        raise PolicyDeniedError(
            Table.PROFILES.value, "UPDATE", reason="only admins can change roles"
        )
    profile = await repo.apply_update(profile, changes)
    await db.commit()
    return profile


async def _set_status(
    profile_id: UUID,
    status: ProfileStatus,
    actor: Actor,
    db: AsyncSession,
    policies: PolicySet,
) -> Profile:
    repo = ProfileRepository(db, actor, policies)
    profile = await repo.get_visible(profile_id)
    profile = await repo.set_status(profile, status)
    if status == ProfileStatus.INACTIVE:
        revoked = await SessionRepository(db).revoke_all_for_profile(profile.id)
        logger.info(f"Deactivated profile {profile.id}; revoked {revoked} sessions")
    else:
        logger.info(f"Reactivated profile {profile.id}")
    await db.commit()
    return profile


@router.post("/{profile_id}/deactivate", response_model=ProfileResponse)
async def deactivate_profile(
    profile_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    policies: PolicySet = Depends(get_policies),
) -> Profile:
    """Soft-delete a profile and revoke its sessions."""
    return await _set_status(profile_id, ProfileStatus.INACTIVE, actor, db, policies)


@router.post("/{profile_id}/reactivate", response_model=ProfileResponse)
async def reactivate_profile(
    profile_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    policies: PolicySet = Depends(get_policies),
) -> Profile:
    return await _set_status(profile_id, ProfileStatus.ACTIVE, actor, db, policies)
