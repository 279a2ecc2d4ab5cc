"""Resolve a profile id into the Actor used by access checks.

The lookup reads the caller's own profile and family links directly,
without going through the policy set, because the policies themselves
need the caller's role to decide what the caller may read.
"""

from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from carehome.core.exceptions import AuthenticationError
from carehome.core.logging import get_logger
from carehome.models import FamilyResidentLink, Profile, Role
from carehome.policy import Actor

logger = get_logger(__name__)


async def linked_resident_ids(session: AsyncSession, family_profile_id: uuid.UUID) -> frozenset[uuid.UUID]:
    stmt = select(FamilyResidentLink.resident_profile_id).where(
        FamilyResidentLink.family_profile_id == family_profile_id
    )
    result = await session.execute(stmt)
    return frozenset(result.scalars().all())


def actor_from_profile(profile: Profile, links: frozenset[uuid.UUID] = frozenset()) -> Actor:
    return Actor(
        id=profile.id,
        role=profile.role,
        status=profile.status,
        linked_resident_profile_ids=links,
    )


async def resolve_actor(session: AsyncSession, profile_id: uuid.UUID) -> Actor:
    """Build the Actor for ``profile_id``.

    Args:
        session: Database session
        profile_id: Id of the authenticated profile

    Returns:
        Actor carrying role, status and FAMILY linkage

    Raises:
        AuthenticationError: If the profile no longer exists
    """
    profile = await session.get(Profile, profile_id)
    if profile is None:
        logger.warning(f"Session refers to missing profile {profile_id}")
        raise AuthenticationError("Profile for this session no longer exists")

    links: frozenset[uuid.UUID] = frozenset()
    if profile.role == Role.FAMILY:
        links = await linked_resident_ids(session, profile.id)
    return actor_from_profile(profile, links)
