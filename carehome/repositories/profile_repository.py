"""Repositories for profiles, credentials and sign-in sessions."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import false, select, update

from carehome.models import AuthSession, Credential, Profile, ProfileStatus, Role
from carehome.policy import Table
from carehome.repositories.base import Repository, ScopedRepository

if TYPE_CHECKING:
    import uuid
    from collections.abc import Sequence

    from sqlalchemy import Select


class ProfileRepository(ScopedRepository[Profile]):
    """Profile access scoped to an actor.

    Deactivation is a soft delete: the row stays, only ``status`` changes.
    """

    model_class = Profile
    table = Table.PROFILES

    def visibility_filter(self, stmt: Select[Any]) -> Select[Any]:
        if self.actor is None:
            return stmt.where(false())
        if self.actor.role == Role.RESIDENT and not self.policies.options.profile_select_open:
            return stmt.where(Profile.id == self.actor.id)
        if self.actor.role == Role.FAMILY and not self.policies.options.profile_select_open:
            visible_ids = {self.actor.id, *self.actor.linked_resident_profile_ids}
            return stmt.where(Profile.id.in_(list(visible_ids)))
        return stmt

    async def list_visible_filtered(
        self,
        *,
        role: Role | None = None,
        include_inactive: bool = False,
        skip: int = 0,
        limit: int = 100,
    ) -> list[Profile]:
        stmt = self.base_query().order_by(Profile.full_name)
        if role is not None:
            stmt = stmt.where(Profile.role == role)
        if not include_inactive:
            stmt = stmt.where(Profile.status == ProfileStatus.ACTIVE)
        return await self.fetch_visible(stmt, skip=skip, limit=limit)

    async def get_by_email(self, email: str) -> Profile | None:
        stmt = select(Profile).where(Profile.email == email.lower())
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def set_status(self, profile: Profile, status: ProfileStatus) -> Profile:
        return await self.apply_update(profile, {"status": status})


class CredentialRepository(Repository[Credential]):
    """Privileged access to sign-in credentials."""

    model_class = Credential

    async def get_by_email(self, email: str) -> Credential | None:
        stmt = select(Credential).where(Credential.email == email.lower())
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def email_taken(self, email: str) -> bool:
        if await self.get_by_email(email) is not None:
            return True
        stmt = select(Profile.id).where(Profile.email == email.lower())
        result = await self.session.execute(stmt)
        return result.first() is not None


class SessionRepository(Repository[AuthSession]):
    """Privileged access to issued bearer sessions."""

    model_class = AuthSession

    async def get_by_token_hash(self, token_hash: str) -> AuthSession | None:
        stmt = select(AuthSession).where(AuthSession.token_hash == token_hash)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_for_profile(self, profile_id: uuid.UUID) -> Sequence[AuthSession]:
        stmt = (
            select(AuthSession)
            .where(AuthSession.profile_id == profile_id)
            .order_by(AuthSession.created_at.desc())
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def revoke_all_for_profile(self, profile_id: uuid.UUID) -> int:
        """Revoke every open session of a profile.

        Returns:
            Number of sessions revoked.
        """
        stmt = (
            update(AuthSession)
            .where(AuthSession.profile_id == profile_id, AuthSession.revoked_at.is_(None))
            .values(revoked_at=datetime.now(UTC))
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0
