"""Multi-step creation of residents, staff and family members.

Each onboarding writes a profile, an optional login credential and the
role-specific detail rows. All steps run inside one savepoint: if any step
fails (a policy denial, a duplicate email, a constraint violation) every
earlier step is rolled back, so a profile without its detail row cannot be
left behind.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from carehome.core.exceptions import ConflictError, DuplicateResourceError, InvalidInputError
from carehome.core.logging import get_logger
from carehome.models import (
    CareLevel,
    FamilyResidentLink,
    Profile,
    ProfileStatus,
    Resident,
    Role,
    Shift,
    Staff,
)
from carehome.policy import Actor, PolicySet, get_policy_set
from carehome.repositories import (
    FamilyLinkRepository,
    ProfileRepository,
    ResidentRepository,
    StaffRepository,
)
from carehome.services.auth_service import AuthService

logger = get_logger(__name__)


@dataclass
class LoginDetails:
    email: str
    password: str


@dataclass
class OnboardingResult:
    profile: Profile
    resident: Resident | None = None
    staff: Staff | None = None
    links: list[FamilyResidentLink] = field(default_factory=list)


class OnboardingService:
    """Creates people together with their role detail rows, atomically."""

    def __init__(self, session: AsyncSession, actor: Actor, policies: PolicySet | None = None):
        self.session = session
        self.actor = actor
        self.policies = policies or get_policy_set()
        self.profiles = ProfileRepository(session, actor, self.policies)
        self.residents = ResidentRepository(session, actor, self.policies)
        self.staff = StaffRepository(session, actor, self.policies)
        self.links = FamilyLinkRepository(session, actor, self.policies)
        self.auth = AuthService(session, policies=self.policies)

    async def _create_profile(
        self, full_name: str, role: Role, email: str | None, login: LoginDetails | None
    ) -> Profile:
        if login is not None:
            email = login.email
        profile = Profile(
            id=uuid.uuid4(),
            email=email.strip().lower() if email else None,
            full_name=full_name,
            role=role,
            status=ProfileStatus.ACTIVE,
        )
        await self.profiles.insert(profile)
        if login is not None:
            await self.auth.create_credential(profile, login.email, login.password)
        return profile

    async def create_resident(
        self,
        *,
        full_name: str,
        room_number: str,
        emergency_contact: str,
        care_level: CareLevel,
        medical_conditions: Sequence[str] = (),
        email: str | None = None,
        login: LoginDetails | None = None,
    ) -> OnboardingResult:
        """Create a RESIDENT profile and its resident row.

        Residents usually have no login, so ``email`` and ``login`` are optional.
        """
        try:
            async with self.session.begin_nested():
                profile = await self._create_profile(full_name, Role.RESIDENT, email, login)
                resident = Resident(
                    profile_id=profile.id,
                    room_number=room_number,
                    emergency_contact=emergency_contact,
                    medical_conditions=list(medical_conditions),
                    care_level=care_level,
                )
                await self.residents.insert(resident)
        except IntegrityError as e:
            raise ConflictError("Resident could not be created due to a conflicting record") from e
        logger.info(f"Onboarded resident {profile.id} in room {room_number} by {self.actor.id}")
        return OnboardingResult(profile=profile, resident=resident)

    async def create_staff(
        self,
        *,
        full_name: str,
        login: LoginDetails,
        department: str,
        position: str,
        shift: Shift,
        role: Role = Role.STAFF,
    ) -> OnboardingResult:
        """Create a STAFF (or ADMIN) profile with a login and its staff row."""
        if role not in (Role.STAFF, Role.ADMIN):
            raise InvalidInputError("Staff members must have the STAFF or ADMIN role", field="role")
        try:
            async with self.session.begin_nested():
                profile = await self._create_profile(full_name, role, None, login)
                staff = Staff(
                    profile_id=profile.id,
                    department=department,
                    position=position,
                    shift=shift,
                )
                await self.staff.insert(staff)
        except IntegrityError as e:
            raise ConflictError("Staff member could not be created due to a conflicting record") from e
        logger.info(f"Onboarded {role.value} {profile.id} in {department} by {self.actor.id}")
        return OnboardingResult(profile=profile, staff=staff)

    async def _require_role(self, profile_id: uuid.UUID, role: Role, field_name: str) -> Profile:
        """Load an existing profile, rejecting ids that are missing or hold another role."""
        profile = await self.session.get(Profile, profile_id)
        if profile is None or profile.role != role:
            raise InvalidInputError(
                f"Profile is not a {role.value} profile", field=field_name, value=profile_id
            )
        return profile

    async def _insert_link(
        self, family_id: uuid.UUID, resident_profile_id: uuid.UUID, relationship_label: str | None
    ) -> FamilyResidentLink:
        await self._require_role(resident_profile_id, Role.RESIDENT, "resident_profile_id")
        link = FamilyResidentLink(
            family_profile_id=family_id,
            resident_profile_id=resident_profile_id,
            relationship_label=relationship_label,
        )
        return await self.links.insert(link)

    async def create_family(
        self,
        *,
        full_name: str,
        login: LoginDetails,
        resident_profile_ids: Sequence[uuid.UUID] = (),
        relationship_label: str | None = None,
    ) -> OnboardingResult:
        """Create a FAMILY profile with a login, linked to the given residents.

        Every id must belong to an existing RESIDENT profile; otherwise
        InvalidInputError is raised and nothing is created.
        """
        try:
            async with self.session.begin_nested():
                profile = await self._create_profile(full_name, Role.FAMILY, None, login)
                links = [
                    await self._insert_link(profile.id, resident_profile_id, relationship_label)
                    for resident_profile_id in dict.fromkeys(resident_profile_ids)
                ]
        except IntegrityError as e:
            raise ConflictError("Family member could not be created due to a conflicting record") from e
        logger.info(
            f"Onboarded family member {profile.id} linked to {len(links)} residents by {self.actor.id}"
        )
        return OnboardingResult(profile=profile, links=links)

    async def link_family_member(
        self,
        family_profile_id: uuid.UUID,
        resident_profile_id: uuid.UUID,
        relationship_label: str | None = None,
    ) -> FamilyResidentLink:
        """Link an existing FAMILY profile to an existing RESIDENT profile.

        Raises:
            InvalidInputError: Either id is missing or has the wrong role
            DuplicateResourceError: The pair is already linked
        """
        await self._require_role(family_profile_id, Role.FAMILY, "family_profile_id")
        if await self.links.find(family_profile_id, resident_profile_id) is not None:
            raise DuplicateResourceError("family_link")
        return await self._insert_link(family_profile_id, resident_profile_id, relationship_label)
