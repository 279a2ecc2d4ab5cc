"""Email/password authentication and bearer session management.

Sign-in issues an opaque token; only its SHA-256 hash is stored. Registration
creates the credential and its profile in the same flush, so a failed
registration never leaves a credential without a profile.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from carehome.core.config import Settings, get_settings
from carehome.core.exceptions import (
    AuthenticationError,
    DuplicateResourceError,
    InactiveProfileError,
    InvalidCredentialsError,
    InvalidInputError,
    ResourceNotFoundError,
    SessionExpiredError,
)
from carehome.core.logging import get_logger
from carehome.core.security import (
    MIN_PASSWORD_LENGTH,
    generate_session_token,
    hash_password,
    hash_token,
    verify_password,
)
from carehome.models import AuthSession, Credential, Profile, ProfileStatus, Role
from carehome.policy import Actor, Operation, PolicySet, Table, get_policy_set
from carehome.repositories import CredentialRepository, SessionRepository

logger = get_logger(__name__)


@dataclass
class SignInResult:
    token: str
    session: AuthSession
    profile: Profile


def validate_password(password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise InvalidInputError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
            field="password",
            constraint=f"min_length={MIN_PASSWORD_LENGTH}",
        )


class AuthService:
    """Sign-in, sign-out, registration and password management."""

    def __init__(
        self,
        session: AsyncSession,
        settings: Settings | None = None,
        policies: PolicySet | None = None,
    ):
        self.session = session
        self.settings = settings or get_settings()
        self.policies = policies or get_policy_set()
        self.credentials = CredentialRepository(session)
        self.sessions = SessionRepository(session)

    async def sign_in(self, email: str, password: str) -> SignInResult:
        """Verify credentials and open a new session.

        Raises:
            InvalidCredentialsError: Unknown email or wrong password
            InactiveProfileError: The profile is deactivated and soft delete is enforced
        """
        credential = await self.credentials.get_by_email(email)
        if credential is None or not verify_password(credential.password_hash, password):
            logger.info(f"Failed sign-in attempt for {email.lower()}")
            raise InvalidCredentialsError()

        profile = await self.session.get(Profile, credential.profile_id)
        if profile is None:
            # Credential left behind by a profile deleted outside the app
            raise InvalidCredentialsError()
        if self.settings.rbac_enforce_soft_delete and not profile.is_active:
            raise InactiveProfileError()

        token = generate_session_token()
        now = datetime.now(UTC)
        auth_session = AuthSession(
            profile_id=profile.id,
            token_hash=hash_token(token),
            created_at=now,
            expires_at=now + timedelta(hours=self.settings.session_ttl_hours),
        )
        await self.sessions.create(auth_session)
        logger.info(f"Profile {profile.id} signed in ({profile.role.value})")
        return SignInResult(token=token, session=auth_session, profile=profile)

    async def resolve_session(self, token: str) -> AuthSession:
        """Look up the session behind a bearer token.

        Raises:
            AuthenticationError: The token is unknown
            SessionExpiredError: The session is revoked or past its expiry
        """
        if not token:
            raise AuthenticationError()
        auth_session = await self.sessions.get_by_token_hash(hash_token(token))
        if auth_session is None:
            raise AuthenticationError("Invalid session token")
        if not auth_session.is_valid():
            raise SessionExpiredError()
        return auth_session

    async def sign_out(self, token: str) -> bool:
        """Revoke the session behind ``token``.

        Returns:
            True if an open session was revoked.
        """
        auth_session = await self.sessions.get_by_token_hash(hash_token(token))
        if auth_session is None or auth_session.revoked_at is not None:
            return False
        auth_session.revoked_at = datetime.now(UTC)
        await self.sessions.update(auth_session)
        logger.info(f"Profile {auth_session.profile_id} signed out")
        return True

    async def register(self, email: str, password: str, full_name: str, role: Role) -> Profile:
        """Create a profile and credential for a self-registering visitor.

        Only roles listed in ``self_registration_roles`` may be chosen.

        Raises:
            InvalidInputError: Role not open for registration or weak password
            DuplicateResourceError: Email already registered
        """
        if role.value not in self.settings.self_registration_roles:
            raise InvalidInputError(
                f"Role {role.value} cannot be chosen at registration",
                field="role",
                value=role.value,
            )
        validate_password(password)
        email = email.strip().lower()
        if await self.credentials.email_taken(email):
            raise DuplicateResourceError("profile", field="email", value=email)

        profile = Profile(
            id=uuid.uuid4(),
            email=email,
            full_name=full_name,
            role=role,
            status=ProfileStatus.ACTIVE,
        )
        self.session.add(profile)
        self.session.add(
            Credential(profile_id=profile.id, email=email, password_hash=hash_password(password))
        )
        await self.session.flush()
        logger.info(f"Registered profile {profile.id} with role {role.value}")
        return profile

    async def create_credential(self, profile: Profile, email: str, password: str) -> Credential:
        """Attach a login to an existing profile (used by onboarding)."""
        validate_password(password)
        email = email.strip().lower()
        if await self.credentials.get_by_email(email) is not None:
            raise DuplicateResourceError("credential", field="email", value=email)
        credential = Credential(
            profile_id=profile.id, email=email, password_hash=hash_password(password)
        )
        self.session.add(credential)
        await self.session.flush()
        return credential

    async def set_password(self, actor: Actor, profile_id: uuid.UUID, new_password: str) -> int:
        """Replace a profile's password and revoke its open sessions.

        Allowed for the profile itself and for admins, the same actors who
        may UPDATE the profile row.

        Returns:
            Number of sessions revoked.
        """
        profile = await self.session.get(Profile, profile_id)
        if profile is None:
            raise ResourceNotFoundError("profile", profile_id)
        self.policies.require(actor, Table.PROFILES, Operation.UPDATE, profile)
        validate_password(new_password)

        credential = await self.credentials.get_by_id(profile_id)
        if credential is None:
            raise ResourceNotFoundError("credential", profile_id)
        credential.password_hash = hash_password(new_password)
        credential.password_changed_at = datetime.now(UTC)
        await self.session.flush()

        revoked = await self.sessions.revoke_all_for_profile(profile_id)
        logger.info(f"Password changed for profile {profile_id} by {actor.id}; revoked {revoked} sessions")
        return revoked
