"""Profile, credential and session models.

A profile is the root identity of every person in the facility. Residents may
have a profile without any login, so credentials live in their own table and
a profile's email is nullable.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import DateTime, Enum, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from carehome.core.database import Base

from .enums import ProfileStatus, Role, enum_values


def utcnow() -> datetime:
    return datetime.now(UTC)


class Profile(Base):
    """Root identity record carrying a role.

    Attributes:
        id: Unique identifier, also used as the actor id in access checks
        email: Contact email; null for residents without a login
        full_name: Display name
        role: ADMIN, STAFF, FAMILY or RESIDENT
        status: Soft-delete flag (active/inactive)
        avatar_url: Optional avatar location
    """

    __tablename__ = "profiles"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    email: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    role: Mapped[Role] = mapped_column(
        Enum(Role, name="role_enum", values_callable=enum_values),
        nullable=False,
    )
    status: Mapped[ProfileStatus] = mapped_column(
        Enum(ProfileStatus, name="profile_status_enum", values_callable=enum_values),
        nullable=False,
        default=ProfileStatus.ACTIVE,
        server_default=ProfileStatus.ACTIVE.value,
    )
    avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("idx_profiles_role", "role"),
        Index("idx_profiles_status", "status"),
    )

    @property
    def is_active(self) -> bool:
        return self.status == ProfileStatus.ACTIVE

    def __repr__(self) -> str:
        return f"<Profile(id={self.id}, full_name={self.full_name!r}, role={self.role.value!r})>"


class Credential(Base):
    """Email/password identity used to sign in as a profile."""

    __tablename__ = "credentials"

    profile_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), primary_key=True
    )
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    password_changed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    def __repr__(self) -> str:
        return f"<Credential(profile_id={self.profile_id}, email={self.email!r})>"


class AuthSession(Base):
    """Bearer session issued at sign-in; only the token hash is stored."""

    __tablename__ = "auth_sessions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    profile_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    token_hash: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    revoked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (Index("idx_auth_sessions_profile_id", "profile_id"),)

    def is_valid(self, now: datetime | None = None) -> bool:
        """Return True when the session is neither revoked nor expired."""
        now = now or utcnow()
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=UTC)
        return self.revoked_at is None and expires_at > now

    def __repr__(self) -> str:
        return f"<AuthSession(id={self.id}, profile_id={self.profile_id})>"
