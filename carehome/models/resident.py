"""Resident detail rows and the family-to-resident linkage."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import JSON, DateTime, Enum, ForeignKey, Index, String, Text, UniqueConstraint, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from carehome.core.database import Base

from .enums import CareLevel, enum_values
from .profile import utcnow

# JSONB on PostgreSQL, plain JSON elsewhere (tests run on SQLite)
JSONList = JSON().with_variant(JSONB(), "postgresql")


class Resident(Base):
    """Care details for a profile with the RESIDENT role (1:1)."""

    __tablename__ = "residents"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    profile_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    room_number: Mapped[str] = mapped_column(String(20), nullable=False)
    emergency_contact: Mapped[str] = mapped_column(Text, nullable=False)
    medical_conditions: Mapped[list[str]] = mapped_column(JSONList, nullable=False, default=list)
    care_level: Mapped[CareLevel] = mapped_column(
        Enum(CareLevel, name="care_level_enum", values_callable=enum_values),
        nullable=False,
    )

    __table_args__ = (Index("idx_residents_care_level", "care_level"),)

    def __repr__(self) -> str:
        return f"<Resident(id={self.id}, room_number={self.room_number!r})>"


class FamilyResidentLink(Base):
    """Links a FAMILY profile to a resident profile they may follow."""

    __tablename__ = "family_resident_links"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    family_profile_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    resident_profile_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    relationship_label: Mapped[str | None] = mapped_column(String(50), nullable=True)

    __table_args__ = (
        UniqueConstraint("family_profile_id", "resident_profile_id", name="uq_family_resident"),
        Index("idx_family_links_family", "family_profile_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<FamilyResidentLink(family={self.family_profile_id}, "
            f"resident={self.resident_profile_id})>"
        )
