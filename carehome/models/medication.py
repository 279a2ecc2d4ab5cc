"""Medication prescriptions and the append-only administration log."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from carehome.core.database import Base

from .enums import DoseStatus, enum_values
from .profile import utcnow


class Medication(Base):
    """A medication prescribed to a resident."""

    __tablename__ = "medications"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    resident_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("residents.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    dosage: Mapped[str] = mapped_column(String(100), nullable=False)
    frequency: Mapped[str] = mapped_column(String(100), nullable=False)
    prescribed_by: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=True
    )
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (Index("idx_medications_resident_id", "resident_id"),)

    def __repr__(self) -> str:
        return f"<Medication(id={self.id}, name={self.name!r}, dosage={self.dosage!r})>"


class MedicationLog(Base):
    """One administration event for a medication dose.

    Rows are append-only: access policies grant no UPDATE or DELETE.
    """

    __tablename__ = "medication_log"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    medication_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("medications.id", ondelete="CASCADE"), nullable=False
    )
    resident_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("residents.id", ondelete="CASCADE"), nullable=False
    )
    administered_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    administered_by: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True
    )
    status: Mapped[DoseStatus] = mapped_column(
        Enum(DoseStatus, name="dose_status_enum", values_callable=enum_values),
        nullable=False,
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("idx_medication_log_medication_id", "medication_id"),
        Index("idx_medication_log_resident_id", "resident_id"),
        Index("idx_medication_log_administered_at", "administered_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<MedicationLog(id={self.id}, medication_id={self.medication_id}, "
            f"status={self.status.value!r})>"
        )
