"""Incident reports."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from carehome.core.database import Base

from .enums import IncidentSeverity, IncidentStatus, enum_values
from .profile import utcnow


class Incident(Base):
    """An incident reported by staff, optionally concerning a resident.

    Attributes:
        severity: LOW, MEDIUM, HIGH or CRITICAL
        status: OPEN, IN_PROGRESS or RESOLVED
        reported_by: Profile that filed the report
        assigned_to: Profile responsible for follow-up
        resident_id: Resident the incident concerns, if any
    """

    __tablename__ = "incidents"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    severity: Mapped[IncidentSeverity] = mapped_column(
        Enum(IncidentSeverity, name="incident_severity_enum", values_callable=enum_values),
        nullable=False,
    )
    status: Mapped[IncidentStatus] = mapped_column(
        Enum(IncidentStatus, name="incident_status_enum", values_callable=enum_values),
        nullable=False,
        default=IncidentStatus.OPEN,
    )
    reported_by: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=True
    )
    assigned_to: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("profiles.id"), nullable=True
    )
    resident_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("residents.id"), nullable=True
    )

    __table_args__ = (
        Index("idx_incidents_status", "status"),
        Index("idx_incidents_resident_id", "resident_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<Incident(id={self.id}, severity={self.severity.value!r}, "
            f"status={self.status.value!r})>"
        )
