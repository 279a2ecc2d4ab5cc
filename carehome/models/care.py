"""Care plans and the routines that implement them."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from carehome.core.database import Base

from .profile import utcnow
from .resident import JSONList


class CarePlan(Base):
    __tablename__ = "care_plans"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, server_default=func.now()
    )
    resident_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("residents.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    goals: Mapped[list[str]] = mapped_column(JSONList, nullable=False, default=list)
    created_by: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=True
    )

    __table_args__ = (Index("idx_care_plans_resident_id", "resident_id"),)

    def __repr__(self) -> str:
        return f"<CarePlan(id={self.id}, title={self.title!r})>"


class CareRoutine(Base):
    """A recurring activity inside a care plan, assigned to one or more profiles."""

    __tablename__ = "care_routines"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    care_plan_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("care_plans.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    frequency: Mapped[str] = mapped_column(String(100), nullable=False)
    time_of_day: Mapped[str] = mapped_column(String(50), nullable=False)
    # Profile ids as strings
    assigned_to: Mapped[list[str]] = mapped_column(JSONList, nullable=False, default=list)

    __table_args__ = (Index("idx_care_routines_care_plan_id", "care_plan_id"),)

    def __repr__(self) -> str:
        return f"<CareRoutine(id={self.id}, title={self.title!r})>"
