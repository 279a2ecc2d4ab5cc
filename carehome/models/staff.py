"""Staff detail rows."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from carehome.core.database import Base

from .enums import Shift, enum_values
from .profile import utcnow


class Staff(Base):
    """Employment details for a STAFF or ADMIN profile (1:1)."""

    __tablename__ = "staff"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    profile_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    department: Mapped[str] = mapped_column(String(100), nullable=False)
    position: Mapped[str] = mapped_column(String(100), nullable=False)
    shift: Mapped[Shift] = mapped_column(
        Enum(Shift, name="shift_enum", values_callable=enum_values),
        nullable=False,
    )

    __table_args__ = (Index("idx_staff_department", "department"),)

    def __repr__(self) -> str:
        return f"<Staff(id={self.id}, department={self.department!r}, shift={self.shift.value!r})>"
