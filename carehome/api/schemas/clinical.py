"""Pydantic schemas for incidents, medications and care plans."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from carehome.api.schemas.common import PartialUpdate
from carehome.models.enums import DoseStatus, IncidentSeverity, IncidentStatus


class IncidentCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    severity: IncidentSeverity
    resident_id: UUID | None = None
    assigned_to: UUID | None = None


class IncidentUpdate(PartialUpdate):
    nullable_fields = frozenset({"assigned_to"})

    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, min_length=1)
    severity: IncidentSeverity | None = None
    status: IncidentStatus | None = None
    assigned_to: UUID | None = None


class IncidentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    description: str
    severity: IncidentSeverity
    status: IncidentStatus
    reported_by: UUID | None
    assigned_to: UUID | None
    resident_id: UUID | None
    created_at: datetime


class MedicationCreate(BaseModel):
    resident_id: UUID
    name: str = Field(..., min_length=1, max_length=200)
    dosage: str = Field(..., min_length=1, max_length=100)
    frequency: str = Field(..., min_length=1, max_length=100)
    start_date: datetime
    end_date: datetime | None = None
    notes: str | None = None

    @model_validator(mode="after")
    def check_dates(self) -> "MedicationCreate":
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class MedicationUpdate(PartialUpdate):
    nullable_fields = frozenset({"end_date", "notes"})

    dosage: str | None = Field(None, min_length=1, max_length=100)
    frequency: str | None = Field(None, min_length=1, max_length=100)
    end_date: datetime | None = None
    notes: str | None = None


class MedicationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    resident_id: UUID
    name: str
    dosage: str
    frequency: str
    prescribed_by: UUID | None
    start_date: datetime
    end_date: datetime | None
    notes: str | None
    created_at: datetime


class DoseLogCreate(BaseModel):
    status: DoseStatus
    administered_at: datetime | None = None
    notes: str | None = None


class DoseLogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    medication_id: UUID
    resident_id: UUID
    administered_at: datetime
    administered_by: UUID | None
    status: DoseStatus
    notes: str | None


class CarePlanCreate(BaseModel):
    resident_id: UUID
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    goals: list[str] = Field(default_factory=list)


class CarePlanUpdate(PartialUpdate):
    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, min_length=1)
    goals: list[str] | None = None


class CarePlanResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    resident_id: UUID
    title: str
    description: str
    goals: list[str]
    created_by: UUID | None
    created_at: datetime
    updated_at: datetime


class CareRoutineCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    frequency: str = Field(..., min_length=1, max_length=100)
    time_of_day: str = Field(..., min_length=1, max_length=50)
    assigned_to: list[UUID] = Field(default_factory=list)


class CareRoutineResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    care_plan_id: UUID
    title: str
    description: str
    frequency: str
    time_of_day: str
    assigned_to: list[UUID]
    created_at: datetime
