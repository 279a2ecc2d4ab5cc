"""Pydantic schemas for profiles, residents, staff and family members."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from carehome.api.schemas.common import PartialUpdate
from carehome.models.enums import CareLevel, ProfileStatus, Role, Shift


class ProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str | None
    full_name: str
    role: Role
    status: ProfileStatus
    avatar_url: str | None = None
    created_at: datetime


class ProfileUpdate(PartialUpdate):
    """Fields a profile owner (or an admin) may change.

    ``role`` is only honored for admins; the route rejects it otherwise.
    """

    nullable_fields = frozenset({"avatar_url"})

    full_name: str | None = Field(None, min_length=1, max_length=200)
    avatar_url: str | None = Field(None, max_length=2000)
    role: Role | None = None


class LoginFields(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=256)


class ResidentCreate(BaseModel):
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "full_name": "Margaret Hill",
                "room_number": "12B",
                "emergency_contact": "John Hill, 555-0100",
                "care_level": "MEDIUM",
                "medical_conditions": ["hypertension"],
            }
        }
    )

    full_name: str = Field(..., min_length=1, max_length=200)
    room_number: str = Field(..., min_length=1, max_length=20)
    emergency_contact: str = Field(..., min_length=1)
    care_level: CareLevel
    medical_conditions: list[str] = Field(default_factory=list)
    email: EmailStr | None = None
    login: LoginFields | None = None

    @field_validator("medical_conditions")
    @classmethod
    def strip_conditions(cls, v: list[str]) -> list[str]:
        return [c.strip() for c in v if c.strip()]


class ResidentUpdate(PartialUpdate):
    room_number: str | None = Field(None, min_length=1, max_length=20)
    emergency_contact: str | None = Field(None, min_length=1)
    care_level: CareLevel | None = None
    medical_conditions: list[str] | None = None


class ResidentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    profile_id: UUID
    room_number: str
    emergency_contact: str
    medical_conditions: list[str]
    care_level: CareLevel
    created_at: datetime


class StaffCreate(BaseModel):
    full_name: str = Field(..., min_length=1, max_length=200)
    login: LoginFields
    department: str = Field(..., min_length=1, max_length=100)
    position: str = Field(..., min_length=1, max_length=100)
    shift: Shift
    role: Role = Role.STAFF


class StaffUpdate(PartialUpdate):
    department: str | None = Field(None, min_length=1, max_length=100)
    position: str | None = Field(None, min_length=1, max_length=100)
    shift: Shift | None = None


class StaffResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    profile_id: UUID
    department: str
    position: str
    shift: Shift
    created_at: datetime


class FamilyCreate(BaseModel):
    full_name: str = Field(..., min_length=1, max_length=200)
    login: LoginFields
    resident_profile_ids: list[UUID] = Field(default_factory=list)
    relationship_label: str | None = Field(None, max_length=50)


class FamilyLinkCreate(BaseModel):
    family_profile_id: UUID
    resident_profile_id: UUID
    relationship_label: str | None = Field(None, max_length=50)


class FamilyLinkResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    family_profile_id: UUID
    resident_profile_id: UUID
    relationship_label: str | None
    created_at: datetime


class OnboardingResponse(BaseModel):
    profile: ProfileResponse
    resident: ResidentResponse | None = None
    staff: StaffResponse | None = None
    links: list[FamilyLinkResponse] = Field(default_factory=list)
