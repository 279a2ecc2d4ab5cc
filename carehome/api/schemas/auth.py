"""Pydantic schemas for authentication endpoints."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from carehome.models.enums import Role


class SignInRequest(BaseModel):
    model_config = ConfigDict(
        json_schema_extra={"example": {"email": "admin@carehome.example.com", "password": "s3cure-pass"}}
    )

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=256)


class RegisterRequest(BaseModel):
    """Self-registration; the role must be one open for registration."""

    email: EmailStr
    password: str = Field(..., min_length=8, max_length=256)
    full_name: str = Field(..., min_length=1, max_length=200)
    role: Role = Field(default=Role.FAMILY)


class PasswordChangeRequest(BaseModel):
    new_password: str = Field(..., min_length=8, max_length=256)


class SessionProfile(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str | None
    full_name: str
    role: Role


class SignInResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_at: datetime
    profile: SessionProfile


class MeResponse(BaseModel):
    id: UUID
    role: Role
    status: str
    linked_resident_profile_ids: list[UUID] = Field(default_factory=list)


class PasswordChangeResponse(BaseModel):
    revoked_sessions: int
