"""Pydantic schemas for files, the policy inspector, dashboards and health."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from carehome.models.enums import Role
from carehome.policy import Operation, Table


class StoredFileResponse(BaseModel):
    key: str
    filename: str
    size: int
    updated_at: datetime


class SignedUrlResponse(BaseModel):
    url: str
    key: str
    expires_at: datetime


class PolicyRuleResponse(BaseModel):
    name: str
    table: str
    operations: list[str]
    description: str


class PolicyTableResponse(BaseModel):
    options: dict[str, bool]
    rules: list[PolicyRuleResponse]


class PolicyEvaluateRequest(BaseModel):
    """Ask whether the caller may perform an operation on a (hypothetical) row."""

    table: Table
    operation: Operation
    row: dict[str, Any] = Field(default_factory=dict)
    new_row: dict[str, Any] | None = None


class DecisionResponse(BaseModel):
    allowed: bool
    table: str
    operation: str
    policy: str | None
    reason: str


class DashboardResponse(BaseModel):
    role: Role
    profile_id: UUID
    counts: dict[str, int]


class HealthResponse(BaseModel):
    status: str
    services: dict[str, Any]
    timestamp: datetime
