"""Pydantic schemas for events, announcements, tasks and todos."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from carehome.api.schemas.common import PartialUpdate
from carehome.models.enums import Priority, TaskStatus


class EventCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    start_time: datetime
    end_time: datetime
    location: str = Field(..., min_length=1, max_length=200)
    attendees: list[UUID] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_times(self) -> "EventCreate":
        if self.end_time < self.start_time:
            raise ValueError("end_time must not be before start_time")
        return self


class EventUpdate(PartialUpdate):
    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, min_length=1)
    start_time: datetime | None = None
    end_time: datetime | None = None
    location: str | None = Field(None, min_length=1, max_length=200)
    attendees: list[UUID] | None = None


class EventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    description: str
    start_time: datetime
    end_time: datetime
    location: str
    organizer_id: UUID | None
    attendees: list[UUID]
    created_at: datetime


class AnnouncementCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    content: str = Field(..., min_length=1)
    priority: Priority = Priority.MEDIUM
    expires_at: datetime | None = None


class AnnouncementResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    content: str
    author_id: UUID | None
    priority: Priority
    expires_at: datetime | None
    created_at: datetime


class TaskCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    assigned_to: UUID
    due_date: datetime
    priority: Priority = Priority.MEDIUM


class TaskResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    description: str
    assigned_to: UUID
    due_date: datetime
    priority: Priority
    status: TaskStatus
    created_at: datetime


class TodoCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = ""
    due_date: datetime


class TodoResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    description: str
    assigned_to: UUID
    due_date: datetime
    completed: bool
    created_at: datetime
