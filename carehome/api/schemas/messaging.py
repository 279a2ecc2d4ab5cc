"""Pydantic schemas for chat and notifications."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from carehome.models.enums import NotificationType


class ChatMessageCreate(BaseModel):
    receiver_id: UUID
    content: str = Field(..., min_length=1, max_length=5000)


class ChatMessageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    sender_id: UUID
    receiver_id: UUID
    content: str
    read: bool
    created_at: datetime


class UnreadCountResponse(BaseModel):
    unread: int


class NotificationCreate(BaseModel):
    user_id: UUID
    title: str = Field(..., min_length=1, max_length=200)
    content: str = Field(..., min_length=1)
    type: NotificationType = NotificationType.INFO


class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    title: str
    content: str
    type: NotificationType
    read: bool
    created_at: datetime


class MarkAllReadResponse(BaseModel):
    updated: int
