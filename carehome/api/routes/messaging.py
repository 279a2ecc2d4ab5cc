"""API routes for direct chat and notifications.

New rows are published to the change feed after the transaction commits.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from carehome.api.deps import get_change_feed, get_current_actor, get_policies
from carehome.api.schemas.messaging import (
    ChatMessageCreate,
    ChatMessageResponse,
    MarkAllReadResponse,
    NotificationCreate,
    NotificationResponse,
    UnreadCountResponse,
)
from carehome.core.database import get_db
from carehome.core.exceptions import InvalidInputError, ResourceNotFoundError
from carehome.models import ChatMessage, Notification, Profile
from carehome.policy import Actor, PolicySet
from carehome.repositories import ChatMessageRepository, NotificationRepository
from carehome.services.change_feed import ChangeFeed

router = APIRouter(prefix="/api", tags=["messaging"])


# Chat


@router.get("/chat/unread", response_model=UnreadCountResponse)
async def unread_messages(
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    policies: PolicySet = Depends(get_policies),
) -> UnreadCountResponse:
    return UnreadCountResponse(unread=await ChatMessageRepository(db, actor, policies).unread_count())


@router.get("/chat/{peer_id}", response_model=list[ChatMessageResponse])
async def get_conversation(
    peer_id: UUID,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    policies: PolicySet = Depends(get_policies),
) -> list[ChatMessage]:
    return await ChatMessageRepository(db, actor, policies).conversation(
        peer_id, skip=skip, limit=limit
    )


@router.post("/chat", response_model=ChatMessageResponse, status_code=status.HTTP_201_CREATED)
async def send_message(
    data: ChatMessageCreate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    policies: PolicySet = Depends(get_policies),
    feed: ChangeFeed = Depends(get_change_feed),
) -> ChatMessage:
    if data.receiver_id == actor.id:
        raise InvalidInputError("Cannot send a message to yourself", field="receiver_id")
    if await db.get(Profile, data.receiver_id) is None:
        raise ResourceNotFoundError("profile", data.receiver_id)

    message = ChatMessage(
        sender_id=actor.id,
        receiver_id=data.receiver_id,
        content=data.content,
        read=False,
    )
    message = await ChatMessageRepository(db, actor, policies).insert(message)
    await db.commit()
    await feed.publish_chat_message(message)
    return message


@router.post("/chat/messages/{message_id}/read", response_model=ChatMessageResponse)
async def mark_message_read(
    message_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    policies: PolicySet = Depends(get_policies),
    feed: ChangeFeed = Depends(get_change_feed),
) -> ChatMessage:
    repo = ChatMessageRepository(db, actor, policies)
    message = await repo.get_visible(message_id)
    if not message.read:
        message = await repo.apply_update(message, {"read": True})
        await db.commit()
        await feed.publish_chat_message(message, change_type="UPDATE")
    return message


# Notifications


@router.get("/notifications", response_model=list[NotificationResponse])
async def list_notifications(
    unread_only: bool = Query(False),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    policies: PolicySet = Depends(get_policies),
) -> list[Notification]:
    return await NotificationRepository(db, actor, policies).list_mine(
        unread_only=unread_only, skip=skip, limit=limit
    )


@router.post(
    "/notifications", response_model=NotificationResponse, status_code=status.HTTP_201_CREATED
)
async def send_notification(
    data: NotificationCreate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    policies: PolicySet = Depends(get_policies),
    feed: ChangeFeed = Depends(get_change_feed),
) -> Notification:
    if await db.get(Profile, data.user_id) is None:
        raise ResourceNotFoundError("profile", data.user_id)
    notification = Notification(**data.model_dump(), read=False)
    notification = await NotificationRepository(db, actor, policies).insert(notification)
    await db.commit()
    await feed.publish_notification(notification)
    return notification


@router.post("/notifications/read-all", response_model=MarkAllReadResponse)
async def mark_all_notifications_read(
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    policies: PolicySet = Depends(get_policies),
) -> MarkAllReadResponse:
    updated = await NotificationRepository(db, actor, policies).mark_all_read()
    await db.commit()
    return MarkAllReadResponse(updated=updated)


@router.post("/notifications/{notification_id}/read", response_model=NotificationResponse)
async def mark_notification_read(
    notification_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    policies: PolicySet = Depends(get_policies),
) -> Notification:
    repo = NotificationRepository(db, actor, policies)
    notification = await repo.get_visible(notification_id)
    if not notification.read:
        notification = await repo.apply_update(notification, {"read": True})
        await db.commit()
    return notification
