"""Repositories for chat messages and notifications."""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import Select, and_, false, func, or_, select

from carehome.models import ChatMessage, Notification
from carehome.policy import Table
from carehome.repositories.base import MAX_LIMIT, ScopedRepository


class ChatMessageRepository(ScopedRepository[ChatMessage]):
    model_class = ChatMessage
    table = Table.CHAT_MESSAGES

    def visibility_filter(self, stmt: Select[Any]) -> Select[Any]:
        if self.actor is None:
            return stmt.where(false())
        if self.policies.options.chat_select_open:
            return stmt
        return stmt.where(
            or_(ChatMessage.sender_id == self.actor.id, ChatMessage.receiver_id == self.actor.id)
        )

    async def conversation(
        self, peer_id: uuid.UUID, *, skip: int = 0, limit: int = 100
    ) -> list[ChatMessage]:
        """Messages exchanged between the actor and ``peer_id``, oldest first."""
        if self.actor is None:
            return []
        me = self.actor.id
        stmt = (
            self.base_query()
            .where(
                or_(
                    and_(ChatMessage.sender_id == me, ChatMessage.receiver_id == peer_id),
                    and_(ChatMessage.sender_id == peer_id, ChatMessage.receiver_id == me),
                )
            )
            .order_by(ChatMessage.created_at)
        )
        return await self.fetch_visible(stmt, skip=skip, limit=limit)

    async def unread_count(self) -> int:
        if self.actor is None:
            return 0
        stmt = select(func.count()).where(
            ChatMessage.receiver_id == self.actor.id, ChatMessage.read.is_(False)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one()


class NotificationRepository(ScopedRepository[Notification]):
    model_class = Notification
    table = Table.NOTIFICATIONS

    def visibility_filter(self, stmt: Select[Any]) -> Select[Any]:
        if self.actor is None:
            return stmt.where(false())
        return stmt.where(Notification.user_id == self.actor.id)

    async def list_mine(
        self, *, unread_only: bool = False, skip: int = 0, limit: int = 100
    ) -> list[Notification]:
        stmt = self.base_query().order_by(Notification.created_at.desc())
        if unread_only:
            stmt = stmt.where(Notification.read.is_(False))
        return await self.fetch_visible(stmt, skip=skip, limit=limit)

    async def mark_all_read(self) -> int:
        """Mark every unread notification of the actor as read.

        Returns:
            Number of notifications updated.
        """
        updated = 0
        while unread := await self.list_mine(unread_only=True, limit=MAX_LIMIT):
            for notification in unread:
                await self.apply_update(notification, {"read": True})
            updated += len(unread)
        return updated
