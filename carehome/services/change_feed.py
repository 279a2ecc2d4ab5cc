"""Realtime change feed for chat messages and notifications over Redis pub/sub.

Writers publish a row after their transaction commits. Each WebSocket opens
its own subscription on connect and drops it on disconnect; every delivered
row is checked against the subscriber's SELECT policy before it is sent, so
a subscriber cannot receive rows it could not read through the API.

Delivery is best-effort. There are no sequence numbers and no replay; a
client that reconnects re-reads history through the REST endpoints.
"""

from __future__ import annotations

import uuid
from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from redis.exceptions import RedisError

from carehome.core.config import get_settings
from carehome.core.exceptions import CacheError
from carehome.core.logging import get_logger
from carehome.policy import Actor, Operation, PolicySet, Table, as_row, get_policy_set

if TYPE_CHECKING:
    from redis.asyncio.client import PubSub

    from carehome.core.redis import RedisClient
    from carehome.models import ChatMessage, Notification

logger = get_logger(__name__)


def notification_channel(user_id: uuid.UUID | str, prefix: str | None = None) -> str:
    prefix = prefix or get_settings().realtime_channel_prefix
    return f"{prefix}:notifications:{user_id}"


def chat_channel(a: uuid.UUID | str, b: uuid.UUID | str, prefix: str | None = None) -> str:
    """Channel shared by both participants of a conversation.

    The pair is sorted so that either participant derives the same name.
    """
    prefix = prefix or get_settings().realtime_channel_prefix
    first, second = sorted((str(a), str(b)))
    return f"{prefix}:chat:{first}:{second}"


def build_change(table: Table, change_type: str, record: Any) -> dict[str, Any]:
    return {
        "table": table.value,
        "type": change_type,
        "record": dict(as_row(record)),
    }


class ChangeFeed:
    """Publishes row changes and streams them to policy-checked subscribers."""

    def __init__(
        self,
        redis: RedisClient | None,
        policies: PolicySet | None = None,
        prefix: str | None = None,
    ):
        self._redis = redis
        self._policies = policies or get_policy_set()
        self._prefix = prefix or get_settings().realtime_channel_prefix

    async def _publish(self, channel: str, change: dict[str, Any]) -> int:
        if self._redis is None:
            logger.warning(f"Redis unavailable; {change['table']} change on {channel} not published")
            return 0
        try:
            receivers = await self._redis.publish(channel, change)
        except (RedisError, RuntimeError) as e:
            # The row is already committed; subscribers catch up via REST
            logger.warning(f"Failed to publish {change['table']} change on {channel}: {e}")
            return 0
        logger.debug(f"Published {change['table']} {change['type']} to {receivers} subscribers")
        return receivers

    async def publish_notification(self, notification: Notification, change_type: str = "INSERT") -> int:
        change = build_change(Table.NOTIFICATIONS, change_type, notification)
        return await self._publish(notification_channel(notification.user_id, self._prefix), change)

    async def publish_chat_message(self, message: ChatMessage, change_type: str = "INSERT") -> int:
        change = build_change(Table.CHAT_MESSAGES, change_type, message)
        channel = chat_channel(message.sender_id, message.receiver_id, self._prefix)
        return await self._publish(channel, change)

    @asynccontextmanager
    async def subscription(self, *channels: str) -> AsyncIterator[PubSub]:
        """Subscribe for the lifetime of the block, then unsubscribe."""
        if self._redis is None:
            raise CacheError("Realtime feed unavailable: Redis is not connected")
        pubsub = await self._redis.subscribe(*channels)
        logger.debug(f"Subscribed to {', '.join(channels)}")
        try:
            yield pubsub
        finally:
            await self._redis.unsubscribe(pubsub, *channels)
            logger.debug(f"Unsubscribed from {', '.join(channels)}")

    def is_visible(self, actor: Actor, change: Any) -> bool:
        if not isinstance(change, dict) or "table" not in change:
            return False
        try:
            table = Table(change["table"])
        except ValueError:
            return False
        return self._policies.permits(actor, table, Operation.SELECT, change.get("record") or {})

    async def stream(self, actor: Actor, pubsub: PubSub) -> AsyncGenerator[dict[str, Any]]:
        """Yield changes from ``pubsub`` that ``actor`` may read."""
        if self._redis is None:
            return
        async for message in self._redis.listen(pubsub):
            change = message["data"]
            if self.is_visible(actor, change):
                yield change
            else:
                logger.debug(f"Dropped change on {message.get('channel')} not visible to {actor.id}")
