"""Unit tests for the realtime change feed."""

from __future__ import annotations

import uuid

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from carehome.core.exceptions import CacheError
from carehome.policy import Table
from carehome.services.change_feed import ChangeFeed, build_change, chat_channel, notification_channel
from carehome.tests.factories import ActorFactory, ChatMessageFactory, NotificationFactory


@pytest.fixture
def feed(mock_redis, policies) -> ChangeFeed:
    return ChangeFeed(mock_redis, policies, prefix="test")


def test_chat_channel_is_symmetric():
    a, b = uuid.uuid4(), uuid.uuid4()
    assert chat_channel(a, b, "p") == chat_channel(b, a, "p")
    assert chat_channel(a, b, "p").startswith("p:chat:")


def test_notification_channel():
    user_id = uuid.uuid4()
    assert notification_channel(user_id, "p") == f"p:notifications:{user_id}"


def test_build_change_serializes_row():
    notification = NotificationFactory()
    change = build_change(Table.NOTIFICATIONS, "INSERT", notification)
    assert change["table"] == "notifications"
    assert change["type"] == "INSERT"
    assert change["record"]["user_id"] == notification.user_id


class TestPublish:
    async def test_publish_notification_to_user_channel(self, feed, mock_redis):
        notification = NotificationFactory()

        receivers = await feed.publish_notification(notification)

        assert receivers == 1
        channel, change = mock_redis.publish.call_args.args
        assert channel == f"test:notifications:{notification.user_id}"
        assert change["record"]["title"] == notification.title

    async def test_publish_chat_message_to_pair_channel(self, feed, mock_redis):
        message = ChatMessageFactory()
        await feed.publish_chat_message(message, "UPDATE")
        channel, change = mock_redis.publish.call_args.args
        assert channel == chat_channel(message.sender_id, message.receiver_id, "test")
        assert change["type"] == "UPDATE"

    async def test_publish_failure_is_swallowed(self, feed, mock_redis):
        mock_redis.publish.side_effect = RedisConnectionError("gone")
        assert await feed.publish_notification(NotificationFactory()) == 0

    async def test_publish_without_redis(self, policies):
        feed = ChangeFeed(None, policies, prefix="test")
        assert await feed.publish_chat_message(ChatMessageFactory()) == 0


class TestSubscribe:
    async def test_subscription_unsubscribes_on_exit(self, feed, mock_redis):
        pubsub = object()
        mock_redis.subscribe.return_value = pubsub

        async with feed.subscription("test:chat:a:b") as subscribed:
            assert subscribed is pubsub

        mock_redis.unsubscribe.assert_awaited_once_with(pubsub, "test:chat:a:b")

    async def test_subscription_without_redis(self, policies):
        feed = ChangeFeed(None, policies, prefix="test")
        with pytest.raises(CacheError):
            async with feed.subscription("test:chat:a:b"):
                pass

    async def test_stream_drops_rows_actor_cannot_read(self, feed, mock_redis):
        actor = ActorFactory()
        mine = NotificationFactory(user_id=actor.id)
        theirs = NotificationFactory()
        messages = [
            {"channel": "c", "data": build_change(Table.NOTIFICATIONS, "INSERT", theirs)},
            {"channel": "c", "data": "not a change"},
            {"channel": "c", "data": build_change(Table.NOTIFICATIONS, "INSERT", mine)},
        ]

        async def listen(pubsub):
            for message in messages:
                yield message

        mock_redis.listen = listen

        received = [change async for change in feed.stream(actor, object())]

        assert [c["record"]["id"] for c in received] == [mine.id]

    def test_is_visible_rejects_unknown_table(self, feed):
        actor = ActorFactory(admin=True)
        assert not feed.is_visible(actor, {"table": "invoices", "record": {}})
        assert not feed.is_visible(actor, None)
