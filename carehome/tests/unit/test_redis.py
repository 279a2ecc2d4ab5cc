"""Unit tests for the Redis transport wrapper."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from carehome.core import redis as redis_module
from carehome.core.redis import RedisClient, decode_message, encode_message


def connected_client() -> tuple[RedisClient, MagicMock]:
    client = RedisClient(redis_url="redis://test:6379/0", connect_attempts=1)
    raw = MagicMock()
    raw.ping = AsyncMock(return_value=True)
    raw.publish = AsyncMock(return_value=2)
    client._client = raw
    return client, raw


def test_encode_message_is_compact_json():
    assert encode_message({"table": "notifications", "n": 1}) == '{"table":"notifications","n":1}'
    assert encode_message("already text") == "already text"


@pytest.mark.parametrize(
    ("data", "expected"),
    [('{"a": 1}', {"a": 1}), ("not json", "not json"), (7, 7)],
)
def test_decode_message(data, expected):
    assert decode_message(data) == expected


async def test_publish_encodes_payload():
    client, raw = connected_client()
    receivers = await client.publish("carehome:notifications:x", {"type": "INSERT"})
    assert receivers == 2
    raw.publish.assert_awaited_once_with("carehome:notifications:x", '{"type":"INSERT"}')


async def test_health_check_states():
    client, raw = connected_client()
    assert (await client.health_check())["status"] == "healthy"

    raw.ping.side_effect = RedisConnectionError("refused")
    health = await client.health_check()
    assert health["status"] == "unhealthy"
    assert health["connected"] is False


async def test_health_check_when_never_connected():
    client = RedisClient(redis_url="redis://test:6379/0")
    assert (await client.health_check())["connected"] is False


async def test_listen_skips_control_messages():
    client, _ = connected_client()
    pubsub = MagicMock()

    async def listen():
        yield {"type": "subscribe", "channel": "c", "data": 1}
        yield {"type": "message", "channel": "c", "data": '{"record": {"id": "1"}}'}

    pubsub.listen = listen

    messages = [m async for m in client.listen(pubsub)]

    assert messages == [{"type": "message", "channel": "c", "data": {"record": {"id": "1"}}}]


async def test_optional_dependency_yields_none_when_unreachable(monkeypatch):
    monkeypatch.setattr(redis_module, "_redis_client", None)
    monkeypatch.setattr(
        RedisClient, "connect", AsyncMock(side_effect=RedisConnectionError("down"))
    )

    values = [value async for value in redis_module.get_redis_optional()]

    assert values == [None]
    assert redis_module._redis_client is None
