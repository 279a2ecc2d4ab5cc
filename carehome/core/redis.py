"""Redis pub/sub transport for the realtime change feed.

Redis is optional for this application: it only carries notification and
chat changes to open WebSockets. Startup tolerates it being down and
request handlers receive ``None`` from ``get_redis_optional``.
"""

import asyncio
import contextlib
import json
from collections.abc import AsyncGenerator
from typing import Any, cast

from redis.asyncio import ConnectionPool, Redis
from redis.asyncio.client import PubSub
from redis.exceptions import ConnectionError, RedisError, TimeoutError

from carehome.core.config import get_settings
from carehome.core.logging import get_logger, sanitize_error

logger = get_logger(__name__)

# Seconds to wait between startup connection attempts, doubled each time
RETRY_BASE_DELAY = 0.5
RETRY_MAX_DELAY = 8.0


def encode_message(message: Any) -> str:
    if isinstance(message, str):
        return message
    return json.dumps(message, default=str, separators=(",", ":"))


def decode_message(data: Any) -> Any:
    """Decode a JSON payload, passing non-JSON data through unchanged."""
    if not isinstance(data, str | bytes):
        return data
    try:
        return json.loads(data)
    except json.JSONDecodeError:
        return data


class RedisClient:
    """Pooled async Redis connection with publish and per-subscriber PubSub."""

    def __init__(self, redis_url: str | None = None, connect_attempts: int | None = None):
        settings = get_settings()
        self.redis_url = redis_url or settings.redis_url
        self.connect_attempts = connect_attempts or settings.redis_connect_attempts
        self._pool: ConnectionPool | None = None
        self._client: Redis | None = None

    @property
    def connected(self) -> bool:
        return self._client is not None

    async def connect(self) -> None:
        """Open the pool and ping it, retrying with a doubling delay.

        Raises:
            ConnectionError: Redis was unreachable on every attempt
            TimeoutError: The final attempt timed out
        """
        delay = RETRY_BASE_DELAY
        for attempt in range(1, self.connect_attempts + 1):
            pool = ConnectionPool.from_url(
                self.redis_url,
                decode_responses=True,
                socket_connect_timeout=5,
                health_check_interval=30,
                max_connections=50,
            )
            client = Redis(connection_pool=pool)
            try:
                await client.ping()  # type: ignore[misc]
            except (ConnectionError, TimeoutError) as e:
                await pool.disconnect()
                logger.warning(
                    f"Redis attempt {attempt}/{self.connect_attempts} failed: {sanitize_error(e)}"
                )
                if attempt == self.connect_attempts:
                    raise
                await asyncio.sleep(delay)
                delay = min(delay * 2, RETRY_MAX_DELAY)
                continue
            self._pool, self._client = pool, client
            logger.info("Connected to Redis")
            return

    async def disconnect(self) -> None:
        client, pool = self._client, self._pool
        self._client = self._pool = None
        if client is not None:
            with contextlib.suppress(RedisError, OSError):
                await client.aclose()
        if pool is not None:
            with contextlib.suppress(RedisError, OSError):
                await pool.disconnect()

    def _require_client(self) -> Redis:
        if self._client is None:
            raise RuntimeError("Redis client not connected. Call connect() first.")
        return self._client

    async def health_check(self) -> dict[str, Any]:
        try:
            await self._require_client().ping()  # type: ignore[misc]
        except (RuntimeError, RedisError) as e:
            return {"status": "unhealthy", "connected": False, "error": sanitize_error(e)}
        return {"status": "healthy", "connected": True}

    async def publish(self, channel: str, message: Any) -> int:
        """Publish ``message`` (JSON-encoded unless already a string).

        Returns:
            Number of subscribers that received it
        """
        receivers = await self._require_client().publish(channel, encode_message(message))
        return cast("int", receivers)

    async def subscribe(self, *channels: str) -> PubSub:
        """Open a PubSub of its own for one subscriber.

        A WebSocket closing only ever tears down its own subscription.
        """
        pubsub = self._require_client().pubsub(ignore_subscribe_messages=True)
        await pubsub.subscribe(*channels)
        return pubsub

    async def unsubscribe(self, pubsub: PubSub, *channels: str) -> None:
        try:
            await pubsub.unsubscribe(*channels)
        finally:
            await pubsub.aclose()

    async def listen(self, pubsub: PubSub) -> AsyncGenerator[dict[str, Any]]:
        """Yield published messages with their ``data`` decoded from JSON."""
        async for message in pubsub.listen():
            if message.get("type") != "message":
                continue
            yield {**message, "data": decode_message(message["data"])}


_redis_client: RedisClient | None = None


async def init_redis() -> RedisClient:
    """Connect the application-wide client at startup."""
    global _redis_client  # noqa: PLW0603

    if _redis_client is None:
        client = RedisClient()
        await client.connect()
        _redis_client = client
    return _redis_client


async def close_redis() -> None:
    global _redis_client  # noqa: PLW0603

    if _redis_client is not None:
        await _redis_client.disconnect()
        _redis_client = None


async def get_redis_optional() -> AsyncGenerator[RedisClient | None]:
    """FastAPI dependency yielding the shared client, or None when Redis is down.

    A single reconnection attempt is made per request while Redis is
    unavailable, so the feed recovers without a restart.
    """
    global _redis_client  # noqa: PLW0603

    if _redis_client is None:
        client = RedisClient(connect_attempts=1)
        try:
            await client.connect()
        except (ConnectionError, TimeoutError) as e:
            logger.debug(f"Redis still unavailable: {sanitize_error(e)}")
            yield None
            return
        _redis_client = client
    yield _redis_client
