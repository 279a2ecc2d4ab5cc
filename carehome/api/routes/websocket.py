"""WebSocket endpoints streaming notifications and chat messages.

Clients authenticate with the same session token as the REST API, passed
as a ``token`` query parameter, a session cookie or a bearer header:

    ws://host/ws/notifications?token=SESSION_TOKEN
    ws://host/ws/chat/{peer_id}?token=SESSION_TOKEN

Each message is a JSON change record:

    {"table": "chat_messages", "type": "INSERT", "record": {...}}

Only rows the subscriber may SELECT are delivered. The plain string
``ping`` is answered with ``{"type":"pong"}``.
"""

import asyncio
from uuid import UUID

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status

from carehome.api.deps import get_change_feed, get_policies
from carehome.core.config import get_settings
from carehome.core.database import get_session
from carehome.core.exceptions import AuthenticationError, CacheError, InactiveProfileError
from carehome.core.logging import get_logger, sanitize_error
from carehome.policy import Actor, PolicySet
from carehome.services.auth_service import AuthService
from carehome.services.change_feed import ChangeFeed, chat_channel, notification_channel
from carehome.services.identity import resolve_actor
from carehome.services.route_guard import extract_session_token

logger = get_logger(__name__)

router = APIRouter(tags=["websocket"])


async def authenticate_websocket(websocket: WebSocket, policies: PolicySet) -> Actor | None:
    """Resolve the connecting client to an Actor, or close the socket.

    The database session is closed before returning, so an open socket
    holds no pooled connection.

    Returns:
        The Actor, or None after closing with 1008 (policy violation)
    """
    token = websocket.query_params.get("token") or extract_session_token(
        websocket.cookies, websocket.headers, get_settings().session_cookie_prefix
    )
    if not token:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return None
    try:
        async with get_session() as db:
            auth_session = await AuthService(db, policies=policies).resolve_session(token)
            actor = await resolve_actor(db, auth_session.profile_id)
        if policies.options.enforce_soft_delete and not actor.is_active:
            raise InactiveProfileError()
    except (AuthenticationError, InactiveProfileError) as e:
        logger.warning(f"WebSocket connection rejected: {e.message}")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return None
    return actor


async def _receive_loop(websocket: WebSocket) -> None:
    while True:
        data = await websocket.receive_text()
        if data == "ping":
            await websocket.send_text('{"type":"pong"}')


async def relay(websocket: WebSocket, feed: ChangeFeed, actor: Actor, *channels: str) -> None:
    """Forward visible changes on ``channels`` until the client disconnects."""
    try:
        async with feed.subscription(*channels) as pubsub:
            await websocket.accept()
            logger.info(f"WebSocket client {actor.id} subscribed to {', '.join(channels)}")

            async def forward() -> None:
                async for change in feed.stream(actor, pubsub):
                    await websocket.send_json(change)

            tasks = {
                asyncio.create_task(forward()),
                asyncio.create_task(_receive_loop(websocket)),
            }
            try:
                done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
            finally:
                for task in tasks:
                    task.cancel()
            for task in done:
                error = task.exception()
                if error is not None and not isinstance(error, WebSocketDisconnect):
                    logger.error(f"WebSocket relay error: {sanitize_error(error)}")
    except CacheError as e:
        logger.warning(f"WebSocket connection rejected: {e.message}")
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
        return
    logger.info(f"WebSocket client {actor.id} disconnected")


@router.websocket("/ws/notifications")
async def notifications_stream(
    websocket: WebSocket,
    policies: PolicySet = Depends(get_policies),
    feed: ChangeFeed = Depends(get_change_feed),
) -> None:
    """Stream the caller's own notifications."""
    actor = await authenticate_websocket(websocket, policies)
    if actor is None:
        return
    await relay(websocket, feed, actor, notification_channel(actor.id))


@router.websocket("/ws/chat/{peer_id}")
async def chat_stream(
    websocket: WebSocket,
    peer_id: UUID,
    policies: PolicySet = Depends(get_policies),
    feed: ChangeFeed = Depends(get_change_feed),
) -> None:
    """Stream messages exchanged between the caller and ``peer_id``."""
    actor = await authenticate_websocket(websocket, policies)
    if actor is None:
        return
    await relay(websocket, feed, actor, chat_channel(actor.id, peer_id))
