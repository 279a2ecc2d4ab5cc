"""FastAPI dependencies for dependency injection.

Example:
    from fastapi import Depends
    from carehome.api.deps import get_current_actor

    @router.get("/residents")
    async def list_residents(
        actor: Actor = Depends(get_current_actor),
        db: AsyncSession = Depends(get_db),
    ):
        ...
"""

from __future__ import annotations

from collections.abc import AsyncGenerator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from carehome.core.config import get_settings
from carehome.core.database import get_db
from carehome.core.exceptions import AuthenticationError, InactiveProfileError
from carehome.core.logging import set_actor_context
from carehome.core.redis import RedisClient, get_redis_optional
from carehome.policy import Actor, PolicySet, get_policy_set
from carehome.services.auth_service import AuthService
from carehome.services.change_feed import ChangeFeed
from carehome.services.identity import resolve_actor
from carehome.services.route_guard import extract_session_token
from carehome.services.storage import ResidentFileStorage


def get_policies() -> PolicySet:
    """Policy set in force; overridden in tests to exercise other options."""
    return get_policy_set()


def get_session_token(request: Request) -> str | None:
    return extract_session_token(
        request.cookies, request.headers, get_settings().session_cookie_prefix
    )


async def get_current_actor(
    request: Request,
    db: AsyncSession = Depends(get_db),
    policies: PolicySet = Depends(get_policies),
) -> Actor:
    """Resolve the bearer session into the calling Actor.

    Raises:
        AuthenticationError: No token, or the token is unknown, expired or revoked
        InactiveProfileError: The profile is deactivated and soft delete is enforced
    """
    token = get_session_token(request)
    if not token:
        raise AuthenticationError()
    auth_session = await AuthService(db, policies=policies).resolve_session(token)
    actor = await resolve_actor(db, auth_session.profile_id)
    if policies.options.enforce_soft_delete and not actor.is_active:
        raise InactiveProfileError()
    request.state.actor = actor
    set_actor_context(actor.id, actor.role)
    return actor


async def get_change_feed(
    redis: RedisClient | None = Depends(get_redis_optional),
    policies: PolicySet = Depends(get_policies),
) -> AsyncGenerator[ChangeFeed]:
    yield ChangeFeed(redis, policies)


def get_storage(policies: PolicySet = Depends(get_policies)) -> ResidentFileStorage:
    return ResidentFileStorage(policies=policies)
