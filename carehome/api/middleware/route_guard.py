"""Middleware applying the dashboard route guard to page requests."""

from collections.abc import Awaitable, Callable

from fastapi.responses import RedirectResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from carehome.core import get_settings
from carehome.core.database import get_session
from carehome.core.exceptions import InactiveProfileError
from carehome.core.logging import get_logger
from carehome.models.enums import Role
from carehome.services.auth_service import AuthService
from carehome.services.identity import resolve_actor
from carehome.services.route_guard import RoleResolver, RouteGuard, extract_session_token

logger = get_logger(__name__)


async def resolve_role_from_token(token: str) -> Role | None:
    """Resolve a session token to the role on its profile."""
    settings = get_settings()
    async with get_session() as session:
        auth_session = await AuthService(session, settings=settings).resolve_session(token)
        actor = await resolve_actor(session, auth_session.profile_id)
    if settings.rbac_enforce_soft_delete and not actor.is_active:
        raise InactiveProfileError()
    return actor.role


class RouteGuardMiddleware(BaseHTTPMiddleware):
    """Redirect page navigation the caller's session does not allow.

    Redirects go to ``/login?redirectedFrom=...`` without a session and to
    ``/dashboard`` on a role mismatch. API and WebSocket paths are not
    guarded here; they authorize every request through the policy set.
    """

    def __init__(
        self,
        app: ASGIApp,
        resolve_role: RoleResolver | None = None,
        fail_open: bool | None = None,
    ):
        super().__init__(app)
        settings = get_settings()
        self.cookie_prefix = settings.session_cookie_prefix
        self.guard = RouteGuard(
            resolve_role or resolve_role_from_token,
            fail_open=settings.route_guard_fail_open if fail_open is None else fail_open,
        )

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        path = request.url.path
        if path.startswith(("/api/", "/ws/")):
            return await call_next(request)

        token = extract_session_token(request.cookies, request.headers, self.cookie_prefix)
        decision = await self.guard.check(path, token)
        if not decision.allowed and decision.location is not None:
            logger.debug(f"Redirecting {path} to {decision.location}: {decision.reason}")
            return RedirectResponse(decision.location, status_code=307)
        return await call_next(request)
