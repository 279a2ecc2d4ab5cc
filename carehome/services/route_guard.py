"""Navigation guard for dashboard pages.

The guard decides whether a page request may proceed, must go to the login
page, or must fall back to the generic dashboard. It only affects
navigation; every data access is still checked by the policy set, so the
guard deliberately fails open on unexpected errors.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from urllib.parse import urlencode

from carehome.core.exceptions import AuthenticationError, InactiveProfileError
from carehome.core.logging import get_logger, sanitize_error
from carehome.models.enums import Role

logger = get_logger(__name__)

ALL_ROLES = frozenset(Role)

# Path prefix -> roles allowed to open it; the most specific prefix wins
ROUTE_ROLES: dict[str, frozenset[Role]] = {
    "/dashboard": ALL_ROLES,
    "/dashboard/admin": frozenset({Role.ADMIN}),
    "/dashboard/staff": frozenset({Role.ADMIN, Role.STAFF}),
    "/dashboard/family": frozenset({Role.ADMIN, Role.FAMILY}),
    "/dashboard/resident": frozenset({Role.ADMIN, Role.RESIDENT}),
}

AUTH_ROUTES = ("/login", "/register", "/auth/callback", "/forgot-password", "/reset-password")
STATIC_PREFIXES = ("/static", "/assets", "/favicon.ico", "/robots.txt")

LOGIN_PATH = "/login"
DASHBOARD_PATH = "/dashboard"

RoleResolver = Callable[[str], Awaitable[Role | None]]


class GuardAction(str, Enum):
    ALLOW = "allow"
    REDIRECT = "redirect"


@dataclass(frozen=True)
class GuardDecision:
    action: GuardAction
    location: str | None = None
    reason: str = ""

    @property
    def allowed(self) -> bool:
        return self.action == GuardAction.ALLOW


def matches_prefix(path: str, prefix: str) -> bool:
    """Segment-aware prefix match: ``/dashboard/staff`` does not match ``/dashboard/staffing``."""
    return path == prefix or path.startswith(prefix.rstrip("/") + "/")


def required_roles(path: str, route_roles: Mapping[str, frozenset[Role]] = ROUTE_ROLES) -> frozenset[Role] | None:
    """Return the roles allowed on ``path``, or None when it is unprotected."""
    matches = [prefix for prefix in route_roles if matches_prefix(path, prefix)]
    if not matches:
        return None
    return route_roles[max(matches, key=len)]


def is_public(path: str) -> bool:
    return any(matches_prefix(path, p) for p in AUTH_ROUTES + STATIC_PREFIXES)


def login_redirect(path: str) -> str:
    if path in ("", "/"):
        return LOGIN_PATH
    return f"{LOGIN_PATH}?{urlencode({'redirectedFrom': path})}"


def extract_session_token(
    cookies: Mapping[str, str],
    headers: Mapping[str, str],
    cookie_prefix: str,
) -> str | None:
    """Find a session token in cookies first, then the Authorization header."""
    for name in sorted(cookies):
        if name.startswith(cookie_prefix) and cookies[name]:
            return cookies[name]
    authorization = headers.get("authorization") or headers.get("Authorization") or ""
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return None


class RouteGuard:
    """Decides page navigation from the path and the caller's session."""

    def __init__(
        self,
        resolve_role: RoleResolver,
        *,
        fail_open: bool = True,
        route_roles: Mapping[str, frozenset[Role]] | None = None,
    ):
        self._resolve_role = resolve_role
        self.fail_open = fail_open
        self.route_roles = dict(route_roles or ROUTE_ROLES)

    async def check(self, path: str, token: str | None) -> GuardDecision:
        if is_public(path):
            return GuardDecision(GuardAction.ALLOW, reason="public route")

        allowed_roles = required_roles(path, self.route_roles)
        if allowed_roles is None:
            return GuardDecision(GuardAction.ALLOW, reason="unprotected route")

        if not token:
            return GuardDecision(GuardAction.REDIRECT, login_redirect(path), "no session")

        try:
            role = await self._resolve_role(token)
        except (AuthenticationError, InactiveProfileError) as e:
            return GuardDecision(GuardAction.REDIRECT, login_redirect(path), e.message)
        except Exception as e:
            if self.fail_open:
                logger.warning(f"Route guard error on {path}, allowing: {sanitize_error(e)}")
                return GuardDecision(GuardAction.ALLOW, reason="guard error (fail open)")
            logger.error(f"Route guard error on {path}, redirecting: {sanitize_error(e)}")
            return GuardDecision(GuardAction.REDIRECT, login_redirect(path), "guard error")

        if role is None:
            return GuardDecision(GuardAction.REDIRECT, login_redirect(path), "no profile")
        if role not in allowed_roles:
            logger.debug(f"Role {role.value} not allowed on {path}")
            return GuardDecision(GuardAction.REDIRECT, DASHBOARD_PATH, "role not allowed")
        return GuardDecision(GuardAction.ALLOW, reason=f"role {role.value}")
