"""API middleware components."""

from carehome.api.middleware.request_id import RequestIDMiddleware
from carehome.api.middleware.route_guard import RouteGuardMiddleware

__all__ = ["RequestIDMiddleware", "RouteGuardMiddleware"]
