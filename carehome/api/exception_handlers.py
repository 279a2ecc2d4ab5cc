"""Global exception handlers for the FastAPI application.

Every error leaves the API in one shape:

    {
        "error": {
            "code": "POLICY_DENIED",
            "message": "INSERT on 'staff' is not permitted",
            "details": {"table": "staff", "operation": "INSERT"},
            "request_id": "a1b2c3d4",
            "timestamp": "2024-04-01T12:00:00+00:00"
        }
    }

Database errors are never passed through verbatim.

Usage:
    from carehome.api.exception_handlers import register_exception_handlers
    app = FastAPI()
    register_exception_handlers(app)
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from carehome.core.exceptions import CareHomeError
from carehome.core.logging import get_logger, sanitize_error

logger = get_logger(__name__)

# Submitted values of these fields are never echoed back in validation errors
SECRET_FIELDS = frozenset({"password", "new_password", "signature", "token"})

STATUS_TO_CODE = {
    400: "BAD_REQUEST",
    401: "AUTHENTICATION_REQUIRED",
    403: "ACCESS_DENIED",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    413: "PAYLOAD_TOO_LARGE",
    422: "VALIDATION_ERROR",
    500: "INTERNAL_ERROR",
    503: "SERVICE_UNAVAILABLE",
}


def get_request_id(request: Request) -> str | None:
    """Extract request ID from request state or headers."""
    if hasattr(request.state, "request_id"):
        request_id: str = request.state.request_id
        return request_id
    return request.headers.get("X-Request-ID")


def build_error_response(
    error_code: str,
    message: str,
    status_code: int,
    request: Request | None = None,
    details: dict[str, Any] | None = None,
    headers: Mapping[str, str] | None = None,
) -> JSONResponse:
    """Build a standardized error response.

    Args:
        error_code: Machine-readable error code
        message: Human-readable error message
        status_code: HTTP status code
        request: Optional request for extracting request ID
        details: Optional additional error details
        headers: Optional headers to include in the response

    Returns:
        JSONResponse with standardized error format
    """
    error_body: dict[str, Any] = {
        "code": error_code,
        "message": message,
    }
    if details:
        error_body["details"] = details
    if request:
        request_id = get_request_id(request)
        if request_id:
            error_body["request_id"] = request_id
    error_body["timestamp"] = datetime.now(UTC).isoformat()

    return JSONResponse(
        status_code=status_code,
        content={"error": error_body},
        headers=headers,
    )


def _log_context(request: Request, **extra: Any) -> dict[str, Any]:
    context = {"path": str(request.url.path), "method": request.method, **extra}
    request_id = get_request_id(request)
    if request_id:
        context["request_id"] = request_id
    return context


async def carehome_exception_handler(request: Request, exc: CareHomeError) -> JSONResponse:
    """Handle CareHomeError and its subclasses."""
    log_context = _log_context(request, error_code=exc.error_code, status_code=exc.status_code)
    if exc.status_code >= 500:
        logger.error(f"Internal error: {exc.message}", extra=log_context, exc_info=True)
    elif exc.status_code == 403:
        logger.info(f"Access denied: {exc.message}", extra=log_context)
    else:
        logger.info(f"Client error: {exc.message}", extra=log_context)

    return build_error_response(
        error_code=exc.error_code,
        message=exc.message,
        status_code=exc.status_code,
        request=request,
        details=exc.details or None,
    )


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    """Turn constraint violations into 409 responses without leaking SQL."""
    logger.info(
        f"Integrity error: {sanitize_error(exc)}",
        extra=_log_context(request, exception_type=type(exc).__name__),
    )
    return build_error_response(
        error_code="CONFLICT",
        message="Request conflicts with existing data",
        status_code=status.HTTP_409_CONFLICT,
        request=request,
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    error_code = STATUS_TO_CODE.get(exc.status_code, "ERROR")
    message = str(exc.detail) if exc.detail else "An error occurred"
    if exc.status_code >= 500:
        logger.error(f"HTTP error: {message}", extra=_log_context(request))
    return build_error_response(
        error_code=error_code,
        message=message,
        status_code=exc.status_code,
        request=request,
        headers=getattr(exc, "headers", None),
    )


def _is_secret_field(loc: Any) -> bool:
    return any(str(part) in SECRET_FIELDS for part in loc)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle request validation errors with field-level details."""
    errors = []
    for error in exc.errors():
        loc = error.get("loc", ())
        field = ".".join(str(part) for part in loc) if loc else "unknown"
        input_value = error.get("input")
        value = None
        if input_value is not None and not _is_secret_field(loc):
            value = str(input_value)[:100]
        errors.append({"field": field, "message": error.get("msg", "Validation error"), "value": value})

    logger.info("Request validation failed", extra=_log_context(request, error_count=len(errors)))
    return build_error_response(
        error_code="VALIDATION_ERROR",
        message="Request validation failed",
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        request=request,
        details={"errors": errors},
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all: log with traceback, answer with a generic message."""
    logger.error(
        f"Unhandled exception: {sanitize_error(exc)}",
        extra=_log_context(request, exception_type=type(exc).__name__),
        exc_info=True,
    )
    return build_error_response(
        error_code="INTERNAL_ERROR",
        message="An unexpected error occurred",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        request=request,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI application."""
    app.add_exception_handler(CareHomeError, carehome_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(IntegrityError, integrity_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, generic_exception_handler)
    logger.debug("Exception handlers registered")
