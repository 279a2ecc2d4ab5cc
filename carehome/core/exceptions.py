"""Exception hierarchy for the CareHome platform.

This module provides an exception hierarchy that:
1. Groups errors by the HTTP status they map to
2. Supports automatic HTTP status code mapping
3. Enables structured error responses instead of raw database messages
"""

from __future__ import annotations

from typing import Any


class CareHomeError(Exception):
    """Base exception for all application-specific errors."""

    default_message: str = "An unexpected error occurred"
    default_error_code: str = "INTERNAL_ERROR"
    default_status_code: int = 500

    def __init__(
        self,
        message: str | None = None,
        *,
        error_code: str | None = None,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message or self.default_message
        self.error_code = error_code or self.default_error_code
        self.status_code = status_code or self.default_status_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "code": self.error_code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


# Validation Errors (400)
class ValidationError(CareHomeError):
    default_message = "Validation failed"
    default_error_code = "VALIDATION_ERROR"
    default_status_code = 400


class InvalidInputError(ValidationError):
    default_message = "Invalid input provided"
    default_error_code = "INVALID_INPUT"

    def __init__(
        self,
        message: str | None = None,
        *,
        field: str | None = None,
        value: Any = None,
        constraint: str | None = None,
        **kwargs: Any,
    ) -> None:
        details = kwargs.pop("details", {}) or {}
        if field:
            details["field"] = field
        if value is not None:
            str_value = str(value)
            details["value"] = str_value[:100] if len(str_value) > 100 else str_value
        if constraint:
            details["constraint"] = constraint
        super().__init__(message, details=details, **kwargs)


class DateRangeValidationError(ValidationError):
    default_message = "Invalid date range: start must be before end"
    default_error_code = "INVALID_DATE_RANGE"

    def __init__(
        self,
        message: str | None = None,
        *,
        start: Any = None,
        end: Any = None,
        **kwargs: Any,
    ) -> None:
        details = kwargs.pop("details", {}) or {}
        if start is not None:
            details["start"] = str(start)
        if end is not None:
            details["end"] = str(end)
        super().__init__(message, details=details, **kwargs)


# Auth Errors (401)
class AuthenticationError(CareHomeError):
    default_message = "Authentication required"
    default_error_code = "AUTHENTICATION_REQUIRED"
    default_status_code = 401


class InvalidCredentialsError(AuthenticationError):
    default_message = "Invalid email or password"
    default_error_code = "INVALID_CREDENTIALS"


class SessionExpiredError(AuthenticationError):
    default_message = "Session expired or revoked"
    default_error_code = "SESSION_EXPIRED"


# Access Control Errors (403)
class AuthorizationError(CareHomeError):
    default_message = "Access denied"
    default_error_code = "ACCESS_DENIED"
    default_status_code = 403


class PolicyDeniedError(AuthorizationError):
    """Raised when no access policy permits an operation on a table."""

    default_message = "Operation not permitted"
    default_error_code = "POLICY_DENIED"

    def __init__(
        self,
        table: str,
        operation: str,
        message: str | None = None,
        *,
        reason: str | None = None,
        **kwargs: Any,
    ) -> None:
        if message is None:
            message = f"{operation} on '{table}' is not permitted"
        self.table = table
        self.operation = operation
        self.reason = reason
        details = kwargs.pop("details", {}) or {}
        details["table"] = table
        details["operation"] = operation
        if reason:
            details["reason"] = reason
        super().__init__(message, details=details, **kwargs)


class InactiveProfileError(AuthorizationError):
    default_message = "Profile is deactivated"
    default_error_code = "PROFILE_INACTIVE"


class SignatureError(AuthorizationError):
    default_message = "Invalid or expired download signature"
    default_error_code = "INVALID_SIGNATURE"


# Not Found Errors (404)
class NotFoundError(CareHomeError):
    default_message = "Resource not found"
    default_error_code = "NOT_FOUND"
    default_status_code = 404


class ResourceNotFoundError(NotFoundError):
    def __init__(
        self,
        resource_type: str,
        resource_id: str | Any,
        message: str | None = None,
        **kwargs: Any,
    ) -> None:
        if message is None:
            message = f"{resource_type.replace('_', ' ').title()} with id '{resource_id}' not found"
        details = kwargs.pop("details", {}) or {}
        details["resource_type"] = resource_type
        details["resource_id"] = str(resource_id)
        super().__init__(message, details=details, **kwargs)


class FileNotFoundInStorageError(NotFoundError):
    default_error_code = "FILE_NOT_FOUND"

    def __init__(self, key: str, message: str | None = None, **kwargs: Any) -> None:
        from pathlib import PurePosixPath

        if message is None:
            message = "File not found"
        details = kwargs.pop("details", {}) or {}
        details["filename"] = PurePosixPath(key).name if key else "unknown"
        super().__init__(message, details=details, **kwargs)


# Conflict Errors (409)
class ConflictError(CareHomeError):
    default_message = "Request conflicts with current state"
    default_error_code = "CONFLICT"
    default_status_code = 409


class DuplicateResourceError(ConflictError):
    default_error_code = "DUPLICATE_RESOURCE"

    def __init__(
        self,
        resource_type: str,
        *,
        field: str | None = None,
        value: str | None = None,
        message: str | None = None,
        **kwargs: Any,
    ) -> None:
        if message is None:
            if field and value:
                message = f"{resource_type.replace('_', ' ').title()} with {field} '{value}' already exists"
            else:
                message = f"{resource_type.replace('_', ' ').title()} already exists"
        details = kwargs.pop("details", {}) or {}
        details["resource_type"] = resource_type
        if field:
            details["field"] = field
        if value:
            details["value"] = value
        super().__init__(message, details=details, **kwargs)


# Payload Errors (413)
class PayloadTooLargeError(CareHomeError):
    default_message = "Uploaded file is too large"
    default_error_code = "PAYLOAD_TOO_LARGE"
    default_status_code = 413


# Realtime feed unavailable (503)
class CacheError(CareHomeError):
    """Redis pub/sub could not be reached; REST endpoints keep working."""

    default_message = "Realtime feed temporarily unavailable"
    default_error_code = "CACHE_ERROR"
    default_status_code = 503

    def __init__(self, message: str | None = None, **kwargs: Any) -> None:
        details = kwargs.pop("details", {}) or {}
        details["service"] = "redis"
        super().__init__(message, details=details, **kwargs)


# Storage Errors (500)
class StorageError(CareHomeError):
    default_message = "File storage error"
    default_error_code = "STORAGE_ERROR"
    default_status_code = 500

    def __init__(self, message: str | None = None, *, operation: str | None = None, **kwargs: Any) -> None:
        details = kwargs.pop("details", {}) or {}
        if operation:
            details["operation"] = operation
        super().__init__(message, details=details, **kwargs)
