"""Unit tests for the exception hierarchy."""

import pytest

from carehome.core.exceptions import (
    AuthenticationError,
    CacheError,
    CareHomeError,
    DateRangeValidationError,
    DuplicateResourceError,
    FileNotFoundInStorageError,
    InactiveProfileError,
    InvalidCredentialsError,
    InvalidInputError,
    PayloadTooLargeError,
    PolicyDeniedError,
    ResourceNotFoundError,
    SessionExpiredError,
    SignatureError,
    StorageError,
)


@pytest.mark.parametrize(
    ("exc", "status", "code"),
    [
        (InvalidInputError(), 400, "INVALID_INPUT"),
        (AuthenticationError(), 401, "AUTHENTICATION_REQUIRED"),
        (InvalidCredentialsError(), 401, "INVALID_CREDENTIALS"),
        (SessionExpiredError(), 401, "SESSION_EXPIRED"),
        (PolicyDeniedError("residents", "SELECT"), 403, "POLICY_DENIED"),
        (InactiveProfileError(), 403, "PROFILE_INACTIVE"),
        (SignatureError(), 403, "INVALID_SIGNATURE"),
        (ResourceNotFoundError("resident", "abc"), 404, "NOT_FOUND"),
        (FileNotFoundInStorageError("a/b.txt"), 404, "FILE_NOT_FOUND"),
        (DuplicateResourceError("profile"), 409, "DUPLICATE_RESOURCE"),
        (PayloadTooLargeError(), 413, "PAYLOAD_TOO_LARGE"),
        (CacheError(), 503, "CACHE_ERROR"),
        (StorageError(), 500, "STORAGE_ERROR"),
    ],
)
def test_status_and_error_codes(exc, status, code):
    assert exc.status_code == status
    assert exc.error_code == code
    assert exc.to_dict()["code"] == code


def test_policy_denied_details():
    exc = PolicyDeniedError("chat_messages", "UPDATE", reason="updated row violates chat_messages policies")
    assert exc.message == "UPDATE on 'chat_messages' is not permitted"
    assert exc.to_dict()["details"] == {
        "table": "chat_messages",
        "operation": "UPDATE",
        "reason": "updated row violates chat_messages policies",
    }


def test_resource_not_found_message():
    exc = ResourceNotFoundError("care_plan", "42")
    assert exc.message == "Care Plan with id '42' not found"
    assert exc.details["resource_id"] == "42"


def test_invalid_input_truncates_value():
    exc = InvalidInputError(field="name", value="x" * 150)
    assert len(exc.details["value"]) == 100


def test_file_not_found_hides_folder():
    exc = FileNotFoundInStorageError("0b1c/secret-report.pdf")
    assert exc.details == {"filename": "secret-report.pdf"}


def test_duplicate_message_mentions_field():
    exc = DuplicateResourceError("profile", field="email", value="a@carehome.example.com")
    assert "email 'a@carehome.example.com'" in exc.message


def test_date_range_error_is_care_home_error():
    assert isinstance(DateRangeValidationError(), CareHomeError)
