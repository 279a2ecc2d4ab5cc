"""Password hashing and session token helpers."""

import hashlib
import secrets

from werkzeug.security import check_password_hash, generate_password_hash

MIN_PASSWORD_LENGTH = 8


def hash_password(password: str) -> str:
    """Hash a password for storage."""
    return generate_password_hash(password)


def verify_password(password_hash: str, password: str) -> bool:
    """Check a candidate password against a stored hash."""
    return check_password_hash(password_hash, password)


def generate_session_token() -> str:
    """Generate an opaque bearer token handed to the client at sign-in."""
    return secrets.token_urlsafe(32)


def hash_token(token: str) -> str:
    """Hash a session token using SHA-256.

    Only the hash is stored, so a leaked sessions table cannot be replayed.
    """
    return hashlib.sha256(token.encode()).hexdigest()
