"""Unit tests for password and token helpers."""

from carehome.core.security import (
    generate_session_token,
    hash_password,
    hash_token,
    verify_password,
)


def test_password_hash_round_trip():
    hashed = hash_password("correct-horse-battery")
    assert hashed != "correct-horse-battery"
    assert verify_password(hashed, "correct-horse-battery")
    assert not verify_password(hashed, "wrong-password")


def test_password_hashes_are_salted():
    assert hash_password("same-password") != hash_password("same-password")


def test_session_tokens_are_unique_and_url_safe():
    tokens = {generate_session_token() for _ in range(50)}
    assert len(tokens) == 50
    assert all("/" not in t and "+" not in t for t in tokens)


def test_hash_token_is_stable_sha256():
    assert hash_token("abc") == hash_token("abc")
    assert len(hash_token("abc")) == 64
