from __future__ import annotations

from types import SimpleNamespace

from app.services.internal_auth import (
    INTERNAL_TOKEN_HEADER,
    is_internal_request_authenticated,
    is_valid_internal_token,
)


def test_is_valid_internal_token_accepts_exact_match() -> None:
    assert is_valid_internal_token(expected_token="secret", received_token="secret") is True


def test_is_valid_internal_token_rejects_mismatch_and_missing() -> None:
    assert is_valid_internal_token(expected_token="secret", received_token="other") is False
    assert is_valid_internal_token(expected_token="secret", received_token=None) is False
    assert is_valid_internal_token(expected_token="", received_token="") is False


def test_is_internal_request_authenticated_reads_header() -> None:
    request = SimpleNamespace(headers={INTERNAL_TOKEN_HEADER: "secret"})
    assert is_internal_request_authenticated(request, expected_token="secret") is True

    anonymous = SimpleNamespace(headers={})
    assert is_internal_request_authenticated(anonymous, expected_token="secret") is False
