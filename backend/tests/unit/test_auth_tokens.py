"""Access token encode/decode contract."""

from __future__ import annotations

from datetime import datetime
from datetime import timedelta
from datetime import timezone

import jwt
import pytest

from greenbook.core.tokens import ALGORITHM
from greenbook.core.tokens import AccessTokenExpiredError
from greenbook.core.tokens import AccessTokenInvalidError
from greenbook.core.tokens import create_access_token
from greenbook.core.tokens import decode_access_token

SECRET = "token-test-secret-key-32-bytes-minimum"
NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def test_token_round_trip_carries_principal_id() -> None:
    """Input: token for principal p1 -> Output: decoded sub p1."""
    token = create_access_token(principal_id="p1", secret=SECRET, now=NOW, expires_in_seconds=60)
    payload = decode_access_token(token, secret=SECRET, now=NOW + timedelta(seconds=59))
    assert payload["sub"] == "p1"


def test_expired_token_is_rejected() -> None:
    """Input: token decoded at expiry -> Output: AccessTokenExpiredError."""
    token = create_access_token(principal_id="p1", secret=SECRET, now=NOW, expires_in_seconds=60)
    with pytest.raises(AccessTokenExpiredError):
        decode_access_token(token, secret=SECRET, now=NOW + timedelta(seconds=60))


def test_wrong_secret_is_invalid() -> None:
    """Input: token signed with another secret -> Output: AccessTokenInvalidError."""
    token = create_access_token(principal_id="p1", secret=SECRET, now=NOW, expires_in_seconds=60)
    with pytest.raises(AccessTokenInvalidError):
        decode_access_token(token, secret="x" * 40, now=NOW)


def test_token_without_subject_is_invalid() -> None:
    """Input: signed token missing sub -> Output: AccessTokenInvalidError."""
    exp = int((NOW + timedelta(seconds=60)).timestamp())
    token = jwt.encode({"exp": exp}, SECRET, algorithm=ALGORITHM)
    with pytest.raises(AccessTokenInvalidError):
        decode_access_token(token, secret=SECRET, now=NOW)


def test_garbage_token_is_invalid() -> None:
    """Input: 'not-a-jwt' -> Output: AccessTokenInvalidError."""
    with pytest.raises(AccessTokenInvalidError):
        decode_access_token("not-a-jwt", secret=SECRET, now=NOW)
