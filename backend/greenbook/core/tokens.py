"""JWT access token helpers for the HTTP surface."""

from __future__ import annotations

from datetime import datetime
from datetime import timedelta
from datetime import timezone
from typing import Any

import jwt

ALGORITHM = "HS256"


class AccessTokenError(ValueError):
    """Base access token error."""


class AccessTokenInvalidError(AccessTokenError):
    """Raised when an access token cannot be decoded or is malformed."""


class AccessTokenExpiredError(AccessTokenError):
    """Raised when an access token is expired."""


def create_access_token(
    *,
    principal_id: str,
    secret: str,
    now: datetime,
    expires_in_seconds: int,
) -> str:
    """Create a JWT whose subject is the authenticated principal id."""
    exp = int((now + timedelta(seconds=expires_in_seconds)).timestamp())
    payload = {"sub": principal_id, "exp": exp}
    return jwt.encode(payload, secret, algorithm=ALGORITHM)


def decode_access_token(token: str, *, secret: str, now: datetime) -> dict[str, Any]:
    """Decode and validate an access token."""
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[ALGORITHM],
            options={"verify_exp": False},
        )
    except jwt.InvalidTokenError as exc:
        raise AccessTokenInvalidError("invalid access token") from exc

    exp = payload.get("exp")
    if not isinstance(exp, int):
        raise AccessTokenInvalidError("missing or invalid exp")

    sub = payload.get("sub")
    if not isinstance(sub, str) or not sub:
        raise AccessTokenInvalidError("missing or invalid sub")

    now_ts = int(now.astimezone(timezone.utc).timestamp())
    if now_ts >= exp:
        raise AccessTokenExpiredError("access token expired")

    return payload
