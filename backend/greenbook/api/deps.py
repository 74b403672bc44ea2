"""Dependency helpers shared by API routers."""

from __future__ import annotations

from fastapi import Header

import greenbook.runtime as runtime
from greenbook.api.errors import raise_token_expired
from greenbook.api.errors import raise_token_invalid
from greenbook.core.clock import utc_now
from greenbook.core.tokens import AccessTokenExpiredError
from greenbook.core.tokens import AccessTokenInvalidError
from greenbook.core.tokens import create_access_token
from greenbook.core.tokens import decode_access_token
from greenbook.identity.models import IdentityRecord


def principal_from_token(access_token: str) -> str:
    """Return the principal id carried by a valid access token."""
    try:
        payload = decode_access_token(
            access_token,
            secret=runtime.settings.greenbook_jwt_secret,
            now=utc_now(),
        )
    except AccessTokenExpiredError:
        raise_token_expired()
    except AccessTokenInvalidError:
        raise_token_invalid()
    return str(payload["sub"])


def require_current_principal(
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> str:
    """Read and validate Bearer access token from Authorization header."""
    if authorization is None:
        raise_token_invalid()

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise_token_invalid()
    return principal_from_token(token)


def issue_session(record: IdentityRecord) -> dict[str, object]:
    """Access token plus the caller's own profile."""
    expires_in = runtime.settings.greenbook_access_token_expire_seconds
    return {
        "access_token": create_access_token(
            principal_id=record.principal_id,
            secret=runtime.settings.greenbook_jwt_secret,
            now=utc_now(),
            expires_in_seconds=expires_in,
        ),
        "token_type": "bearer",
        "expires_in": expires_in,
        "user": record.to_public_dict(include_private=True),
    }
