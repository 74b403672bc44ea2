"""Map identity and auth errors onto HTTP responses."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any
from typing import NoReturn

from fastapi import HTTPException

from greenbook.api.http import api_error
from greenbook.auth.errors import AuthProviderError
from greenbook.auth.errors import AuthUnavailableError
from greenbook.auth.errors import EmailAlreadyInUseError
from greenbook.auth.errors import FederatedSignInDisabledError
from greenbook.auth.errors import FederatedTokenInvalidError
from greenbook.auth.errors import InvalidCredentialsError
from greenbook.auth.errors import InvalidEmailError
from greenbook.auth.errors import PrincipalNotFoundError
from greenbook.auth.errors import WeakPasswordError
from greenbook.identity.errors import IdentityError
from greenbook.identity.errors import InvalidUsernameError
from greenbook.identity.errors import ProfileAlreadyExistsError
from greenbook.identity.errors import ProfileChangedError
from greenbook.identity.errors import ProfileNotFoundError
from greenbook.identity.errors import ProfileProvisioningError
from greenbook.identity.errors import StoreOperationError
from greenbook.identity.errors import UsernameTakenError
from greenbook.store.base import StoreUnavailableError

_STATUS_BY_ERROR: tuple[tuple[type[Exception], int], ...] = (
    (InvalidUsernameError, 400),
    (UsernameTakenError, 409),
    (ProfileAlreadyExistsError, 409),
    (ProfileChangedError, 409),
    (ProfileNotFoundError, 404),
    (EmailAlreadyInUseError, 409),
    (WeakPasswordError, 400),
    (InvalidEmailError, 400),
    (InvalidCredentialsError, 401),
    (PrincipalNotFoundError, 401),
    (FederatedTokenInvalidError, 401),
    (FederatedSignInDisabledError, 404),
    (AuthUnavailableError, 503),
)


def _status_for(exc: IdentityError | AuthProviderError) -> int:
    if isinstance(exc, ProfileProvisioningError) and exc.lost_username_race:
        return 409
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    if isinstance(exc, StoreOperationError) and isinstance(exc.cause, StoreUnavailableError):
        return 503
    return 500


def _detail_for(exc: IdentityError | AuthProviderError) -> dict[str, Any]:
    if isinstance(exc, InvalidUsernameError):
        return {"reason": exc.reason.value}
    if isinstance(exc, UsernameTakenError):
        return {"username": exc.username}
    if isinstance(exc, ProfileProvisioningError):
        detail = {
            "principal_id": exc.principal_id,
            "cause": getattr(exc.cause, "code", type(exc.cause).__name__),
        }
        if isinstance(exc.cause, UsernameTakenError):
            detail["username"] = exc.cause.username
        return detail
    return {}


def raise_domain_error(exc: IdentityError | AuthProviderError) -> NoReturn:
    """Raise the HTTP error for a typed identity/auth failure."""
    raise HTTPException(
        status_code=_status_for(exc),
        detail=api_error(code=exc.code, message=exc.user_message, detail=_detail_for(exc)),
    ) from exc


@contextmanager
def domain_errors() -> Iterator[None]:
    try:
        yield
    except (IdentityError, AuthProviderError) as exc:
        raise_domain_error(exc)


def raise_token_invalid() -> NoReturn:
    raise HTTPException(
        status_code=401,
        detail=api_error(code="AUTH_TOKEN_INVALID", message="invalid access token", detail={}),
    )


def raise_token_expired() -> NoReturn:
    raise HTTPException(
        status_code=401,
        detail=api_error(code="AUTH_TOKEN_EXPIRED", message="access token expired", detail={}),
    )
