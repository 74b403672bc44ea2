"""Auth REST routes."""

from __future__ import annotations

from fastapi import APIRouter

import greenbook.runtime as runtime
from greenbook.api.deps import issue_session
from greenbook.api.errors import domain_errors
from greenbook.auth.errors import FederatedSignInDisabledError
from greenbook.auth.models import FederatedSignInRequest
from greenbook.auth.models import SignInRequest
from greenbook.auth.models import SignUpRequest
from greenbook.identity import workflows

router = APIRouter()


@router.post("/api/auth/signup")
async def signup(payload: SignUpRequest) -> dict[str, object]:
    """Create the principal, profile and username reservation."""
    with domain_errors():
        record = await workflows.sign_up(
            auth=runtime.auth_provider,
            profiles=runtime.profiles,
            payload=payload,
        )
    return issue_session(record)


@router.post("/api/auth/login")
async def login(payload: SignInRequest) -> dict[str, object]:
    """Authenticate and resume profile provisioning if it never finished."""
    with domain_errors():
        record = await workflows.sign_in(
            auth=runtime.auth_provider,
            profiles=runtime.profiles,
            email=payload.email,
            password=payload.password,
            max_attempts=runtime.settings.greenbook_username_generation_attempts,
        )
    return issue_session(record)


@router.post("/api/auth/federated")
async def federated_login(payload: FederatedSignInRequest) -> dict[str, object]:
    """Sign in with a provider ID token, auto-provisioning a profile for new principals.

    The route answers AUTH_FEDERATED_DISABLED unless a provider issuer,
    audience and signing key are configured.
    """
    with domain_errors():
        if runtime.federated_verifier is None:
            raise FederatedSignInDisabledError()
        profile = runtime.federated_verifier.verify(payload.id_token)
        record = await workflows.federated_sign_in(
            auth=runtime.auth_provider,
            profiles=runtime.profiles,
            profile=profile,
            max_attempts=runtime.settings.greenbook_username_generation_attempts,
        )
    return issue_session(record)
