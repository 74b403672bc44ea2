"""Auth principals and request bodies."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel
from pydantic import Field


@dataclass(frozen=True, slots=True)
class AuthPrincipal:
    """Authenticated identity issued by the auth provider."""

    principal_id: str
    email: str
    display_name: str | None = None
    photo_url: str | None = None


@dataclass(frozen=True, slots=True)
class FederatedProfile:
    """Identity asserted by an external OAuth provider."""

    provider: str
    subject: str
    email: str
    display_name: str | None = None
    avatar_url: str | None = None
    email_verified: bool = False


class SignUpRequest(BaseModel):
    """POST /api/auth/signup request body."""

    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    username: str
    email: str
    password: str


class SignInRequest(BaseModel):
    """POST /api/auth/login request body."""

    email: str
    password: str


class FederatedSignInRequest(BaseModel):
    """POST /api/auth/federated request body: the provider-issued ID token."""

    id_token: str = Field(min_length=1)
