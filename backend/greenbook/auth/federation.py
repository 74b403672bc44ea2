"""Verification of identity tokens issued by an external sign-in provider."""

from __future__ import annotations

from collections.abc import Sequence
import logging

import jwt

from greenbook.auth.errors import FederatedTokenInvalidError
from greenbook.auth.models import FederatedProfile
from greenbook.core.config import Settings

logger = logging.getLogger(__name__)

DEFAULT_LEEWAY_SECONDS = 30
_REQUIRED_CLAIMS = ["exp", "iat", "iss", "aud", "sub"]


class FederatedTokenVerifier:
    """Checks signature, issuer, audience and expiry of a provider ID token.

    Only the claims inside a verified token are trusted; the email is
    treated as verified only when the token says ``email_verified: true``.
    """

    def __init__(
        self,
        *,
        provider: str,
        issuer: str,
        audience: str,
        key: str,
        algorithms: Sequence[str] = ("HS256",),
        leeway_seconds: int = DEFAULT_LEEWAY_SECONDS,
    ) -> None:
        self.provider = provider
        self._issuer = issuer
        self._audience = audience
        self._key = key
        self._algorithms = list(algorithms)
        self._leeway_seconds = leeway_seconds

    @classmethod
    def from_settings(cls, settings: Settings) -> "FederatedTokenVerifier | None":
        if not settings.federated_sign_in_enabled:
            return None
        return cls(
            provider=settings.greenbook_federated_provider,
            issuer=str(settings.greenbook_federated_issuer),
            audience=str(settings.greenbook_federated_audience),
            key=str(settings.greenbook_federated_signing_key),
            algorithms=settings.greenbook_federated_algorithms,
        )

    def verify(self, id_token: str) -> FederatedProfile:
        try:
            claims = jwt.decode(
                id_token,
                self._key,
                algorithms=self._algorithms,
                audience=self._audience,
                issuer=self._issuer,
                leeway=self._leeway_seconds,
                options={"require": _REQUIRED_CLAIMS},
            )
        except jwt.InvalidTokenError as exc:
            logger.warning("rejected %s identity token: %s", self.provider, exc)
            raise FederatedTokenInvalidError() from exc

        subject = claims.get("sub")
        email = claims.get("email")
        if not isinstance(subject, str) or not subject:
            raise FederatedTokenInvalidError()
        if not isinstance(email, str) or not email:
            raise FederatedTokenInvalidError()

        name = claims.get("name")
        picture = claims.get("picture")
        return FederatedProfile(
            provider=self.provider,
            subject=subject,
            email=email,
            display_name=name if isinstance(name, str) else None,
            avatar_url=picture if isinstance(picture, str) else None,
            email_verified=claims.get("email_verified") is True,
        )
