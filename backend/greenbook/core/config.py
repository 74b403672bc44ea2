"""Application settings for the identity service and tests."""

from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic import model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Typed settings loaded from environment variables or explicit kwargs."""

    greenbook_app_env: str = "dev"
    greenbook_app_host: str = "127.0.0.1"
    greenbook_app_port: int = Field(default=8000, ge=1)
    greenbook_log_level: str = "INFO"

    greenbook_jwt_secret: str = Field(min_length=32)
    greenbook_access_token_expire_seconds: int = Field(default=3600, ge=1)

    greenbook_store_backend: Literal["sqlite", "memory"] = "sqlite"
    greenbook_sqlite_path: str = "greenbook.db"

    greenbook_username_debounce_seconds: float = Field(default=0.5, ge=0)
    greenbook_availability_fail_open_on_permission_denied: bool = True
    greenbook_username_generation_attempts: int = Field(default=10, ge=1)
    greenbook_profanity_words_path: str | None = None

    greenbook_federated_provider: str = "oidc"
    greenbook_federated_issuer: str | None = None
    greenbook_federated_audience: str | None = None
    greenbook_federated_signing_key: str | None = None
    greenbook_federated_algorithms: list[str] = Field(default_factory=lambda: ["HS256"])

    @model_validator(mode="after")
    def validate_fail_open_policy(self) -> "Settings":
        """Refuse to run production with availability checks failing open."""
        if (
            self.greenbook_app_env == "prod"
            and self.greenbook_availability_fail_open_on_permission_denied
        ):
            raise ValueError(
                "GREENBOOK_AVAILABILITY_FAIL_OPEN_ON_PERMISSION_DENIED must be false "
                "when GREENBOOK_APP_ENV=prod"
            )
        return self

    @model_validator(mode="after")
    def validate_federated_config(self) -> "Settings":
        """Federated sign-in needs issuer and audience alongside the signing key."""
        if self.greenbook_federated_signing_key and not (
            self.greenbook_federated_issuer and self.greenbook_federated_audience
        ):
            raise ValueError(
                "GREENBOOK_FEDERATED_ISSUER and GREENBOOK_FEDERATED_AUDIENCE are required "
                "when GREENBOOK_FEDERATED_SIGNING_KEY is set"
            )
        return self

    @property
    def federated_sign_in_enabled(self) -> bool:
        return bool(self.greenbook_federated_signing_key)


def load_settings() -> Settings:
    """Load settings from process environment."""
    return Settings()
