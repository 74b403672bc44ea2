"""Auth provider errors with user-facing messages."""

from __future__ import annotations


class AuthProviderError(Exception):
    code = "AUTH_ERROR"
    default_message = "Authentication failed"

    def __init__(self, message: str | None = None) -> None:
        self.user_message = message or self.default_message
        super().__init__(self.user_message)


class EmailAlreadyInUseError(AuthProviderError):
    code = "AUTH_EMAIL_IN_USE"
    default_message = "An account with this email already exists. Please sign in instead."


class WeakPasswordError(AuthProviderError):
    code = "AUTH_WEAK_PASSWORD"
    default_message = "Password should be at least 6 characters."


class InvalidEmailError(AuthProviderError):
    code = "AUTH_INVALID_EMAIL"
    default_message = "Please enter a valid email address."


class InvalidCredentialsError(AuthProviderError):
    code = "AUTH_INVALID_CREDENTIALS"
    default_message = "Incorrect email or password."


class PrincipalNotFoundError(AuthProviderError):
    code = "AUTH_PRINCIPAL_NOT_FOUND"
    default_message = "No account found for this user."


class AuthUnavailableError(AuthProviderError):
    code = "AUTH_UNAVAILABLE"
    default_message = "Network error. Please check your connection and try again."


class FederatedTokenInvalidError(AuthProviderError):
    code = "AUTH_FEDERATED_TOKEN_INVALID"
    default_message = "Sign-in with this provider could not be verified."


class FederatedSignInDisabledError(AuthProviderError):
    code = "AUTH_FEDERATED_DISABLED"
    default_message = "Sign-in with an external provider is not available."
