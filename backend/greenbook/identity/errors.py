"""Identity error taxonomy.

Every error carries a stable ``code`` for programmatic handling and a
``user_message`` fit for display.
"""

from __future__ import annotations

from greenbook.usernames.rules import REASON_MESSAGES
from greenbook.usernames.rules import UsernameInvalidReason


class IdentityError(Exception):
    """Base class for identity-service failures."""

    code = "IDENTITY_ERROR"
    default_message = "Something went wrong"

    def __init__(self, message: str | None = None) -> None:
        self.user_message = message or self.default_message
        super().__init__(self.user_message)


class InvalidUsernameError(IdentityError):
    code = "USERNAME_INVALID"

    def __init__(self, reason: UsernameInvalidReason) -> None:
        self.reason = reason
        super().__init__(REASON_MESSAGES[reason])


class UsernameTakenError(IdentityError):
    code = "USERNAME_TAKEN"
    default_message = "Username is already taken"

    def __init__(self, username: str) -> None:
        self.username = username
        super().__init__()


class ProfileNotFoundError(IdentityError):
    code = "PROFILE_NOT_FOUND"
    default_message = "User profile not found"


class InvalidProfileDataError(IdentityError):
    code = "PROFILE_INVALID_DATA"
    default_message = "Invalid user data received"


class ProfileAlreadyExistsError(IdentityError):
    code = "PROFILE_EXISTS"
    default_message = "A profile already exists for this account"


class ProfileChangedError(IdentityError):
    """The profile changed between read and write, e.g. a double-submitted rename."""

    code = "PROFILE_CONFLICT"
    default_message = "Your profile was changed elsewhere. Please try again."


class StoreOperationError(IdentityError):
    """Wraps an underlying store failure."""

    def __init__(self, cause: Exception) -> None:
        self.cause = cause
        super().__init__(f"{self.default_message}: {cause}")


class AvailabilityCheckError(StoreOperationError):
    code = "USERNAME_CHECK_FAILED"
    default_message = "Unable to check username availability"


class CreateFailedError(StoreOperationError):
    code = "PROFILE_CREATE_FAILED"
    default_message = "Failed to create user profile"


class FetchFailedError(StoreOperationError):
    code = "PROFILE_FETCH_FAILED"
    default_message = "Failed to fetch user profile"


class UpdateFailedError(StoreOperationError):
    code = "PROFILE_UPDATE_FAILED"
    default_message = "Failed to update user profile"


class DeleteFailedError(StoreOperationError):
    code = "PROFILE_DELETE_FAILED"
    default_message = "Failed to delete user profile"


class SearchFailedError(StoreOperationError):
    code = "PROFILE_SEARCH_FAILED"
    default_message = "Failed to search users"


class ProfileProvisioningError(IdentityError):
    """The principal exists with the auth provider but its profile write failed."""

    code = "PROFILE_PROVISIONING_FAILED"
    default_message = (
        "Your account was created but your profile could not be saved. "
        "Sign in again to finish setting up."
    )
    username_taken_message = (
        "That username was taken while your account was being created. "
        "Sign in to finish setting up, then pick a new username from your profile."
    )

    def __init__(self, principal_id: str, cause: Exception) -> None:
        self.principal_id = principal_id
        self.cause = cause
        super().__init__(self.username_taken_message if self.lost_username_race else None)

    @property
    def lost_username_race(self) -> bool:
        return isinstance(self.cause, UsernameTakenError)
