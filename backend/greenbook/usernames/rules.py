"""Username normalization and validation rules."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import regex

from greenbook.usernames.profanity import PROFANITY_ERROR_MESSAGE
from greenbook.usernames.profanity import ProfanityGate
from greenbook.usernames.profanity import default_gate

MIN_USERNAME_LENGTH = 3
MAX_USERNAME_LENGTH = 20
_GRAPHEME_PATTERN = regex.compile(r"\X")
_USERNAME_PATTERN = regex.compile(r"[A-Za-z0-9][A-Za-z0-9_-]*")

RESERVED_USERNAMES = frozenset(
    {
        "about",
        "account",
        "admin",
        "administrator",
        "api",
        "app",
        "contact",
        "course",
        "courses",
        "explore",
        "feed",
        "greenbook",
        "help",
        "home",
        "login",
        "logout",
        "me",
        "mod",
        "moderator",
        "null",
        "official",
        "privacy",
        "profile",
        "root",
        "security",
        "settings",
        "signin",
        "signup",
        "staff",
        "support",
        "system",
        "team",
        "terms",
        "undefined",
        "user",
        "users",
        "www",
    }
)


class UsernameInvalidReason(str, Enum):
    """Why a username was rejected; only the first failing check is reported."""

    EMPTY = "empty"
    TOO_SHORT = "too_short"
    TOO_LONG = "too_long"
    BAD_FORMAT = "bad_format"
    RESERVED = "reserved"
    PROFANE = "profane"


REASON_MESSAGES: dict[UsernameInvalidReason, str] = {
    UsernameInvalidReason.EMPTY: "Username is required",
    UsernameInvalidReason.TOO_SHORT: (
        f"Username must be at least {MIN_USERNAME_LENGTH} characters"
    ),
    UsernameInvalidReason.TOO_LONG: (
        f"Username must be {MAX_USERNAME_LENGTH} characters or less"
    ),
    UsernameInvalidReason.BAD_FORMAT: (
        "Username must start with a letter or number and can only contain "
        "letters, numbers, underscores, and hyphens"
    ),
    UsernameInvalidReason.RESERVED: (
        "This username is reserved. Please choose a different username."
    ),
    UsernameInvalidReason.PROFANE: PROFANITY_ERROR_MESSAGE,
}


@dataclass(frozen=True, slots=True)
class UsernameVerdict:
    """Outcome of local username validation."""

    reason: UsernameInvalidReason | None = None

    @property
    def is_valid(self) -> bool:
        return self.reason is None

    @property
    def message(self) -> str | None:
        if self.reason is None:
            return None
        return REASON_MESSAGES[self.reason]


VALID = UsernameVerdict()


class UsernameValidationError(ValueError):
    """Raised when a username violates format, reserved-word or profanity rules."""

    def __init__(self, reason: UsernameInvalidReason) -> None:
        super().__init__(REASON_MESSAGES[reason])
        self.reason = reason


def normalize_username(raw_username: str) -> str:
    """Canonical form: trimmed and lower-cased. Used as the uniqueness key."""
    return raw_username.strip().lower()


def display_username(raw_username: str) -> str:
    """Display form: trimmed, original casing kept."""
    return raw_username.strip()


def count_graphemes(value: str) -> int:
    """Count user-visible characters using grapheme clusters."""
    return len(_GRAPHEME_PATTERN.findall(value))


def is_reserved_username(username: str) -> bool:
    return normalize_username(username) in RESERVED_USERNAMES


def validate_username(
    raw_username: str,
    *,
    gate: ProfanityGate | None = None,
) -> UsernameVerdict:
    """Run the ordered checks and return the first failure, or a valid verdict."""
    trimmed = display_username(raw_username)
    if not trimmed:
        return UsernameVerdict(UsernameInvalidReason.EMPTY)

    length = count_graphemes(trimmed)
    if length < MIN_USERNAME_LENGTH:
        return UsernameVerdict(UsernameInvalidReason.TOO_SHORT)
    if length > MAX_USERNAME_LENGTH:
        return UsernameVerdict(UsernameInvalidReason.TOO_LONG)

    if _USERNAME_PATTERN.fullmatch(trimmed) is None:
        return UsernameVerdict(UsernameInvalidReason.BAD_FORMAT)

    canonical = normalize_username(trimmed)
    if canonical in RESERVED_USERNAMES:
        return UsernameVerdict(UsernameInvalidReason.RESERVED)

    if (gate or default_gate()).contains_profanity(canonical):
        return UsernameVerdict(UsernameInvalidReason.PROFANE)

    return VALID


def normalize_and_validate_username(
    raw_username: str,
    *,
    gate: ProfanityGate | None = None,
) -> str:
    """Validate and return the canonical username, raising on the first failure."""
    verdict = validate_username(raw_username, gate=gate)
    if verdict.reason is not None:
        raise UsernameValidationError(verdict.reason)
    return normalize_username(raw_username)
