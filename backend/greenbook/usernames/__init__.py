"""Username rules: normalization, validation verdicts and the profanity gate."""

from greenbook.usernames.profanity import ProfanityGate
from greenbook.usernames.profanity import contains_profanity
from greenbook.usernames.rules import RESERVED_USERNAMES
from greenbook.usernames.rules import UsernameInvalidReason
from greenbook.usernames.rules import UsernameValidationError
from greenbook.usernames.rules import UsernameVerdict
from greenbook.usernames.rules import display_username
from greenbook.usernames.rules import is_reserved_username
from greenbook.usernames.rules import normalize_and_validate_username
from greenbook.usernames.rules import normalize_username
from greenbook.usernames.rules import validate_username

__all__ = [
    "RESERVED_USERNAMES",
    "ProfanityGate",
    "UsernameInvalidReason",
    "UsernameValidationError",
    "UsernameVerdict",
    "contains_profanity",
    "display_username",
    "is_reserved_username",
    "normalize_and_validate_username",
    "normalize_username",
    "validate_username",
]
