"""Profanity gate for user-chosen handles."""

from __future__ import annotations

from collections.abc import Iterable
from functools import lru_cache
from importlib import resources
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

# Shorter terms only block exact matches; substring hits need at least this many chars.
MIN_SUBSTRING_TERM_LENGTH = 4
_BUNDLED_WORDS_RESOURCE = "data/profanity_words.txt"

PROFANITY_ERROR_MESSAGE = (
    "Username contains inappropriate content. Please choose a different username."
)


def _parse_terms(lines: Iterable[str]) -> frozenset[str]:
    return frozenset(term for term in (line.strip().lower() for line in lines) if term)


class ProfanityGate:
    """Immutable set of blocked terms with the exact/substring matching heuristic."""

    def __init__(self, terms: Iterable[str] = ()) -> None:
        self._terms = _parse_terms(terms)
        self._substring_terms = tuple(
            sorted(term for term in self._terms if len(term) >= MIN_SUBSTRING_TERM_LENGTH)
        )

    def __len__(self) -> int:
        return len(self._terms)

    @classmethod
    def from_file(cls, path: str | Path) -> "ProfanityGate":
        """Load a newline-separated word list.

        A missing or unreadable list is not fatal: the gate degrades to
        blocking nothing and a warning is logged.
        """
        try:
            content = Path(path).read_text(encoding="utf-8")
        except OSError as exc:
            logger.warning("could not load profanity words from %s: %s", path, exc)
            return cls()
        gate = cls(content.splitlines())
        logger.info("loaded %d profanity words from %s", len(gate), path)
        return gate

    @classmethod
    def bundled(cls) -> "ProfanityGate":
        """Load the word list shipped inside the package."""
        try:
            content = (
                resources.files("greenbook.usernames")
                .joinpath(_BUNDLED_WORDS_RESOURCE)
                .read_text(encoding="utf-8")
            )
        except (OSError, ModuleNotFoundError) as exc:
            logger.warning("could not load bundled profanity words: %s", exc)
            return cls()
        gate = cls(content.splitlines())
        logger.info("loaded %d bundled profanity words", len(gate))
        return gate

    def contains_profanity(self, text: str) -> bool:
        """Return True when text is a blocked term or embeds a long-enough one.

        Substring matching has no word-boundary awareness, so innocuous
        handles that happen to contain a blocked 4+ letter term are
        rejected too.
        """
        normalized = text.strip().lower()
        if not normalized:
            return False
        if normalized in self._terms:
            return True
        return any(term in normalized for term in self._substring_terms)


@lru_cache(maxsize=1)
def default_gate() -> ProfanityGate:
    """Process-wide gate, loaded once on first use."""
    return ProfanityGate.bundled()


def contains_profanity(text: str) -> bool:
    return default_gate().contains_profanity(text)
