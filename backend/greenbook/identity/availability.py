"""Debounced, cancellable username availability checks for live input.

All state changes happen on the event loop that calls :meth:`on_edited_to`;
remote lookups run as tasks on that loop and apply their result only if
they still belong to the latest edit.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
import logging

from greenbook.identity.errors import AvailabilityCheckError
from greenbook.identity.service import UserProfileService
from greenbook.usernames.rules import UsernameInvalidReason
from greenbook.usernames.rules import normalize_username
from greenbook.usernames.rules import validate_username

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.5


class AvailabilityState(str, Enum):
    IDLE = "idle"
    CHECKING = "checking"
    AVAILABLE = "available"
    INVALID = "invalid"
    TAKEN = "taken"
    UNCHANGED = "unchanged"
    NETWORK_ERROR = "network_error"


@dataclass(frozen=True, slots=True)
class AvailabilitySnapshot:
    """What the input field should show for the latest edit."""

    state: AvailabilityState
    query: str = ""
    reason: UsernameInvalidReason | None = None
    message: str | None = None

    @property
    def can_submit(self) -> bool:
        return self.state in (AvailabilityState.AVAILABLE, AvailabilityState.UNCHANGED)


IDLE = AvailabilitySnapshot(AvailabilityState.IDLE)


class UsernameAvailabilityChecker:
    """Collapse rapid edits into at most one in-flight availability lookup.

    Each edit cancels the pending lookup before anything else, runs the
    local rules synchronously, and only schedules a remote lookup after
    the quiet period when they pass. A lookup re-checks that it is still
    current before querying and again after the query resolves.
    """

    def __init__(
        self,
        profiles: UserProfileService,
        *,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        current_username: str | None = None,
        on_change: Callable[[AvailabilitySnapshot], None] | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._profiles = profiles
        self._debounce_seconds = debounce_seconds
        self._current_username = normalize_username(current_username or "")
        self._on_change = on_change
        self._sleep = sleep
        self._generation = 0
        self._pending: asyncio.Task[None] | None = None
        self._snapshot = IDLE

    @property
    def snapshot(self) -> AvailabilitySnapshot:
        return self._snapshot

    @property
    def has_pending_check(self) -> bool:
        return self._pending is not None and not self._pending.done()

    def _publish(self, snapshot: AvailabilitySnapshot) -> None:
        self._snapshot = snapshot
        if self._on_change is not None:
            self._on_change(snapshot)

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    def cancel(self) -> None:
        """Drop any pending lookup; its result will never be applied."""
        self._generation += 1
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None

    def reset(self) -> None:
        """Cancel and return to idle, e.g. when the form is dismissed."""
        self.cancel()
        self._publish(IDLE)

    def on_edited_to(self, text: str) -> AvailabilitySnapshot:
        """Handle one edit of the username field. Must run on the event loop."""
        self.cancel()
        generation = self._generation

        canonical = normalize_username(text)
        if not canonical:
            self._publish(IDLE)
            return self._snapshot

        if self._current_username and canonical == self._current_username:
            self._publish(AvailabilitySnapshot(AvailabilityState.UNCHANGED, query=canonical))
            return self._snapshot

        verdict = validate_username(text, gate=self._profiles.gate)
        if verdict.reason is not None:
            self._publish(
                AvailabilitySnapshot(
                    AvailabilityState.INVALID,
                    query=canonical,
                    reason=verdict.reason,
                    message=verdict.message,
                )
            )
            return self._snapshot

        self._publish(AvailabilitySnapshot(AvailabilityState.CHECKING, query=canonical))
        self._pending = asyncio.get_running_loop().create_task(
            self._check_after_quiet_period(generation, canonical)
        )
        return self._snapshot

    async def wait_settled(self) -> AvailabilitySnapshot:
        """Wait for the pending lookup, if any, and return the latest snapshot."""
        while self._pending is not None and not self._pending.done():
            pending = self._pending
            try:
                await pending
            except asyncio.CancelledError:
                if pending is self._pending:
                    raise
        return self._snapshot

    async def _check_after_quiet_period(self, generation: int, canonical: str) -> None:
        await self._sleep(self._debounce_seconds)
        if not self._is_current(generation):
            return

        try:
            available = await self._profiles.check_username_availability(canonical)
        except AvailabilityCheckError as exc:
            if not self._is_current(generation):
                return
            logger.warning("availability check for %r failed: %s", canonical, exc)
            self._publish(
                AvailabilitySnapshot(
                    AvailabilityState.NETWORK_ERROR,
                    query=canonical,
                    message=exc.default_message,
                )
            )
            return

        if not self._is_current(generation):
            return
        if available:
            self._publish(AvailabilitySnapshot(AvailabilityState.AVAILABLE, query=canonical))
        else:
            self._publish(
                AvailabilitySnapshot(
                    AvailabilityState.TAKEN,
                    query=canonical,
                    message="Username is already taken",
                )
            )
