"""Identity record store and username uniqueness index.

The backing store has no unique constraint, so uniqueness is enforced with
a secondary ``usernames`` collection keyed by canonical username. Every
write that reserves or releases a username touches the profile and the
index in one atomic batch, and reservations use create-if-absent so a
concurrent writer loses with :class:`UsernameTakenError` instead of
overwriting the winner.
"""

from __future__ import annotations

import logging

from greenbook.identity.errors import AvailabilityCheckError
from greenbook.identity.errors import CreateFailedError
from greenbook.identity.errors import DeleteFailedError
from greenbook.identity.errors import FetchFailedError
from greenbook.identity.errors import InvalidUsernameError
from greenbook.identity.errors import ProfileAlreadyExistsError
from greenbook.identity.errors import ProfileChangedError
from greenbook.identity.errors import ProfileNotFoundError
from greenbook.identity.errors import SearchFailedError
from greenbook.identity.errors import UpdateFailedError
from greenbook.identity.errors import UsernameTakenError
from greenbook.identity.models import IdentityRecord
from greenbook.identity.models import ProfileDraft
from greenbook.identity.models import ProfilePatch
from greenbook.identity.models import UsernameIndexEntry
from greenbook.identity.repository import USERNAMES_COLLECTION
from greenbook.identity.repository import USERS_COLLECTION
from greenbook.identity.repository import index_entry_document
from greenbook.identity.repository import index_entry_from_document
from greenbook.identity.repository import new_profile_document
from greenbook.identity.repository import patch_to_fields
from greenbook.identity.repository import profile_from_document
from greenbook.identity.repository import username_fields
from greenbook.store.base import DocumentAlreadyExistsError
from greenbook.store.base import DocumentConditionFailedError
from greenbook.store.base import DocumentNotFoundError
from greenbook.store.base import DocumentStore
from greenbook.store.base import StoreError
from greenbook.store.base import StorePermissionDeniedError
from greenbook.store.base import WriteBatch
from greenbook.usernames.profanity import ProfanityGate
from greenbook.usernames.rules import display_username
from greenbook.usernames.rules import normalize_username
from greenbook.usernames.rules import validate_username

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_LIMIT = 20


class UserProfileService:
    """CRUD and atomic rename over profiles and the username index."""

    def __init__(
        self,
        store: DocumentStore,
        *,
        gate: ProfanityGate | None = None,
        fail_open_on_permission_denied: bool = True,
    ) -> None:
        self._store = store
        self._gate = gate
        self._fail_open_on_permission_denied = fail_open_on_permission_denied

    @property
    def gate(self) -> ProfanityGate | None:
        return self._gate

    def _validated(self, raw_username: str) -> tuple[str, str]:
        verdict = validate_username(raw_username, gate=self._gate)
        if verdict.reason is not None:
            raise InvalidUsernameError(verdict.reason)
        return normalize_username(raw_username), display_username(raw_username)

    async def check_username_availability(self, username: str) -> bool:
        """Return True when the username is valid and unclaimed.

        Locally invalid names are reported unavailable without touching the
        store. Transport failures raise :class:`AvailabilityCheckError`. An
        authorization denial is treated as available when the service is
        configured to fail open; that setting exists for misconfigured
        security rules and must stay off in production.
        """
        if not validate_username(username, gate=self._gate).is_valid:
            return False

        canonical = normalize_username(username)
        try:
            exists = await self._store.exists(USERNAMES_COLLECTION, canonical)
        except StorePermissionDeniedError as exc:
            if self._fail_open_on_permission_denied:
                logger.warning(
                    "permission denied reading username index for %r; failing open", canonical
                )
                return True
            raise AvailabilityCheckError(exc) from exc
        except StoreError as exc:
            logger.error("username availability check failed for %r: %s", canonical, exc)
            raise AvailabilityCheckError(exc) from exc
        return not exists

    async def create_with_username(self, draft: ProfileDraft, principal_id: str) -> IdentityRecord:
        """Write the profile and its index entry in one batch."""
        canonical, display = self._validated(draft.username)

        batch = WriteBatch()
        batch.create(
            USERS_COLLECTION,
            principal_id,
            new_profile_document(draft, username=canonical, username_display=display),
        )
        batch.create(
            USERNAMES_COLLECTION,
            canonical,
            index_entry_document(owner_id=principal_id, username_display=display),
        )
        try:
            await self._store.commit(batch)
        except DocumentAlreadyExistsError as exc:
            if exc.collection == USERNAMES_COLLECTION:
                raise UsernameTakenError(canonical) from exc
            raise ProfileAlreadyExistsError() from exc
        except StoreError as exc:
            logger.error("creating profile for principal %s failed: %s", principal_id, exc)
            raise CreateFailedError(exc) from exc

        logger.info("created profile for principal %s with username %r", principal_id, canonical)
        return await self.get_profile(principal_id)

    async def rename_username(self, new_username: str, principal_id: str) -> IdentityRecord:
        """Release the current username and reserve a new one atomically.

        Availability is re-checked here because the caller's debounced check
        may be stale; the index entry is still written create-if-absent, so
        a rival that commits after this re-check makes the batch fail. The
        batch also verifies the profile still holds the username read here,
        so two renames of the same profile cannot both release it.
        """
        canonical, display = self._validated(new_username)
        current = await self.get_profile(principal_id)

        batch = WriteBatch()
        batch.verify(USERS_COLLECTION, principal_id, {"username": current.username})
        batch.update(USERS_COLLECTION, principal_id, username_fields(canonical, display))
        if canonical == current.username:
            # Casing-only change: the reservation itself stays.
            batch.update(USERNAMES_COLLECTION, canonical, {"username_display": display})
        else:
            if not await self.check_username_availability(canonical):
                raise UsernameTakenError(canonical)
            batch.create(
                USERNAMES_COLLECTION,
                canonical,
                index_entry_document(owner_id=principal_id, username_display=display),
            )
            if current.username:
                batch.delete(USERNAMES_COLLECTION, current.username)

        try:
            await self._store.commit(batch)
        except DocumentAlreadyExistsError as exc:
            raise UsernameTakenError(canonical) from exc
        except DocumentConditionFailedError as exc:
            logger.warning("rename of principal %s lost to a concurrent change", principal_id)
            raise ProfileChangedError() from exc
        except DocumentNotFoundError as exc:
            if exc.collection == USERS_COLLECTION:
                raise ProfileNotFoundError() from exc
            logger.error("username index entry %r missing for principal %s", canonical, principal_id)
            raise UpdateFailedError(exc) from exc
        except StoreError as exc:
            logger.error("renaming principal %s to %r failed: %s", principal_id, canonical, exc)
            raise UpdateFailedError(exc) from exc

        logger.info(
            "renamed principal %s from %r to %r", principal_id, current.username, canonical
        )
        return await self.get_profile(principal_id)

    async def delete_identity(self, principal_id: str) -> None:
        """Delete the profile together with its index entry."""
        current = await self.get_profile(principal_id)

        batch = WriteBatch()
        batch.verify(USERS_COLLECTION, principal_id, {"username": current.username})
        batch.delete(USERS_COLLECTION, principal_id)
        if current.username:
            batch.delete(USERNAMES_COLLECTION, current.username)
        try:
            await self._store.commit(batch)
        except DocumentConditionFailedError as exc:
            raise ProfileChangedError() from exc
        except DocumentNotFoundError as exc:
            raise ProfileNotFoundError() from exc
        except StoreError as exc:
            logger.error("deleting profile for principal %s failed: %s", principal_id, exc)
            raise DeleteFailedError(exc) from exc
        logger.info("deleted profile for principal %s", principal_id)

    async def get_profile(self, principal_id: str) -> IdentityRecord:
        try:
            data = await self._store.get(USERS_COLLECTION, principal_id)
        except StoreError as exc:
            logger.error("loading profile for principal %s failed: %s", principal_id, exc)
            raise FetchFailedError(exc) from exc
        if data is None:
            raise ProfileNotFoundError()
        return profile_from_document(principal_id, data)

    async def profile_exists(self, principal_id: str) -> bool:
        try:
            return await self._store.exists(USERS_COLLECTION, principal_id)
        except StoreError as exc:
            raise FetchFailedError(exc) from exc

    async def get_index_entry(self, username: str) -> UsernameIndexEntry | None:
        canonical = normalize_username(username)
        try:
            data = await self._store.get(USERNAMES_COLLECTION, canonical)
        except StoreError as exc:
            raise FetchFailedError(exc) from exc
        if data is None:
            return None
        return index_entry_from_document(canonical, data)

    async def get_by_username(self, username: str) -> IdentityRecord:
        """Index lookup then profile fetch; the two reads are not atomic."""
        entry = await self.get_index_entry(username)
        if entry is None:
            raise ProfileNotFoundError()
        return await self.get_profile(entry.owner_id)

    async def update_profile(self, principal_id: str, patch: ProfilePatch) -> IdentityRecord:
        """Apply a profile patch. Usernames change only through rename."""
        if patch.is_empty:
            return await self.get_profile(principal_id)
        try:
            await self._store.update(USERS_COLLECTION, principal_id, patch_to_fields(patch))
        except DocumentNotFoundError as exc:
            raise ProfileNotFoundError() from exc
        except StoreError as exc:
            logger.error("updating profile for principal %s failed: %s", principal_id, exc)
            raise UpdateFailedError(exc) from exc
        return await self.get_profile(principal_id)

    async def search_usernames(
        self,
        prefix: str,
        *,
        limit: int = DEFAULT_SEARCH_LIMIT,
    ) -> list[IdentityRecord]:
        canonical_prefix = normalize_username(prefix)
        if not canonical_prefix:
            return []
        try:
            snapshots = await self._store.query(
                USERS_COLLECTION,
                prefix=("username", canonical_prefix),
                limit=limit,
            )
        except StoreError as exc:
            logger.error("username search for %r failed: %s", canonical_prefix, exc)
            raise SearchFailedError(exc) from exc
        return [profile_from_document(snapshot.key, snapshot.data) for snapshot in snapshots]

    async def search_users(
        self,
        first_name: str,
        last_name: str | None = None,
    ) -> list[IdentityRecord]:
        where = {"first_name": first_name}
        if last_name is not None:
            where["last_name"] = last_name
        try:
            snapshots = await self._store.query(USERS_COLLECTION, where=where)
        except StoreError as exc:
            logger.error("user search failed: %s", exc)
            raise SearchFailedError(exc) from exc
        return [profile_from_document(snapshot.key, snapshot.data) for snapshot in snapshots]
