"""Fake stores and invariant checks shared by identity tests."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from datetime import datetime
from datetime import timedelta
from datetime import timezone
from typing import Any

import jwt

from greenbook.identity.models import ProfileDraft
from greenbook.identity.repository import USERNAMES_COLLECTION
from greenbook.identity.repository import USERS_COLLECTION
from greenbook.store.base import DocumentStore
from greenbook.store.base import StoreError
from greenbook.store.base import WriteBatch
from greenbook.store.memory import InMemoryDocumentStore


FEDERATED_ISSUER = "https://accounts.example.test"
FEDERATED_AUDIENCE = "greenbook-test-client"
FEDERATED_KEY = "greenbook-test-federated-key-32-bytes"


def make_id_token(
    *,
    key: str = FEDERATED_KEY,
    issuer: str = FEDERATED_ISSUER,
    audience: str = FEDERATED_AUDIENCE,
    subject: str = "g-42",
    expires_in: timedelta = timedelta(minutes=5),
    **claims: Any,
) -> str:
    """HS256 provider ID token; extra keyword arguments become claims."""
    now = datetime.now(timezone.utc)
    payload = {
        "iss": issuer,
        "aud": audience,
        "sub": subject,
        "iat": now,
        "exp": now + expires_in,
        **claims,
    }
    return jwt.encode(payload, key, algorithm="HS256")


def make_draft(username: str, *, first_name: str = "Alice", last_name: str = "Smith") -> ProfileDraft:
    return ProfileDraft(
        email=f"{username.strip().lower()}@example.com",
        first_name=first_name,
        last_name=last_name,
        username=username,
    )


class RecordingStore(InMemoryDocumentStore):
    """Memory store that records index lookups and can fail on demand."""

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.exists_calls: list[tuple[str, str]] = []
        self.commit_calls = 0
        self.fail_reads_with: StoreError | None = None
        self.fail_commits_with: StoreError | None = None

    async def exists(self, collection: str, key: str) -> bool:
        self.exists_calls.append((collection, key))
        if self.fail_reads_with is not None:
            raise self.fail_reads_with
        return await super().exists(collection, key)

    async def commit(self, batch: WriteBatch) -> None:
        self.commit_calls += 1
        if self.fail_commits_with is not None:
            raise self.fail_commits_with
        await super().commit(batch)

    def index_lookups(self) -> list[str]:
        return [key for collection, key in self.exists_calls if collection == USERNAMES_COLLECTION]


class StaleReadStore(InMemoryDocumentStore):
    """Every existence check reports "absent", like a read served before a rival commit."""

    async def exists(self, collection: str, key: str) -> bool:
        await asyncio.sleep(0)
        return False


class GatedLookupStore(InMemoryDocumentStore):
    """Index lookups block until the test releases the gate for that username."""

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.gates: dict[str, asyncio.Event] = {}
        self.started: list[str] = []

    def gate_for(self, key: str) -> asyncio.Event:
        return self.gates.setdefault(key, asyncio.Event())

    async def exists(self, collection: str, key: str) -> bool:
        self.started.append(key)
        # Shielded so a cancelled caller does not abort the simulated round trip.
        await asyncio.shield(self.gate_for(key).wait())
        return await super().exists(collection, key)


def assert_uniqueness_invariant(
    users: Mapping[str, Mapping[str, Any]],
    usernames: Mapping[str, Mapping[str, Any]],
) -> None:
    """Index entries and profile usernames must form a bijection."""
    held: dict[str, str] = {}
    for principal_id, document in users.items():
        username = document.get("username")
        if not username:
            continue
        assert username not in held, f"{username!r} held by {held[username]} and {principal_id}"
        held[username] = principal_id

    owners = {username: entry["owner_id"] for username, entry in usernames.items()}
    assert owners == held


async def snapshot_collections(store: DocumentStore) -> tuple[dict, dict]:
    users = {snap.key: snap.data for snap in await store.query(USERS_COLLECTION)}
    usernames = {snap.key: snap.data for snap in await store.query(USERNAMES_COLLECTION)}
    return users, usernames
