"""Concurrent claims of the same username: exactly one writer wins."""

from __future__ import annotations

import asyncio
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
import threading

from greenbook.identity.errors import ProfileChangedError
from greenbook.identity.errors import ProfileNotFoundError
from greenbook.identity.errors import UsernameTakenError
from greenbook.identity.repository import USERNAMES_COLLECTION
from greenbook.identity.repository import USERS_COLLECTION
from greenbook.identity.service import UserProfileService
from greenbook.store.memory import InMemoryDocumentStore
from greenbook.store.sqlite import SqliteDocumentStore
from tests.identity_testkit import StaleReadStore
from tests.identity_testkit import assert_uniqueness_invariant
from tests.identity_testkit import make_draft
from tests.identity_testkit import snapshot_collections


def test_concurrent_creates_on_memory_store_have_one_winner() -> None:
    """Contract: 8 tasks create 'Golfer' variants at once; one succeeds, seven get USERNAME_TAKEN."""
    store = InMemoryDocumentStore(latency_seconds=0.001)
    profiles = UserProfileService(store)
    spellings = ["Golfer", "golfer", "GOLFER", " golfer ", "GoLfEr", "gOLFER", "Golfer ", "golfeR"]

    async def scenario() -> list[object]:
        return await asyncio.gather(
            *(
                profiles.create_with_username(make_draft(name), f"p{index}")
                for index, name in enumerate(spellings)
            ),
            return_exceptions=True,
        )

    results = asyncio.run(scenario())
    winners = [result for result in results if not isinstance(result, Exception)]
    losers = [result for result in results if isinstance(result, UsernameTakenError)]
    assert len(winners) == 1
    assert len(losers) == len(spellings) - 1
    assert set(store.documents(USERNAMES_COLLECTION)) == {"golfer"}
    assert set(store.documents(USERS_COLLECTION)) == {winners[0].principal_id}
    assert_uniqueness_invariant(
        store.documents(USERS_COLLECTION), store.documents(USERNAMES_COLLECTION)
    )


def test_stale_availability_check_cannot_steal_a_rename() -> None:
    """Contract: renames that both passed availability race; create-if-absent keeps one owner."""
    store = StaleReadStore()
    profiles = UserProfileService(store)

    async def scenario() -> list[object]:
        await profiles.create_with_username(make_draft("first"), "p1")
        await profiles.create_with_username(make_draft("second"), "p2")
        return await asyncio.gather(
            profiles.rename_username("Champion", "p1"),
            profiles.rename_username("champion", "p2"),
            return_exceptions=True,
        )

    results = asyncio.run(scenario())
    winners = [result for result in results if not isinstance(result, Exception)]
    assert len(winners) == 1
    assert sum(isinstance(result, UsernameTakenError) for result in results) == 1

    users = store.documents(USERS_COLLECTION)
    usernames = store.documents(USERNAMES_COLLECTION)
    loser_id = "p2" if winners[0].principal_id == "p1" else "p1"
    assert usernames["champion"]["owner_id"] == winners[0].principal_id
    assert users[loser_id]["username"] == {"p1": "first", "p2": "second"}[loser_id]
    assert_uniqueness_invariant(users, usernames)


def test_concurrent_creates_on_sqlite_from_threads_have_one_winner(tmp_path: Path) -> None:
    """Contract: 6 threads with separate event loops claim 'birdie'; one profile survives."""
    db_path = str(tmp_path / "race.sqlite3")
    SqliteDocumentStore(db_path).init_schema()
    barrier = threading.Barrier(6)

    def claim(index: int) -> str:
        profiles = UserProfileService(SqliteDocumentStore(db_path))
        barrier.wait()
        try:
            asyncio.run(profiles.create_with_username(make_draft("Birdie"), f"p{index}"))
        except UsernameTakenError:
            return "taken"
        return "won"

    with ThreadPoolExecutor(max_workers=6) as pool:
        outcomes = list(pool.map(claim, range(6)))

    assert outcomes.count("won") == 1
    assert outcomes.count("taken") == 5

    users, usernames = asyncio.run(snapshot_collections(SqliteDocumentStore(db_path)))
    assert set(usernames) == {"birdie"}
    assert len(users) == 1
    assert_uniqueness_invariant(users, usernames)


def test_double_submitted_rename_leaves_no_orphan_reservation() -> None:
    """Contract: one principal renames to 'bob' and 'carol' at once; one wins, the other index entry never lands."""
    store = InMemoryDocumentStore(latency_seconds=0.001)
    profiles = UserProfileService(store)

    async def scenario() -> list[object]:
        await profiles.create_with_username(make_draft("alice"), "p1")
        return await asyncio.gather(
            profiles.rename_username("bob", "p1"),
            profiles.rename_username("carol", "p1"),
            return_exceptions=True,
        )

    results = asyncio.run(scenario())
    winners = [result for result in results if not isinstance(result, Exception)]
    assert len(winners) == 1
    assert sum(isinstance(result, ProfileChangedError) for result in results) == 1

    users = store.documents(USERS_COLLECTION)
    usernames = store.documents(USERNAMES_COLLECTION)
    assert set(usernames) == {winners[0].username}
    assert users["p1"]["username"] == winners[0].username
    assert_uniqueness_invariant(users, usernames)


def test_delete_racing_a_rename_leaves_no_orphan_reservation() -> None:
    """Contract: delete and rename of one profile at once; whichever loses aborts cleanly."""
    store = InMemoryDocumentStore(latency_seconds=0.001)
    profiles = UserProfileService(store)

    async def scenario() -> list[object]:
        await profiles.create_with_username(make_draft("alice"), "p1")
        return await asyncio.gather(
            profiles.delete_identity("p1"),
            profiles.rename_username("bob", "p1"),
            return_exceptions=True,
        )

    deleted, renamed = asyncio.run(scenario())
    users = store.documents(USERS_COLLECTION)
    usernames = store.documents(USERNAMES_COLLECTION)
    if deleted is None:
        assert isinstance(renamed, ProfileNotFoundError)
        assert users == {}
        assert usernames == {}
    else:
        assert isinstance(deleted, ProfileChangedError)
        assert set(usernames) == {"bob"}
    assert_uniqueness_invariant(users, usernames)


def test_double_submitted_rename_on_sqlite_from_threads(tmp_path: Path) -> None:
    """Contract: 4 threads rename p1 to different names at once; exactly one reservation remains."""
    db_path = str(tmp_path / "rename-race.sqlite3")
    SqliteDocumentStore(db_path).init_schema()
    asyncio.run(
        UserProfileService(SqliteDocumentStore(db_path)).create_with_username(
            make_draft("alice"), "p1"
        )
    )
    barrier = threading.Barrier(4)

    def rename(name: str) -> str:
        profiles = UserProfileService(SqliteDocumentStore(db_path))
        barrier.wait()
        try:
            asyncio.run(profiles.rename_username(name, "p1"))
        except ProfileChangedError:
            return "changed"
        return "won"

    with ThreadPoolExecutor(max_workers=4) as pool:
        outcomes = list(pool.map(rename, ["bob", "carol", "dave", "erin"]))

    assert outcomes.count("won") >= 1

    users, usernames = asyncio.run(snapshot_collections(SqliteDocumentStore(db_path)))
    assert len(usernames) == 1
    assert set(usernames) == {users["p1"]["username"]}
    assert_uniqueness_invariant(users, usernames)
