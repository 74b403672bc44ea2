"""In-process document store used by tests and local development."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from collections.abc import Mapping
import copy
from datetime import datetime
from typing import Any

from greenbook.core.clock import to_utc_iso
from greenbook.core.clock import utc_now
from greenbook.store.base import DocumentAlreadyExistsError
from greenbook.store.base import DocumentNotFoundError
from greenbook.store.base import DocumentSnapshot
from greenbook.store.base import DocumentStore
from greenbook.store.base import WriteBatch
from greenbook.store.base import check_condition
from greenbook.store.base import matches_query
from greenbook.store.base import resolve_fields


class InMemoryDocumentStore(DocumentStore):
    """Dict-backed store.

    Every operation yields to the event loop once (optionally after a
    simulated round-trip delay) and then runs without suspending, so a
    committed batch is applied atomically with respect to other tasks.
    """

    def __init__(
        self,
        *,
        latency_seconds: float = 0.0,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self._latency_seconds = latency_seconds
        self._clock = clock

    async def _round_trip(self) -> None:
        await asyncio.sleep(self._latency_seconds)

    def _current(self, collection: str, key: str) -> dict[str, Any] | None:
        return self._collections.get(collection, {}).get(key)

    def documents(self, collection: str) -> dict[str, dict[str, Any]]:
        """Synchronous snapshot of a whole collection."""
        return copy.deepcopy(self._collections.get(collection, {}))

    async def get(self, collection: str, key: str) -> dict[str, Any] | None:
        await self._round_trip()
        document = self._current(collection, key)
        return copy.deepcopy(document) if document is not None else None

    async def commit(self, batch: WriteBatch) -> None:
        await self._round_trip()
        commit_time = to_utc_iso(self._clock())
        staged: dict[tuple[str, str], dict[str, Any] | None] = {}

        def current(collection: str, key: str) -> dict[str, Any] | None:
            if (collection, key) in staged:
                return staged[(collection, key)]
            return self._current(collection, key)

        for op in batch.ops:
            existing = current(op.collection, op.key)
            if op.kind == "create":
                if existing is not None:
                    raise DocumentAlreadyExistsError(op.collection, op.key)
                staged[(op.collection, op.key)] = resolve_fields(
                    op.data or {}, commit_time=commit_time
                )
            elif op.kind == "set":
                staged[(op.collection, op.key)] = resolve_fields(
                    op.data or {}, commit_time=commit_time
                )
            elif op.kind == "verify":
                check_condition(op, existing)
            elif op.kind == "update":
                if existing is None:
                    raise DocumentNotFoundError(op.collection, op.key)
                staged[(op.collection, op.key)] = resolve_fields(
                    op.data or {}, commit_time=commit_time, base=existing
                )
            else:
                staged[(op.collection, op.key)] = None

        for (collection, key), document in staged.items():
            documents = self._collections.setdefault(collection, {})
            if document is None:
                documents.pop(key, None)
            else:
                documents[key] = copy.deepcopy(document)

    async def query(
        self,
        collection: str,
        *,
        where: Mapping[str, Any] | None = None,
        prefix: tuple[str, str] | None = None,
        limit: int | None = None,
    ) -> list[DocumentSnapshot]:
        await self._round_trip()
        hits = [
            DocumentSnapshot(key=key, data=copy.deepcopy(data))
            for key, data in self._collections.get(collection, {}).items()
            if matches_query(data, where=where, prefix=prefix)
        ]
        if prefix is not None:
            field_name = prefix[0]
            hits.sort(key=lambda snapshot: (snapshot.data[field_name], snapshot.key))
        else:
            hits.sort(key=lambda snapshot: snapshot.key)
        return hits if limit is None else hits[:limit]
