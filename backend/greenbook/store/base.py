"""Generic transactional key-document store contract.

Documents are JSON-like dicts addressed by ``(collection, key)``. All
mutations go through :class:`WriteBatch`, which a backend must commit
all-or-nothing. ``create`` is create-if-absent; ``set`` is a blind upsert;
``verify`` is a precondition on a document read inside the commit.
"""

from __future__ import annotations

from abc import ABC
from abc import abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any
from typing import Literal

WriteKind = Literal["create", "set", "update", "delete", "verify"]
# Prefix scans cover [prefix, prefix + PREFIX_UPPER_BOUND).
PREFIX_UPPER_BOUND = "\uf8ff"


class _Sentinel:
    def __init__(self, name: str) -> None:
        self._name = name

    def __repr__(self) -> str:
        return self._name


# Replaced by the commit time when the batch is applied.
SERVER_TIMESTAMP: Any = _Sentinel("SERVER_TIMESTAMP")
# Removes the field on update; dropped on create/set.
DELETE_FIELD: Any = _Sentinel("DELETE_FIELD")


class StoreError(Exception):
    """Base class for document store failures."""


class StorePermissionDeniedError(StoreError):
    """Raised when the store's access-control layer rejects an operation."""


class StoreUnavailableError(StoreError):
    """Raised on transport failures (network, locked database, timeouts)."""


class DocumentAlreadyExistsError(StoreError):
    """Raised when a create-if-absent write hits an existing document."""

    def __init__(self, collection: str, key: str) -> None:
        super().__init__(f"{collection}/{key} already exists")
        self.collection = collection
        self.key = key


class DocumentNotFoundError(StoreError):
    """Raised when an update or verify targets a missing document."""

    def __init__(self, collection: str, key: str) -> None:
        super().__init__(f"{collection}/{key} not found")
        self.collection = collection
        self.key = key


class DocumentConditionFailedError(StoreError):
    """Raised when a verified document no longer has the expected field values."""

    def __init__(self, collection: str, key: str) -> None:
        super().__init__(f"{collection}/{key} changed concurrently")
        self.collection = collection
        self.key = key


@dataclass(frozen=True, slots=True)
class WriteOp:
    kind: WriteKind
    collection: str
    key: str
    data: Mapping[str, Any] | None = None


@dataclass(frozen=True, slots=True)
class DocumentSnapshot:
    key: str
    data: dict[str, Any]


class WriteBatch:
    """Ordered list of writes committed as one unit."""

    def __init__(self) -> None:
        self._ops: list[WriteOp] = []

    def __len__(self) -> int:
        return len(self._ops)

    @property
    def ops(self) -> tuple[WriteOp, ...]:
        return tuple(self._ops)

    def create(self, collection: str, key: str, data: Mapping[str, Any]) -> "WriteBatch":
        self._ops.append(WriteOp("create", collection, key, dict(data)))
        return self

    def set(self, collection: str, key: str, data: Mapping[str, Any]) -> "WriteBatch":
        self._ops.append(WriteOp("set", collection, key, dict(data)))
        return self

    def update(self, collection: str, key: str, fields: Mapping[str, Any]) -> "WriteBatch":
        self._ops.append(WriteOp("update", collection, key, dict(fields)))
        return self

    def delete(self, collection: str, key: str) -> "WriteBatch":
        self._ops.append(WriteOp("delete", collection, key))
        return self

    def verify(self, collection: str, key: str, expected: Mapping[str, Any]) -> "WriteBatch":
        """Abort the batch unless the document exists with these field values."""
        self._ops.append(WriteOp("verify", collection, key, dict(expected)))
        return self


def resolve_fields(
    fields: Mapping[str, Any],
    *,
    commit_time: str,
    base: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Apply sentinels and merge fields over an optional existing document."""
    resolved: dict[str, Any] = dict(base or {})
    for name, value in fields.items():
        if value is DELETE_FIELD:
            resolved.pop(name, None)
        elif value is SERVER_TIMESTAMP:
            resolved[name] = commit_time
        else:
            resolved[name] = value
    return resolved


def check_condition(op: WriteOp, existing: Mapping[str, Any] | None) -> None:
    """Raise unless a ``verify`` op holds against the current document."""
    if existing is None:
        raise DocumentNotFoundError(op.collection, op.key)
    for name, expected in (op.data or {}).items():
        if existing.get(name) != expected:
            raise DocumentConditionFailedError(op.collection, op.key)


def matches_query(
    data: Mapping[str, Any],
    *,
    where: Mapping[str, Any] | None,
    prefix: tuple[str, str] | None,
) -> bool:
    for name, expected in (where or {}).items():
        if data.get(name) != expected:
            return False
    if prefix is not None:
        name, value = prefix
        actual = data.get(name)
        if not isinstance(actual, str):
            return False
        if not (value <= actual < value + PREFIX_UPPER_BOUND):
            return False
    return True


class DocumentStore(ABC):
    """Async client for a transactional document database."""

    @abstractmethod
    async def get(self, collection: str, key: str) -> dict[str, Any] | None:
        """Return a copy of the document, or None when absent."""

    @abstractmethod
    async def commit(self, batch: WriteBatch) -> None:
        """Apply every write in the batch atomically or none of them."""

    @abstractmethod
    async def query(
        self,
        collection: str,
        *,
        where: Mapping[str, Any] | None = None,
        prefix: tuple[str, str] | None = None,
        limit: int | None = None,
    ) -> list[DocumentSnapshot]:
        """Equality filters plus an optional ``(field, prefix)`` range."""

    async def exists(self, collection: str, key: str) -> bool:
        return await self.get(collection, key) is not None

    async def create(self, collection: str, key: str, data: Mapping[str, Any]) -> None:
        await self.commit(WriteBatch().create(collection, key, data))

    async def set(self, collection: str, key: str, data: Mapping[str, Any]) -> None:
        await self.commit(WriteBatch().set(collection, key, data))

    async def update(self, collection: str, key: str, fields: Mapping[str, Any]) -> None:
        await self.commit(WriteBatch().update(collection, key, fields))

    async def delete(self, collection: str, key: str) -> None:
        await self.commit(WriteBatch().delete(collection, key))

    async def close(self) -> None:
        return None
