"""Document store contract and the bundled backends."""

from greenbook.store.base import DELETE_FIELD
from greenbook.store.base import SERVER_TIMESTAMP
from greenbook.store.base import DocumentAlreadyExistsError
from greenbook.store.base import DocumentConditionFailedError
from greenbook.store.base import DocumentNotFoundError
from greenbook.store.base import DocumentSnapshot
from greenbook.store.base import DocumentStore
from greenbook.store.base import StoreError
from greenbook.store.base import StorePermissionDeniedError
from greenbook.store.base import StoreUnavailableError
from greenbook.store.base import WriteBatch
from greenbook.store.memory import InMemoryDocumentStore
from greenbook.store.sqlite import SqliteDocumentStore

__all__ = [
    "DELETE_FIELD",
    "SERVER_TIMESTAMP",
    "DocumentAlreadyExistsError",
    "DocumentConditionFailedError",
    "DocumentNotFoundError",
    "DocumentSnapshot",
    "DocumentStore",
    "InMemoryDocumentStore",
    "SqliteDocumentStore",
    "StoreError",
    "StorePermissionDeniedError",
    "StoreUnavailableError",
    "WriteBatch",
]
