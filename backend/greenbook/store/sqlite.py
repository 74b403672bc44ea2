"""SQLite-backed document store for single-node deployments."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from collections.abc import Iterator
from collections.abc import Mapping
from contextlib import contextmanager
from datetime import datetime
import json
import sqlite3
from typing import Any

from greenbook.core.clock import to_utc_iso
from greenbook.core.clock import utc_now
from greenbook.core.db import create_sqlite_connection
from greenbook.store.base import PREFIX_UPPER_BOUND
from greenbook.store.base import DocumentAlreadyExistsError
from greenbook.store.base import DocumentNotFoundError
from greenbook.store.base import DocumentSnapshot
from greenbook.store.base import DocumentStore
from greenbook.store.base import StoreError
from greenbook.store.base import StoreUnavailableError
from greenbook.store.base import WriteBatch
from greenbook.store.base import check_condition
from greenbook.store.base import resolve_fields

CREATE_DOCUMENT_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS documents (
    collection TEXT NOT NULL,
    doc_key TEXT NOT NULL,
    data TEXT NOT NULL,
    PRIMARY KEY (collection, doc_key)
);
"""


def _json_path(field_name: str) -> str:
    return f"$.{field_name}"


@contextmanager
def _translate_errors() -> Iterator[None]:
    try:
        yield
    except sqlite3.OperationalError as exc:
        raise StoreUnavailableError(str(exc)) from exc
    except sqlite3.DatabaseError as exc:
        raise StoreError(str(exc)) from exc


class SqliteDocumentStore(DocumentStore):
    """Documents as JSON rows; each batch runs in one IMMEDIATE transaction.

    Blocking sqlite3 calls run in worker threads so the event loop never
    waits on disk I/O.
    """

    def __init__(self, path: str, *, clock: Callable[[], datetime] = utc_now) -> None:
        self._path = path
        self._clock = clock

    def init_schema(self) -> None:
        """Ensure the documents table exists."""
        with _translate_errors():
            conn = create_sqlite_connection(self._path)
            try:
                conn.executescript(CREATE_DOCUMENT_SCHEMA_SQL)
            finally:
                conn.close()

    async def get(self, collection: str, key: str) -> dict[str, Any] | None:
        return await asyncio.to_thread(self._get_sync, collection, key)

    async def commit(self, batch: WriteBatch) -> None:
        await asyncio.to_thread(self._commit_sync, batch)

    async def query(
        self,
        collection: str,
        *,
        where: Mapping[str, Any] | None = None,
        prefix: tuple[str, str] | None = None,
        limit: int | None = None,
    ) -> list[DocumentSnapshot]:
        return await asyncio.to_thread(
            self._query_sync, collection, dict(where or {}), prefix, limit
        )

    def _get_sync(self, collection: str, key: str) -> dict[str, Any] | None:
        with _translate_errors():
            conn = create_sqlite_connection(self._path)
            try:
                return self._read(conn, collection, key)
            finally:
                conn.close()

    @staticmethod
    def _read(conn: sqlite3.Connection, collection: str, key: str) -> dict[str, Any] | None:
        row = conn.execute(
            "SELECT data FROM documents WHERE collection = ? AND doc_key = ?",
            (collection, key),
        ).fetchone()
        if row is None:
            return None
        return json.loads(row[0])

    def _commit_sync(self, batch: WriteBatch) -> None:
        commit_time = to_utc_iso(self._clock())
        with _translate_errors():
            conn = create_sqlite_connection(self._path)
            try:
                conn.execute("BEGIN IMMEDIATE")
                for op in batch.ops:
                    if op.kind == "create":
                        document = resolve_fields(op.data or {}, commit_time=commit_time)
                        try:
                            conn.execute(
                                """
                                INSERT INTO documents (collection, doc_key, data)
                                VALUES (?, ?, ?)
                                """,
                                (op.collection, op.key, json.dumps(document, sort_keys=True)),
                            )
                        except sqlite3.IntegrityError as exc:
                            raise DocumentAlreadyExistsError(op.collection, op.key) from exc
                    elif op.kind == "set":
                        document = resolve_fields(op.data or {}, commit_time=commit_time)
                        conn.execute(
                            """
                            INSERT INTO documents (collection, doc_key, data)
                            VALUES (?, ?, ?)
                            ON CONFLICT (collection, doc_key) DO UPDATE SET data = excluded.data
                            """,
                            (op.collection, op.key, json.dumps(document, sort_keys=True)),
                        )
                    elif op.kind == "verify":
                        check_condition(op, self._read(conn, op.collection, op.key))
                    elif op.kind == "update":
                        existing = self._read(conn, op.collection, op.key)
                        if existing is None:
                            raise DocumentNotFoundError(op.collection, op.key)
                        document = resolve_fields(
                            op.data or {}, commit_time=commit_time, base=existing
                        )
                        conn.execute(
                            "UPDATE documents SET data = ? WHERE collection = ? AND doc_key = ?",
                            (json.dumps(document, sort_keys=True), op.collection, op.key),
                        )
                    else:
                        conn.execute(
                            "DELETE FROM documents WHERE collection = ? AND doc_key = ?",
                            (op.collection, op.key),
                        )
                conn.execute("COMMIT")
            except Exception:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                raise
            finally:
                conn.close()

    def _query_sync(
        self,
        collection: str,
        where: dict[str, Any],
        prefix: tuple[str, str] | None,
        limit: int | None,
    ) -> list[DocumentSnapshot]:
        clauses = ["collection = ?"]
        params: list[Any] = [collection]
        for field_name, expected in where.items():
            clauses.append("json_extract(data, ?) = ?")
            params.extend([_json_path(field_name), expected])

        order_by = "doc_key"
        if prefix is not None:
            field_name, value = prefix
            clauses.append("json_extract(data, ?) >= ? AND json_extract(data, ?) < ?")
            params.extend(
                [_json_path(field_name), value, _json_path(field_name), value + PREFIX_UPPER_BOUND]
            )
            order_by = "json_extract(data, ?), doc_key"
            params.append(_json_path(field_name))

        sql = f"SELECT doc_key, data FROM documents WHERE {' AND '.join(clauses)} ORDER BY {order_by}"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)

        with _translate_errors():
            conn = create_sqlite_connection(self._path)
            try:
                rows = conn.execute(sql, params).fetchall()
            finally:
                conn.close()
        return [DocumentSnapshot(key=str(key), data=json.loads(data)) for key, data in rows]
