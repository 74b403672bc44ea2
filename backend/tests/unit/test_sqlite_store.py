"""SQLite document store specifics."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
import sqlite3

from greenbook.store.sqlite import SqliteDocumentStore


def test_init_schema_is_idempotent(tmp_path: Path) -> None:
    """Input: init_schema twice -> Output: documents table exists once."""
    db_path = tmp_path / "docs.sqlite3"
    store = SqliteDocumentStore(str(db_path))
    store.init_schema()
    store.init_schema()

    conn = sqlite3.connect(db_path)
    try:
        tables = conn.execute(
            "SELECT name FROM sqlite_master WHERE type = 'table' AND name = 'documents'"
        ).fetchall()
    finally:
        conn.close()
    assert len(tables) == 1


def test_documents_are_stored_as_json_rows(tmp_path: Path) -> None:
    """Input: create document -> Output: JSON row keyed by collection and key."""
    db_path = tmp_path / "docs.sqlite3"
    store = SqliteDocumentStore(str(db_path))
    store.init_schema()
    asyncio.run(store.create("usernames", "bob", {"owner_id": "u1"}))

    conn = sqlite3.connect(db_path)
    try:
        row = conn.execute(
            "SELECT data FROM documents WHERE collection = ? AND doc_key = ?",
            ("usernames", "bob"),
        ).fetchone()
    finally:
        conn.close()
    assert json.loads(row[0]) == {"owner_id": "u1"}


def test_data_survives_new_store_instance(tmp_path: Path) -> None:
    """Input: write with one instance, read with another -> Output: same document."""
    db_path = str(tmp_path / "docs.sqlite3")
    writer = SqliteDocumentStore(db_path)
    writer.init_schema()
    asyncio.run(writer.create("users", "u1", {"first_name": "Ann"}))

    assert asyncio.run(SqliteDocumentStore(db_path).get("users", "u1")) == {"first_name": "Ann"}
