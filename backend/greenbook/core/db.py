"""SQLite connection helpers for local persistence."""

from __future__ import annotations

import sqlite3


def create_sqlite_connection(path: str) -> sqlite3.Connection:
    """Create an autocommit SQLite connection with foreign keys on and a busy timeout."""
    conn = sqlite3.connect(path, timeout=5.0, isolation_level=None, check_same_thread=False)
    conn.execute("PRAGMA foreign_keys=ON")
    conn.execute("PRAGMA journal_mode=WAL")
    return conn
