"""Schema bootstrap for the local auth provider tables."""

from __future__ import annotations

from greenbook.core.db import create_sqlite_connection


CREATE_AUTH_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS principals (
    id TEXT PRIMARY KEY,
    email TEXT NOT NULL UNIQUE,
    password_hash TEXT NULL,
    display_name TEXT NULL,
    photo_url TEXT NULL,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS federated_identities (
    provider TEXT NOT NULL,
    subject TEXT NOT NULL,
    principal_id TEXT NOT NULL,
    created_at TEXT NOT NULL,
    PRIMARY KEY (provider, subject),
    FOREIGN KEY (principal_id) REFERENCES principals(id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_federated_identities_principal_id
    ON federated_identities(principal_id);
"""


def init_auth_schema(sqlite_path: str) -> None:
    """Ensure auth tables/indexes exist."""
    conn = create_sqlite_connection(sqlite_path)
    try:
        conn.executescript(CREATE_AUTH_SCHEMA_SQL)
    finally:
        conn.close()
