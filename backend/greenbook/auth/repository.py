"""Persistence helpers for the local auth provider."""

from __future__ import annotations

from greenbook.core.db import create_sqlite_connection

PrincipalRow = tuple[str, str, str | None, str | None, str | None]


def _principal_row(row: tuple) -> PrincipalRow:
    principal_id, email, password_hash, display_name, photo_url = row
    return (str(principal_id), str(email), password_hash, display_name, photo_url)


def insert_principal(
    *,
    sqlite_path: str,
    principal_id: str,
    email: str,
    password_hash: str | None,
    display_name: str | None,
    photo_url: str | None,
    created_at: str,
) -> None:
    """Insert one principal; raises sqlite3.IntegrityError on duplicate email."""
    conn = create_sqlite_connection(sqlite_path)
    try:
        conn.execute("BEGIN")
        conn.execute(
            """
            INSERT INTO principals (id, email, password_hash, display_name, photo_url, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (principal_id, email, password_hash, display_name, photo_url, created_at),
        )
        conn.execute("COMMIT")
    except Exception:
        if conn.in_transaction:
            conn.execute("ROLLBACK")
        raise
    finally:
        conn.close()


def get_principal_by_email(*, sqlite_path: str, email: str) -> PrincipalRow | None:
    conn = create_sqlite_connection(sqlite_path)
    try:
        row = conn.execute(
            """
            SELECT id, email, password_hash, display_name, photo_url
            FROM principals
            WHERE email = ?
            """,
            (email,),
        ).fetchone()
        return None if row is None else _principal_row(row)
    finally:
        conn.close()


def get_principal_by_id(*, sqlite_path: str, principal_id: str) -> PrincipalRow | None:
    conn = create_sqlite_connection(sqlite_path)
    try:
        row = conn.execute(
            """
            SELECT id, email, password_hash, display_name, photo_url
            FROM principals
            WHERE id = ?
            """,
            (principal_id,),
        ).fetchone()
        return None if row is None else _principal_row(row)
    finally:
        conn.close()


def get_principal_by_federated_subject(
    *,
    sqlite_path: str,
    provider: str,
    subject: str,
) -> PrincipalRow | None:
    conn = create_sqlite_connection(sqlite_path)
    try:
        row = conn.execute(
            """
            SELECT p.id, p.email, p.password_hash, p.display_name, p.photo_url
            FROM federated_identities f
            JOIN principals p ON p.id = f.principal_id
            WHERE f.provider = ? AND f.subject = ?
            """,
            (provider, subject),
        ).fetchone()
        return None if row is None else _principal_row(row)
    finally:
        conn.close()


def link_federated_identity(
    *,
    sqlite_path: str,
    provider: str,
    subject: str,
    principal_id: str,
    created_at: str,
) -> None:
    """Bind a provider subject to a principal idempotently."""
    conn = create_sqlite_connection(sqlite_path)
    try:
        conn.execute(
            """
            INSERT INTO federated_identities (provider, subject, principal_id, created_at)
            VALUES (?, ?, ?, ?)
            ON CONFLICT (provider, subject) DO NOTHING
            """,
            (provider, subject, principal_id, created_at),
        )
    finally:
        conn.close()
