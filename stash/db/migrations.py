"""Database initialisation and migration helpers.

``init_db(conn)`` is idempotent and safe to call on an existing database.
``migrate(conn)`` runs incremental schema changes tracked in a version table.
"""

from __future__ import annotations

import sqlite3

from loguru import logger

from stash.config import settings


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def init_db(conn: sqlite3.Connection) -> None:
    """Create all tables, indexes and triggers, then apply pending migrations.

    Every DDL statement in ``schema.sql`` uses ``IF NOT EXISTS`` so calling
    this on the same database more than once is safe.

    Args:
        conn: An open, configured SQLite connection.
    """
    sql = settings.schema_path.read_text(encoding="utf-8")
    # executescript() handles the BEGIN…END trigger body and issues an
    # implicit COMMIT first, which is fine for DDL-only scripts.
    conn.executescript(sql)
    _ensure_version_table(conn)
    migrate(conn)


def _ensure_version_table(conn: sqlite3.Connection) -> None:
    """Create the internal schema-version tracking table if absent."""
    with conn:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS schema_version (
                version  INTEGER PRIMARY KEY,
                applied_at INTEGER DEFAULT (unixepoch())
            )
            """
        )


def current_version(conn: sqlite3.Connection) -> int:
    """Return the highest applied migration version (0 if none applied)."""
    row = conn.execute(
        "SELECT COALESCE(MAX(version), 0) FROM schema_version"
    ).fetchone()
    return row[0] if row else 0


# (version, sql) pairs, applied in order and recorded in ``schema_version``.
MIGRATIONS: list[tuple[int, str]] = [
    (
        1,
        "CREATE INDEX IF NOT EXISTS idx_resources_deleted ON resources(user_id, deleted_at)",
    ),
    (
        2,
        "CREATE INDEX IF NOT EXISTS idx_folders_deleted ON resource_folders(user_id, deleted_at)",
    ),
]


def migrate(conn: sqlite3.Connection) -> None:
    """Run any pending incremental migrations."""
    applied = current_version(conn)
    for version, sql in MIGRATIONS:
        if version > applied:
            with conn:
                conn.execute(sql)
                conn.execute(
                    "INSERT INTO schema_version(version) VALUES (?)", (version,)
                )
            logger.debug(f"Applied schema migration {version}")
