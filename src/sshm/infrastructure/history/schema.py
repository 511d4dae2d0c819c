"""
Schema migrations for the connection history database.

Migrations are applied in version order and recorded in
``schema_migrations``; a migration already listed there is never re-run.
"""
# pylint: disable=line-too-long

import logging
import sqlite3
from datetime import datetime, timezone
from typing import List, Sequence, Tuple

logger = logging.getLogger(__name__)

Migration = Tuple[int, str, Sequence[str]]

MIGRATIONS: List[Migration] = [
    (
        1,
        "create connection_history and session_health tables",
        (
            """
            CREATE TABLE IF NOT EXISTS connection_history (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                host_name TEXT NOT NULL,
                group_name TEXT,
                host TEXT NOT NULL,
                user TEXT NOT NULL,
                port INTEGER NOT NULL DEFAULT 0,
                connection_type TEXT NOT NULL,
                status TEXT NOT NULL,
                start_time TEXT NOT NULL,
                end_time TEXT,
                duration_seconds REAL,
                error_message TEXT,
                session_id TEXT,
                created_at TEXT NOT NULL
            )
            """,
            """
            CREATE TABLE IF NOT EXISTS session_health (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                session_id TEXT NOT NULL,
                host_name TEXT NOT NULL,
                check_time TEXT NOT NULL,
                status TEXT NOT NULL,
                response_time_ms INTEGER NOT NULL DEFAULT 0,
                error_message TEXT
            )
            """,
        ),
    ),
    (
        2,
        "add lookup indexes",
        (
            "CREATE INDEX IF NOT EXISTS idx_connection_history_host ON connection_history(host_name)",
            "CREATE INDEX IF NOT EXISTS idx_connection_history_group ON connection_history(group_name)",
            "CREATE INDEX IF NOT EXISTS idx_connection_history_start ON connection_history(start_time)",
            "CREATE INDEX IF NOT EXISTS idx_connection_history_status ON connection_history(status)",
            "CREATE INDEX IF NOT EXISTS idx_session_health_session ON session_health(session_id)",
            "CREATE INDEX IF NOT EXISTS idx_session_health_check ON session_health(check_time)",
        ),
    ),
]


def ensure_migrations_table(cursor: sqlite3.Cursor) -> None:
    cursor.execute(
        """
        CREATE TABLE IF NOT EXISTS schema_migrations (
            version INTEGER PRIMARY KEY,
            description TEXT NOT NULL,
            applied_at TEXT NOT NULL
        )
        """
    )


def applied_versions(cursor: sqlite3.Cursor) -> List[int]:
    cursor.execute("SELECT version FROM schema_migrations ORDER BY version")
    return [row[0] for row in cursor.fetchall()]


def apply_migrations(cursor: sqlite3.Cursor, migrations: Sequence[Migration] = MIGRATIONS) -> List[int]:
    """
    Apply every pending migration.

    Returns:
        Versions applied by this call, in order
    """
    ensure_migrations_table(cursor)
    done = set(applied_versions(cursor))
    applied: List[int] = []

    for version, description, statements in sorted(migrations, key=lambda m: m[0]):
        if version in done:
            continue
        for statement in statements:
            cursor.execute(statement)
        cursor.execute(
            "INSERT INTO schema_migrations (version, description, applied_at) VALUES (?, ?, ?)",
            (version, description, datetime.now(timezone.utc).isoformat()),
        )
        logger.debug("Applied history migration %d: %s", version, description)
        applied.append(version)

    return applied
