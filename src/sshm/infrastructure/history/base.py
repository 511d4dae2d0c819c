"""
Base repository utilities (connection handling, schema setup, timestamps).
"""

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

from sshm.domain import RecorderError

from . import schema

logger = logging.getLogger(__name__)


def to_db_time(value: Optional[datetime]) -> Optional[str]:
    """UTC ISO-8601 text; naive datetimes are taken to be UTC already."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def from_db_time(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class RepositoryBase:
    """Shared connection and schema helpers."""

    def __init__(self, db_path: Union[str, Path] = "history.db"):
        """
        Open (creating if needed) the history database and migrate it.

        Raises:
            RecorderError: If the database cannot be created or migrated
        """
        self.db_path = Path(db_path).expanduser()
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._ensure_tables()
        except (sqlite3.Error, OSError) as e:
            raise RecorderError(f"failed to initialize history database {self.db_path}: {e}") from e

    @contextmanager
    def _get_connection(self):
        """Get database connection with proper cleanup."""
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    def _ensure_tables(self) -> None:
        """Apply pending schema migrations."""
        with self._get_connection() as conn:
            cursor = conn.cursor()
            applied = schema.apply_migrations(cursor)
            conn.commit()
        if applied:
            logger.info("History database %s migrated to version %d", self.db_path, applied[-1])

    def schema_version(self) -> int:
        with self._get_connection() as conn:
            versions = schema.applied_versions(conn.cursor())
        return versions[-1] if versions else 0

    @contextmanager
    def _transaction(self, action: str):
        """Connection that commits on success; sqlite errors become RecorderError."""
        try:
            with self._get_connection() as conn:
                yield conn
                conn.commit()
        except sqlite3.Error as e:
            raise RecorderError(f"failed to {action}: {e}") from e
