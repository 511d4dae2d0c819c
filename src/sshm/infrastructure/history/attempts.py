"""
Connection attempt persistence.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from sshm.domain import (
    AttemptFilter,
    AttemptStatus,
    ConnectionAttempt,
    ConnectionKind,
    ConnectionStats,
    RecorderError,
)

from .base import RepositoryBase, from_db_time, to_db_time

logger = logging.getLogger(__name__)

_ATTEMPT_COLUMNS = """
    id, host_name, group_name, host, user, port, connection_type, status,
    start_time, end_time, duration_seconds, error_message, session_id
"""


def _row_to_attempt(row) -> ConnectionAttempt:
    return ConnectionAttempt(
        id=row["id"],
        target_name=row["host_name"],
        group_name=row["group_name"],
        host=row["host"],
        user=row["user"],
        port=row["port"],
        kind=ConnectionKind(row["connection_type"]),
        status=AttemptStatus(row["status"]),
        start_time=from_db_time(row["start_time"]),
        end_time=from_db_time(row["end_time"]),
        duration_seconds=row["duration_seconds"],
        error_message=row["error_message"],
        session_id=row["session_id"],
    )


class AttemptsMixin(RepositoryBase):
    """Recording and querying connection attempts."""

    def record(self, attempt: ConnectionAttempt) -> int:
        """
        Insert an attempt and return its row id.

        Raises:
            RecorderError: If the write fails
        """
        with self._transaction(f"record attempt for {attempt.target_name}") as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO connection_history
                (host_name, group_name, host, user, port, connection_type, status,
                 start_time, end_time, duration_seconds, error_message, session_id,
                 created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    attempt.target_name,
                    attempt.group_name,
                    attempt.host,
                    attempt.user,
                    attempt.port,
                    attempt.kind.value,
                    attempt.status.value,
                    to_db_time(attempt.start_time),
                    to_db_time(attempt.end_time),
                    attempt.duration_seconds,
                    attempt.error_message,
                    attempt.session_id,
                    to_db_time(datetime.now(timezone.utc)),
                ),
            )
            attempt_id = int(cursor.lastrowid or 0)
        logger.debug("Recorded %s attempt %d for %s", attempt.kind.value, attempt_id, attempt.target_name)
        return attempt_id

    def finish(
        self,
        attempt_id: int,
        end_time: datetime,
        status: AttemptStatus,
        error_message: Optional[str] = None,
        session_id: Optional[str] = None,
    ) -> None:
        """
        Move an attempt from ``attempting`` to a terminal status.

        Raises:
            RecorderError: If the status is not terminal, the attempt does not
                exist or was already finished, or the write fails
        """
        if not status.is_terminal():
            raise RecorderError(f"cannot finish attempt {attempt_id} with non-terminal status {status.value}")

        with self._transaction(f"finish attempt {attempt_id}") as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT start_time, status FROM connection_history WHERE id = ?", (attempt_id,))
            row = cursor.fetchone()
            if row is None:
                raise RecorderError(f"attempt {attempt_id} not found")
            if row["status"] != AttemptStatus.ATTEMPTING.value:
                raise RecorderError(f"attempt {attempt_id} already finished as {row['status']}")

            start_time = from_db_time(row["start_time"])
            end_utc = from_db_time(to_db_time(end_time))
            duration = (end_utc - start_time).total_seconds() if start_time else None

            cursor.execute(
                """
                UPDATE connection_history
                SET end_time = ?, status = ?, duration_seconds = ?, error_message = ?,
                    session_id = COALESCE(?, session_id)
                WHERE id = ?
                """,
                (to_db_time(end_utc), status.value, duration, error_message, session_id, attempt_id),
            )

    def query(self, attempt_filter: Optional[AttemptFilter] = None) -> List[ConnectionAttempt]:
        """Attempts matching the filter, newest first."""
        attempt_filter = attempt_filter or AttemptFilter()
        clauses = []
        params: list = []

        if attempt_filter.target_name:
            clauses.append("host_name = ?")
            params.append(attempt_filter.target_name)
        if attempt_filter.group_name:
            clauses.append("group_name = ?")
            params.append(attempt_filter.group_name)
        if attempt_filter.status is not None:
            clauses.append("status = ?")
            params.append(attempt_filter.status.value)
        if attempt_filter.kind is not None:
            clauses.append("connection_type = ?")
            params.append(attempt_filter.kind.value)
        if attempt_filter.since is not None:
            clauses.append("start_time >= ?")
            params.append(to_db_time(attempt_filter.since))
        if attempt_filter.until is not None:
            clauses.append("start_time <= ?")
            params.append(to_db_time(attempt_filter.until))

        sql = f"SELECT {_ATTEMPT_COLUMNS} FROM connection_history"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY start_time DESC, id DESC"
        if attempt_filter.limit:
            sql += " LIMIT ? OFFSET ?"
            params.extend([attempt_filter.limit, attempt_filter.offset])
        elif attempt_filter.offset:
            sql += " LIMIT -1 OFFSET ?"
            params.append(attempt_filter.offset)

        with self._transaction("query connection history") as conn:
            rows = conn.execute(sql, params).fetchall()
        return [_row_to_attempt(row) for row in rows]

    def stats(self, target_name: str, group_name: str = "") -> ConnectionStats:
        """Aggregate outcome of every attempt for a target/group pair."""
        with self._transaction(f"compute stats for {target_name}") as conn:
            row = conn.execute(
                """
                SELECT
                    COUNT(*) AS total,
                    SUM(CASE WHEN status = 'success' THEN 1 ELSE 0 END) AS succeeded,
                    AVG(CASE WHEN end_time IS NOT NULL THEN duration_seconds END) AS avg_duration,
                    MIN(start_time) AS first_seen,
                    MAX(start_time) AS last_seen
                FROM connection_history
                WHERE host_name = ? AND COALESCE(group_name, '') = ?
                """,
                (target_name, group_name or ""),
            ).fetchone()

        total = row["total"] or 0
        succeeded = row["succeeded"] or 0
        return ConnectionStats(
            target_name=target_name,
            group_name=group_name or "",
            total=total,
            succeeded=succeeded,
            success_rate=(succeeded / total * 100.0) if total else 0.0,
            avg_duration_seconds=row["avg_duration"] or 0.0,
            first=from_db_time(row["first_seen"]),
            last=from_db_time(row["last_seen"]),
        )

    def get_recent_activity(self, hours: int = 24) -> Dict[str, int]:
        """Attempt counts per status over the last ``hours`` hours."""
        since = to_db_time(datetime.now(timezone.utc) - timedelta(hours=hours))
        with self._transaction("summarize recent activity") as conn:
            rows = conn.execute(
                """
                SELECT status, COUNT(*) AS count
                FROM connection_history
                WHERE start_time >= ?
                GROUP BY status
                """,
                (since,),
            ).fetchall()
        return {row["status"]: row["count"] for row in rows}

    def purge_older_than(self, age: timedelta) -> int:
        """
        Delete attempts (and health observations) older than ``age``.

        Returns:
            Number of connection attempts deleted
        """
        cutoff = to_db_time(datetime.now(timezone.utc) - age)
        with self._transaction("purge old history") as conn:
            deleted = conn.execute("DELETE FROM connection_history WHERE start_time < ?", (cutoff,)).rowcount
            health_deleted = conn.execute("DELETE FROM session_health WHERE check_time < ?", (cutoff,)).rowcount
        logger.info("Purged %d attempts and %d health observations older than %s", deleted, health_deleted, age)
        return deleted
