"""
Session health observation persistence.
"""

from datetime import datetime, timedelta, timezone
from typing import List

from sshm.domain import HealthObservation, HealthStatus

from .base import RepositoryBase, from_db_time, to_db_time


def _row_to_observation(row) -> HealthObservation:
    return HealthObservation(
        id=row["id"],
        session_id=row["session_id"],
        target_name=row["host_name"],
        check_time=from_db_time(row["check_time"]),
        status=HealthStatus(row["status"]),
        response_time_ms=row["response_time_ms"],
        error_message=row["error_message"],
    )


class HealthMixin(RepositoryBase):
    """Append-only log of health checks."""

    def record_health(self, observation: HealthObservation) -> int:
        with self._transaction(f"record health for session {observation.session_id}") as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO session_health
                (session_id, host_name, check_time, status, response_time_ms, error_message)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    observation.session_id,
                    observation.target_name,
                    to_db_time(observation.check_time),
                    observation.status.value,
                    observation.response_time_ms,
                    observation.error_message,
                ),
            )
            return int(cursor.lastrowid or 0)

    def get_session_health(self, session_id: str, limit: int = 50) -> List[HealthObservation]:
        """Most recent observations of one session, newest first."""
        with self._transaction(f"read health for session {session_id}") as conn:
            rows = conn.execute(
                """
                SELECT id, session_id, host_name, check_time, status, response_time_ms, error_message
                FROM session_health
                WHERE session_id = ?
                ORDER BY check_time DESC, id DESC
                LIMIT ?
                """,
                (session_id, limit),
            ).fetchall()
        return [_row_to_observation(row) for row in rows]

    def get_active_session_health(self, window: timedelta = timedelta(minutes=5)) -> List[HealthObservation]:
        """Latest observation of every session checked within ``window``."""
        cutoff = to_db_time(datetime.now(timezone.utc) - window)
        with self._transaction("read active session health") as conn:
            rows = conn.execute(
                """
                SELECT h.id, h.session_id, h.host_name, h.check_time, h.status,
                       h.response_time_ms, h.error_message
                FROM session_health h
                WHERE h.check_time > ?
                  AND h.id = (
                      SELECT latest.id FROM session_health latest
                      WHERE latest.session_id = h.session_id
                      ORDER BY latest.check_time DESC, latest.id DESC
                      LIMIT 1
                  )
                ORDER BY h.check_time DESC
                """,
                (cutoff,),
            ).fetchall()
        return [_row_to_observation(row) for row in rows]
