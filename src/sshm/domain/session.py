"""
Session tracking models owned by the health monitor.
"""

from dataclasses import dataclass
from datetime import datetime

from .enums import HealthStatus


@dataclass
class SessionRecord:
    """Health record for one live multiplexer session."""

    session_id: str
    target_name: str
    start_time: datetime
    last_check_time: datetime
    last_status: HealthStatus = HealthStatus.UNKNOWN
    consecutive_failures: int = 0


@dataclass(frozen=True)
class HealthStats:
    """Aggregated view over the tracked set."""

    total: int = 0
    healthy: int = 0
    degraded: int = 0
    failed: int = 0
    unknown: int = 0
    with_failures: int = 0
