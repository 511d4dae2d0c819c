"""
History domain models.

Records of connection attempts and session health observations, plus the
filter and statistics shapes the history store exposes.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .enums import AttemptStatus, ConnectionKind, HealthStatus


class ConnectionAttempt(BaseModel):
    """
    Record of one connection attempt.

    Created with status ATTEMPTING and moved exactly once to a terminal
    status by the history store.
    """

    model_config = ConfigDict(use_enum_values=False)

    id: Optional[int] = Field(None, description="Row id assigned by the history store")
    target_name: str = Field(..., description="Target name, or group name for group attempts")
    group_name: Optional[str] = Field(None, description="Group the attempt belonged to")
    host: str = Field(..., description="Host, or a member summary for group attempts")
    user: str = Field(..., description="Login user, or 'multiple' for group attempts")
    port: int = Field(0, description="SSH port (0 for group attempts)")
    kind: ConnectionKind = Field(ConnectionKind.SINGLE, description="single or group")
    status: AttemptStatus = Field(AttemptStatus.ATTEMPTING, description="Attempt status")
    start_time: datetime = Field(..., description="When the attempt started (UTC)")
    end_time: Optional[datetime] = Field(None, description="When the attempt reached a terminal status")
    duration_seconds: Optional[float] = Field(None, description="end_time - start_time")
    error_message: Optional[str] = Field(None, description="Error details if failed")
    session_id: Optional[str] = Field(None, description="Multiplexer session created or attached")


class HealthObservation(BaseModel):
    """One health check of one session. Append-only."""

    id: Optional[int] = None
    session_id: str
    target_name: str
    check_time: datetime
    status: HealthStatus
    response_time_ms: int = 0
    error_message: Optional[str] = None


class AttemptFilter(BaseModel):
    """Filtering options for connection history queries."""

    target_name: Optional[str] = None
    group_name: Optional[str] = None
    status: Optional[AttemptStatus] = None
    kind: Optional[ConnectionKind] = None
    since: Optional[datetime] = None
    until: Optional[datetime] = None
    limit: int = Field(0, ge=0, description="0 means no limit")
    offset: int = Field(0, ge=0)


class ConnectionStats(BaseModel):
    """Aggregated outcome of all attempts for a target/group pair."""

    target_name: str
    group_name: str = ""
    total: int = 0
    succeeded: int = 0
    success_rate: float = 0.0
    avg_duration_seconds: float = 0.0
    first: Optional[datetime] = None
    last: Optional[datetime] = None
