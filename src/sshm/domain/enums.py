"""
Domain enums for the connection core.

This module defines all enumeration types shared by the credential,
launch and monitoring layers.
"""

from enum import Enum


class AuthKind(str, Enum):
    """Authentication kinds a target can be configured with."""

    PASSWORD = "password"
    KEY = "key"
    AGENT = "agent"


class ConnectionKind(str, Enum):
    """Whether an attempt targeted one host or a named group."""

    SINGLE = "single"
    GROUP = "group"


class AttemptStatus(str, Enum):
    """Lifecycle status of a recorded connection attempt."""

    ATTEMPTING = "attempting"
    SUCCESS = "success"
    FAILED = "failed"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"

    def is_terminal(self) -> bool:
        """Every status except ATTEMPTING ends an attempt."""
        return self is not AttemptStatus.ATTEMPTING


class HealthStatus(str, Enum):
    """Health of a tracked multiplexer session."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    FAILED = "failed"
    UNKNOWN = "unknown"
