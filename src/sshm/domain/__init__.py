"""
Domain layer: targets, attempt and health records, and the error taxonomy.
"""

from .enums import AttemptStatus, AuthKind, ConnectionKind, HealthStatus
from .errors import (
    AgentUnavailable,
    ConfigurationError,
    ConnectivityError,
    CredentialError,
    CredentialNotFound,
    CredentialStoreError,
    ErrorKind,
    LaunchError,
    MonitorTickError,
    ProbeTimeout,
    RecorderError,
    SshmError,
    UserCancelled,
)
from .history import AttemptFilter, ConnectionAttempt, ConnectionStats, HealthObservation
from .session import HealthStats, SessionRecord
from .settings import CredentialStoreSettings, SshmSettings, Timeouts
from .target import DEFAULT_SSH_PORT, Target

__all__ = [
    "AttemptStatus",
    "AuthKind",
    "ConnectionKind",
    "HealthStatus",
    "AgentUnavailable",
    "ConfigurationError",
    "ConnectivityError",
    "CredentialError",
    "CredentialNotFound",
    "CredentialStoreError",
    "ErrorKind",
    "LaunchError",
    "MonitorTickError",
    "ProbeTimeout",
    "RecorderError",
    "SshmError",
    "UserCancelled",
    "AttemptFilter",
    "ConnectionAttempt",
    "ConnectionStats",
    "HealthObservation",
    "HealthStats",
    "SessionRecord",
    "CredentialStoreSettings",
    "SshmSettings",
    "Timeouts",
    "DEFAULT_SSH_PORT",
    "Target",
]
