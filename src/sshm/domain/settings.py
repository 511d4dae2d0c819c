"""
Settings domain model for timeouts, paths and backend selection.

This module defines the settings that control probe deadlines, the health
monitor cadence and where history and credentials are kept.
"""

import logging
import os
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field, SecretStr, field_validator

logger = logging.getLogger(__name__)

DEFAULT_HOME = Path.home() / ".sshm"


class Timeouts(BaseModel):
    """
    Timeout settings for the blocking operations of a connection attempt.
    """

    probe_timeout: float = Field(
        default=10.0,
        description="Hard deadline in seconds for opportunistic connectivity probes",
        gt=0,
        le=600,
    )

    test_timeout: float = Field(
        default=300.0,
        description="Hard deadline in seconds for user-invoked connection tests",
        gt=0,
        le=3600,
    )

    tmux_command_timeout: float = Field(
        default=10.0,
        description="Timeout in seconds for a single tmux invocation",
        gt=0,
        le=120,
    )

    @field_validator("probe_timeout")
    @classmethod
    def validate_probe_timeout(cls, v: float) -> float:
        """Warn about probe deadlines long enough to stall a launch."""
        if v > 60:
            logger.warning("Probe timeout of %s seconds is very high - launches may stall", v)
        return v


class CredentialStoreSettings(BaseModel):
    """Which credential backend to open, and how."""

    backend: Literal["file", "memory"] = Field(
        default="file",
        description="Credential backend, chosen once at construction",
    )
    namespace: str = Field(default="sshm", description="Prefix applied to every stored id")
    directory: Path = Field(
        default=DEFAULT_HOME / "keyring",
        description="Directory holding the encrypted vault for the file backend",
    )
    master_password: SecretStr = Field(
        default=SecretStr("sshm-keyring"),
        description="Master password the vault key is derived from",
    )


class SshmSettings(BaseModel):
    """
    Settings for the whole connection core.
    """

    timeouts: Timeouts = Timeouts()
    credential_store: CredentialStoreSettings = CredentialStoreSettings()

    monitor_interval: float = Field(
        default=30.0,
        description="Seconds between health monitor ticks",
        gt=0,
        le=3600,
    )

    history_db_path: Path = Field(
        default=DEFAULT_HOME / "history.db",
        description="SQLite database holding connection history",
    )

    history_retention_days: int = Field(
        default=90,
        description="Age after which history rows may be purged",
        ge=1,
    )

    keepalive_interval: int = Field(default=60, description="ServerAliveInterval for launched sessions", ge=0)
    keepalive_count_max: int = Field(default=3, description="ServerAliveCountMax for launched sessions", ge=1)

    verify_host_key: bool = Field(
        default=False,
        description="Reject hosts missing from known_hosts when probing",
    )

    @classmethod
    def from_env(cls, base: Optional["SshmSettings"] = None) -> "SshmSettings":
        """
        Apply SSHM_* environment overrides on top of ``base`` (or defaults).
        """
        settings = base or cls()
        data = settings.model_dump()

        if "SSHM_HOME" in os.environ:
            home = Path(os.environ["SSHM_HOME"]).expanduser()
            data["history_db_path"] = home / "history.db"
            data["credential_store"]["directory"] = home / "keyring"
        if "SSHM_HISTORY_DB" in os.environ:
            data["history_db_path"] = Path(os.environ["SSHM_HISTORY_DB"]).expanduser()
        if "SSHM_MONITOR_INTERVAL" in os.environ:
            data["monitor_interval"] = float(os.environ["SSHM_MONITOR_INTERVAL"])
        if "SSHM_PROBE_TIMEOUT" in os.environ:
            data["timeouts"]["probe_timeout"] = float(os.environ["SSHM_PROBE_TIMEOUT"])
        if "SSHM_KEYRING_BACKEND" in os.environ:
            data["credential_store"]["backend"] = os.environ["SSHM_KEYRING_BACKEND"].lower()
        if "SSHM_KEYRING_PASSWORD" in os.environ:
            data["credential_store"]["master_password"] = SecretStr(os.environ["SSHM_KEYRING_PASSWORD"])
        verify = os.environ.get("SSHM_VERIFY_HOST_KEY")
        if verify is not None:
            data["verify_host_key"] = verify.lower() in ("true", "1", "yes")

        return cls.model_validate(data)
