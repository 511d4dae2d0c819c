"""
Target domain model.

A Target is a named remote host plus the authentication configuration
used to reach it. Targets are immutable; helpers return updated copies.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

from .enums import AuthKind
from .errors import ConfigurationError

DEFAULT_SSH_PORT = 22


class Target(BaseModel):
    """
    Domain model for an SSH target.

    ``credential_ref`` marks the target as store-backed: its password (or key
    passphrase) lives in the credential store under that id.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    name: str = Field(..., description="Unique display name, also the default session name")
    host: str = Field(..., description="Hostname or IP address")
    port: int = Field(DEFAULT_SSH_PORT, description="SSH port")
    username: str = Field(..., description="Remote login user")
    auth_kind: AuthKind = Field(AuthKind.KEY, description="Authentication kind", alias="auth")
    credential_ref: Optional[str] = Field(None, description="Credential store id for the secret")
    key_path: Optional[str] = Field(None, description="Private key path for key auth")
    passphrase_protected: bool = Field(False, description="Whether the private key needs a passphrase")
    password: Optional[SecretStr] = Field(None, description="Legacy plaintext password (pre-migration)")

    @field_validator("auth_kind", mode="before")
    @classmethod
    def normalize_auth(cls, v):
        """Accept auth kinds case-insensitively."""
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @property
    def is_store_backed(self) -> bool:
        return bool(self.credential_ref)

    def validate_for_launch(self) -> None:
        """
        Check the fields needed to build a login command.

        Raises:
            ConfigurationError: If the target cannot be connected to as configured
        """
        if not self.name.strip():
            raise ConfigurationError("target name cannot be empty")
        if not self.host.strip():
            raise ConfigurationError(f"target {self.name}: host cannot be empty")
        if not self.username.strip():
            raise ConfigurationError(f"target {self.name}: username cannot be empty")
        if self.port < 1 or self.port > 65535:
            raise ConfigurationError(f"target {self.name}: port must be between 1 and 65535")
        if self.auth_kind == AuthKind.KEY and not (self.key_path or "").strip():
            raise ConfigurationError(f"target {self.name}: key path is required for key authentication")

    def get_password(self) -> Optional[str]:
        """Get the legacy plaintext password, if one is configured."""
        if self.password is None:
            return None
        return self.password.get_secret_value()  # pylint: disable=no-member

    def with_credential_ref(self, credential_ref: str) -> "Target":
        """Copy of this target that reads its secret from the store."""
        return self.model_copy(update={"credential_ref": credential_ref, "password": None})

    def without_credential_ref(self) -> "Target":
        return self.model_copy(update={"credential_ref": None})
