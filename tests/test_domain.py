"""
Tests for domain models, settings and the error taxonomy.
"""

import pytest
from pydantic import SecretStr, ValidationError

from sshm.domain import (
    AttemptStatus,
    AuthKind,
    ConfigurationError,
    ConnectivityError,
    CredentialNotFound,
    CredentialStoreError,
    ErrorKind,
    LaunchError,
    ProbeTimeout,
    SshmSettings,
    Target,
    Timeouts,
)


class TestTarget:
    """Test cases for the Target model."""

    def test_auth_alias_and_case(self):
        target = Target.model_validate({"name": "a", "host": "h", "username": "u", "auth": "PASSWORD"})

        assert target.auth_kind == AuthKind.PASSWORD

    def test_defaults(self):
        target = Target(name="a", host="h", username="u", key_path="/k")

        assert target.port == 22
        assert target.auth_kind == AuthKind.KEY
        assert not target.is_store_backed

    def test_is_frozen(self):
        target = Target(name="a", host="h", username="u", key_path="/k")

        with pytest.raises(ValidationError):
            target.host = "other"

    def test_password_is_secret(self):
        target = Target(name="a", host="h", username="u", auth_kind="password", password="pw")

        assert "pw" not in repr(target)
        assert target.get_password() == "pw"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"name": " "},
            {"host": ""},
            {"username": ""},
            {"port": 0},
            {"port": 70000},
            {"key_path": ""},
        ],
    )
    def test_validate_for_launch(self, overrides):
        data = {"name": "a", "host": "h", "username": "u", "key_path": "/k"}
        data.update(overrides)

        with pytest.raises(ConfigurationError):
            Target(**data).validate_for_launch()

    def test_credential_ref_helpers(self):
        target = Target(name="a", host="h", username="u", auth_kind="password", password="pw")

        stored = target.with_credential_ref("password-a")
        assert stored.is_store_backed
        assert stored.password is None
        assert not stored.without_credential_ref().is_store_backed


class TestErrors:
    """Errors are inspectable by kind."""

    def test_kinds(self):
        assert ConfigurationError("x").kind == ErrorKind.CONFIGURATION
        assert ProbeTimeout("x").kind == ErrorKind.TIMEOUT
        assert LaunchError("x").kind == ErrorKind.LAUNCH
        assert CredentialNotFound("x").kind == ErrorKind.STORE

    def test_hierarchy(self):
        assert issubclass(ProbeTimeout, ConnectivityError)
        assert issubclass(CredentialNotFound, CredentialStoreError)

    def test_cause_is_chained(self):
        cause = OSError("boom")
        error = LaunchError("failed", cause=cause)

        assert error.cause is cause
        assert error.__cause__ is cause

    def test_connectivity_failures(self):
        error = ConnectivityError("group failed", failures=[("web1", "refused"), ("web3", "timeout")])

        assert error.failed_subjects == ["web1", "web3"]

    def test_terminal_statuses(self):
        assert not AttemptStatus.ATTEMPTING.is_terminal()
        assert all(s.is_terminal() for s in AttemptStatus if s != AttemptStatus.ATTEMPTING)


class TestSettings:
    """Test cases for SshmSettings."""

    def test_defaults(self):
        settings = SshmSettings()

        assert settings.timeouts.probe_timeout == 10
        assert settings.timeouts.test_timeout == 300
        assert settings.monitor_interval == 30
        assert settings.credential_store.backend == "file"

    def test_bounds(self):
        with pytest.raises(ValidationError):
            Timeouts(probe_timeout=0)
        with pytest.raises(ValidationError):
            SshmSettings(monitor_interval=-1)

    def test_from_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("SSHM_HOME", str(tmp_path))
        monkeypatch.setenv("SSHM_MONITOR_INTERVAL", "5")
        monkeypatch.setenv("SSHM_PROBE_TIMEOUT", "3")
        monkeypatch.setenv("SSHM_KEYRING_BACKEND", "MEMORY")
        monkeypatch.setenv("SSHM_KEYRING_PASSWORD", "pw")
        monkeypatch.setenv("SSHM_VERIFY_HOST_KEY", "yes")

        settings = SshmSettings.from_env()

        assert settings.history_db_path == tmp_path / "history.db"
        assert settings.credential_store.directory == tmp_path / "keyring"
        assert settings.monitor_interval == 5
        assert settings.timeouts.probe_timeout == 3
        assert settings.credential_store.backend == "memory"
        assert settings.credential_store.master_password == SecretStr("pw")
        assert settings.verify_host_key

    def test_from_env_history_override(self, monkeypatch, tmp_path):
        monkeypatch.delenv("SSHM_HOME", raising=False)
        monkeypatch.setenv("SSHM_HISTORY_DB", str(tmp_path / "h.db"))

        assert SshmSettings.from_env().history_db_path == tmp_path / "h.db"

    def test_bad_backend_rejected(self, monkeypatch):
        monkeypatch.setenv("SSHM_KEYRING_BACKEND", "keychain")

        with pytest.raises(ValidationError):
            SshmSettings.from_env()
