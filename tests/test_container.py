"""
Tests for the dependency injection container.
"""

from sshm.application.container import Container
from sshm.application.launcher import ConnectionManager
from sshm.domain import SshmSettings
from sshm.domain.settings import CredentialStoreSettings
from sshm.infrastructure.credentials import MemoryStore


class TestContainer:
    """Test cases for Container."""

    def setup_method(self):
        self.settings = SshmSettings(credential_store=CredentialStoreSettings(backend="memory"))

    def test_builds_connection_manager(self, tmp_path):
        settings = self.settings.model_copy(update={"history_db_path": tmp_path / "h.db"})
        container = Container(settings, prompt=None)

        manager = container.connection_manager

        assert isinstance(manager, ConnectionManager)
        assert manager.monitor is container.health_monitor
        assert manager.history is container.history_repository
        assert isinstance(container.credential_store, MemoryStore)
        assert container.credential_resolver.prompt is None
        assert (tmp_path / "h.db").exists()

    def test_components_are_cached(self, tmp_path):
        settings = self.settings.model_copy(update={"history_db_path": tmp_path / "h.db"})
        container = Container(settings, prompt=None)

        assert container.prober is container.prober
        assert container.password_manager.store is container.credential_store

    def test_settings_flow_into_components(self, tmp_path):
        settings = self.settings.model_copy(
            update={"history_db_path": tmp_path / "h.db", "monitor_interval": 7.0, "verify_host_key": True}
        )
        container = Container(settings, prompt=None)

        assert container.health_monitor.check_interval == 7.0
        assert container.ssh_client_factory.verify_host_key
        assert container.tmux_manager.timeout == settings.timeouts.tmux_command_timeout
