"""
Dependency injection container for the connection core.

Builds every collaborator lazily from one SshmSettings instance so that a
caller (CLI, TUI, tests) can override any piece before first use.
"""

import logging
from typing import Optional

from sshm.domain import SshmSettings
from sshm.infrastructure.credentials import CredentialStore, open_credential_store
from sshm.infrastructure.history import HistoryRepository
from sshm.infrastructure.ssh import SSHClientFactory
from sshm.infrastructure.tmux import TmuxManager

from .credential_resolver import CredentialResolver
from .health_monitor import HealthMonitor
from .launcher import ConnectionManager
from .password_manager import PasswordManager
from .prober import ConnectivityProber
from .prompt import PromptFunc, getpass_prompt

logger = logging.getLogger(__name__)


class Container:
    """
    Dependency injection container.

    Manages the creation and lifecycle of the connection core's services.
    """

    def __init__(self, settings: Optional[SshmSettings] = None, prompt: Optional[PromptFunc] = getpass_prompt):
        """
        Initialize the container.

        Args:
            settings: Settings to build from (defaults plus SSHM_* overrides)
            prompt: Interactive secret prompt; None for non-interactive use
        """
        self.settings = settings or SshmSettings.from_env()
        self.prompt = prompt

        self._credential_store: Optional[CredentialStore] = None
        self._ssh_client_factory: Optional[SSHClientFactory] = None
        self._tmux_manager: Optional[TmuxManager] = None
        self._history_repository: Optional[HistoryRepository] = None
        self._credential_resolver: Optional[CredentialResolver] = None
        self._prober: Optional[ConnectivityProber] = None
        self._health_monitor: Optional[HealthMonitor] = None
        self._connection_manager: Optional[ConnectionManager] = None
        self._password_manager: Optional[PasswordManager] = None

    @property
    def credential_store(self) -> CredentialStore:
        """Get the credential store."""
        if self._credential_store is None:
            self._credential_store = open_credential_store(self.settings.credential_store)
            logger.debug("Using %s credential store", self._credential_store.service_name)
        return self._credential_store

    @property
    def ssh_client_factory(self) -> SSHClientFactory:
        if self._ssh_client_factory is None:
            self._ssh_client_factory = SSHClientFactory(verify_host_key=self.settings.verify_host_key)
        return self._ssh_client_factory

    @property
    def tmux_manager(self) -> TmuxManager:
        if self._tmux_manager is None:
            self._tmux_manager = TmuxManager(timeout=self.settings.timeouts.tmux_command_timeout)
        return self._tmux_manager

    @property
    def history_repository(self) -> HistoryRepository:
        """Get the history repository (raises RecorderError if it cannot open)."""
        if self._history_repository is None:
            self._history_repository = HistoryRepository(self.settings.history_db_path)
        return self._history_repository

    @property
    def credential_resolver(self) -> CredentialResolver:
        if self._credential_resolver is None:
            self._credential_resolver = CredentialResolver(
                self.credential_store, self.ssh_client_factory, self.prompt
            )
        return self._credential_resolver

    @property
    def prober(self) -> ConnectivityProber:
        if self._prober is None:
            self._prober = ConnectivityProber(
                self.credential_resolver, self.ssh_client_factory, self.settings.timeouts
            )
        return self._prober

    @property
    def health_monitor(self) -> HealthMonitor:
        if self._health_monitor is None:
            self._health_monitor = HealthMonitor(
                self.tmux_manager,
                self.history_repository,
                check_interval=self.settings.monitor_interval,
            )
        return self._health_monitor

    @property
    def connection_manager(self) -> ConnectionManager:
        """Get the connection manager, wired to the health monitor."""
        if self._connection_manager is None:
            self._connection_manager = ConnectionManager(
                self.prober,
                self.tmux_manager,
                self.history_repository,
                settings=self.settings,
                monitor=self.health_monitor,
            )
        return self._connection_manager

    @property
    def password_manager(self) -> PasswordManager:
        if self._password_manager is None:
            self._password_manager = PasswordManager(self.credential_store)
        return self._password_manager
