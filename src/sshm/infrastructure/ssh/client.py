"""
SSH connectivity probing via paramiko.

A probe opens a transport, authenticates with one method and closes it
again. It never leaves a reusable session behind.
"""

import logging
import socket
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

import paramiko

from sshm.domain import AgentUnavailable, AuthKind, ConfigurationError, ConnectivityError, ProbeTimeout

logger = logging.getLogger(__name__)

DEFAULT_PROBE_TIMEOUT = 10.0


@dataclass(frozen=True)
class AuthMethod:
    """
    Negotiated credential handle for one probe.

    ``connect_kwargs`` are passed to ``paramiko.SSHClient.connect`` and may
    hold secrets, so they are kept out of ``repr``.
    """

    kind: AuthKind
    label: str
    connect_kwargs: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @property
    def secret(self) -> Optional[str]:
        """Password or passphrase carried by this method, if any."""
        return self.connect_kwargs.get("password") or self.connect_kwargs.get("passphrase")


class SSHClientFactory:
    """
    Builds auth methods and runs bounded connectivity probes.

    Args:
        verify_host_key: Reject hosts missing from the system known_hosts
        client_factory: Callable returning a fresh ``paramiko.SSHClient``
        agent_factory: Callable returning a ``paramiko.Agent``
    """

    def __init__(
        self,
        verify_host_key: bool = False,
        client_factory: Callable[[], paramiko.SSHClient] = paramiko.SSHClient,
        agent_factory: Callable[[], paramiko.Agent] = paramiko.Agent,
    ):
        self.verify_host_key = verify_host_key
        self._client_factory = client_factory
        self._agent_factory = agent_factory

    def build_auth_method(
        self,
        kind: AuthKind,
        secret: Optional[str] = None,
        key_path: Optional[str] = None,
    ) -> AuthMethod:
        """
        Wrap credential material as an AuthMethod.

        Key files are not read here; an encrypted key without a passphrase
        fails during the handshake, which then asks for one.
        """
        if kind == AuthKind.PASSWORD:
            return AuthMethod(
                AuthKind.PASSWORD,
                "password",
                {"password": secret or "", "allow_agent": False, "look_for_keys": False},
            )
        if kind == AuthKind.KEY:
            if not (key_path or "").strip():
                raise ConfigurationError("key path is required for key authentication")
            return AuthMethod(
                AuthKind.KEY,
                f"key {key_path}",
                {
                    "key_filename": key_path,
                    "passphrase": secret or None,
                    "allow_agent": False,
                    "look_for_keys": False,
                },
            )
        if kind == AuthKind.AGENT:
            return self.agent_auth_method()
        raise ConfigurationError(f"unsupported auth type: {kind}")

    def agent_auth_method(self) -> AuthMethod:
        """
        Auth method backed by the running SSH agent.

        Raises:
            AgentUnavailable: If no agent is reachable or it holds no keys
        """
        try:
            agent = self._agent_factory()
        except (paramiko.SSHException, OSError) as e:
            raise AgentUnavailable(f"ssh agent not reachable: {e}") from e
        try:
            keys = agent.get_keys()
        finally:
            agent.close()
        if not keys:
            raise AgentUnavailable("ssh agent holds no keys")
        return AuthMethod(AuthKind.AGENT, "ssh-agent", {"allow_agent": True, "look_for_keys": False})

    def probe(
        self,
        host: str,
        port: int,
        username: str,
        auth: AuthMethod,
        deadline: float = DEFAULT_PROBE_TIMEOUT,
    ) -> None:
        """
        Connect and authenticate once, then disconnect.

        The handshake runs on a worker thread so the deadline holds even when
        paramiko blocks past its own per-phase timeouts. The client is
        closed on every exit path. A worker that outlives the deadline
        closes the client again once connect returns.

        Raises:
            ProbeTimeout: If the deadline passed before the handshake finished
            ConnectivityError: If connecting or authenticating failed
        """
        client = self._client_factory()
        if self.verify_host_key:
            client.load_system_host_keys()
            client.set_missing_host_key_policy(paramiko.RejectPolicy())
        else:
            client.set_missing_host_key_policy(paramiko.AutoAddPolicy())

        outcome: Dict[str, BaseException] = {}
        done = threading.Event()
        abandoned = threading.Event()

        def _connect() -> None:
            try:
                client.connect(
                    hostname=host,
                    port=port,
                    username=username,
                    timeout=deadline,
                    banner_timeout=deadline,
                    auth_timeout=deadline,
                    **auth.connect_kwargs,
                )
            except Exception as e:  # pylint: disable=broad-except
                outcome["error"] = e
            finally:
                done.set()
                if abandoned.is_set():
                    # The caller gave up while connect was still running
                    client.close()

        target = f"{username}@{host}:{port}"
        worker = threading.Thread(target=_connect, name=f"probe-{host}", daemon=True)
        started = time.monotonic()
        logger.debug("Probing %s with %s (deadline %.1fs)", target, auth.label, deadline)
        worker.start()
        try:
            if not done.wait(deadline):
                abandoned.set()
                raise ProbeTimeout(f"probe of {target} with {auth.label} timed out after {deadline:.0f}s")
            error = outcome.get("error")
            if error is not None:
                raise self._translate(target, auth, error)
        finally:
            client.close()
        logger.debug("Probe of %s succeeded in %.2fs", target, time.monotonic() - started)

    @staticmethod
    def _translate(target: str, auth: AuthMethod, error: BaseException) -> ConnectivityError:
        if isinstance(error, (socket.timeout, TimeoutError)):
            return ProbeTimeout(f"probe of {target} with {auth.label} timed out", cause=error)
        if isinstance(error, paramiko.PasswordRequiredException):
            return ConnectivityError(f"{auth.label} for {target} requires a passphrase", cause=error)
        if isinstance(error, paramiko.AuthenticationException):
            return ConnectivityError(f"authentication with {auth.label} rejected by {target}", cause=error)
        if isinstance(error, paramiko.ssh_exception.NoValidConnectionsError):
            return ConnectivityError(f"{target} is unreachable: {error}", cause=error)
        return ConnectivityError(f"probe of {target} with {auth.label} failed: {error}", cause=error)
