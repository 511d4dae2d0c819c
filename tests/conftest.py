"""
Shared fixtures and fakes for the sshm test suite.

The fakes stand in for the three external collaborators (SSH transport,
tmux and the interactive prompt) so the orchestration logic can be tested
without a network or a terminal.
"""

from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Sequence, Tuple
from unittest.mock import MagicMock

import pytest

from sshm.domain import AgentUnavailable, AuthKind, LaunchError, Target
from sshm.infrastructure.credentials import MemoryStore
from sshm.infrastructure.history import HistoryRepository
from sshm.infrastructure.ssh import AuthMethod, SSHClientFactory
from sshm.infrastructure.tmux import ShellCommand, TmuxSessionInfo, normalize_session_name

BASE_TIME = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class TickingClock:
    """Clock that advances by ``step`` on every call."""

    def __init__(self, start: Optional[datetime] = None, step: timedelta = timedelta(seconds=1)):
        self.now = start or datetime.now(timezone.utc)
        self.step = step

    def __call__(self) -> datetime:
        self.now += self.step
        return self.now


class FakeSSH(SSHClientFactory):
    """
    SSH factory whose probes never touch the network.

    ``failures`` maps a host (or a ``(host, AuthKind)`` pair) to the
    exception its probe raises.
    """

    def __init__(self, failures: Optional[Dict] = None, agent: bool = False):
        super().__init__(client_factory=MagicMock, agent_factory=MagicMock)
        self.failures = failures or {}
        self.agent = agent
        self.probes: List[Tuple[str, str, float]] = []

    def agent_auth_method(self) -> AuthMethod:
        if not self.agent:
            raise AgentUnavailable("ssh agent holds no keys")
        return AuthMethod(AuthKind.AGENT, "ssh-agent", {"allow_agent": True, "look_for_keys": False})

    def probe(self, host, port, username, auth, deadline=10.0):
        self.probes.append((host, auth.label, deadline))
        error = self.failures.get((host, auth.kind)) or self.failures.get(host)
        if error is not None:
            raise error


class FakeTmux:
    """In-memory tmux with the TmuxManager surface used by the core."""

    def __init__(self):
        self.sessions: Dict[str, List[Tuple[str, ShellCommand]]] = {}
        self.windows: Dict[str, int] = {}
        self.broken: set = set()
        self.created = BASE_TIME
        self.fail_list = False
        self.fail_create = False
        self.attached: List[str] = []
        self.create_calls = 0

    def add_live_session(self, name: str, windows: int = 1) -> None:
        self.sessions[name] = []
        self.windows[name] = windows

    def is_available(self) -> bool:
        return True

    def list_sessions(self) -> List[str]:
        if self.fail_list:
            raise LaunchError("failed to list tmux sessions: server exited unexpectedly")
        return list(self.sessions)

    def session_exists(self, name: str) -> bool:
        return name in self.sessions

    def session_info(self, name: str) -> TmuxSessionInfo:
        if name not in self.sessions or name in self.broken:
            raise LaunchError(f"can't find session: {name}")
        return TmuxSessionInfo(name, self.windows.get(name, 0), 0, None, self.created)

    def window_count(self, name: str) -> int:
        if name not in self.sessions or name in self.broken:
            raise LaunchError(f"can't find session: {name}")
        return self.windows.get(name, 0)

    def create_or_attach(self, name: str, command: ShellCommand) -> Tuple[str, bool]:
        return self.create_group(name, [(name, command)])

    def create_group(self, name: str, windows: Sequence[Tuple[str, ShellCommand]]) -> Tuple[str, bool]:
        self.create_calls += 1
        if self.fail_create:
            raise LaunchError(f"failed to create tmux session '{name}': no terminal")
        session_name = normalize_session_name(name)
        if session_name in self.sessions:
            return session_name, True
        self.sessions[session_name] = list(windows)
        self.windows[session_name] = len(windows)
        return session_name, False

    def attach(self, name: str) -> None:
        if name not in self.sessions:
            raise LaunchError(f"failed to attach to session '{name}' (exit code 1)")
        self.attached.append(name)

    def kill_session(self, name: str) -> None:
        self.sessions.pop(name, None)
        self.windows.pop(name, None)


class ScriptedPrompt:
    """Prompt returning queued answers and remembering what it was asked."""

    def __init__(self, *answers):
        self.answers = list(answers)
        self.asked: List[str] = []

    def __call__(self, text: str) -> str:
        self.asked.append(text)
        answer = self.answers.pop(0) if self.answers else "secret"
        if isinstance(answer, BaseException):
            raise answer
        return answer


def make_target(**overrides) -> Target:
    data = {
        "name": "db1",
        "host": "10.0.0.5",
        "port": 22,
        "username": "ops",
        "auth_kind": AuthKind.KEY,
        "key_path": "/k",
    }
    data.update(overrides)
    return Target(**data)


@pytest.fixture
def clock():
    return TickingClock()


@pytest.fixture
def memory_store():
    return MemoryStore()


@pytest.fixture
def fake_ssh():
    return FakeSSH()


@pytest.fixture
def fake_tmux():
    return FakeTmux()


@pytest.fixture
def history(tmp_path):
    return HistoryRepository(tmp_path / "history.db")
