"""
tmux session management.

Thin subprocess wrapper around the tmux CLI: listing and describing
sessions, creating a session per host or a window per group member, and
attaching the caller's terminal.
"""

import logging
import subprocess
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from sshm.domain import LaunchError

logger = logging.getLogger(__name__)

DEFAULT_TMUX_TIMEOUT = 10.0

_SESSION_INFO_FORMAT = (
    "#{session_name} #{session_windows} #{session_attached} "
    "#{session_activity} #{session_created}"
)
_NO_SERVER_MARKERS = ("no server running", "no sessions", "error connecting to")

Runner = Callable[..., subprocess.CompletedProcess]


@dataclass(frozen=True)
class ShellCommand:
    """
    A command line typed into a tmux window.

    ``env`` is applied to the window itself (``tmux -e``), so secrets placed
    there never appear in the typed line or the shell history.
    """

    line: str
    env: Dict[str, str] = field(default_factory=dict, repr=False, compare=False)


@dataclass(frozen=True)
class TmuxSessionInfo:
    """Description of one live tmux session."""

    name: str
    windows: int
    attached: int
    activity: Optional[datetime]
    created: datetime


def normalize_session_name(name: str) -> str:
    """tmux rewrites '.' and ':' in session names to '_'; mirror that."""
    return name.replace(".", "_").replace(":", "_")


def _parse_epoch(value: str) -> Optional[datetime]:
    try:
        return datetime.fromtimestamp(int(value), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError):
        return None


class TmuxManager:
    """
    Manages tmux sessions through the tmux binary.

    Args:
        timeout: Seconds to wait for each tmux invocation
        runner: ``subprocess.run`` compatible callable
        binary: tmux executable name or path
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TMUX_TIMEOUT,
        runner: Runner = subprocess.run,
        binary: str = "tmux",
    ):
        self.timeout = timeout
        self._run = runner
        self.binary = binary

    def _tmux(self, *args: str) -> subprocess.CompletedProcess:
        cmd = [self.binary, *args]
        try:
            return self._run(cmd, capture_output=True, text=True, timeout=self.timeout, check=False)
        except FileNotFoundError as e:
            raise LaunchError("tmux is not installed on this system") from e
        except subprocess.TimeoutExpired as e:
            raise LaunchError(f"tmux {args[0]} timed out after {self.timeout:.0f}s") from e

    def _checked(self, description: str, *args: str) -> subprocess.CompletedProcess:
        result = self._tmux(*args)
        if result.returncode != 0:
            detail = (result.stderr or result.stdout or "").strip() or f"exit code {result.returncode}"
            raise LaunchError(f"failed to {description}: {detail}")
        return result

    def is_available(self) -> bool:
        try:
            return self._tmux("-V").returncode == 0
        except LaunchError:
            return False

    def list_sessions(self) -> List[str]:
        """
        Names of all live sessions; empty when no tmux server is running.

        Raises:
            LaunchError: If tmux fails for any other reason
        """
        result = self._tmux("list-sessions", "-F", "#{session_name}")
        if result.returncode != 0:
            stderr = (result.stderr or "").lower()
            if any(marker in stderr for marker in _NO_SERVER_MARKERS):
                return []
            raise LaunchError(f"failed to list tmux sessions: {(result.stderr or '').strip()}")
        return [line for line in result.stdout.splitlines() if line.strip()]

    def session_exists(self, name: str) -> bool:
        try:
            return name in self.list_sessions()
        except LaunchError:
            return False

    def session_info(self, name: str) -> TmuxSessionInfo:
        """
        Describe one session.

        Raises:
            LaunchError: If the session is gone or tmux output is malformed
        """
        result = self._checked(
            f"get session info for '{name}'",
            "display-message", "-p", "-t", name, _SESSION_INFO_FORMAT,
        )
        fields = result.stdout.split()
        if len(fields) < 5:
            raise LaunchError(f"unexpected session info format for '{name}': {result.stdout.strip()!r}")
        try:
            windows = int(fields[1])
            attached = int(fields[2])
        except ValueError as e:
            raise LaunchError(f"unexpected session info format for '{name}'") from e
        return TmuxSessionInfo(
            name=fields[0],
            windows=windows,
            attached=attached,
            activity=_parse_epoch(fields[3]),
            created=_parse_epoch(fields[4]) or datetime.now(timezone.utc),
        )

    def window_count(self, name: str) -> int:
        result = self._checked(f"count windows for session '{name}'", "list-windows", "-t", name, "-F", "#{window_index}")
        return len([line for line in result.stdout.splitlines() if line.strip()])

    @staticmethod
    def _env_args(env: Dict[str, str]) -> List[str]:
        args: List[str] = []
        for key, value in env.items():
            args.extend(["-e", f"{key}={value}"])
        return args

    def _send_keys(self, target: str, line: str) -> None:
        self._checked(f"send keys to '{target}'", "send-keys", "-t", target, line, "Enter")

    def create_or_attach(self, name: str, command: ShellCommand) -> Tuple[str, bool]:
        """
        Create a session running ``command``, or reuse the existing one.

        Returns:
            (session name, whether the session already existed)

        Raises:
            LaunchError: If tmux is missing or the session cannot be created
        """
        return self.create_group(name, [(name, command)])

    def create_group(self, name: str, windows: Sequence[Tuple[str, ShellCommand]]) -> Tuple[str, bool]:
        """
        Create a session with one window per ``(window_name, command)``.

        An existing session with the normalised name is returned untouched.
        If a later window fails, the half-built session is killed.
        """
        if not windows:
            raise LaunchError(f"session '{name}' needs at least one window")
        if not self.is_available():
            raise LaunchError("tmux is not available on this system")

        session_name = normalize_session_name(name)
        if session_name in self.list_sessions():
            logger.info("Reusing existing tmux session %s", session_name)
            return session_name, True

        first_window, first_command = windows[0]
        self._checked(
            f"create tmux session '{session_name}'",
            "new-session", "-d", "-s", session_name, "-n", first_window,
            *self._env_args(first_command.env),
        )
        try:
            self._send_keys(f"{session_name}:0", first_command.line)
            for index, (window_name, command) in enumerate(windows[1:], start=1):
                self._checked(
                    f"create window '{window_name}' in session '{session_name}'",
                    "new-window", "-d", "-t", f"{session_name}:{index}", "-n", window_name,
                    *self._env_args(command.env),
                )
                self._send_keys(f"{session_name}:{index}", command.line)
        except LaunchError:
            self._kill_quietly(session_name)
            raise

        logger.info("Created tmux session %s with %d window(s)", session_name, len(windows))
        return session_name, False

    def _kill_quietly(self, name: str) -> None:
        try:
            self.kill_session(name)
        except LaunchError as e:
            logger.warning("Failed to clean up tmux session %s: %s", name, e)

    def kill_session(self, name: str) -> None:
        self._checked(f"kill session '{name}'", "kill-session", "-t", name)

    def attach(self, name: str) -> None:
        """
        Attach the caller's terminal to a session; blocks until detach.

        Raises:
            LaunchError: If tmux exits with an error
        """
        try:
            result = self._run([self.binary, "attach-session", "-t", name], check=False)
        except FileNotFoundError as e:
            raise LaunchError("tmux is not installed on this system") from e
        if result.returncode != 0:
            raise LaunchError(f"failed to attach to session '{name}' (exit code {result.returncode})")
