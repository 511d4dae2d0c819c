"""
Session launcher.

Orchestrates one connection attempt end to end: record the attempt, probe
the target, build the login command, create or reuse the tmux session and
record the outcome. Group launches do the same for every member and open
one window per member in a shared session.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from sshm.domain import (
    AttemptFilter,
    AttemptStatus,
    ConfigurationError,
    ConnectionAttempt,
    ConnectionKind,
    ConnectionStats,
    ConnectivityError,
    ProbeTimeout,
    RecorderError,
    SshmSettings,
    Target,
    UserCancelled,
)
from sshm.infrastructure.history import HistoryRepository
from sshm.infrastructure.tmux import ShellCommand, TmuxManager

from .command_builder import build_ssh_command
from .health_monitor import HealthMonitor
from .prober import ConnectivityProber

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _describe(error: BaseException) -> str:
    return str(error) or type(error).__name__


def status_for_error(error: BaseException) -> AttemptStatus:
    """Terminal attempt status for the error that ended an attempt."""
    if isinstance(error, ProbeTimeout):
        return AttemptStatus.TIMEOUT
    if isinstance(error, (UserCancelled, KeyboardInterrupt)):
        return AttemptStatus.CANCELLED
    return AttemptStatus.FAILED


@dataclass(frozen=True)
class LaunchResult:
    """Session a launch created or reused."""

    session_id: str
    was_existing: bool


class ConnectionManager:
    """
    Launches SSH sessions inside tmux and records every attempt.

    History writes are bookkeeping: a failed write is logged and never
    changes the outcome of the launch.

    Args:
        prober: Verifies connectivity before a session is created
        tmux: Creates and attaches sessions
        history: Connection history store
        settings: Keepalive and retention settings
        monitor: Health monitor that launched sessions are handed to
        clock: Source of attempt timestamps
    """

    def __init__(
        self,
        prober: ConnectivityProber,
        tmux: TmuxManager,
        history: HistoryRepository,
        settings: Optional[SshmSettings] = None,
        monitor: Optional[HealthMonitor] = None,
        clock: Clock = _utcnow,
    ):
        self.prober = prober
        self.tmux = tmux
        self.history = history
        self.settings = settings or SshmSettings()
        self.monitor = monitor
        self._clock = clock

    # -------------------------------------------------------------------
    # History bookkeeping
    # -------------------------------------------------------------------

    def _record(self, attempt: ConnectionAttempt) -> Optional[int]:
        try:
            return self.history.record(attempt)
        except RecorderError as e:
            logger.warning("Failed to record connection attempt for %s: %s", attempt.target_name, e)
            return None

    def _finish(
        self,
        attempt_id: Optional[int],
        status: AttemptStatus,
        error_message: Optional[str] = None,
        session_id: Optional[str] = None,
    ) -> None:
        if attempt_id is None:
            return
        try:
            self.history.finish(attempt_id, self._clock(), status, error_message, session_id)
        except RecorderError as e:
            logger.warning("Failed to update connection attempt %s: %s", attempt_id, e)

    def _command_for(self, target: Target, secret: Optional[str]) -> ShellCommand:
        return build_ssh_command(
            target,
            password=secret,
            keepalive_interval=self.settings.keepalive_interval,
            keepalive_count_max=self.settings.keepalive_count_max,
        )

    def _track(self, session_id: str, target_name: str) -> None:
        if self.monitor is not None:
            self.monitor.add_session(session_id, target_name)

    # -------------------------------------------------------------------
    # Launching
    # -------------------------------------------------------------------

    def launch_single(self, target: Target) -> LaunchResult:
        """
        Probe ``target`` and open (or reuse) its tmux session.

        Raises:
            ConfigurationError: The target cannot be connected to as configured
            CredentialError: No secret could be obtained
            UserCancelled: A secret prompt was aborted
            ConnectivityError: Every auth method failed (ProbeTimeout on deadline)
            LaunchError: tmux could not create the session
        """
        attempt_id = self._record(
            ConnectionAttempt(
                target_name=target.name,
                host=target.host,
                user=target.username,
                port=target.port,
                kind=ConnectionKind.SINGLE,
                start_time=self._clock(),
            )
        )

        try:
            target.validate_for_launch()
            auth = self.prober.validate(target)
            command = self._command_for(target, auth.secret if auth else None)
            session_id, was_existing = self.tmux.create_or_attach(target.name, command)
        except BaseException as e:
            self._finish(attempt_id, status_for_error(e), _describe(e))
            logger.error("Connection to %s failed: %s", target.name, e)
            raise

        self._finish(attempt_id, AttemptStatus.SUCCESS, session_id=session_id)
        self._track(session_id, target.name)
        logger.info(
            "%s session %s for %s",
            "Reusing" if was_existing else "Launched",
            session_id,
            target.name,
        )
        return LaunchResult(session_id, was_existing)

    def launch_group(self, group_name: str, targets: Sequence[Target]) -> LaunchResult:
        """
        Probe every member of a group, then open one session with a window
        per member.

        No session is created unless every member passes its probe.

        Raises:
            ConfigurationError: Empty group name or member list
            ConnectivityError: One or more members failed, naming each of them
            UserCancelled: A secret prompt was aborted
            LaunchError: tmux could not create the session
        """
        if not group_name.strip():
            raise ConfigurationError("group name cannot be empty")
        if not targets:
            raise ConfigurationError(f"group {group_name} has no members")

        group_attempt_id = self._record(
            ConnectionAttempt(
                target_name=group_name,
                group_name=group_name,
                host=f"{len(targets)} hosts",
                user="multiple",
                port=0,
                kind=ConnectionKind.GROUP,
                start_time=self._clock(),
            )
        )
        member_attempts: List[Tuple[Target, Optional[int]]] = [
            (
                member,
                self._record(
                    ConnectionAttempt(
                        target_name=member.name,
                        group_name=group_name,
                        host=member.host,
                        user=member.username,
                        port=member.port,
                        kind=ConnectionKind.GROUP,
                        start_time=self._clock(),
                    )
                ),
            )
            for member in targets
        ]

        windows: List[Tuple[str, ShellCommand]] = []
        failures: List[Tuple[str, str]] = []
        pending: List[Optional[int]] = []

        for index, (member, attempt_id) in enumerate(member_attempts):
            try:
                member.validate_for_launch()
                auth = self.prober.validate(member)
            except (UserCancelled, KeyboardInterrupt) as e:
                remaining = [later_id for _, later_id in member_attempts[index:]]
                self._abort_group(group_attempt_id, pending + remaining, AttemptStatus.CANCELLED, _describe(e))
                raise
            except Exception as e:  # pylint: disable=broad-except
                failures.append((member.name, str(e)))
                self._finish(attempt_id, AttemptStatus.FAILED, str(e))
                logger.warning("Group %s member %s failed: %s", group_name, member.name, e)
                continue
            pending.append(attempt_id)
            windows.append((member.name, self._command_for(member, auth.secret if auth else None)))

        if failures:
            details = "; ".join(f"{name}: {error}" for name, error in failures)
            message = (
                f"connectivity failed for {len(failures)} of {len(targets)} members "
                f"of group {group_name}: {details}"
            )
            self._abort_group(
                group_attempt_id,
                pending,
                AttemptStatus.CANCELLED,
                f"group {group_name} not launched: other members failed",
                group_status=AttemptStatus.FAILED,
                group_error=message,
            )
            logger.error(message)
            raise ConnectivityError(message, failures=failures)

        try:
            session_id, was_existing = self.tmux.create_group(group_name, windows)
        except BaseException as e:
            self._abort_group(group_attempt_id, pending, status_for_error(e), _describe(e))
            logger.error("Group %s launch failed: %s", group_name, e)
            raise

        for attempt_id in pending:
            self._finish(attempt_id, AttemptStatus.SUCCESS, session_id=session_id)
        self._finish(group_attempt_id, AttemptStatus.SUCCESS, session_id=session_id)
        self._track(session_id, group_name)
        logger.info(
            "%s group session %s with %d window(s)",
            "Reusing" if was_existing else "Launched",
            session_id,
            len(windows),
        )
        return LaunchResult(session_id, was_existing)

    def _abort_group(
        self,
        group_attempt_id: Optional[int],
        member_attempt_ids: Sequence[Optional[int]],
        status: AttemptStatus,
        error_message: str,
        group_status: Optional[AttemptStatus] = None,
        group_error: Optional[str] = None,
    ) -> None:
        for attempt_id in member_attempt_ids:
            self._finish(attempt_id, status, error_message)
        self._finish(group_attempt_id, group_status or status, group_error or error_message)

    # -------------------------------------------------------------------
    # Pass-throughs
    # -------------------------------------------------------------------

    def attach(self, session_id: str) -> None:
        self.tmux.attach(session_id)

    def is_available(self) -> bool:
        return self.tmux.is_available()

    def get_history(self, attempt_filter: Optional[AttemptFilter] = None) -> List[ConnectionAttempt]:
        return self.history.query(attempt_filter)

    def get_stats(self, target_name: str, group_name: str = "") -> ConnectionStats:
        return self.history.stats(target_name, group_name)

    def cleanup_old_history(self, retention_days: Optional[int] = None) -> int:
        """Purge history older than ``retention_days`` (settings default)."""
        days = retention_days if retention_days is not None else self.settings.history_retention_days
        return self.history.purge_older_than(timedelta(days=days))

    def get_recent_activity(self, hours: int = 24) -> Dict[str, int]:
        return self.history.get_recent_activity(hours)
