"""
Health monitor for live tmux sessions.

A background loop that, every check interval, lists live sessions, evicts
tracked sessions that disappeared, checks the rest by window count and
records one health observation per session.
"""

import dataclasses
import logging
import threading
import time
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from sshm.domain import (
    HealthObservation,
    HealthStats,
    HealthStatus,
    LaunchError,
    MonitorTickError,
    RecorderError,
    SessionRecord,
)
from sshm.infrastructure.history import HistoryRepository
from sshm.infrastructure.tmux import TmuxManager

logger = logging.getLogger(__name__)

DEFAULT_CHECK_INTERVAL = 30.0
SESSION_GONE_MESSAGE = "session no longer exists"

# Granularity of stop/cancel checks while waiting for the next tick
_WAIT_SLICE = 0.2


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class HealthMonitor:
    """
    Tracks the health of tmux sessions.

    The tracked map is guarded by one lock and every accessor returns
    copies, so callers can never mutate monitor state.

    Args:
        tmux: Lists and inspects live sessions
        history: Where observations are recorded (optional)
        check_interval: Seconds between ticks
        clock: Source of observation timestamps
    """

    def __init__(
        self,
        tmux: TmuxManager,
        history: Optional[HistoryRepository] = None,
        check_interval: float = DEFAULT_CHECK_INTERVAL,
        clock: Callable[[], datetime] = _utcnow,
    ):
        if check_interval <= 0:
            raise ValueError("check interval must be positive")
        self.tmux = tmux
        self.history = history
        self._check_interval = check_interval
        self._clock = clock
        self._sessions: Dict[str, SessionRecord] = {}
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    # -------------------------------------------------------------------
    # Tracked set
    # -------------------------------------------------------------------

    def add_session(self, session_id: str, target_name: str) -> None:
        """Track a session as healthy; re-adding resets its record."""
        now = self._clock()
        with self._lock:
            self._sessions[session_id] = SessionRecord(
                session_id=session_id,
                target_name=target_name,
                start_time=now,
                last_check_time=now,
                last_status=HealthStatus.HEALTHY,
            )
        logger.debug("Tracking session %s for %s", session_id, target_name)

    def remove_session(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)

    def get_session_info(self, session_id: str) -> Optional[SessionRecord]:
        with self._lock:
            record = self._sessions.get(session_id)
            return dataclasses.replace(record) if record else None

    def get_active_sessions(self) -> Dict[str, SessionRecord]:
        with self._lock:
            return {sid: dataclasses.replace(record) for sid, record in self._sessions.items()}

    def get_health_stats(self) -> HealthStats:
        with self._lock:
            records = list(self._sessions.values())
        return HealthStats(
            total=len(records),
            healthy=sum(1 for r in records if r.last_status == HealthStatus.HEALTHY),
            degraded=sum(1 for r in records if r.last_status == HealthStatus.DEGRADED),
            failed=sum(1 for r in records if r.last_status == HealthStatus.FAILED),
            unknown=sum(1 for r in records if r.last_status == HealthStatus.UNKNOWN),
            with_failures=sum(1 for r in records if r.consecutive_failures > 0),
        )

    @property
    def check_interval(self) -> float:
        with self._lock:
            return self._check_interval

    def set_check_interval(self, seconds: float) -> None:
        """Change the interval; applies from the next wait."""
        if seconds <= 0:
            raise ValueError("check interval must be positive")
        with self._lock:
            self._check_interval = seconds

    # -------------------------------------------------------------------
    # Checks
    # -------------------------------------------------------------------

    def _list_live(self) -> List[str]:
        try:
            return self.tmux.list_sessions()
        except LaunchError as e:
            raise MonitorTickError(f"failed to list tmux sessions: {e.message}", cause=e) from e

    def discover(self) -> int:
        """
        Replace the tracked set with every live session, status unknown.

        Sessions that cannot be described are skipped.

        Returns:
            Number of sessions now tracked

        Raises:
            MonitorTickError: If the live listing fails
        """
        discovered: Dict[str, SessionRecord] = {}
        now = self._clock()
        for name in self._list_live():
            try:
                info = self.tmux.session_info(name)
            except LaunchError as e:
                logger.debug("Skipping session %s during discovery: %s", name, e)
                continue
            discovered[name] = SessionRecord(
                session_id=name,
                target_name=name,
                start_time=info.created,
                last_check_time=now,
                last_status=HealthStatus.UNKNOWN,
            )

        with self._lock:
            self._sessions = discovered
        logger.info("Discovered %d existing tmux session(s)", len(discovered))
        return len(discovered)

    def tick(self) -> List[HealthObservation]:
        """
        Run one health check over the tracked set.

        Returns:
            The observations emitted, one per session checked or evicted

        Raises:
            MonitorTickError: If the live listing fails
        """
        # Snapshot before listing so a session added meanwhile waits for the next tick
        with self._lock:
            tracked = [(sid, record.target_name) for sid, record in self._sessions.items()]
        live = set(self._list_live())

        observations: List[HealthObservation] = []
        for session_id, target_name in tracked:
            if session_id not in live:
                with self._lock:
                    self._sessions.pop(session_id, None)
                logger.info("Session %s for %s no longer exists", session_id, target_name)
                observations.append(
                    HealthObservation(
                        session_id=session_id,
                        target_name=target_name,
                        check_time=self._clock(),
                        status=HealthStatus.FAILED,
                        error_message=SESSION_GONE_MESSAGE,
                    )
                )
                continue
            observation = self._check_session(session_id, target_name)
            if observation is not None:
                observations.append(observation)

        for observation in observations:
            self._record(observation)
        return observations

    def _check_session(self, session_id: str, target_name: str) -> Optional[HealthObservation]:
        started = time.monotonic()
        error: Optional[str] = None
        try:
            windows = self.tmux.window_count(session_id)
        except LaunchError as e:
            status = HealthStatus.FAILED
            error = e.message
        else:
            if windows > 0:
                status = HealthStatus.HEALTHY
            else:
                status = HealthStatus.DEGRADED
                error = "session has no windows"
        latency_ms = int((time.monotonic() - started) * 1000)
        now = self._clock()

        with self._lock:
            record = self._sessions.get(session_id)
            if record is None:
                # Removed while the check was running
                return None
            record.last_check_time = now
            record.last_status = status
            if status == HealthStatus.HEALTHY:
                record.consecutive_failures = 0
            else:
                record.consecutive_failures += 1

        if status != HealthStatus.HEALTHY:
            logger.warning("Session %s for %s is %s: %s", session_id, target_name, status.value, error)
        return HealthObservation(
            session_id=session_id,
            target_name=target_name,
            check_time=now,
            status=status,
            response_time_ms=latency_ms,
            error_message=error,
        )

    def _record(self, observation: HealthObservation) -> None:
        if self.history is None:
            return
        try:
            self.history.record_health(observation)
        except RecorderError as e:
            logger.warning("Failed to record health for session %s: %s", observation.session_id, e)

    # -------------------------------------------------------------------
    # Loop
    # -------------------------------------------------------------------

    def _wait(self, cancel_event: Optional[threading.Event]) -> bool:
        """Wait one interval; False when stopped or cancelled meanwhile."""
        deadline = time.monotonic() + self.check_interval
        while True:
            if self._stop.is_set() or (cancel_event is not None and cancel_event.is_set()):
                return False
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return True
            self._stop.wait(min(_WAIT_SLICE, remaining))

    def run(self, cancel_event: Optional[threading.Event] = None) -> None:
        """
        Discover, then tick every interval until stopped or cancelled.

        Tick failures are logged and the loop carries on.
        """
        try:
            self.discover()
        except MonitorTickError as e:
            logger.error("Session discovery failed: %s", e)

        while self._wait(cancel_event):
            try:
                self.tick()
            except MonitorTickError as e:
                logger.error("Health check failed: %s", e)
        logger.info("Health monitor stopped")

    def start(self, cancel_event: Optional[threading.Event] = None) -> threading.Thread:
        """Run the loop on a background thread."""
        if self._thread is not None and self._thread.is_alive():
            raise RuntimeError("health monitor is already running")
        self._stop.clear()
        self._thread = threading.Thread(
            target=self.run,
            args=(cancel_event,),
            name="sshm-health-monitor",
            daemon=True,
        )
        self._thread.start()
        logger.info("Health monitor started (interval %.0fs)", self.check_interval)
        return self._thread

    def stop(self) -> None:
        self._stop.set()

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
