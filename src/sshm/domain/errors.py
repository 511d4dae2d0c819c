"""
Error taxonomy for the connection core.

Every error carries an ``ErrorKind`` so callers can branch on the failing
stage without matching message text. The underlying cause, when there is
one, is chained through ``__cause__``.
"""

from enum import Enum
from typing import List, Optional, Sequence, Tuple


class ErrorKind(str, Enum):
    """Stage or subsystem an error originated from."""

    CONFIGURATION = "configuration"
    CREDENTIAL = "credential"
    CANCELLED = "cancelled"
    CONNECTIVITY = "connectivity"
    TIMEOUT = "timeout"
    LAUNCH = "launch"
    RECORDER = "recorder"
    MONITOR = "monitor"
    STORE = "store"


class SshmError(Exception):
    """Base exception for all sshm errors."""

    kind: ErrorKind = ErrorKind.CONFIGURATION

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        if cause is not None:
            self.__cause__ = cause

    @property
    def cause(self) -> Optional[BaseException]:
        """The wrapped lower-level exception, if any."""
        return self.__cause__


class ConfigurationError(SshmError):
    """Target configuration cannot be used (missing key path, bad auth kind)."""

    kind = ErrorKind.CONFIGURATION


class CredentialError(SshmError):
    """No credential could be obtained from the store or the prompt."""

    kind = ErrorKind.CREDENTIAL


class UserCancelled(SshmError):
    """The interactive prompt was aborted."""

    kind = ErrorKind.CANCELLED


class ConnectivityError(SshmError):
    """
    Probing failed for every offered authentication method.

    ``failures`` lists ``(subject, message)`` pairs, where the subject is an
    auth method for a single probe or a member name for a group launch.
    """

    kind = ErrorKind.CONNECTIVITY

    def __init__(
        self,
        message: str,
        failures: Optional[Sequence[Tuple[str, str]]] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message, cause)
        self.failures: List[Tuple[str, str]] = list(failures or [])

    @property
    def failed_subjects(self) -> List[str]:
        return [subject for subject, _ in self.failures]


class ProbeTimeout(ConnectivityError):
    """The probe did not finish inside its deadline."""

    kind = ErrorKind.TIMEOUT


class LaunchError(SshmError):
    """The multiplexer could not create or attach the session."""

    kind = ErrorKind.LAUNCH


class RecorderError(SshmError):
    """Writing to or opening the history store failed."""

    kind = ErrorKind.RECORDER


class MonitorTickError(SshmError):
    """One health-check tick could not list or describe sessions."""

    kind = ErrorKind.MONITOR


class CredentialStoreError(SshmError):
    """The credential backend failed."""

    kind = ErrorKind.STORE


class CredentialNotFound(CredentialStoreError):
    """No secret is stored under the requested id."""


class AgentUnavailable(SshmError):
    """No SSH agent is reachable or it holds no keys."""

    kind = ErrorKind.CREDENTIAL
