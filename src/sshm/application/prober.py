"""
Connectivity probing.

Tries a target's auth methods in order against the real host before a
session is launched, so a bad credential surfaces as an error instead of a
dead terminal window.
"""

import logging
import time
from typing import List, Optional, Sequence, Tuple

from sshm.domain import AuthKind, ConnectivityError, ProbeTimeout, Target, Timeouts
from sshm.infrastructure.ssh import AuthMethod, SSHClientFactory

from .credential_resolver import CredentialResolver

logger = logging.getLogger(__name__)


class ConnectivityProber:
    """
    Verifies that a target accepts at least one of its auth methods.

    Args:
        resolver: Produces the auth methods for a target
        ssh: Runs individual probes
        timeouts: Probe and test deadlines
    """

    def __init__(
        self,
        resolver: CredentialResolver,
        ssh: SSHClientFactory,
        timeouts: Optional[Timeouts] = None,
    ):
        self.resolver = resolver
        self.ssh = ssh
        self.timeouts = timeouts or Timeouts()

    def probe(
        self,
        target: Target,
        methods: Sequence[AuthMethod],
        deadline: Optional[float] = None,
    ) -> AuthMethod:
        """
        Try each method in order and return the first that authenticates.

        ``deadline`` bounds the whole call, not each method. The error is a
        ProbeTimeout when the last method tried ran out of time.

        Raises:
            ProbeTimeout: If the deadline expired before any method succeeded
            ConnectivityError: If every method failed, listing each failure
        """
        if not methods:
            raise ConnectivityError(f"no authentication methods available for {target.name}")

        budget = deadline if deadline is not None else self.timeouts.probe_timeout
        started = time.monotonic()
        failures: List[Tuple[str, str]] = []
        timed_out = False

        for method in methods:
            remaining = budget - (time.monotonic() - started)
            if remaining <= 0:
                timed_out = True
                failures.append((method.label, "deadline expired before this method was tried"))
                break
            timed_out = False
            try:
                self.ssh.probe(target.host, target.port, target.username, method, deadline=remaining)
            except ProbeTimeout as e:
                timed_out = True
                failures.append((method.label, e.message))
                logger.debug("Probe of %s with %s timed out", target.name, method.label)
            except ConnectivityError as e:
                failures.append((method.label, e.message))
                logger.debug("Probe of %s with %s failed: %s", target.name, method.label, e.message)
            else:
                logger.info("Connectivity to %s verified with %s", target.name, method.label)
                return method

        summary = "; ".join(f"{label}: {message}" for label, message in failures)
        if timed_out:
            raise ProbeTimeout(
                f"connectivity check for {target.name} timed out after {budget:.0f}s ({summary})",
                failures=failures,
            )
        raise ConnectivityError(
            f"all authentication methods failed for {target.name}: {summary}",
            failures=failures,
        )

    def validate(self, target: Target) -> Optional[AuthMethod]:
        """
        Opportunistic check run before launching a session.

        Password targets whose secret is not in the credential store are not
        probed: the interactive ssh prompt in the session does the checking.

        Returns:
            The method that authenticated, or None when the probe was skipped
        """
        if target.auth_kind == AuthKind.PASSWORD and not target.is_store_backed:
            logger.debug("Skipping connectivity probe for %s: password is not store-backed", target.name)
            return None

        methods = self.resolver.resolve(target)
        return self.probe(target, methods, deadline=self.timeouts.probe_timeout)

    def test_connection(self, target: Target) -> AuthMethod:
        """
        User-invoked connection test with a long deadline.

        Unlike ``validate`` every target is probed, prompting for secrets
        where needed.
        """
        methods = self.resolver.resolve(target)
        return self.probe(target, methods, deadline=self.timeouts.test_timeout)
