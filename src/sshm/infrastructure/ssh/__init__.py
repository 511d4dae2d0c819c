"""
SSH protocol collaborator: auth method construction and bounded probes.
"""

from .client import DEFAULT_PROBE_TIMEOUT, AuthMethod, SSHClientFactory

__all__ = ["DEFAULT_PROBE_TIMEOUT", "AuthMethod", "SSHClientFactory"]
