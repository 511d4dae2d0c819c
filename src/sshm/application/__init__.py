"""
Application layer: credential resolution, probing, launching and health
monitoring.
"""

from .command_builder import build_ssh_command
from .container import Container
from .credential_resolver import CredentialResolver
from .health_monitor import HealthMonitor
from .launcher import ConnectionManager, LaunchResult, status_for_error
from .password_manager import PasswordManager
from .prober import ConnectivityProber
from .prompt import getpass_prompt

__all__ = [
    "build_ssh_command",
    "Container",
    "CredentialResolver",
    "HealthMonitor",
    "ConnectionManager",
    "LaunchResult",
    "status_for_error",
    "PasswordManager",
    "ConnectivityProber",
    "getpass_prompt",
]
