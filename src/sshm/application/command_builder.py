"""
Login command construction for launched sessions.
"""

import shlex
from typing import List, Optional

from sshm.domain import DEFAULT_SSH_PORT, AuthKind, Target
from sshm.infrastructure.tmux import ShellCommand

SSHPASS_ENV = "SSHPASS"


def _quote(argv: List[str]) -> str:
    return " ".join(shlex.quote(arg) for arg in argv)


def build_ssh_argv(target: Target, keepalive_interval: int = 60, keepalive_count_max: int = 3) -> List[str]:
    argv = ["ssh", "-t", f"{target.username}@{target.host}"]
    if target.port != DEFAULT_SSH_PORT:
        argv.extend(["-p", str(target.port)])
    if target.auth_kind == AuthKind.KEY and target.key_path:
        argv.extend(["-i", target.key_path])
    argv.extend(
        [
            "-o", f"ServerAliveInterval={keepalive_interval}",
            "-o", f"ServerAliveCountMax={keepalive_count_max}",
        ]
    )
    return argv


def build_ssh_command(
    target: Target,
    password: Optional[str] = None,
    keepalive_interval: int = 60,
    keepalive_count_max: int = 3,
) -> ShellCommand:
    """
    Shell command that opens an interactive ssh session to ``target``.

    Store-backed password targets with a resolved ``password`` log in
    through ``sshpass -e``; the secret travels in the window's SSHPASS
    environment variable and never appears in the command line. Everything
    else uses plain ssh, which prompts interactively where needed.
    """
    argv = build_ssh_argv(target, keepalive_interval, keepalive_count_max)

    if target.auth_kind == AuthKind.PASSWORD and target.is_store_backed and password:
        return ShellCommand(_quote(["sshpass", "-e", *argv]), {SSHPASS_ENV: password})

    return ShellCommand(_quote(argv))
