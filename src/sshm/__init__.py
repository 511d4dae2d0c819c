"""
sshm - SSH connection orchestration and session health.

Resolves credentials for SSH targets, verifies connectivity, launches
sessions inside tmux, records every attempt and watches the sessions it
launched.
"""

__version__ = "0.4.0"
