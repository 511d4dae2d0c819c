"""
Terminal multiplexer collaborator (tmux).
"""

from .manager import ShellCommand, TmuxManager, TmuxSessionInfo, normalize_session_name

__all__ = ["ShellCommand", "TmuxManager", "TmuxSessionInfo", "normalize_session_name"]
