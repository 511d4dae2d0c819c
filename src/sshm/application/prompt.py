"""
Interactive secret prompt.
"""

import getpass
from typing import Callable

from sshm.domain import UserCancelled

PromptFunc = Callable[[str], str]


def getpass_prompt(text: str) -> str:
    """
    Ask for a secret on the controlling terminal without echo.

    Raises:
        UserCancelled: If the user aborts (Ctrl+C / Ctrl+D) or no terminal is attached
    """
    try:
        return getpass.getpass(text + " ")
    except (EOFError, KeyboardInterrupt, OSError) as e:
        raise UserCancelled("secret prompt was cancelled", cause=e) from e
