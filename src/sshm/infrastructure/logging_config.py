"""
Logging setup for sshm.

Interactive launches log to stderr (coloured when stderr is a terminal) so
they never interleave with the tmux attach on stdout. The health monitor
usually runs with a log file as well, which always receives DEBUG.
"""

import logging
import os
import sys
from pathlib import Path
from typing import Iterable, Optional, Union

_RESET = "\033[0m"
_DIM = "\033[2m"

LEVEL_STYLES = {
    logging.DEBUG: "\033[2;37m",
    logging.INFO: "\033[36m",
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[91m",
    logging.CRITICAL: "\033[1;37;41m",
}

# Third-party loggers that are chatty at INFO
NOISY_LOGGERS = ("paramiko", "paramiko.transport")

CONSOLE_FORMAT = "[%(asctime)s] %(levelname)s [%(name)s] %(message)s"
FILE_FORMAT = "[%(asctime)s] %(levelname)-8s [%(name)s] %(threadName)s %(message)s"


class ColoredFormatter(logging.Formatter):
    """
    Console formatter that colours the level and dims the logger name.

    The record is restored after formatting so handlers that run later
    (the log file) see plain values.
    """

    def __init__(self, fmt: str, datefmt: Optional[str] = None, use_colors: bool = True):
        super().__init__(fmt, datefmt)
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        if not self.use_colors:
            return super().format(record)

        levelname, name = record.levelname, record.name
        style = LEVEL_STYLES.get(record.levelno, "")
        record.levelname = f"{style}{levelname:8}{_RESET}"
        record.name = f"{_DIM}{name}{_RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname, record.name = levelname, name


def level_from_env(default: int = logging.INFO) -> int:
    """Console level from SSHM_LOG_LEVEL (a level name), else ``default``."""
    name = os.environ.get("SSHM_LOG_LEVEL", "").strip().upper()
    if not name:
        return default
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else default


def setup_logging(
    level: int = logging.INFO,
    log_file: Optional[Union[str, Path]] = None,
    quiet: Iterable[str] = NOISY_LOGGERS,
) -> None:
    """
    Configure root logging for sshm.

    Args:
        level: Console level
        log_file: Optional log file path; always logs at DEBUG
        quiet: Logger names capped at WARNING
    """
    console = logging.StreamHandler(sys.stderr)
    console.setLevel(level)
    console.setFormatter(
        ColoredFormatter(CONSOLE_FORMAT, datefmt="%H:%M:%S", use_colors=sys.stderr.isatty())
    )
    handlers = [console]

    if log_file:
        path = Path(log_file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        handlers.append(file_handler)

    logging.basicConfig(level=logging.DEBUG, handlers=handlers, force=True)

    for name in quiet:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(
        "Logging configured (console=%s, file=%s)", logging.getLevelName(level), log_file or "-"
    )
