"""Logging setup for stud.

Log records go to stderr so they never mix with command output on stdout.
"""

import logging
import sys
from enum import Enum
from typing import Any

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER = "stud"
QUIET_LIBRARIES = ("httpx", "httpcore")
PLAIN_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


class LogLevel(str, Enum):
    """Log level enumeration."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"

    @property
    def numeric(self) -> int:
        return logging.getLevelName(self.value.upper())


def level_for_flags(verbose: int, quiet: bool, default: LogLevel) -> LogLevel:
    """Pick the level from -v/-vv/-q, falling back to the configured one."""
    if verbose >= 2:
        return LogLevel.DEBUG
    if verbose == 1:
        return LogLevel.INFO
    if quiet:
        return LogLevel.ERROR
    return default


def _build_handler(rich_output: bool) -> logging.Handler:
    if rich_output:
        handler: logging.Handler = RichHandler(
            console=Console(stderr=True),
            show_time=False,
            show_path=False,
            markup=False,
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
    else:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(PLAIN_FORMAT, datefmt="%H:%M:%S"))
    return handler


def setup_logging(level: LogLevel = LogLevel.WARNING, rich_output: bool = True) -> logging.Logger:
    """Install a single stderr handler on the root logger and set levels.

    Calling it again replaces the previous handler.
    """
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    root.addHandler(_build_handler(rich_output))
    root.setLevel(level.numeric)

    for name in QUIET_LIBRARIES:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level.numeric)
    return logger


def get_logger(name: str) -> logging.Logger:
    """Logger below ``stud``; ``git`` and ``stud.git`` name the same one."""
    if name == ROOT_LOGGER or name.startswith(f"{ROOT_LOGGER}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


class StructuredLogger:
    """Logger that appends keyword arguments as ``[key=value ...]``."""

    def __init__(self, name: str):
        self._logger = get_logger(name)

    def _log(self, level: int, message: str, fields: dict[str, Any]) -> None:
        if not self._logger.isEnabledFor(level):
            return
        if fields:
            message = f"{message} [{' '.join(f'{k}={v}' for k, v in fields.items())}]"
        self._logger.log(level, message)

    def debug(self, message: str, /, **kwargs: Any) -> None:
        self._log(logging.DEBUG, message, kwargs)

    def info(self, message: str, /, **kwargs: Any) -> None:
        self._log(logging.INFO, message, kwargs)

    def warning(self, message: str, /, **kwargs: Any) -> None:
        self._log(logging.WARNING, message, kwargs)
