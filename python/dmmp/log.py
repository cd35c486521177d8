"""Default log sink.

Messages that pass a context's threshold end up here unless the caller
installed its own sink. They are rendered the libdmmp way and handed to the
``dmmp`` logger, which writes to stderr and does not propagate.
"""

from __future__ import annotations

import logging
import sys
from enum import IntEnum
from typing import TYPE_CHECKING, Any

from .errors import INVALID_ARGUMENT

if TYPE_CHECKING:
    from .context import Context


class LogPriority(IntEnum):
    ERROR = 3
    WARNING = 4
    INFO = 6
    DEBUG = 7


DEFAULT_LOG_PRIORITY = LogPriority.WARNING

# Messages shorter than this are padded before the source location.
ALIGN_WIDTH = 80

_PRIORITY_NAMES: dict[int, str] = {
    LogPriority.DEBUG: "debug",
    LogPriority.INFO: "info",
    LogPriority.WARNING: "warning",
    LogPriority.ERROR: "error",
}

_LOGGING_LEVELS: dict[int, int] = {
    LogPriority.DEBUG: logging.DEBUG,
    LogPriority.INFO: logging.INFO,
    LogPriority.WARNING: logging.WARNING,
    LogPriority.ERROR: logging.ERROR,
}


def log_priority_str(priority: int) -> str:
    return _PRIORITY_NAMES.get(priority, INVALID_ARGUMENT)


def log_priority_from_str(name: str) -> LogPriority:
    """Parse a priority name ("debug", "info", "warning", "error")."""
    for priority, priority_name in _PRIORITY_NAMES.items():
        if priority_name == name.lower():
            return LogPriority(priority)
    raise ValueError(f"Invalid log priority: {name!r}")


class _StderrHandler(logging.StreamHandler):
    """StreamHandler bound to whatever ``sys.stderr`` is at emit time."""

    def __init__(self, level: int = logging.NOTSET) -> None:
        logging.Handler.__init__(self, level)

    @property
    def stream(self):
        return sys.stderr


logger = logging.getLogger("dmmp")
logger.setLevel(logging.DEBUG)
logger.propagate = False
_handler = _StderrHandler()
_handler.setFormatter(logging.Formatter("%(message)s"))
logger.addHandler(_handler)


def format_message(fmt: str, args: tuple[Any, ...]) -> str:
    return fmt % args if args else fmt


def log_stderr(
    ctx: Context,
    priority: int,
    file: str,
    line: int,
    func_name: str,
    fmt: str,
    args: tuple[Any, ...],
) -> None:
    """The built-in sink: ``libdmmp <prio>: <msg>  ... # file:func():line``."""
    text = f"libdmmp {log_priority_str(priority)}: {format_message(fmt, args)}"
    # padding is computed from the message alone
    padding = " " * (ALIGN_WIDTH - len(text))
    if ctx.userdata is not None:
        text += f"(userdata: {ctx.userdata!r})"
    logger.log(
        _LOGGING_LEVELS.get(priority, logging.ERROR),
        "%s # %s:%s():%d",
        text + padding, file, func_name, line,
    )
