"""dmmp context -- log verbosity, log sink, userdata and the per-call socket.

A context is not thread safe. Use one context per thread; several contexts
may exist at the same time, each opening its own connection.
"""

from __future__ import annotations

import os
import sys
from typing import TYPE_CHECKING, Any, Callable, Optional

from .log import DEFAULT_LOG_PRIORITY, LogPriority, log_stderr

if TYPE_CHECKING:
    from .config import ContextConfig
    from .protocol import IpcConnection


DEFAULT_SOCKET_PATH = "/org/kernel/linux/storage/multipathd"
DEFAULT_IPC_TIMEOUT = 60000  # milliseconds

LogFunc = Callable[["Context", int, str, int, str, str, tuple], None]


class Context:
    """Handle grouping diagnostic behaviour and the transient daemon socket."""

    def __init__(self) -> None:
        self._log_func: LogFunc = log_stderr
        self._log_priority = DEFAULT_LOG_PRIORITY
        self._userdata: Any = None
        self.socket_path = DEFAULT_SOCKET_PATH
        self.ipc_timeout = DEFAULT_IPC_TIMEOUT
        self._conn: Optional[IpcConnection] = None

    @classmethod
    def from_config(cls, config: ContextConfig) -> Context:
        """Create a context from a loaded ContextConfig."""
        ctx = cls()
        ctx.log_priority = config.log_priority
        ctx.socket_path = config.socket_path
        ctx.ipc_timeout = config.ipc_timeout
        return ctx

    @property
    def log_priority(self) -> LogPriority:
        return self._log_priority

    @log_priority.setter
    def log_priority(self, priority: int) -> None:
        self._log_priority = LogPriority(priority)

    @property
    def log_func(self) -> LogFunc:
        return self._log_func

    @log_func.setter
    def log_func(self, func: LogFunc) -> None:
        if not callable(func):
            raise TypeError("log_func must be callable")
        self._log_func = func

    @property
    def userdata(self) -> Any:
        return self._userdata

    @userdata.setter
    def userdata(self, userdata: Any) -> None:
        self._userdata = userdata

    # ------------------------------------------------------------------
    # Logging helpers used across the library
    # ------------------------------------------------------------------

    def debug(self, fmt: str, *args: Any) -> None:
        self._log(LogPriority.DEBUG, fmt, args)

    def info(self, fmt: str, *args: Any) -> None:
        self._log(LogPriority.INFO, fmt, args)

    def warn(self, fmt: str, *args: Any) -> None:
        self._log(LogPriority.WARNING, fmt, args)

    def error(self, fmt: str, *args: Any) -> None:
        self._log(LogPriority.ERROR, fmt, args)

    def _log(self, priority: LogPriority, fmt: str, args: tuple) -> None:
        if self._log_priority < priority:
            return
        # Frame of whoever called debug()/info()/warn()/error().
        frame = sys._getframe(2)
        code = frame.f_code
        self._log_func(
            self, priority, os.path.basename(code.co_filename),
            frame.f_lineno, code.co_name, fmt, args,
        )

    def close(self) -> None:
        """Release the context, closing a connection left open."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
