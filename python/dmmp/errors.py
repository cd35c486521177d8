"""Error numbers and the exception hierarchy raised by the public API."""

from __future__ import annotations

from enum import IntEnum


class ErrorCode(IntEnum):
    OK = 0
    NO_MEMORY = 1
    BUG = 2
    IPC_TIMEOUT = 3
    IPC_ERROR = 4
    NO_DAEMON = 5
    INCONSISTENT_DATA = 6


INVALID_ARGUMENT = "Invalid argument"

_ERROR_MESSAGES: dict[int, str] = {
    ErrorCode.OK: "OK",
    ErrorCode.NO_MEMORY: "Out of memory",
    ErrorCode.BUG: "BUG of libdmmp library",
    ErrorCode.IPC_TIMEOUT: (
        "Timeout when communicate with multipathd, "
        "try to increase 'uxsock_timeout' in config file"
    ),
    ErrorCode.IPC_ERROR: "Error when communicate with multipathd daemon",
    ErrorCode.NO_DAEMON: "The multipathd daemon not started",
    ErrorCode.INCONSISTENT_DATA: "Inconsistent data, try again",
}


def strerror(code: int) -> str:
    """Return the fixed human readable message for an error number."""
    return _ERROR_MESSAGES.get(code, INVALID_ARGUMENT)


class DmmpError(Exception):
    """Base class of every error surfaced by dmmp.

    ``code`` is the ErrorCode; ``str(exc)`` is the message.
    """

    code = ErrorCode.BUG

    def __init__(self, message: str | None = None):
        super().__init__(message if message is not None else strerror(self.code))


class NoMemoryError(DmmpError):
    code = ErrorCode.NO_MEMORY


class BugError(DmmpError):
    code = ErrorCode.BUG


class IpcTimeoutError(DmmpError):
    code = ErrorCode.IPC_TIMEOUT


class IpcError(DmmpError):
    code = ErrorCode.IPC_ERROR


class NoDaemonError(DmmpError):
    code = ErrorCode.NO_DAEMON


class InconsistentDataError(DmmpError):
    code = ErrorCode.INCONSISTENT_DATA
