"""Path and path group status enums and their wire representations.

Each enum has a bidirectional mapping between its value and the token
multipathd prints in raw listings (``ready``, ``i/o pending``, ...).
"""

from __future__ import annotations

from enum import IntEnum
from typing import TYPE_CHECKING

from .errors import INVALID_ARGUMENT

if TYPE_CHECKING:
    from .context import Context


class PathStatus(IntEnum):
    UNKNOWN = 0
    DOWN = 2
    UP = 3
    SHAKY = 4
    GHOST = 5
    PENDING = 6
    TIMEOUT = 7
    DELAYED = 9


class PathGroupStatus(IntEnum):
    UNKNOWN = 0
    ENABLED = 1
    DISABLED = 2
    ACTIVE = 3


class StatusMap:
    """Bidirectional enum value <-> wire token mapping."""

    def __init__(self, name: str, forward: dict[int, str], unknown: IntEnum) -> None:
        self.name = name
        self.forward = forward
        self.reverse = {token: value for value, token in forward.items()}
        self.unknown = unknown

    def to_string(self, value: int) -> str:
        """Wire token of ``value``, or "Invalid argument" when out of range."""
        return self.forward.get(value, INVALID_ARGUMENT)

    def from_string(self, token: str, ctx: Context | None = None):
        """Enum member for a wire token.

        Unknown tokens map to the UNKNOWN member and are reported as a
        warning through ``ctx``.
        """
        value = self.reverse.get(token)
        if value is None:
            if ctx is not None:
                ctx.warn("Got unknown %s: '%s'", self.name, token)
            return self.unknown
        return value


PATH_STATUS_MAP = StatusMap(
    "path status",
    {
        PathStatus.UNKNOWN: "undef",
        PathStatus.UP: "ready",
        PathStatus.DOWN: "faulty",
        PathStatus.SHAKY: "shaky",
        PathStatus.GHOST: "ghost",
        PathStatus.PENDING: "i/o pending",
        PathStatus.TIMEOUT: "i/o timeout",
        PathStatus.DELAYED: "delayed",
    },
    PathStatus.UNKNOWN,
)

PATH_GROUP_STATUS_MAP = StatusMap(
    "path group status",
    {
        PathGroupStatus.UNKNOWN: "undef",
        PathGroupStatus.ACTIVE: "active",
        PathGroupStatus.DISABLED: "disabled",
        PathGroupStatus.ENABLED: "enabled",
    },
    PathGroupStatus.UNKNOWN,
)


def path_status_str(status: int) -> str:
    return PATH_STATUS_MAP.to_string(status)


def path_group_status_str(status: int) -> str:
    return PATH_GROUP_STATUS_MAP.to_string(status)
