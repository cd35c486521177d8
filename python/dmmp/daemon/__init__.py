"""Daemon side of the multipathd socket protocol, used as a test double."""

from .cli import CliNoParamError, CliSyntaxError, CommandWord, Dispatcher, KeyCode
from .server import Fault, GroupRow, MapRow, MockDaemon, PathRow, Topology

__all__ = [
    'Dispatcher', 'KeyCode', 'CommandWord', 'CliSyntaxError', 'CliNoParamError',
    'MockDaemon', 'Topology', 'MapRow', 'GroupRow', 'PathRow', 'Fault',
]
