"""A multipathd look-alike answering the raw listing queries.

The mock listens on an abstract Unix socket, speaks the native size_t
framing, and serves ``show maps|groups|paths raw format <fmt>`` from an
in-memory Topology. Fault modes emulate misbehaving daemons.
"""

from __future__ import annotations

import logging
import re
import socket
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

import yaml

from ..context import DEFAULT_SOCKET_PATH
from ..protocol import SIZE_T, abstract_address, encode_frame, payload_to_str
from .cli import CommandWord, Dispatcher, KeyCode

logger = logging.getLogger("dmmp.daemon")

_WILDCARD_RE = re.compile(r"%(.)")


@dataclass
class MapRow:
    wwid: str
    alias: str


@dataclass
class GroupRow:
    wwid: str
    pg_id: Any
    priority: Any
    status: str
    selector: str


@dataclass
class PathRow:
    dev: str
    status: str
    wwid: str
    pg_id: Any


MAP_WILDCARDS = {"w": "wwid", "n": "alias"}
GROUP_WILDCARDS = {"w": "wwid", "g": "pg_id", "p": "priority", "t": "status", "s": "selector"}
PATH_WILDCARDS = {"d": "dev", "T": "status", "w": "wwid", "g": "pg_id"}


@dataclass
class Topology:
    """Rows the mock daemon prints, in emission order."""

    maps: list[MapRow] = field(default_factory=list)
    groups: list[GroupRow] = field(default_factory=list)
    paths: list[PathRow] = field(default_factory=list)

    @classmethod
    def from_dict(cls, d: dict) -> Topology:
        return cls(
            maps=[MapRow(**row) for row in d.get("maps") or []],
            groups=[GroupRow(**row) for row in d.get("groups") or []],
            paths=[PathRow(**row) for row in d.get("paths") or []],
        )

    @classmethod
    def from_yaml(cls, text: str) -> Topology:
        """Load a topology document::

            maps:
              - {wwid: "3600", alias: mpatha}
            groups:
              - {wwid: "3600", pg_id: 1, priority: 50, status: active,
                 selector: "round-robin 0"}
            paths:
              - {dev: sdb, status: ready, wwid: "3600", pg_id: 1}
        """
        data = yaml.safe_load(text)
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ValueError("topology must be a mapping")
        return cls.from_dict(data)


def render_rows(fmt: str, rows: list, wildcards: dict[str, str]) -> str:
    """Expand ``fmt`` once per row; unknown wildcards are printed verbatim."""
    def expand(row) -> str:
        def sub(m: re.Match) -> str:
            attr = wildcards.get(m.group(1))
            if attr is None:
                return m.group(0)
            value = getattr(row, attr)
            return "" if value is None else str(value)
        return _WILDCARD_RE.sub(sub, fmt)

    return "".join(expand(row) + "\n" for row in rows)


class Fault(Enum):
    CLOSE_AFTER_LENGTH = "close-after-length"
    ZERO_LENGTH = "zero-length"
    NO_REPLY = "no-reply"


def _recv_exact(sock: socket.socket, n: int) -> bytes:
    """Read exactly n bytes from a socket."""
    buf = bytearray()
    while len(buf) < n:
        chunk = sock.recv(n - len(buf))
        if not chunk:
            raise ConnectionError("Socket closed before all data received")
        buf.extend(chunk)
    return bytes(buf)


class MockDaemon:
    """Threaded abstract-socket server for one client session at a time."""

    def __init__(
        self,
        topology: Optional[Topology] = None,
        socket_path: str = DEFAULT_SOCKET_PATH,
        fault: Optional[Fault] = None,
    ):
        self.topology = topology if topology is not None else Topology()
        self.socket_path = socket_path
        self.fault = fault
        self.commands: list[str] = []
        self.dispatcher = Dispatcher.default()
        k = KeyCode
        self.dispatcher.set_handler_callback(k.LIST | k.MAPS | k.RAW | k.FMT, self._show_maps)
        self.dispatcher.set_handler_callback(k.LIST | k.GROUPS | k.RAW | k.FMT, self._show_groups)
        self.dispatcher.set_handler_callback(k.LIST | k.PATHS | k.RAW | k.FMT, self._show_paths)
        self._sock: Optional[socket.socket] = None
        self._thread: Optional[threading.Thread] = None
        self._stopping = threading.Event()

    # -- handlers ----------------------------------------------------------

    def _show_maps(self, cmdvec: list[CommandWord], data: Any) -> str:
        fmt = Dispatcher.get_keyparam(cmdvec, KeyCode.FMT) or ""
        return render_rows(fmt, self.topology.maps, MAP_WILDCARDS)

    def _show_groups(self, cmdvec: list[CommandWord], data: Any) -> str:
        fmt = Dispatcher.get_keyparam(cmdvec, KeyCode.FMT) or ""
        return render_rows(fmt, self.topology.groups, GROUP_WILDCARDS)

    def _show_paths(self, cmdvec: list[CommandWord], data: Any) -> str:
        fmt = Dispatcher.get_keyparam(cmdvec, KeyCode.FMT) or ""
        return render_rows(fmt, self.topology.paths, PATH_WILDCARDS)

    # -- lifecycle ---------------------------------------------------------

    def start(self) -> None:
        """Bind the socket and serve in a background thread."""
        if self._thread is not None:
            return
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        sock.bind(abstract_address(self.socket_path))
        sock.listen(8)
        sock.settimeout(0.1)
        self._sock = sock
        self._stopping.clear()
        self._thread = threading.Thread(target=self._serve_loop, daemon=True)
        self._thread.start()
        logger.debug("mock multipathd listening on @%s", self.socket_path)

    def stop(self) -> None:
        """Stop serving and release the socket."""
        self._stopping.set()
        if self._thread is not None:
            self._thread.join(timeout=5.0)
            self._thread = None
        if self._sock is not None:
            self._sock.close()
            self._sock = None

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, *args):
        self.stop()

    def _serve_loop(self) -> None:
        while not self._stopping.is_set():
            try:
                conn, _ = self._sock.accept()
            except socket.timeout:
                continue
            except OSError:
                break
            conn.settimeout(None)
            with conn:
                try:
                    self._handle(conn)
                except OSError as exc:
                    logger.debug("client connection dropped: %s", exc)

    def _handle(self, conn: socket.socket) -> None:
        while not self._stopping.is_set():
            try:
                header = _recv_exact(conn, SIZE_T.size)
            except ConnectionError:
                return
            length = SIZE_T.unpack(header)[0]
            cmd = payload_to_str(_recv_exact(conn, length))
            self.commands.append(cmd)
            logger.debug("got command %r", cmd)

            if self.fault is Fault.NO_REPLY:
                self._stopping.wait()
                return
            if self.fault is Fault.ZERO_LENGTH:
                conn.sendall(SIZE_T.pack(0))
                return

            frame = encode_frame(self.dispatcher.parse_cmd(cmd, self))
            if self.fault is Fault.CLOSE_AFTER_LENGTH:
                conn.sendall(frame[:SIZE_T.size])
                return
            conn.sendall(frame)
