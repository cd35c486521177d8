"""Wire protocol for communicating with the multipathd socket.

Both directions use the same framing: a native ``size_t`` (host byte order
and width) holding the payload length, followed by the payload, which the
sender terminates with a NUL byte included in the length. Client and daemon
must therefore run with the same ``size_t`` width.
"""

from __future__ import annotations

import select
import signal
import socket
import struct
import sys
from typing import TYPE_CHECKING, Optional

from .errors import (
    BugError,
    ErrorCode,
    IpcError,
    IpcTimeoutError,
    NoDaemonError,
    NoMemoryError,
    strerror,
)

if TYPE_CHECKING:
    from .context import Context


SIZE_T = struct.Struct("N")

_SEND_FLAGS = getattr(socket, "MSG_NOSIGNAL", 0)

# Upper bound of a single recv() call.
RECV_CHUNK = 65536


def encode_frame(text: str) -> bytes:
    """Encode text as a length-prefixed, NUL-terminated frame."""
    payload = text.encode("utf-8") + b"\0"
    return SIZE_T.pack(len(payload)) + payload


def payload_to_str(payload: bytes) -> str:
    """Decode a frame payload, stopping at the first NUL."""
    return payload.split(b"\0", 1)[0].decode("utf-8", errors="replace")


def abstract_address(name: str) -> str:
    """Socket address of an abstract-namespace name."""
    return "\0" + name


class IpcConnection:
    """One short-lived session with multipathd.

    Every blocking read is preceded by a poll bounded by ``ctx.ipc_timeout``.
    Errors are logged through the context and raised as DmmpError
    subclasses.
    """

    def __init__(self, ctx: Context):
        self._ctx = ctx
        self._sock: Optional[socket.socket] = None

    @property
    def connected(self) -> bool:
        return self._sock is not None

    def connect(self) -> None:
        """Connect to the daemon's abstract socket."""
        if self._sock is not None:
            return
        ctx = self._ctx
        try:
            sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        except OSError as exc:
            ctx.error("BUG: Failed to create AF_UNIX/SOCK_STREAM socket "
                      "error %s: %s", exc.errno, exc.strerror)
            raise BugError(f"Failed to create socket: {exc}") from exc

        try:
            sock.connect(abstract_address(ctx.socket_path))
        except ConnectionRefusedError as exc:
            sock.close()
            ctx.error(strerror(ErrorCode.NO_DAEMON))
            raise NoDaemonError() from exc
        except OSError as exc:
            sock.close()
            ctx.error("%s, error(%s): %s", strerror(ErrorCode.IPC_ERROR),
                      exc.errno, exc.strerror)
            raise IpcError(f"{strerror(ErrorCode.IPC_ERROR)}: {exc}") from exc
        self._sock = sock

    def send(self, command: str) -> None:
        """Send one command frame with SIGPIPE blocked for this thread."""
        payload = command.encode("utf-8") + b"\0"
        old_mask = signal.pthread_sigmask(signal.SIG_BLOCK, {signal.SIGPIPE})
        try:
            self._ctx.debug("IPC: Sending data size '%d'", len(payload))
            self._send_all(SIZE_T.pack(len(payload)))
            self._ctx.debug("IPC: Sending command '%s'", command)
            self._send_all(payload)
        finally:
            signal.pthread_sigmask(signal.SIG_SETMASK, old_mask)

    def recv(self) -> str:
        """Receive one reply frame and return its text."""
        ctx = self._ctx
        length = SIZE_T.unpack(self._recv_all(SIZE_T.size))[0]
        if length == 0:
            ctx.error("BUG: Got zero length message")
            raise BugError("Got zero length message")
        ctx.debug("IPC: Received data size: %d", length)
        if length > sys.maxsize:
            ctx.error(strerror(ErrorCode.NO_MEMORY))
            raise NoMemoryError()
        return payload_to_str(self._recv_all(length))

    def exec(self, command: str) -> str:
        """Send a command and return the daemon's reply."""
        self.send(command)
        return self.recv()

    def close(self) -> None:
        if self._sock is not None:
            try:
                self._sock.close()
            except OSError:
                pass
            self._sock = None

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, *args):
        self.close()

    # ------------------------------------------------------------------
    # Partial I/O loops
    # ------------------------------------------------------------------

    def _require_socket(self) -> socket.socket:
        if self._sock is None:
            self._ctx.error("BUG: IPC used before connect")
            raise BugError("IPC used before connect")
        return self._sock

    def _send_all(self, data: bytes) -> None:
        ctx = self._ctx
        sock = self._require_socket()
        view = memoryview(data)
        while view:
            try:
                written = sock.send(view, _SEND_FLAGS)
            except (InterruptedError, BlockingIOError):
                continue
            except (BrokenPipeError, ConnectionResetError) as exc:
                ctx.error(strerror(ErrorCode.IPC_TIMEOUT))
                raise IpcTimeoutError() from exc
            except OSError as exc:
                ctx.error("BUG: Got unexpected error when sending message to "
                          "multipathd via socket, %s: %s", exc.errno, exc.strerror)
                raise BugError(f"Unexpected error while sending: {exc}") from exc
            if written == 0:
                # peer closed early
                ctx.error(strerror(ErrorCode.IPC_TIMEOUT))
                raise IpcTimeoutError()
            view = view[written:]

    def _recv_all(self, size: int) -> bytes:
        ctx = self._ctx
        sock = self._require_socket()
        poller = select.poll()
        poller.register(sock.fileno(), select.POLLIN)
        buf = bytearray()
        while len(buf) < size:
            try:
                events = poller.poll(ctx.ipc_timeout)
            except InterruptedError:
                continue
            except OSError as exc:
                ctx.error("BUG: Got unexpected error when receiving data from "
                          "multipathd via socket, %s: %s", exc.errno, exc.strerror)
                raise BugError(f"Unexpected error while polling: {exc}") from exc
            if not events:
                ctx.error("Connecting to multipathd socket got timeout")
                raise IpcError("Timeout waiting for multipathd reply")

            try:
                chunk = sock.recv(min(size - len(buf), RECV_CHUNK))
            except (InterruptedError, BlockingIOError):
                continue
            except ConnectionResetError as exc:
                ctx.error(strerror(ErrorCode.IPC_TIMEOUT))
                raise IpcTimeoutError() from exc
            except OSError as exc:
                ctx.error("BUG: Got unexpected error when receiving data from "
                          "multipathd via socket, %s: %s", exc.errno, exc.strerror)
                raise BugError(f"Unexpected error while receiving: {exc}") from exc
            if not chunk:
                # peer closed early
                ctx.error(strerror(ErrorCode.IPC_TIMEOUT))
                raise IpcTimeoutError()
            buf.extend(chunk)
        return bytes(buf)
