"""
Framed byte channel between two MyShell sessions.

Every message on the wire is ``tag (1 byte) | length (4 bytes BE) | payload``.
Text output, control signals and file content all travel as frames, so a
binary transfer can never be confused with ordinary command output.
"""
import logging
import socket
import struct
import threading
from enum import IntEnum
from typing import NamedTuple

from myshell.errors import ConnectionEnded

logger = logging.getLogger(__name__)

HEADER = struct.Struct(">BI")
MAX_PAYLOAD = 16 * 1024 * 1024


class Tag(IntEnum):
    """Frame types."""

    HELLO = 1
    TEXT = 2
    START = 3
    SIGNAL = 4
    NAME = 5
    KIND = 6
    SIZE = 7
    DATA = 8
    DIGEST = 9
    ABORT = 10


class Frame(NamedTuple):
    """A single decoded frame."""

    tag: int
    payload: bytes


class Channel:
    """Frame reader/writer over a connected stream socket.

    Writes are serialized so a reading thread may send signals while another
    thread sends text. Reads are expected from a single thread at a time.
    Socket failures of any kind surface as ``ConnectionEnded``.
    """

    def __init__(self, sock: socket.socket):
        self.sock = sock
        self._send_lock = threading.Lock()
        self._closed = False

    @property
    def peer(self) -> str:
        """Remote address as ``host:port``, or ``unknown``."""
        try:
            host, port = self.sock.getpeername()[:2]
        except OSError:
            return "unknown"
        return f"{host}:{port}"

    def send(self, tag: int, payload: bytes = b"") -> None:
        """Send one frame."""
        if len(payload) > MAX_PAYLOAD:
            raise ValueError(f"Frame payload too large: {len(payload)} bytes")
        data = HEADER.pack(int(tag), len(payload)) + payload
        try:
            with self._send_lock:
                self.sock.sendall(data)
        except OSError as e:
            raise ConnectionEnded(f"Connection ended: {e}") from e

    def send_text(self, text: str) -> None:
        self.send(Tag.TEXT, text.encode("utf-8"))

    def send_signal(self, success: bool) -> None:
        """Send a one byte signal: 1 for success, 0 for failure."""
        self.send(Tag.SIGNAL, b"\x01" if success else b"\x00")

    def try_send_signal(self, success: bool) -> None:
        """Send a signal, ignoring a connection that is already gone."""
        try:
            self.send_signal(success)
        except ConnectionEnded:
            logger.debug("Could not send signal %s, connection ended", success)

    def recv(self) -> Frame:
        """Block until a whole frame has arrived.

        Raises:
            ConnectionEnded: On EOF or any socket error
        """
        tag, length = HEADER.unpack(self._recv_exactly(HEADER.size))
        if length > MAX_PAYLOAD:
            raise ConnectionEnded(f"Frame too large: {length} bytes")
        payload = self._recv_exactly(length) if length else b""
        return Frame(tag, payload)

    def _recv_exactly(self, size: int) -> bytes:
        buffer = bytearray()
        while len(buffer) < size:
            try:
                chunk = self.sock.recv(size - len(buffer))
            except OSError as e:
                raise ConnectionEnded(f"Connection ended: {e}") from e
            if not chunk:
                raise ConnectionEnded()
            buffer.extend(chunk)
        return bytes(buffer)

    def close(self) -> None:
        """Shut the socket down, unblocking any thread stuck in ``recv``."""
        if self._closed:
            return
        self._closed = True
        try:
            self.sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        self.sock.close()


def signal_value(frame: Frame) -> int:
    """Return the value carried by a SIGNAL frame (0 when empty)."""
    return frame.payload[0] if frame.payload else 0


def decode_text(payload: bytes) -> str:
    """Decode a text payload, trimming trailing NUL and space padding."""
    return payload.rstrip(b"\x00 ").decode("utf-8", errors="replace")
