"""
Remote MyShell sessions: the Connection object and Host/Connect roles.

A session always has two ends. The *host* end is the command target: its
environment is attached to the connection and its ordinary command loop
reads lines typed on the other machine. The *client* end drives: a
``ReadingThread`` prints what the host sends (and receives files the host
pushes) while the foreground forwards keyboard lines.

Which end takes which role is decided by the accepting side and announced in
a HELLO frame, so ``host --reverse`` lets the listening machine drive.
"""
import logging
import queue
import socket
import threading
from collections import deque
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from myshell.errors import ConnectionEnded, ProtocolError, TransferError
from myshell.net.channel import Channel, Tag, signal_value
from myshell.net.crypto import StreamCipher
from myshell.net.transfer import (
    TransferReceiver,
    TransferSender,
    is_transfer_start,
)

logger = logging.getLogger(__name__)

HELLO_HOST = b"host"
HELLO_REVERSE = b"reverse"
LOCAL_COMMANDS = ("upload",)
EXIT_COMMAND = "exit"
TRANSFER_BUSY = "A download is still in progress, try again when it has finished."


class Role(str, Enum):
    """Which end of a session this shell is."""

    HOST = "host"
    CLIENT = "client"


class Connection:
    """State of one active remote session."""

    def __init__(
        self,
        channel: Channel,
        password_hash: str,
        download_path: Path,
        role: Role
    ):
        self.channel = channel
        self.encrypto = StreamCipher(password_hash, StreamCipher.ENCRYPT)
        self.decrypto = StreamCipher(password_hash, StreamCipher.DECRYPT)
        self.download_path = Path(download_path)
        self.role = role
        self.peer = channel.peer
        # Filled by the reading thread on the client end
        self.signals = queue.Queue()
        self._lines = deque()
        self._partial = ""

    def sender(self, write: Callable[[str], None]) -> TransferSender:
        return TransferSender(self.channel, self.encrypto, self.read_signal, write)

    def receiver(
        self,
        write: Callable[[str], None],
        on_text: Optional[Callable[[str], None]] = None
    ) -> TransferReceiver:
        on_signal = self.signals.put if self.role is Role.CLIENT else None
        return TransferReceiver(
            self.channel, self.decrypto, self.download_path, write, on_text,
            on_signal)

    def receive(
        self,
        write: Callable[[str], None],
        on_text: Optional[Callable[[str], None]] = None
    ) -> Optional[Path]:
        """Receive one entry after a START frame; failures are only reported."""
        try:
            return self.receiver(write, on_text).receive_entry()
        except TransferError as e:
            logger.warning("Transfer from %s failed: %s", self.peer, e)
            write(str(e))
            return None

    def read_signal(self) -> int:
        """Wait for the peer's next signal byte.

        A transfer the peer starts meanwhile is refused with a 0 signal.

        Raises:
            ConnectionEnded: If the connection is gone
        """
        if self.role is Role.CLIENT:
            value = self.signals.get()
            if value is None:
                # Leave the sentinel for anyone else waiting
                self.signals.put(None)
                raise ConnectionEnded()
            return value

        while True:
            frame = self.channel.recv()
            if frame.tag == Tag.SIGNAL:
                return signal_value(frame)
            if frame.tag == Tag.TEXT:
                self._buffer_text(frame.payload.decode("utf-8", errors="replace"))
                continue
            if is_transfer_start(frame):
                logger.info("Refusing transfer from %s, another one is running", self.peer)
                self.channel.send_signal(False)
                continue
            raise ProtocolError(f"Unexpected frame {frame.tag} while waiting for a signal")

    def read_line(self, write: Callable[[str], None]) -> str:
        """Return the next line typed by the peer.

        Files the peer uploads in the meantime are received on the spot.
        """
        while not self._lines:
            frame = self.channel.recv()
            if frame.tag == Tag.TEXT:
                self._buffer_text(frame.payload.decode("utf-8", errors="replace"))
            elif is_transfer_start(frame):
                self.receive(write, on_text=self._buffer_text)
            else:
                logger.debug("Ignoring frame %s from %s", frame.tag, self.peer)
        return self._lines.popleft()

    def _buffer_text(self, text: str):
        *lines, self._partial = (self._partial + text).split("\n")
        self._lines.extend(line.rstrip("\r") for line in lines)

    def close(self):
        self.channel.close()


class ChannelWriter:
    """File-like object that sends everything written to it as TEXT frames."""

    encoding = "utf-8"

    def __init__(self, channel: Channel):
        self.channel = channel

    def write(self, text: str) -> int:
        if text:
            self.channel.send_text(text)
        return len(text)

    def flush(self):
        pass

    def isatty(self) -> bool:
        return False


class ReadingThread(threading.Thread):
    """Reads everything the host sends to a driving client.

    Text is echoed locally, a transfer start hands over to the receiver and
    signals are queued for an upload running in the foreground. The thread is
    stopped by closing the connection, which unblocks its pending read.
    """

    def __init__(self, env, connection: Connection):
        super().__init__(name="Reading thread", daemon=True)
        self.env = env
        self.connection = connection
        self.signals = connection.signals
        # Set while a file the host pushes is being received
        self.receiving = threading.Event()
        self._stop_event = threading.Event()

    def stop(self):
        self._stop_event.set()
        self.connection.close()

    def run(self):
        channel = self.connection.channel
        try:
            while not self._stop_event.is_set():
                frame = channel.recv()
                if is_transfer_start(frame):
                    self.receiving.set()
                    try:
                        self.connection.receive(self.env.writeln, on_text=self.env.write)
                    finally:
                        self.receiving.clear()
                elif frame.tag == Tag.TEXT:
                    self.env.write(frame.payload.decode("utf-8", errors="replace"))
                elif frame.tag == Tag.SIGNAL:
                    self.signals.put(signal_value(frame))
                else:
                    logger.debug("Ignoring frame %s from %s", frame.tag, self.connection.peer)
        except ConnectionEnded as e:
            if not self._stop_event.is_set():
                self.env.writeln(str(e))
        finally:
            self.signals.put(None)


def host(env, connection: Connection) -> None:
    """Serve commands typed by the peer until it exits or disconnects."""
    from myshell.repl.loop import run_command_loop  # pylint: disable=import-outside-toplevel

    env.writeln(f"{connection.peer} connected.")
    with env.attach(connection, redirect=True):
        run_command_loop(env)
    env.writeln(f"{connection.peer} disconnected.")


def drive(env, connection: Connection) -> None:
    """Forward keyboard lines to the peer and show what it sends back."""
    reader = ReadingThread(env, connection)
    with env.attach(connection, redirect=False):
        reader.start()
        try:
            _forward_input(env, connection, reader)
        except ConnectionEnded as e:
            env.writeln(str(e))
        finally:
            reader.stop()
            reader.join(timeout=5)


def _forward_input(env, connection: Connection, reader: ReadingThread):
    # pylint: disable=import-outside-toplevel
    from myshell.repl.commands import get_command
    from myshell.repl.loop import execute_line

    while reader.is_alive():
        try:
            line = env.read_local_line(prompt="")
        except (EOFError, KeyboardInterrupt):
            line = "exit"
        if not reader.is_alive():
            return

        words = line.split(maxsplit=1)
        command = get_command(words[0]) if words else None
        if command is not None and command.name in LOCAL_COMMANDS:
            if reader.receiving.is_set():
                env.writeln(TRANSFER_BUSY)
            else:
                execute_line(env, line)
            continue

        connection.channel.send_text(line + "\n")
        if command is not None and command.name == EXIT_COMMAND:
            env.writeln(f"Disconnected from {connection.peer}")
            return


def open_listener(port: int) -> socket.socket:
    """Bind a listening socket on ``port`` (0 picks a free port)."""
    listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        listener.bind(("", port))
        listener.listen(1)
    except OSError:
        listener.close()
        raise
    return listener


def serve(
    env,
    listener: socket.socket,
    password_hash: str,
    download_path: Path,
    reverse: bool = False
) -> None:
    """Accept exactly one peer on ``listener`` and run the session."""
    sock, _ = listener.accept()
    channel = Channel(sock)
    try:
        channel.send(Tag.HELLO, HELLO_REVERSE if reverse else HELLO_HOST)
        role = Role.CLIENT if reverse else Role.HOST
        connection = Connection(channel, password_hash, download_path, role)
        if reverse:
            drive(env, connection)
        else:
            host(env, connection)
    finally:
        channel.close()


def dial(
    env,
    address: str,
    port: int,
    password_hash: str,
    download_path: Path,
    timeout: Optional[float] = None
) -> None:
    """Connect to a hosting shell and run the session.

    Raises:
        OSError: If the host can not be reached
        ConnectionEnded: If the host hangs up before the session starts
    """
    sock = socket.create_connection((address, port), timeout=timeout)
    sock.settimeout(None)
    channel = Channel(sock)
    try:
        env.writeln(f"Connected to {channel.peer}")
        hello = channel.recv()
        if hello.tag != Tag.HELLO:
            raise ProtocolError(f"{channel.peer} is not a MyShell host")
        reverse = hello.payload == HELLO_REVERSE
        role = Role.HOST if reverse else Role.CLIENT
        connection = Connection(channel, password_hash, download_path, role)
        if reverse:
            host(env, connection)
        else:
            drive(env, connection)
    finally:
        channel.close()
