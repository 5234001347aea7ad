"""
Lockstep file transfer protocol between two MyShell sessions.

One entry (a file or a directory) is transferred as a fixed sequence of
steps. The sender always initiates a step and never proceeds before the
receiver answers it with a SIGNAL frame (1 success, 0 failure)::

    START  -> signal        receiver accepted the transfer
    NAME   -> signal        relative posix name of the entry
    KIND   -> signal        0 file, 1 directory (directories stop here)
    SIZE   -> signal        ciphertext size the receiver must read
              signal        receiver prepared the target (ready)
    DATA*                   ciphertext, chunked at the sender's convenience
    DIGEST -> signal        plaintext HMAC; 1 means the file is complete

Directory uploads repeat the sequence for every entry in a depth-first,
pre-order walk. A failed entry is reported and the walk continues.
"""
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import BinaryIO, Callable, Iterator, List, Optional, Tuple

from myshell.errors import (
    AuthenticationError,
    ConnectionEnded,
    PaddingError,
    ProtocolError,
    TransferError,
)
from myshell.net.channel import MAX_PAYLOAD, Channel, Frame, Tag, decode_text, signal_value
from myshell.net.crypto import BLOCK_SIZE, StreamCipher, post_encrypt_size
from myshell.net.progress import Progress
from myshell.util import (
    first_available,
    get_chunk_size,
    human_readable_byte_count,
    require_disk_space,
)

logger = logging.getLogger(__name__)

TRANSFER_HINT = b"__DOWNLOAD_START"
FILE = 0
DIRECTORY = 1
PARTIAL_SUFFIX = ".part"


def is_transfer_start(frame: Frame) -> bool:
    """Return True if ``frame`` announces that a binary transfer follows."""
    return frame.tag == Tag.START and frame.payload[:len(TRANSFER_HINT)] == TRANSFER_HINT


def progress_interval() -> float:
    try:
        return float(os.getenv("MYSHELL_PROGRESS_INTERVAL", "5"))
    except ValueError:
        return 5.0


def walk_pre_order(
    path: Path,
    on_error: Optional[Callable[[Path, OSError], None]] = None
) -> Iterator[Path]:
    """Yield ``path`` and everything below it, directories before contents.

    Entries that can not be inspected are passed to ``on_error`` instead.
    """
    try:
        directory = path.is_dir() and not path.is_symlink()
    except OSError as e:
        if on_error:
            on_error(path, e)
        return
    yield path
    if not directory:
        return
    try:
        children = sorted(path.iterdir(), key=lambda child: child.name)
    except OSError as e:
        if on_error:
            on_error(path, e)
        return
    for child in children:
        yield from walk_pre_order(child, on_error)


@dataclass
class TransferReport:
    """Outcome of sending a file or a directory tree."""

    sent: List[str] = field(default_factory=list)
    failed: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


class TransferSender:
    """Sending side of the protocol.

    ``read_signal`` returns the next signal byte sent by the receiver. On the
    host it reads the channel directly, on the driving side it waits on the
    queue filled by the reading thread.
    """

    def __init__(
        self,
        channel: Channel,
        cipher: StreamCipher,
        read_signal: Callable[[], int],
        write: Optional[Callable[[str], None]] = None,
        chunk_size: Optional[int] = None
    ):
        if not cipher.encrypting:
            raise ValueError("Cipher must be in encryption mode.")
        self.channel = channel
        self.cipher = cipher
        self.read_signal = read_signal
        self.write = write or logger.info
        # Encrypted chunks must fit in one DATA frame
        self.chunk_size = min(chunk_size or get_chunk_size(), MAX_PAYLOAD - BLOCK_SIZE)

    def send_path(self, path: Path) -> TransferReport:
        """Send a file, or a directory with all of its contents.

        Raises:
            ConnectionEnded: If the connection breaks; nothing more can be sent
        """
        root = path.parent
        report = TransferReport()

        def access_failed(entry: Path, error: OSError):
            name = entry.relative_to(root).as_posix()
            report.failed.append((name, f"Failed to access {entry}: {error}"))
            self.write(f"Failed to access {entry}")

        for entry in walk_pre_order(path, access_failed):
            name = entry.relative_to(root).as_posix()
            try:
                self.send_entry(root, entry)
                report.sent.append(name)
            except TransferError as e:
                report.failed.append((name, str(e)))
                self.write(str(e))
        return report

    def send_entry(self, root: Path, path: Path) -> None:
        """Run all protocol steps for a single entry."""
        name = path.relative_to(root).as_posix()

        try:
            directory = path.is_dir()
        except OSError as e:
            raise TransferError(f"Failed to access {path}: {e.strerror or e}") from e
        if directory:
            self._announce(name, DIRECTORY)
            return

        try:
            stream = open(path, "rb")  # pylint: disable=consider-using-with
        except OSError as e:
            raise TransferError(f"Unable to read {path}: {e.strerror or e}") from e

        with stream:
            size = os.fstat(stream.fileno()).st_size
            self._announce(name, FILE)
            self._send_content(name, stream, size)

    def _announce(self, name: str, kind: int):
        self.channel.send(Tag.START, TRANSFER_HINT)
        self._expect_success("Upload request not accepted")

        self.channel.send(Tag.NAME, name.encode("utf-8"))
        self._expect_success(f"Peer refused file name {name}")

        self.channel.send(Tag.KIND, bytes([kind]))
        if kind == DIRECTORY:
            self._expect_success(f"Peer could not create directory {name}")
        else:
            self._expect_success(f"Peer did not receive entry type of {name}")

    def _send_content(self, name: str, stream: BinaryIO, size: int):
        self.channel.send(Tag.SIZE, str(post_encrypt_size(size)).encode("ascii"))
        self._expect_success(f"Peer did not receive file size of {name}")
        self._expect_success(f"Peer not ready. Aborting upload of: {name}")

        name_and_size = f"{name} ({human_readable_byte_count(size)})"
        self.write(f"Uploading {name_and_size}")

        digest = self.cipher.new_digest()
        progress = Progress(
            size, auto=True, write=self.write, interval=progress_interval())
        remaining = size
        try:
            while remaining > 0:
                chunk = self._read_chunk(name, stream, remaining)
                remaining -= len(chunk)
                digest.update(chunk)
                encrypted = self.cipher.update(chunk)
                if encrypted:
                    self.channel.send(Tag.DATA, encrypted)
                progress.add(len(chunk))
            self.channel.send(Tag.DATA, self.cipher.finalize())
        except (TransferError, ConnectionEnded):
            self.cipher.reset()
            raise
        finally:
            progress.stop()

        self.channel.send(Tag.DIGEST, digest.digest())
        if self.read_signal() != 1:
            raise TransferError(f"Download failed on peer side for: {name}")
        self.write(f"Finished uploading {name_and_size}")

    def _read_chunk(self, name: str, stream: BinaryIO, remaining: int) -> bytes:
        try:
            chunk = stream.read(min(self.chunk_size, remaining))
        except OSError as e:
            reason = f"Unable to read {name}: {e.strerror or e}"
            self.channel.send(Tag.ABORT, reason.encode("utf-8"))
            raise TransferError(reason) from e
        if not chunk:
            reason = f"{name} was truncated while it was being uploaded"
            self.channel.send(Tag.ABORT, reason.encode("utf-8"))
            raise TransferError(reason)
        return chunk

    def _expect_success(self, message: str):
        if self.read_signal() != 1:
            raise TransferError(f"Unsuccessful transfer: {message}")


class TransferReceiver:
    """Receiving side of the protocol.

    ``receive_entry`` is called right after a START frame was recognized.
    TEXT frames that arrive while a step is awaited are passed to
    ``on_text`` so no output of the peer is lost. SIGNAL frames answer a
    transfer of our own that the peer refused and go to ``on_signal``.
    """

    def __init__(
        self,
        channel: Channel,
        cipher: StreamCipher,
        download_path: Path,
        write: Optional[Callable[[str], None]] = None,
        on_text: Optional[Callable[[str], None]] = None,
        on_signal: Optional[Callable[[int], None]] = None
    ):
        if cipher.encrypting:
            raise ValueError("Cipher must be in decryption mode.")
        self.channel = channel
        self.cipher = cipher
        self.download_path = Path(download_path)
        self.write = write or logger.info
        self.on_text = on_text
        self.on_signal = on_signal

    def receive_entry(self) -> Path:
        """Receive one entry and return where it was stored.

        Raises:
            TransferError: The entry failed; the session may continue
            ConnectionEnded: The session is over
        """
        self.channel.send_signal(True)  # accepted

        name = decode_text(self._expect(Tag.NAME).payload)
        try:
            target = self._target_path(name)
        except TransferError:
            self.channel.send_signal(False)
            raise
        self.channel.send_signal(True)

        kind = self._expect(Tag.KIND).payload[:1]
        if kind == bytes([DIRECTORY]):
            return self._create_directory(target)
        self.channel.send_signal(True)

        size_text = decode_text(self._expect(Tag.SIZE).payload)
        try:
            size = int(size_text)
        except ValueError:
            self.channel.send_signal(False)
            raise TransferError(f"Invalid file size {size_text!r} for {name}") from None
        self.channel.send_signal(True)

        self._prepare(target, size)
        return self._receive_content(name, target, size)

    def _target_path(self, name: str) -> Path:
        relative = PurePosixPath(name)
        if not name or relative.is_absolute() or ".." in relative.parts:
            raise TransferError(f"Refusing to store {name!r} outside of {self.download_path}")
        return self.download_path.joinpath(*relative.parts)

    def _create_directory(self, target: Path) -> Path:
        try:
            target.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            self.channel.send_signal(False)
            raise TransferError(
                f"Unable to create directory {target}: {e.strerror or e}") from e
        self.channel.send_signal(True)
        return target

    def _prepare(self, target: Path, size: int):
        try:
            require_disk_space(size, target)
            target.parent.mkdir(parents=True, exist_ok=True)
        except TransferError:
            self.channel.send_signal(False)  # not ready
            raise
        except OSError as e:
            self.channel.send_signal(False)  # not ready
            raise TransferError(
                f"Unable to create directory structure {target} because a file "
                "exists with the same name as one of the directories."
            ) from e
        self.channel.send_signal(True)  # ready

    def _receive_content(self, name: str, target: Path, size: int) -> Path:
        final = first_available(target)
        partial = first_available(final.with_name(final.name + PARTIAL_SUFFIX))

        relative = PurePosixPath(name).with_name(final.name)
        name_and_size = f"{relative} ({human_readable_byte_count(size)})"
        self.write(f"Downloading {name_and_size}")

        progress = Progress(
            size, auto=True, write=self.write, interval=progress_interval())
        try:
            error = self._write_content(partial, size, progress)
        except AuthenticationError as e:
            _discard(partial)
            self.channel.try_send_signal(False)
            raise AuthenticationError(
                f"An error occurred while downloading {final}. "
                "This is probably due to incorrect password."
            ) from e
        except (TransferError, ConnectionEnded):
            self.cipher.reset()
            _discard(partial)
            raise
        finally:
            progress.stop()

        if error is None:
            try:
                partial.replace(final)
            except OSError as e:
                error = e
        if error is not None:
            _discard(partial)
            self.channel.send_signal(False)
            raise TransferError(
                f"An unexpected error occurred while downloading {final}: "
                f"{getattr(error, 'strerror', None) or error}")

        self.channel.send_signal(True)  # done
        self.write(f"Finished downloading {name_and_size}")
        return final

    def _write_content(self, partial: Path, size: int, progress: Progress) -> Optional[OSError]:
        """Read exactly ``size`` ciphertext bytes, decrypt and store them.

        A local write failure does not stop the reading, otherwise the rest
        of the announced bytes would be taken for protocol frames. The first
        such failure is returned.
        """
        digest = self.cipher.new_digest()
        error = None
        padding_error = None
        try:
            out = open(partial, "wb")  # pylint: disable=consider-using-with
        except OSError as e:
            out, error = None, e

        received = 0
        try:
            while received < size:
                chunk = self._expect(Tag.DATA).payload
                if received + len(chunk) > size:
                    chunk = chunk[:size - received]
                received += len(chunk)
                error = _store(out, digest, self.cipher.update(chunk), error)
                progress.add(len(chunk))
            try:
                tail = self.cipher.finalize()
            except PaddingError as e:
                padding_error = e
            else:
                error = _store(out, digest, tail, error)
        finally:
            if out is not None:
                try:
                    out.close()
                except OSError as e:
                    error = error or e

        # The digest frame is always read so the stream stays in step
        expected = self._expect(Tag.DIGEST).payload
        if padding_error is not None:
            raise padding_error
        digest.verify(expected)
        return error

    def _expect(self, tag: Tag) -> Frame:
        while True:
            frame = self.channel.recv()
            if frame.tag == tag:
                return frame
            if frame.tag == Tag.TEXT and self.on_text is not None:
                self.on_text(frame.payload.decode("utf-8", errors="replace"))
                continue
            if frame.tag == Tag.SIGNAL and self.on_signal is not None:
                self.on_signal(signal_value(frame))
                continue
            if frame.tag == Tag.ABORT:
                raise TransferError(f"Sender aborted: {decode_text(frame.payload)}")
            raise ProtocolError(
                f"Unexpected frame {frame.tag} while waiting for {tag.name}")


def _store(out, digest, data: bytes, error: Optional[OSError]) -> Optional[OSError]:
    digest.update(data)
    if error is None and out is not None and data:
        try:
            out.write(data)
        except OSError as e:
            return e
    return error


def _discard(path: Path):
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning("Could not remove partial file %s: %s", path, e)
