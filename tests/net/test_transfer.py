#!/usr/bin/env python3
"""
Test suite for the lockstep transfer protocol.

Both ends run over a socket pair; the receiving end runs in a thread the way
a reading thread or a hosting command loop would.
"""

import io
import os
import socket
import sys
import threading
import time
from pathlib import Path
from unittest.mock import patch

import pytest

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..', 'src'))

from myshell.errors import (
    AuthenticationError,
    ConnectionEnded,
    TransferError,
)
from myshell.net.channel import MAX_PAYLOAD, Channel, Tag, signal_value
from myshell.net.crypto import BLOCK_SIZE, StreamCipher, generate_password_hash
from myshell.net.transfer import (
    FILE,
    PARTIAL_SUFFIX,
    TRANSFER_HINT,
    TransferReceiver,
    TransferSender,
    is_transfer_start,
    walk_pre_order,
)

PASSWORD = generate_password_hash("secret")


class ReceivingEnd(threading.Thread):
    """Accepts every transfer that arrives until the channel closes."""

    def __init__(self, channel, download_path, password_hash=PASSWORD):
        super().__init__(daemon=True)
        self.receiver = TransferReceiver(
            channel,
            StreamCipher(password_hash, StreamCipher.DECRYPT),
            download_path,
            write=lambda line: None,
        )
        self.channel = channel
        self.results = []

    def run(self):
        while True:
            try:
                frame = self.channel.recv()
            except ConnectionEnded:
                return
            if not is_transfer_start(frame):
                continue
            try:
                self.results.append(self.receiver.receive_entry())
            except TransferError as e:
                self.results.append(e)
            except ConnectionEnded as e:
                self.results.append(e)
                return


@pytest.fixture
def pair():
    left, right = socket.socketpair()
    a, b = Channel(left), Channel(right)
    yield a, b
    a.close()
    b.close()


def make_sender(channel, chunk_size=None, messages=None):
    def read_signal():
        frame = channel.recv()
        assert frame.tag == Tag.SIGNAL
        return signal_value(frame)

    write = messages.append if messages is not None else (lambda line: None)
    return TransferSender(
        channel,
        StreamCipher(PASSWORD, StreamCipher.ENCRYPT),
        read_signal,
        write=write,
        chunk_size=chunk_size,
    )


def finish(sender_channel, receiving_end):
    sender_channel.close()
    receiving_end.join(timeout=10)
    assert not receiving_end.is_alive()


class TestFileTransfer:
    """Test cases for transferring single files."""

    @pytest.mark.parametrize("chunk_size", [1, 7, 1024, 1 << 20])
    def test_file_arrives_intact(self, pair, tmp_path, chunk_size):
        a, b = pair
        source = tmp_path / "src" / "data.bin"
        source.parent.mkdir()
        content = os.urandom(3000)
        source.write_bytes(content)
        downloads = tmp_path / "downloads"
        downloads.mkdir()

        receiving = ReceivingEnd(b, downloads)
        receiving.start()
        report = make_sender(a, chunk_size).send_path(source)
        finish(a, receiving)

        assert report.ok
        assert report.sent == ["data.bin"]
        assert (downloads / "data.bin").read_bytes() == content
        assert not list(downloads.glob(f"*{PARTIAL_SUFFIX}"))

    def test_empty_file(self, pair, tmp_path):
        a, b = pair
        source = tmp_path / "empty.txt"
        source.write_bytes(b"")
        downloads = tmp_path / "downloads"

        receiving = ReceivingEnd(b, downloads)
        receiving.start()
        report = make_sender(a).send_path(source)
        finish(a, receiving)

        assert report.ok
        assert (downloads / "empty.txt").read_bytes() == b""

    def test_existing_file_is_not_overwritten(self, pair, tmp_path):
        a, b = pair
        source = tmp_path / "a.txt"
        source.write_bytes(b"new")
        downloads = tmp_path / "downloads"
        downloads.mkdir()
        (downloads / "a.txt").write_bytes(b"old")
        (downloads / "a-0.txt").write_bytes(b"older")

        receiving = ReceivingEnd(b, downloads)
        receiving.start()
        make_sender(a).send_path(source)
        finish(a, receiving)

        assert (downloads / "a.txt").read_bytes() == b"old"
        assert (downloads / "a-0.txt").read_bytes() == b"older"
        assert (downloads / "a-1.txt").read_bytes() == b"new"
        assert receiving.results == [downloads / "a-1.txt"]

    def test_sender_reports_progress_messages(self, pair, tmp_path):
        a, b = pair
        source = tmp_path / "f.txt"
        source.write_bytes(b"x" * 100)
        messages = []

        receiving = ReceivingEnd(b, tmp_path / "downloads")
        receiving.start()
        make_sender(a, messages=messages).send_path(source)
        finish(a, receiving)

        assert messages[0] == "Uploading f.txt (100 B)"
        assert messages[-1] == "Finished uploading f.txt (100 B)"

    def test_chunk_size_is_limited_to_one_frame(self, pair, tmp_path, monkeypatch):
        monkeypatch.setattr("myshell.net.channel.MAX_PAYLOAD", 1024)
        monkeypatch.setattr("myshell.net.transfer.MAX_PAYLOAD", 1024)
        a, b = pair
        source = tmp_path / "big.bin"
        content = os.urandom(20000)
        source.write_bytes(content)
        downloads = tmp_path / "downloads"

        receiving = ReceivingEnd(b, downloads)
        receiving.start()
        sender = make_sender(a, chunk_size=1 << 20)
        assert sender.chunk_size == 1024 - BLOCK_SIZE
        report = sender.send_path(source)
        finish(a, receiving)

        assert report.ok
        assert (downloads / "big.bin").read_bytes() == content

    def test_configured_chunk_size_is_limited(self, pair, monkeypatch):
        monkeypatch.setenv("MYSHELL_CHUNK_SIZE", str(64 * 1024 * 1024))
        a, _ = pair
        assert make_sender(a).chunk_size == MAX_PAYLOAD - BLOCK_SIZE


class TestDirectoryTransfer:
    """Test cases for transferring directory trees."""

    @pytest.fixture
    def tree(self, tmp_path):
        root = tmp_path / "src" / "tree"
        (root / "sub" / "deeper").mkdir(parents=True)
        (root / "b.txt").write_bytes(b"b")
        (root / "sub" / "a.txt").write_bytes(b"a" * 5000)
        (root / "sub" / "deeper" / "c.bin").write_bytes(os.urandom(17))
        (root / "empty").mkdir()
        return root

    def test_walk_is_pre_order_and_sorted(self, tree):
        names = [p.relative_to(tree.parent).as_posix() for p in walk_pre_order(tree)]
        assert names == [
            "tree",
            "tree/b.txt",
            "tree/empty",
            "tree/sub",
            "tree/sub/a.txt",
            "tree/sub/deeper",
            "tree/sub/deeper/c.bin",
        ]

    def test_tree_arrives_intact(self, pair, tmp_path, tree):
        a, b = pair
        downloads = tmp_path / "downloads"

        receiving = ReceivingEnd(b, downloads)
        receiving.start()
        report = make_sender(a, chunk_size=1000).send_path(tree)
        finish(a, receiving)

        assert report.ok
        assert len(report.sent) == 7
        for source in walk_pre_order(tree):
            target = downloads / source.relative_to(tree.parent)
            if source.is_dir():
                assert target.is_dir()
            else:
                assert target.read_bytes() == source.read_bytes()

    def test_failed_entry_does_not_stop_the_walk(self, pair, tmp_path, tree):
        a, b = pair
        downloads = tmp_path / "downloads"
        (downloads / "tree").mkdir(parents=True)
        # A file where a directory has to be created
        (downloads / "tree" / "sub").write_bytes(b"in the way")

        receiving = ReceivingEnd(b, downloads)
        receiving.start()
        report = make_sender(a).send_path(tree)
        finish(a, receiving)

        failed = [name for name, _ in report.failed]
        assert failed == ["tree/sub", "tree/sub/a.txt", "tree/sub/deeper", "tree/sub/deeper/c.bin"]
        assert report.sent == ["tree", "tree/b.txt", "tree/empty"]
        assert (downloads / "tree" / "b.txt").read_bytes() == b"b"
        assert (downloads / "tree" / "empty").is_dir()

    def test_entry_that_can_not_be_inspected_is_reported(self, pair, tmp_path, tree):
        a, b = pair
        downloads = tmp_path / "downloads"
        locked = tree / "sub"
        is_dir = Path.is_dir

        def guarded_is_dir(path, *args, **kwargs):
            if path == locked:
                raise PermissionError(13, "Permission denied")
            return is_dir(path, *args, **kwargs)

        receiving = ReceivingEnd(b, downloads)
        receiving.start()
        with patch.object(Path, "is_dir", guarded_is_dir):
            report = make_sender(a).send_path(tree)
        finish(a, receiving)

        assert [name for name, _ in report.failed] == ["tree/sub"]
        assert "Permission denied" in report.failed[0][1]
        assert report.sent == ["tree", "tree/b.txt", "tree/empty"]
        assert (downloads / "tree" / "b.txt").read_bytes() == b"b"
        assert not (downloads / "tree" / "sub").exists()

    def test_send_entry_reports_inaccessible_path(self, pair, tree):
        a, _ = pair
        with patch.object(Path, "is_dir", side_effect=PermissionError(13, "Permission denied")):
            with pytest.raises(TransferError, match="Failed to access"):
                make_sender(a).send_entry(tree.parent, tree / "b.txt")


class TestFailures:
    """Test cases for failures in the middle of the protocol."""

    def test_wrong_password_fails_entry_and_keeps_session(self, pair, tmp_path):
        a, b = pair
        first = tmp_path / "one.txt"
        second = tmp_path / "two.txt"
        first.write_bytes(b"first file" * 100)
        second.write_bytes(b"second file" * 100)
        downloads = tmp_path / "downloads"

        receiving = ReceivingEnd(b, downloads, generate_password_hash("wrong"))
        receiving.start()
        sender = make_sender(a)
        first_report = sender.send_path(first)
        second_report = sender.send_path(second)
        finish(a, receiving)

        assert not first_report.ok
        assert not second_report.ok
        assert len(receiving.results) == 2
        assert all(isinstance(r, AuthenticationError) for r in receiving.results)
        assert all("incorrect password" in str(r) for r in receiving.results)
        assert not downloads.exists() or not list(downloads.iterdir())

    def test_path_outside_download_directory_is_refused(self, pair, tmp_path):
        a, b = pair
        downloads = tmp_path / "downloads"
        receiving = ReceivingEnd(b, downloads)
        receiving.start()

        a.send(Tag.START, TRANSFER_HINT)
        assert signal_value(a.recv()) == 1
        a.send(Tag.NAME, b"../escape.txt")
        assert signal_value(a.recv()) == 0
        finish(a, receiving)

        assert isinstance(receiving.results[0], TransferError)
        assert not (tmp_path / "escape.txt").exists()

    def test_truncated_source_aborts_entry(self, pair, tmp_path):
        a, b = pair
        downloads = tmp_path / "downloads"
        receiving = ReceivingEnd(b, downloads)
        receiving.start()

        sender = make_sender(a)
        sender._announce("short.txt", FILE)
        with pytest.raises(TransferError, match="truncated"):
            sender._send_content("short.txt", io.BytesIO(b"abc"), 100)

        # The next transfer still works
        follow_up = tmp_path / "ok.txt"
        follow_up.write_bytes(b"fine")
        assert sender.send_path(follow_up).ok
        finish(a, receiving)

        assert "aborted" in str(receiving.results[0])
        assert (downloads / "ok.txt").read_bytes() == b"fine"
        assert not (downloads / "short.txt").exists()
        assert not list(downloads.glob(f"*{PARTIAL_SUFFIX}"))

    def test_sender_waits_for_every_signal(self, pair, tmp_path):
        a, b = pair
        source = tmp_path / "f.txt"
        source.write_bytes(b"content")
        errors = []

        def send():
            try:
                make_sender(a).send_path(source)
            except ConnectionEnded as e:
                errors.append(e)

        sending = threading.Thread(target=send, daemon=True)
        sending.start()

        assert is_transfer_start(b.recv())
        # Nothing follows the start frame until it is answered
        b.sock.settimeout(0.5)
        with pytest.raises(socket.timeout):
            b.sock.recv(1)
        b.sock.settimeout(None)
        assert sending.is_alive()

        b.close()
        sending.join(timeout=5)
        assert not sending.is_alive()
        assert errors

    def test_disconnect_mid_content_ends_transfer(self, pair, tmp_path):
        a, b = pair
        downloads = tmp_path / "downloads"
        receiving = ReceivingEnd(b, downloads)
        receiving.start()

        sender = make_sender(a)
        sender._announce("big.bin", FILE)
        a.send(Tag.SIZE, b"4112")
        assert signal_value(a.recv()) == 1
        assert signal_value(a.recv()) == 1
        a.send(Tag.DATA, b"\x00" * 1000)
        time.sleep(0.1)
        finish(a, receiving)

        assert isinstance(receiving.results[-1], ConnectionEnded)
        assert not downloads.exists() or not list(downloads.rglob("*"))

    def test_sender_raises_when_receiver_disappears(self, pair, tmp_path):
        a, b = pair
        source = tmp_path / "f.txt"
        source.write_bytes(b"x" * 10000)
        b.close()
        with pytest.raises(ConnectionEnded):
            make_sender(a).send_path(source)

    def test_cipher_modes_are_checked(self, pair, tmp_path):
        a, _ = pair
        with pytest.raises(ValueError):
            TransferSender(a, StreamCipher(PASSWORD, StreamCipher.DECRYPT), lambda: 1)
        with pytest.raises(ValueError):
            TransferReceiver(a, StreamCipher(PASSWORD, StreamCipher.ENCRYPT), tmp_path)
