"""
Progress tracking for long running transfers.

A ``Progress`` object is fed byte counts through ``add`` and periodically
writes one line with the percentage done, elapsed time, current speed and
estimated time left.
"""
import logging
import threading
import time
from typing import Callable, Optional

from myshell.util import human_readable_byte_count, human_readable_time

logger = logging.getLogger(__name__)


class Progress:
    """Periodic throughput reporter.

    If ``auto`` is set, reporting starts on construction and stops as soon as
    the processed length reaches ``total``.
    """

    def __init__(
        self,
        total: int,
        auto: bool = False,
        write: Optional[Callable[[str], None]] = None,
        delay: float = 1.0,
        interval: float = 5.0
    ):
        """Initialize the progress tracker.

        Args:
            total: Total number of bytes to be processed
            auto: Start now and stop automatically when done
            write: Callable receiving each formatted line
            delay: Seconds before the first line
            interval: Seconds between subsequent lines
        """
        self.total = total
        self.current = 0
        self.auto = auto
        self.write = write or logger.info
        self.delay = delay
        self.interval = interval

        self._lock = threading.Lock()
        self._stopped = threading.Event()
        self._thread = None
        self._start_time = time.monotonic()
        self._recent = 0
        self._recent_start = self._start_time

        if auto:
            self.start()

    def start(self) -> None:
        """Start periodic reporting; has no effect if already started."""
        if self._thread is not None:
            return
        self._thread = threading.Thread(
            target=self._run, name="Progress", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """Stop periodic reporting. Safe to call any number of times."""
        self._stopped.set()

    def add(self, amount: int) -> None:
        """Add ``amount`` processed bytes."""
        with self._lock:
            self.current += amount
            self._recent += amount
            done = self.current >= self.total
        if self.auto and done:
            self.stop()

    def report(self) -> str:
        """Build the progress line and reset the recent speed window."""
        now = time.monotonic()
        with self._lock:
            current = self.current
            recent = self._recent
            recent_elapsed = now - self._recent_start
            self._recent = 0
            self._recent_start = now

        elapsed = now - self._start_time
        percent = 100 * current // self.total if self.total else 100
        current_speed = int(recent / recent_elapsed) if recent_elapsed > 0 else 0

        if current_speed > 0:
            remaining = max(self.total - current, 0)
            estimated = human_readable_time(remaining / current_speed)
        else:
            estimated = "∞"

        return (
            f"{percent:2d}% processed "
            f"({human_readable_byte_count(current)}/"
            f"{human_readable_byte_count(self.total)}), "
            f"Elapsed time: {human_readable_time(elapsed)}, "
            f"Current speed: {human_readable_byte_count(current_speed)}/s, "
            f"Estimated time: {estimated}"
        )

    def _run(self):
        if self._stopped.wait(self.delay):
            return
        while True:
            try:
                self.write(self.report())
            except Exception as e:  # pylint: disable=broad-except
                logger.debug("Progress report failed: %s", e)
            if self._stopped.wait(self.interval):
                return
