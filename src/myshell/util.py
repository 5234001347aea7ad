"""
Utility functions shared by MyShell commands.
"""
import os
import shutil
from pathlib import Path
from typing import Dict, Optional

from myshell.errors import TransferError

HOME_DIR = "~"


def get_user_downloads_directory() -> Path:
    """Return the download directory from MYSHELL_DOWNLOAD_PATH or ~/Downloads."""
    configured = os.getenv("MYSHELL_DOWNLOAD_PATH")
    if configured:
        return Path(configured).expanduser()
    return Path.home() / "Downloads"


def get_chunk_size() -> int:
    """Return the transfer chunk size in bytes."""
    try:
        size = int(os.getenv("MYSHELL_CHUNK_SIZE", "4096"))
    except ValueError:
        return 4096
    return size if size > 0 else 4096


def resolve_absolute_path(
    cwd: Path,
    value: str,
    marks: Optional[Dict[int, Path]] = None
) -> Path:
    """Resolve a user supplied path against the working directory.

    A bare integer that is present in the marks table resolves to the marked
    path. A leading tilde expands to the user's home directory. Quotes are
    removed and the result is normalized.

    Args:
        cwd: Current working directory of the session
        value: The string typed by the user
        marks: Optional marks table of the session

    Returns:
        An absolute, normalized path
    """
    value = value.strip()
    if marks and value.isdigit() and int(value) in marks:
        return marks[int(value)]

    value = value.replace('"', "")
    if value.startswith(HOME_DIR):
        value = str(Path.home()) + value[len(HOME_DIR):]

    path = Path(value)
    if not path.is_absolute():
        path = cwd / path
    return Path(os.path.normpath(path))


def first_available(path: Path) -> Path:
    """Return ``path`` or, if it exists, the first free ``name-N.ext`` sibling."""
    if not path.exists():
        return path

    name = path.name
    extension = ""
    dot_index = name.rfind(".")
    if dot_index > 0:
        extension = name[dot_index:]
        name = name[:dot_index]

    index = 0
    while path.exists():
        path = path.with_name(f"{name}-{index}{extension}")
        index += 1
    return path


def require_disk_space(size: int, path: Path) -> None:
    """Raise a TransferError if there is less than ``size`` bytes free."""
    existing = path
    while not existing.exists() and existing != existing.parent:
        existing = existing.parent

    usable = shutil.disk_usage(existing).free
    if usable < size:
        raise TransferError(
            "There is not enough space on the disk. "
            f"Required: {size} bytes. Available: {usable} bytes."
        )


def human_readable_byte_count(size: int) -> str:
    """Format a byte count with binary prefixes, e.g. ``1.5 KiB``."""
    unit = 1024
    if size < unit:
        return f"{size} B"
    exp = 0
    value = float(size)
    while value >= unit and exp < 6:
        value /= unit
        exp += 1
    return f"{value:.1f} {'KMGTPE'[exp - 1]}iB"


def human_readable_time(seconds: float) -> str:
    """Format a duration, e.g. ``2 min 5 s``."""
    nanoseconds = int(seconds * 1_000_000_000)
    return _human_readable_nanos(nanoseconds)


def _human_readable_nanos(nanoseconds: int) -> str:
    microsecond = 1000
    millisecond = microsecond * 1000
    second = millisecond * 1000
    minute = second * 60
    hour = minute * 60
    day = hour * 24

    remainder = 0
    if nanoseconds < microsecond:
        text = f"{nanoseconds} ns"
    elif nanoseconds < millisecond:
        text = f"{nanoseconds // microsecond} us"
    elif nanoseconds < second:
        text = f"{nanoseconds // millisecond} ms"
    elif nanoseconds < minute:
        text = f"{nanoseconds // second} s"
    elif nanoseconds < hour:
        text = f"{nanoseconds // minute} min"
        remainder = nanoseconds % minute
    elif nanoseconds < day:
        text = f"{nanoseconds // hour} hr"
        remainder = nanoseconds % hour
    else:
        text = f"{nanoseconds // day} days"
        remainder = nanoseconds % day

    # Drop sub-second noise once minutes are involved
    if remainder >= second:
        return f"{text} {_human_readable_nanos(remainder)}"
    return text
