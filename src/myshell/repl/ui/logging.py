"""
Module for MyShell session logging.
"""
import logging
import os
from pathlib import Path

LOG_FORMAT = "%(asctime)s %(levelname)s [%(threadName)s] %(name)s: %(message)s"
LOG_LEVELS = {
    "0": logging.WARNING,
    "1": logging.INFO,
    "2": logging.DEBUG,
}


def get_log_level() -> int:
    """Map MYSHELL_DEBUG to a logging level."""
    return LOG_LEVELS.get(os.getenv("MYSHELL_DEBUG", "1").strip(), logging.INFO)


def setup_session_logging(base_dir: Path = None):
    """
    Set up session logging.

    Log records of every ``myshell`` logger go to ``myshell.log`` in the
    MyShell home directory, never to the terminal, since terminal output may
    be redirected to a remote peer.

    Args:
        base_dir: Directory for the log and history files, ~/.myshell if None

    Returns:
        Path of the prompt history file
    """
    history_dir = base_dir or Path.home() / ".myshell"
    history_dir.mkdir(exist_ok=True, parents=True)
    history_file = history_dir / "history.txt"

    logger = logging.getLogger("myshell")
    logger.setLevel(get_log_level())
    log_file = history_dir / "myshell.log"
    if not any(getattr(h, "baseFilename", None) == str(log_file) for h in logger.handlers):
        handler = logging.FileHandler(log_file, encoding="utf-8")
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    logger.propagate = False

    return history_file
