"""
The shell environment: where commands read from and write to.

Commands never touch the terminal directly. They go through the
environment, which can be attached to a remote connection. While attached
with redirection, every line a command reads comes from the peer and
everything it writes is sent back over the connection.
"""
import logging
import sys
from pathlib import Path
from typing import Dict, Optional

from rich.console import Console  # pylint: disable=import-error

from myshell.errors import AlreadyAttachedError
from myshell.net.session import ChannelWriter, Connection
from myshell.util import resolve_absolute_path

logger = logging.getLogger(__name__)


class AttachGuard:
    """Handle returned by ``Environment.attach``; releasing it detaches."""

    def __init__(self, env: "Environment", connection: Connection):
        self._env = env
        self._connection = connection
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        """Detach the connection. Calling it again does nothing."""
        if self._released:
            return
        self._released = True
        self._env._detach(self._connection)  # pylint: disable=protected-access

    def __enter__(self) -> "AttachGuard":
        return self

    def __exit__(self, *exc_info):
        self.release()


class Environment:
    """Working directory, marks and I/O of one shell."""

    PROMPT = "MyShell> "

    def __init__(self, stdin=None, stdout=None, cwd: Optional[Path] = None,
                 history_file: Optional[Path] = None):
        self.stdin = stdin or sys.stdin
        self.stdout = stdout or sys.stdout
        self.cwd = Path(cwd) if cwd else Path.cwd()
        self.history_file = history_file
        self.marks: Dict[int, Path] = {}
        self.connection: Optional[Connection] = None
        self.redirected = False

        self.local_console = Console(
            file=self.stdout, soft_wrap=True, highlight=False, emoji=False)
        self._remote_console: Optional[Console] = None

    @property
    def console(self) -> Console:
        """Console commands print to, remote while redirected."""
        if self.redirected and self._remote_console is not None:
            return self._remote_console
        return self.local_console

    @property
    def is_connected(self) -> bool:
        return self.connection is not None

    def write(self, text: str) -> None:
        self.console.print(text, end="", markup=False)

    def writeln(self, text: str = "") -> None:
        self.console.print(text, markup=False)

    def local_writeln(self, text: str = "") -> None:
        """Write a line to this machine's terminal even while redirected."""
        self.local_console.print(text, markup=False)

    def read_line(self) -> str:
        """Read the next command line.

        Raises:
            EOFError: Local input is exhausted
            ConnectionEnded: The attached peer is gone
        """
        if self.redirected:
            self.write(self.PROMPT)
            return self.connection.read_line(self.writeln)
        return self.read_local_line(self.PROMPT)

    def read_local_line(self, prompt: str = "") -> str:
        """Read one line from this machine's input.

        Raises:
            EOFError: Input is exhausted
        """
        if prompt and self._interactive():
            # pylint: disable=import-outside-toplevel
            from myshell.repl.ui.prompt import get_user_input
            return get_user_input(prompt, self.history_file)

        if prompt:
            self.local_console.print(prompt, end="", markup=False)
        line = self.stdin.readline()
        if not line:
            raise EOFError()
        return line.rstrip("\r\n")

    def _interactive(self) -> bool:
        try:
            return self.stdin is sys.stdin and self.stdin.isatty()
        except (AttributeError, ValueError):
            return False

    def resolve_path(self, value: str) -> Path:
        return resolve_absolute_path(self.cwd, value, self.marks)

    def attach(self, connection: Connection, redirect: bool = True) -> AttachGuard:
        """Bind this environment to ``connection``.

        Args:
            connection: The session to attach
            redirect: Read commands from and write output to the peer

        Raises:
            AlreadyAttachedError: If another connection is attached
        """
        if self.connection is not None:
            raise AlreadyAttachedError(
                f"Already connected to {self.connection.peer}")

        self.connection = connection
        self.redirected = redirect
        if redirect:
            self._remote_console = Console(
                file=ChannelWriter(connection.channel),
                soft_wrap=True,
                highlight=False,
                emoji=False,
                color_system=None,
                force_terminal=False,
            )
        logger.info("Attached to %s (redirect=%s)", connection.peer, redirect)
        return AttachGuard(self, connection)

    def _detach(self, connection: Connection):
        if self.connection is not connection:
            return
        self.connection = None
        self.redirected = False
        self._remote_console = None
        logger.info("Detached from %s", connection.peer)
