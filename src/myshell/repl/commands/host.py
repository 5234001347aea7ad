"""
Host command for MyShell.

Hosting opens a listening socket and waits for exactly one CONNECT. The
connected peer then types commands that run on this machine, or, with
``--reverse``, this machine drives the peer.
"""
import logging
from contextlib import closing
from pathlib import Path
from typing import List, Optional, Tuple

from myshell.errors import ConnectionEnded
from myshell.net import session
from myshell.net.address import get_local_ip, get_public_ip
from myshell.net.crypto import generate_password_hash
from myshell.repl.commands.base import ArgumentParser, Command, register_command
from myshell.util import get_user_downloads_directory

logger = logging.getLogger(__name__)


def add_session_options(parser: ArgumentParser) -> None:
    """Add the options shared by ``host`` and ``connect``."""
    parser.add_argument("-p", "--pass", dest="password", default="")
    parser.add_argument("-d", "--download-path", dest="download_path")


def session_settings(env, options) -> Tuple[str, Path]:
    """Return the password hash and download directory chosen by ``options``."""
    password_hash = generate_password_hash(options.password)
    if options.download_path:
        download_path = env.resolve_path(options.download_path)
    else:
        download_path = get_user_downloads_directory()
    return password_hash, download_path


class HostCommand(Command):
    """Command for hosting a remote session."""

    def __init__(self):
        super().__init__(
            name="host",
            description="Host this session so another MyShell can connect to it",
            syntax="host [port] [--pass P] [--reverse] [--download-path D]"
        )
        self.parser = ArgumentParser(prog="host")
        self.parser.add_argument("port", nargs="?", type=int, default=0)
        self.parser.add_argument("-r", "--reverse", action="store_true")
        add_session_options(self.parser)

    def handle(self, env, args: Optional[List[str]] = None) -> bool:
        options = self.parser.parse_args(args or [])
        if not 0 <= options.port <= 65535:
            env.writeln(f"Invalid port number: {options.port}")
            return False
        if env.is_connected:
            env.writeln(f"Already connected to {env.connection.peer}")
            return False

        password_hash, download_path = session_settings(env, options)

        try:
            listener = session.open_listener(options.port)
        except OSError as e:
            env.writeln(f"Unable to host on port {options.port}: {e.strerror or e}")
            return False

        with closing(listener):
            port = listener.getsockname()[1]
            local_ip = get_local_ip() or "unknown"
            public_ip = get_public_ip() or "unknown"
            env.writeln(
                f"Hosting server... connect to {local_ip}:{port} / {public_ip}:{port}")
            logger.info("Listening on port %d (reverse=%s)", port, options.reverse)

            try:
                session.serve(
                    env, listener, password_hash, download_path,
                    reverse=options.reverse)
            except ConnectionEnded as e:
                env.writeln(str(e))
                return False
        return True


register_command(HostCommand())
