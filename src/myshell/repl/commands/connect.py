"""
Connect command for MyShell.
"""
import logging
import os
from typing import List, Optional

from myshell.errors import ConnectionEnded
from myshell.net import session
from myshell.repl.commands.base import ArgumentParser, Command, register_command
from myshell.repl.commands.host import add_session_options, session_settings

logger = logging.getLogger(__name__)


def get_connect_timeout() -> float:
    try:
        return float(os.getenv("MYSHELL_CONNECT_TIMEOUT", "10"))
    except ValueError:
        return 10.0


class ConnectCommand(Command):
    """Command for connecting to a hosting MyShell."""

    def __init__(self):
        super().__init__(
            name="connect",
            description="Connect to a hosting MyShell and run commands on it",
            syntax="connect <host> <port> [--pass P] [--download-path D]"
        )
        self.parser = ArgumentParser(prog="connect")
        self.parser.add_argument("host")
        self.parser.add_argument("port", type=int)
        add_session_options(self.parser)

    def handle(self, env, args: Optional[List[str]] = None) -> bool:
        options = self.parser.parse_args(args or [])
        if not 0 < options.port <= 65535:
            env.writeln(f"Invalid port number: {options.port}")
            return False
        if env.is_connected:
            env.writeln(f"Already connected to {env.connection.peer}")
            return False

        password_hash, download_path = session_settings(env, options)
        try:
            session.dial(
                env,
                options.host,
                options.port,
                password_hash,
                download_path,
                timeout=get_connect_timeout(),
            )
        except ConnectionEnded as e:
            env.writeln(str(e))
            return False
        except OSError as e:
            logger.info("Connecting to %s:%d failed: %s", options.host, options.port, e)
            env.writeln(
                f"Unable to connect to {options.host}:{options.port}: {e.strerror or e}")
            return False
        return True


register_command(ConnectCommand())
