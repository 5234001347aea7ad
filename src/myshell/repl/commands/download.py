"""
Download command for MyShell.

Typed on a connected client, ``download`` runs on the host and sends the
host's file or directory to the client. ``upload`` is the same transfer in
the other direction: it runs on the client and sends to the host.
"""
import logging
from typing import List, Optional

from myshell.errors import CommandSyntaxError
from myshell.repl.commands.base import Command, register_command

logger = logging.getLogger(__name__)

NOT_CONNECTED = "You must be connected to a host to run this command!"


class DownloadCommand(Command):
    """Command for sending a path from this machine to the peer."""

    def __init__(
        self,
        name: str = "download",
        description: str = "Download a file or directory from the connected host",
        aliases: List[str] = None
    ):
        super().__init__(
            name=name,
            description=description,
            aliases=aliases,
            syntax=f"{name} <path>"
        )

    def handle(self, env, args: Optional[List[str]] = None) -> bool:
        """Send the file or directory named by ``args``.

        Raises:
            ConnectionEnded: If the session broke down mid-transfer
        """
        if not args:
            raise CommandSyntaxError()
        if not env.is_connected:
            env.writeln(NOT_CONNECTED)
            return False

        path = env.resolve_path(" ".join(args))
        if not path.exists():
            env.writeln(f"The system cannot find the file specified: {path}")
            return False

        logger.info("Sending %s to %s", path, env.connection.peer)
        report = env.connection.sender(env.local_writeln).send_path(path)

        if report.ok:
            if len(report.sent) > 1:
                env.writeln(f"Transferred {len(report.sent)} entries.")
            return True

        total = len(report.sent) + len(report.failed)
        env.writeln(f"{len(report.failed)} of {total} entries failed:")
        for name, reason in report.failed:
            env.writeln(f"  {name}: {reason}")
        return False


register_command(DownloadCommand())
