"""
Exit command for MyShell.
This module provides the command to leave the REPL or, on a hosting shell,
to end the remote session.
"""
from typing import List, Optional

from myshell.repl.commands.base import (
    Command,
    CommandResult,
    CommandStatus,
    register_command
)


class ExitCommand(Command):
    """Command for exiting the REPL."""

    def __init__(self):
        """Initialize the exit command."""
        super().__init__(
            name="exit",
            description="Exit MyShell, or end the remote session",
            aliases=["quit", "q"]
        )

    def handle(self, env, args: Optional[List[str]] = None) -> CommandResult:
        """Handle the exit command.

        Returns:
            ``CommandStatus.TERMINATE`` so the current loop ends
        """
        return CommandStatus.TERMINATE


# Register the command
register_command(ExitCommand())
