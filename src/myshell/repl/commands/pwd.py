"""
Pwd command for MyShell.
"""
from typing import List, Optional

from myshell.repl.commands.base import Command, register_command


class PwdCommand(Command):
    """Command for printing the working directory of the session."""

    def __init__(self):
        super().__init__(
            name="pwd",
            description="Print the working directory"
        )

    def handle(self, env, args: Optional[List[str]] = None) -> bool:
        env.writeln(str(env.cwd))
        return True


register_command(PwdCommand())
