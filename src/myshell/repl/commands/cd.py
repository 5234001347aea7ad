"""
Cd command for MyShell.
"""
from typing import List, Optional

from myshell.errors import CommandSyntaxError
from myshell.repl.commands.base import Command, register_command


class CdCommand(Command):
    """Command for changing the working directory of the session."""

    def __init__(self):
        super().__init__(
            name="cd",
            description="Change the working directory",
            syntax="cd <path>"
        )

    def handle(self, env, args: Optional[List[str]] = None) -> bool:
        if not args or len(args) > 1:
            raise CommandSyntaxError()

        path = env.resolve_path(args[0])
        if not path.is_dir():
            env.writeln(f"The system cannot find the path specified: {path}")
            return False

        env.cwd = path
        return True


register_command(CdCommand())
