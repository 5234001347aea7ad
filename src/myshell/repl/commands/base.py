"""
Base module for MyShell commands.
This module provides the base structure for all commands in the MyShell REPL.
"""
import argparse
from enum import Enum
from typing import (
    Any,
    Callable,
    Dict,
    List,
    Optional,
    Union
)

from myshell.errors import CommandSyntaxError


class CommandStatus(Enum):
    """What the command loop should do after a command."""

    TERMINATE = "terminate"


CommandResult = Union[bool, CommandStatus]


class ArgumentParser(argparse.ArgumentParser):
    """argparse parser that reports problems instead of exiting."""

    def __init__(self, *args, **kwargs):
        kwargs.setdefault("add_help", False)
        super().__init__(*args, **kwargs)

    def error(self, message):
        raise CommandSyntaxError(message)

    def exit(self, status=0, message=None):
        raise CommandSyntaxError(message or "Invalid command syntax.")


class Command:
    """Base class for all commands."""

    def __init__(
        self,
        name: str,
        description: str,
        aliases: List[str] = None,
        syntax: str = ""
    ):
        """Initialize a command.

        Args:
            name: The name of the command (e.g. "upload")
            description: A short description of the command
            aliases: Optional list of command aliases
            syntax: Usage line shown when the arguments are malformed
        """
        self.name = name
        self.description = description
        self.aliases = aliases or []
        self.syntax = syntax or name
        self.subcommands: Dict[str, Dict[str, Any]] = {}

    def add_subcommand(self, name: str, description: str, handler: Callable):
        """Add a subcommand to this command.

        Args:
            name: The name of the subcommand (e.g. "list")
            description: A short description of the subcommand
            handler: Called with the environment and remaining arguments
        """
        self.subcommands[name] = {
            "description": description,
            "handler": handler
        }

    def get_subcommands(self) -> List[str]:
        return list(self.subcommands.keys())

    def get_subcommand_description(self, subcommand: str) -> str:
        return self.subcommands.get(subcommand, {}).get("description", "")

    def handle(self, env, args: Optional[List[str]] = None) -> CommandResult:
        """Handle the command.

        Args:
            env: The environment the command runs in
            args: Optional list of command arguments

        Returns:
            True if the command was handled successfully, False otherwise,
            or ``CommandStatus.TERMINATE`` to end the command loop
        """
        if not args:
            return self.handle_no_args(env)

        subcommand = args[0]
        if subcommand in self.subcommands:
            handler = self.subcommands[subcommand]["handler"]
            return handler(env, args[1:] if len(args) > 1 else None)

        return self.handle_unknown_subcommand(env, subcommand)

    def handle_no_args(self, env) -> CommandResult:
        subcommands = ', '.join(self.get_subcommands())
        env.console.print(
            f"[yellow]{self.name} command requires a subcommand: {subcommands}[/yellow]")
        return False

    def handle_unknown_subcommand(self, env, subcommand: str) -> CommandResult:
        env.console.print(
            f"[red]Unknown {self.name} subcommand: {subcommand}[/red]")
        return False


# Registry for all commands
COMMANDS: Dict[str, Command] = {}
COMMAND_ALIASES: Dict[str, str] = {}


def register_command(command: Command) -> None:
    """Register a command in the global registry.

    Args:
        command: The command to register
    """
    COMMANDS[command.name] = command

    # Register aliases
    for alias in command.aliases:
        COMMAND_ALIASES[alias] = command.name


def get_command(name: str) -> Optional[Command]:
    """Get a command by name or alias, ignoring case.

    Args:
        name: The name or alias of the command

    Returns:
        The command if found, None otherwise
    """
    name = name.lower()
    # Check if it's an alias
    name = COMMAND_ALIASES.get(name, name)

    return COMMANDS.get(name)


def handle_command(
    command: str,
    env,
    args: Optional[List[str]] = None
) -> CommandResult:
    """Handle a command.

    Args:
        command: The command name or alias
        env: The environment the command runs in
        args: Optional list of command arguments

    Returns:
        The command's result, False if no such command exists
    """
    cmd = get_command(command)
    if cmd:
        return cmd.handle(env, args)

    return False
