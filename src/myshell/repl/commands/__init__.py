"""
Commands module for MyShell.
This module exports all commands available in the MyShell REPL.
"""
# Import all command modules
# These imports will register the commands with the registry
from myshell.repl.commands import (  # pylint: disable=unused-import,redefined-builtin # noqa: F401
    cd,
    config,
    connect,
    download,
    exit,
    help,
    host,
    ls,
    pwd,
    upload,
)

# Import base command structure
from myshell.repl.commands.base import (
    COMMAND_ALIASES,
    COMMANDS,
    Command,
    CommandStatus,
    get_command,
    handle_command,
    register_command,
)
from myshell.repl.commands.completer import CommandCompleter

# Export command registry
__all__ = [
    "Command",
    "CommandStatus",
    "COMMANDS",
    "COMMAND_ALIASES",
    "register_command",
    "get_command",
    "handle_command",
    "CommandCompleter",
]
