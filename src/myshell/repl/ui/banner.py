"""
Module for displaying the MyShell banner and welcome message.
"""
# Standard library imports
import logging
from importlib import metadata

# Third-party imports
from rich.console import Console  # pylint: disable=import-error
from rich.panel import Panel  # pylint: disable=import-error
from rich.table import Table  # pylint: disable=import-error
from rich.text import Text  # pylint: disable=import-error

from myshell.repl.commands.base import COMMANDS


def get_version():
    """Get the MyShell version from the installed package metadata."""
    try:
        return metadata.version("myshell")
    except metadata.PackageNotFoundError:
        logging.debug("MyShell is not installed, version unknown")
        return "unknown"


def display_banner(console: Console):
    """
    Display a stylized MyShell banner.

    Args:
        console: Rich console for output
    """
    version = get_version()
    banner = f"""
[bold blue]  __  __        ____  _          _ _
[bold blue] |  \\/  |_   _ / ___|| |__   ___| | |
[bold blue] | |\\/| | | | |\\___ \\| '_ \\ / _ \\ | |
[bold blue] | |  | | |_| | ___) | | | |  __/ | |
[bold blue] |_|  |_|\\__, ||____/|_| |_|\\___|_|_|
[bold blue]         |___/          MyShell, v{version}[/bold blue]
[white]            Remote sessions with encrypted file transfer[/white]
    """
    console.print(banner)


def display_quick_guide(console: Console):
    """
    Display the network commands and a few tips for using the REPL.

    Args:
        console: Rich console for output
    """
    table = Table(
        title="",
        box=None,
        show_header=False,
        show_edge=False,
        padding=(0, 2)
    )
    table.add_column("Command", style="bold cyan")
    table.add_column("Description", style="white")

    for name in ("host", "connect", "upload", "download"):
        cmd = COMMANDS.get(name)
        if cmd is not None:
            table.add_row(Text(cmd.syntax), cmd.description)

    console.print(Panel(
        table,
        title="[bold blue]Remote Sessions[/bold blue]",
        border_style="blue",
        padding=(1, 2)
    ))
    console.print(Panel(
        "[white]• Use arrow keys ↑↓ to navigate command history[/white]\n"
        "[white]• Press Tab for command completion[/white]\n"
        "[white]• Type help for available commands[/white]\n"
        "[white]• Type exit or press Ctrl+D to leave[/white]",
        title="Quick Tips",
        border_style="blue"
    ))
