"""
Help command for MyShell.
This module provides commands for displaying help information.
"""
from typing import List, Optional, Tuple

from rich.panel import Panel  # pylint: disable=import-error
from rich.table import Table  # pylint: disable=import-error
from rich.text import Text  # pylint: disable=import-error

from myshell.repl.commands.base import COMMANDS, Command, get_command, register_command


def create_styled_table(
    title: str, headers: List[Tuple[str, str]], header_style: str = "bold white"
) -> Table:
    """Create a styled table with consistent formatting.

    Args:
        title: The table title
        headers: List of (header_name, style) tuples
        header_style: Style for the header row

    Returns:
        A configured Table instance
    """
    table = Table(title=title, show_header=True, header_style=header_style)
    for header, style in headers:
        table.add_column(header, style=style)
    return table


def create_notes_panel(
    notes: List[str], title: str = "Notes", border_style: str = "yellow"
) -> Panel:
    notes_text = Text.from_markup("\n".join(f"• {note}" for note in notes))
    return Panel(notes_text, title=title, border_style=border_style)


class HelpCommand(Command):
    """Command for displaying help information."""

    def __init__(self):
        """Initialize the help command."""
        super().__init__(
            name="help",
            description="Display help information about commands",
            aliases=["h", "?"],
            syntax="help [command]"
        )

    def handle(self, env, args: Optional[List[str]] = None) -> bool:
        if not args:
            return self.handle_help(env)
        return self.handle_command_help(env, args[0])

    def handle_help(self, env) -> bool:
        """Print every registered command."""
        table = create_styled_table(
            "MyShell Commands",
            [("Command", "yellow"), ("Aliases", "green"), ("Description", "white")],
        )
        for name in sorted(COMMANDS):
            cmd = COMMANDS[name]
            table.add_row(cmd.name, ", ".join(cmd.aliases), cmd.description)

        env.console.print(table)
        env.console.print(create_notes_panel([
            "Type [yellow]help <command>[/yellow] for the syntax of a command",
            "Numbers printed by [yellow]ls[/yellow] can stand in for paths",
            "While connected, [yellow]upload[/yellow] runs on your machine and "
            "every other command runs on the host",
        ]))
        return True

    def handle_command_help(self, env, name: str) -> bool:
        cmd = get_command(name)
        if cmd is None:
            env.console.print(f"[red]Unknown command: {name}[/red]")
            return False

        table = create_styled_table(
            f"{cmd.name}", [("Field", "yellow"), ("Value", "white")])
        table.add_row("Syntax", Text(cmd.syntax))
        table.add_row("Description", cmd.description)
        if cmd.aliases:
            table.add_row("Aliases", ", ".join(cmd.aliases))
        for subcommand in cmd.get_subcommands():
            table.add_row(
                f"{cmd.name} {subcommand}",
                cmd.get_subcommand_description(subcommand))
        env.console.print(table)
        return True


register_command(HelpCommand())
