"""
Config command for MyShell via environmental variables.
"""
# Standard library imports
import os
from typing import List, Optional

# Third party imports
from rich.markup import escape  # pylint: disable=import-error
from rich.table import Table  # pylint: disable=import-error

# Local imports
from myshell.repl.commands.base import Command, register_command

# Define environment variables with descriptions and default values
ENV_VARS = {
    1: {
        "name": "MYSHELL_DEBUG",
        "description": "Log level (0: warnings only, 1: info, 2: debug)",
        "default": "1"
    },
    2: {
        "name": "MYSHELL_DOWNLOAD_PATH",
        "description": "Directory where received files are stored",
        "default": "~/Downloads"
    },
    3: {
        "name": "MYSHELL_CHUNK_SIZE",
        "description": "Number of bytes read and encrypted at a time",
        "default": "4096"
    },
    4: {
        "name": "MYSHELL_CONNECT_TIMEOUT",
        "description": "Seconds to wait when connecting to a host",
        "default": "10"
    },
    5: {
        "name": "MYSHELL_PUBLIC_IP_URL",
        "description": "Service used to look up the public address when hosting",
        "default": "http://checkip.amazonaws.com/"
    },
    6: {
        "name": "MYSHELL_PROGRESS_INTERVAL",
        "description": "Seconds between transfer progress lines",
        "default": "5"
    },
}


def get_env_var_value(var_name: str) -> str:
    """Get the current value of an environment variable.

    Args:
        var_name: The name of the environment variable

    Returns:
        The current value or the default value if not set
    """
    for var_info in ENV_VARS.values():
        if var_info["name"] == var_name:
            return os.environ.get(var_name, var_info["default"] or "Not set")
    return "Unknown variable"


def set_env_var(var_name: str, value: str) -> bool:
    os.environ[var_name] = value
    return True


class ConfigCommand(Command):
    """Command for displaying and configuring environment variables."""

    def __init__(self):
        """Initialize the config command."""
        super().__init__(
            name="config",
            description="Display and configure environment variables",
            aliases=["cfg"],
            syntax="config [list | get <number> | set <number> <value>]"
        )

        self.add_subcommand(
            "list",
            "List all environment variables and their values",
            self.handle_list
        )
        self.add_subcommand(
            "set",
            "Set an environment variable by its number",
            self.handle_set
        )
        self.add_subcommand(
            "get",
            "Get the value of an environment variable by its number",
            self.handle_get
        )

    def handle_no_args(self, env) -> bool:
        return self.handle_list(env, None)

    def handle_list(self, env, _: Optional[List[str]] = None) -> bool:
        """List all environment variables and their values.

        Returns:
            True if successful
        """
        table = Table(
            title="Environment Variables",
            show_header=True,
            header_style="bold yellow"
        )
        table.add_column("#", style="dim")
        table.add_column("Variable", style="yellow")
        table.add_column("Value", style="green")
        table.add_column("Default", style="blue")
        table.add_column("Description")

        for num, var_info in ENV_VARS.items():
            var_name = var_info["name"]
            table.add_row(
                str(num),
                var_name,
                get_env_var_value(var_name),
                var_info["default"] or "Not set",
                var_info["description"]
            )

        env.console.print(table)
        env.console.print(
            "\nUsage: config set <number> <value> to configure a variable"
        )
        return True

    def _lookup(self, env, value: str) -> Optional[dict]:
        try:
            var_num = int(value)
        except ValueError:
            env.console.print(
                "[red]Error: Variable number must be an integer[/red]")
            return None
        if var_num not in ENV_VARS:
            env.console.print(
                f"[red]Error: Variable number {var_num} not found[/red]")
            return None
        return ENV_VARS[var_num]

    def handle_get(self, env, args: Optional[List[str]] = None) -> bool:
        """Get the value of an environment variable by its number.

        Args:
            env: The environment the command runs in
            args: Command arguments [var_number]
        """
        if not args:
            env.console.print("[yellow]Usage: config get <number>[/yellow]")
            return False

        var_info = self._lookup(env, args[0])
        if var_info is None:
            return False

        var_name = var_info["name"]
        env.console.print(
            f"[yellow]{var_name}[/yellow]: "
            f"[green]{get_env_var_value(var_name)}[/green] "
            f"(Default: [blue]{var_info['default'] or 'Not set'}[/blue])"
        )
        return True

    def handle_set(self, env, args: Optional[List[str]] = None) -> bool:
        """Set an environment variable by its number.

        Args:
            env: The environment the command runs in
            args: Command arguments [var_number, value]
        """
        if not args or len(args) < 2:
            env.console.print(
                "[yellow]Usage: config set <number> <value>[/yellow]")
            return False

        var_info = self._lookup(env, args[0])
        if var_info is None:
            return False

        value = args[1]
        var_name = var_info["name"]
        old_value = get_env_var_value(var_name)
        set_env_var(var_name, value)

        env.console.print(
            f"[green]Set {var_name} to '{escape(value)}' "
            f"(was: '{escape(old_value)}')[/green]")
        return True


# Register the command
register_command(ConfigCommand())
