"""
Entry point of the MyShell interactive shell.

Usage::

    myshell

Configuration is read from environment variables, optionally from a
``.env`` file in the working directory. Type ``help`` at the prompt for the
list of commands, or ``config`` for the list of variables.
"""
import logging

from dotenv import load_dotenv  # pylint: disable=import-error

from myshell.environment import Environment
from myshell.repl.loop import run_command_loop
from myshell.repl.ui.banner import display_banner, display_quick_guide
from myshell.repl.ui.logging import setup_session_logging

load_dotenv()

logger = logging.getLogger(__name__)


def main():
    """Run the interactive shell until the user exits."""
    history_file = setup_session_logging()
    env = Environment(history_file=history_file)

    display_banner(env.local_console)
    display_quick_guide(env.local_console)

    logger.info("MyShell started in %s", env.cwd)
    try:
        run_command_loop(env)
    finally:
        logger.info("MyShell exited")


if __name__ == "__main__":
    main()
