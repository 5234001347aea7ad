"""
The MyShell read-eval-print loop.

The same loop serves the local terminal and a connected peer: it only talks
to the environment, which decides where lines come from.
"""
import logging
import shlex

from myshell.errors import CommandSyntaxError, ConnectionEnded, ShellError
from myshell.repl.commands import CommandStatus, get_command

logger = logging.getLogger(__name__)


def execute_line(env, line: str):
    """Run one command line.

    Returns:
        The command's result, or False if it could not run

    Raises:
        ConnectionEnded: The attached session is gone
    """
    try:
        words = shlex.split(line)
    except ValueError as e:
        env.writeln(f"Error: {e}")
        return False
    if not words:
        return True

    name, args = words[0], words[1:]
    command = get_command(name)
    if command is None:
        env.writeln(f"Unknown command: {name}. Type help to list all commands.")
        return False

    logger.debug("Running %s %s", command.name, args)
    try:
        return command.handle(env, args)
    except CommandSyntaxError as e:
        env.writeln(str(e))
        env.writeln(f"Usage: {command.syntax}")
    except ConnectionEnded:
        raise
    except ShellError as e:
        env.writeln(str(e))
    except Exception as e:  # pylint: disable=broad-except
        logger.exception("Command %s failed", command.name)
        env.writeln(f"Error: {e}")
    return False


def run_command_loop(env) -> None:
    """Read and execute commands until exit, end of input or disconnection."""
    while True:
        try:
            line = env.read_line()
        except EOFError:
            env.writeln()
            break
        except KeyboardInterrupt:
            env.writeln()
            continue
        except ConnectionEnded as e:
            logger.info("Command loop ended: %s", e)
            break

        try:
            status = execute_line(env, line)
        except ConnectionEnded as e:
            logger.info("Command loop ended: %s", e)
            break
        except KeyboardInterrupt:
            env.writeln("Interrupted.")
            continue

        if status is CommandStatus.TERMINATE:
            break
