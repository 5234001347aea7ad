"""
Module for MyShell prompt functionality.
"""
from prompt_toolkit import prompt  # pylint: disable=import-error
from prompt_toolkit.auto_suggest import AutoSuggestFromHistory  # pylint: disable=import-error # noqa: E501
from prompt_toolkit.history import FileHistory, InMemoryHistory  # pylint: disable=import-error
from prompt_toolkit.styles import Style  # pylint: disable=import-error

from myshell.repl.commands import CommandCompleter

command_completer = CommandCompleter()


def create_prompt_style():
    """Create a style for the CLI."""
    return Style.from_dict({
        'prompt': 'bold cyan',
        'completion-menu': 'bg:#2b2b2b #ffffff',
        'completion-menu.completion': 'bg:#2b2b2b #ffffff',
        'completion-menu.completion.current': 'bg:#004b6b #ffffff',
        'scrollbar.background': 'bg:#2b2b2b',
        'scrollbar.button': 'bg:#004b6b',
    })


def get_user_input(prompt_text, history_file=None):
    """
    Get user input with history, suggestions and command completion.

    Args:
        prompt_text: Text shown before the cursor
        history_file: Path to history file, in-memory history if None

    Returns:
        User input string
    """
    history = FileHistory(str(history_file)) if history_file else InMemoryHistory()
    line = prompt(
        [('class:prompt', prompt_text)],
        completer=command_completer,
        style=create_prompt_style(),
        history=history,
        auto_suggest=AutoSuggestFromHistory(),
        complete_while_typing=True,
        enable_suspend=True,  # Allow suspending with Ctrl+Z
        multiline=False,
    )
    command_completer.record_command_usage(line)
    return line
