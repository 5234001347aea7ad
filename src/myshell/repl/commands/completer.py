"""
Command completer for MyShell.
This module provides a fuzzy command completer for the interactive prompt.
"""
from typing import List

from prompt_toolkit.completion import (  # pylint: disable=import-error
    Completer,
    Completion
)
from prompt_toolkit.formatted_text import HTML  # pylint: disable=import-error

from myshell.repl.commands.base import COMMAND_ALIASES, COMMANDS


class CommandCompleter(Completer):
    """Command completer with fuzzy matching for the REPL.

    The first word completes to command names and aliases, the second word
    to the command's subcommands. Frequently used commands come first.
    """

    def __init__(self):
        super().__init__()
        self.command_history = {}

    def record_command_usage(self, line: str):
        """Record command usage so frequent commands are suggested first."""
        parts = line.split()
        if not parts or parts[0] not in COMMANDS:
            return
        self.command_history[parts[0]] = self.command_history.get(parts[0], 0) + 1

    def get_command_suggestions(self, current_word: str) -> List[Completion]:
        """Get command suggestions with fuzzy matching.

        Args:
            current_word: The current word being typed

        Returns:
            A list of completions for commands
        """
        suggestions = []

        sorted_commands = sorted(
            COMMANDS.values(),
            key=lambda cmd: self.command_history.get(cmd.name, 0),
            reverse=True
        )

        for cmd in sorted_commands:
            if cmd.name.startswith(current_word):
                suggestions.append(Completion(
                    cmd.name,
                    start_position=-len(current_word),
                    display=HTML(
                        f"<ansicyan><b>{cmd.name:<15}</b></ansicyan> "
                        f"{cmd.description}"),
                    style="fg:ansicyan bold"
                ))
            elif current_word in cmd.name:
                suggestions.append(Completion(
                    cmd.name,
                    start_position=-len(current_word),
                    display=HTML(
                        f"<ansicyan>{cmd.name:<15}</ansicyan> {cmd.description}"),
                    style="fg:ansicyan"
                ))

        for alias, name in sorted(COMMAND_ALIASES.items()):
            if current_word and alias.startswith(current_word):
                suggestions.append(Completion(
                    alias,
                    start_position=-len(current_word),
                    display=HTML(
                        f"<ansigreen><b>{alias:<15}</b></ansigreen> {name}"),
                    style="fg:ansigreen bold"
                ))

        return suggestions

    def get_subcommand_suggestions(
            self, name: str, current_word: str) -> List[Completion]:
        name = COMMAND_ALIASES.get(name, name)
        cmd = COMMANDS.get(name)
        if cmd is None:
            return []

        suggestions = []
        for subcmd in sorted(cmd.get_subcommands()):
            if subcmd.startswith(current_word):
                suggestions.append(Completion(
                    subcmd,
                    start_position=-len(current_word),
                    display=HTML(
                        f"<ansiyellow><b>{subcmd:<15}</b></ansiyellow> "
                        f"{cmd.get_subcommand_description(subcmd)}"),
                    style="fg:ansiyellow bold"
                ))
        return suggestions

    def get_completions(self, document, complete_event):
        """Get completions for the current document.

        Args:
            document: The document to complete
            complete_event: The completion event

        Returns:
            A generator of completions
        """
        text_original = document.text_before_cursor
        words = text_original.split()
        has_trailing_space = bool(text_original) and text_original[-1] == " "

        if has_trailing_space:
            current_word = ""
            effective_words = words + [""]
        else:
            current_word = words[-1] if words else ""
            effective_words = words or [""]

        if len(effective_words) == 1:
            yield from self.get_command_suggestions(current_word.lower())
        elif len(effective_words) == 2:
            yield from self.get_subcommand_suggestions(words[0].lower(), current_word)
