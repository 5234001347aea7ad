#!/usr/bin/env python3
"""
Test suite for the base command system functionality.
Tests the Command class, the argument parser and the command registry.
"""

import io
import os
import sys
import pytest
from unittest.mock import Mock

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__),
                                '..', '..', 'src'))

import myshell.repl.commands  # noqa: F401 pylint: disable=unused-import
from myshell.environment import Environment
from myshell.errors import CommandSyntaxError
from myshell.repl.commands.base import (
    ArgumentParser, Command, COMMANDS, COMMAND_ALIASES,
    register_command, get_command, handle_command
)


@pytest.fixture
def env(tmp_path):
    return Environment(stdin=io.StringIO(), stdout=io.StringIO(), cwd=tmp_path)


@pytest.fixture(autouse=True)
def registry():
    """Restore the command registry after each test."""
    original_commands = COMMANDS.copy()
    original_aliases = COMMAND_ALIASES.copy()

    yield

    COMMANDS.clear()
    COMMANDS.update(original_commands)
    COMMAND_ALIASES.clear()
    COMMAND_ALIASES.update(original_aliases)


@pytest.fixture
def sample_command():
    """Create a sample command for testing."""
    return Command(
        name="test",
        description="Test command for unit testing",
        aliases=["t", "test-cmd"]
    )


class TestCommand:
    """Test cases for the base Command class."""

    def test_command_initialization(self, sample_command):
        assert sample_command.name == "test"
        assert sample_command.description == "Test command for unit testing"
        assert sample_command.aliases == ["t", "test-cmd"]
        assert sample_command.subcommands == {}

    def test_syntax_defaults_to_name(self):
        assert Command("test", "Test command").syntax == "test"
        assert Command("test", "Test command", syntax="test <x>").syntax == "test <x>"

    def test_add_subcommand(self, sample_command):
        def handler(env, args):
            return True

        sample_command.add_subcommand("sub", "Test subcommand", handler)

        assert sample_command.get_subcommands() == ["sub"]
        assert sample_command.get_subcommand_description("sub") == "Test subcommand"
        assert sample_command.get_subcommand_description("missing") == ""

    def test_handle_dispatches_to_subcommand(self, sample_command, env):
        handler = Mock(return_value=True)
        sample_command.add_subcommand("sub", "Test subcommand", handler)

        assert sample_command.handle(env, ["sub", "a", "b"]) is True
        handler.assert_called_once_with(env, ["a", "b"])

    def test_subcommand_without_arguments_gets_none(self, sample_command, env):
        handler = Mock(return_value=True)
        sample_command.add_subcommand("sub", "Test subcommand", handler)

        sample_command.handle(env, ["sub"])
        handler.assert_called_once_with(env, None)

    def test_handle_no_args(self, sample_command, env):
        sample_command.add_subcommand("sub", "Test subcommand", Mock())
        assert sample_command.handle(env) is False
        assert "requires a subcommand: sub" in env.stdout.getvalue()

    def test_handle_unknown_subcommand(self, sample_command, env):
        assert sample_command.handle(env, ["nope"]) is False
        assert "Unknown test subcommand: nope" in env.stdout.getvalue()


class TestArgumentParser:
    """Test cases for the non-exiting argument parser."""

    @pytest.fixture
    def parser(self):
        parser = ArgumentParser(prog="test")
        parser.add_argument("port", type=int)
        parser.add_argument("-r", "--reverse", action="store_true")
        return parser

    def test_valid_arguments(self, parser):
        options = parser.parse_args(["80", "-r"])
        assert options.port == 80
        assert options.reverse is True

    def test_missing_argument_raises(self, parser):
        with pytest.raises(CommandSyntaxError, match="port"):
            parser.parse_args([])

    def test_bad_type_raises(self, parser):
        with pytest.raises(CommandSyntaxError, match="invalid int value"):
            parser.parse_args(["eighty"])

    def test_unknown_option_raises(self, parser):
        with pytest.raises(CommandSyntaxError, match="unrecognized arguments"):
            parser.parse_args(["80", "--loud"])

    def test_help_is_not_an_option(self, parser):
        with pytest.raises(CommandSyntaxError):
            parser.parse_args(["80", "--help"])


class TestCommandRegistry:
    """Test cases for the command registry."""

    def test_register_command(self, sample_command):
        register_command(sample_command)
        assert COMMANDS["test"] is sample_command
        assert COMMAND_ALIASES["t"] == "test"
        assert COMMAND_ALIASES["test-cmd"] == "test"

    def test_get_command_by_name_and_alias(self, sample_command):
        register_command(sample_command)
        assert get_command("test") is sample_command
        assert get_command("t") is sample_command

    def test_get_command_ignores_case(self, sample_command):
        register_command(sample_command)
        assert get_command("TEST") is sample_command
        assert get_command("T") is sample_command

    def test_get_unknown_command(self):
        assert get_command("nonexistent") is None

    def test_handle_command(self, env):
        command = Command("test", "Test command")
        command.handle = Mock(return_value=True)
        register_command(command)

        assert handle_command("test", env, ["x"]) is True
        command.handle.assert_called_once_with(env, ["x"])

    def test_handle_unknown_command(self, env):
        assert handle_command("nonexistent", env) is False

    def test_builtin_commands_are_registered(self):
        for name in ("cd", "config", "connect", "download", "exit", "help",
                     "host", "ls", "pwd", "upload"):
            assert name in COMMANDS
        assert get_command("quit") is COMMANDS["exit"]
        assert get_command("dir") is COMMANDS["ls"]
