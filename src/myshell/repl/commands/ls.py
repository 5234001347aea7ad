"""
Ls command for MyShell.

Every listed entry is marked with a number. Until the next listing, that
number can be typed wherever a command expects a path, for example
``upload 3``.
"""
import datetime
import stat
from pathlib import Path
from typing import List, Optional

from myshell.repl.commands.base import ArgumentParser, Command, register_command
from myshell.util import human_readable_byte_count

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def describe(path: Path, human_readable: bool = False) -> str:
    """Return the listing line for a single entry, without its mark."""
    try:
        info = path.lstat()
    except OSError as e:
        return f"{'?' * 4} {e.strerror or e}: {path.name}"

    flags = "".join((
        "d" if stat.S_ISDIR(info.st_mode) else "-",
        "r" if info.st_mode & stat.S_IRUSR else "-",
        "w" if info.st_mode & stat.S_IWUSR else "-",
        "x" if info.st_mode & stat.S_IXUSR else "-",
    ))
    size = human_readable_byte_count(info.st_size) if human_readable else str(info.st_size)
    modified = datetime.datetime.fromtimestamp(info.st_mtime).strftime(DATE_FORMAT)
    return f"{flags} {size:>10} {modified} {path.name}"


class LsCommand(Command):
    """Command for listing directory contents."""

    def __init__(self):
        super().__init__(
            name="ls",
            description="List directory contents and mark each entry with a number",
            aliases=["dir"],
            syntax="ls [path] [-H]"
        )
        self.parser = ArgumentParser(prog="ls")
        self.parser.add_argument("path", nargs="?")
        self.parser.add_argument(
            "-H", "--human", action="store_true", dest="human_readable")

    def handle(self, env, args: Optional[List[str]] = None) -> bool:
        options = self.parser.parse_args(args or [])
        path = env.resolve_path(options.path) if options.path else env.cwd

        if not path.exists():
            env.writeln(f"The system cannot find the path specified: {path}")
            return False

        if path.is_dir():
            try:
                entries = sorted(path.iterdir(), key=lambda entry: entry.name.lower())
            except OSError as e:
                env.writeln(f"Unable to list {path}: {e.strerror or e}")
                return False
        else:
            entries = [path]

        env.marks.clear()
        width = len(str(len(entries)))
        for number, entry in enumerate(entries, 1):
            env.marks[number] = entry
            env.writeln(f"{number:>{width}}: {describe(entry, options.human_readable)}")
        return True


register_command(LsCommand())
