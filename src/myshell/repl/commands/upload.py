"""
Upload command for MyShell.
"""
from myshell.repl.commands.base import register_command
from myshell.repl.commands.download import DownloadCommand


class UploadCommand(DownloadCommand):
    """Command for sending a path from a connected client to its host.

    Upload always runs on the client; while a session is being driven the
    line never reaches the host as a command.
    """

    def __init__(self):
        super().__init__(
            name="upload",
            description="Upload a file or directory to the connected host"
        )


register_command(UploadCommand())
