"""
Exceptions raised by MyShell commands and the remote session layer.

The hierarchy mirrors how far a failure reaches:

- ``TransferError`` fails one transferred entry, the session goes on.
- ``ConnectionEnded`` ends the whole remote session.
- ``CipherUnavailableError`` is fatal for whatever needed the cipher.
"""


class ShellError(Exception):
    """Base class for all MyShell errors."""


class CommandSyntaxError(ShellError):
    """A command was invoked with malformed arguments."""

    def __init__(self, message: str = "Invalid command syntax."):
        super().__init__(message)


class AlreadyAttachedError(ShellError):
    """A second remote connection was attached to the same environment."""


class CipherUnavailableError(ShellError):
    """The required cipher algorithm is missing from the crypto backend."""


class TransferError(ShellError):
    """Transfer of a single entry failed."""


class AuthenticationError(TransferError):
    """Decrypted content did not authenticate, usually a wrong password."""


class PaddingError(AuthenticationError):
    """Block padding was invalid after decryption."""


class ConnectionEnded(ShellError):
    """The peer closed the connection or the socket failed."""

    def __init__(self, message: str = "Connection ended."):
        super().__init__(message)


class ProtocolError(ConnectionEnded):
    """An unexpected frame arrived and the stream can not be resynchronized."""
