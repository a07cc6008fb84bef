"""Error types raised by the client."""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from karafclient.models import CommandResult


class ClientError(Exception):
    """Base class for every failure the client reports to its caller."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class ConnectError(ClientError):
    """The transport connection could not be established."""


class AuthError(ClientError):
    """No offered credential was accepted by the remote host."""


class KeyParseError(ClientError):
    """A private key file could not be read or decoded."""


class RemoteCommandFailure(ClientError):
    """The remote command finished but was classified as failed."""

    def __init__(self, message: str, result: Optional["CommandResult"] = None):
        super().__init__(message)
        self.result = result


class ResourceCleanupError(ClientError):
    """Closing the session or channel failed."""


class ChannelError(ClientError):
    """The execution channel could not be opened or was lost mid-command."""
