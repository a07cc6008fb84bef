"""Base transport interface."""

import logging
from abc import ABC, abstractmethod
from typing import Any

from karafclient.models import CommandResult, Credential, Target

logger = logging.getLogger(__name__)


class Transport(ABC):
    """Abstract base class for the library that carries the session.

    Retry, credential ordering and outcome classification live outside
    the transport so they behave the same whichever library backs it.
    """

    @abstractmethod
    def open(self, target: Target) -> Any:
        """Open a connection to the target host.

        Args:
            target: Host and port to connect to.

        Returns:
            An opaque, not yet authenticated connection handle.

        Raises:
            ConnectError: If the connection cannot be established.
        """

    @abstractmethod
    def authenticate(self, handle: Any, username: str, credential: Credential) -> bool:
        """Offer one credential to the remote host.

        Args:
            handle: Connection handle returned by open().
            username: User name to authenticate as.
            credential: A resolved credential (never a PasswordPrompt).

        Returns:
            True if the remote host accepted the credential.
        """

    @abstractmethod
    def execute(self, handle: Any, command: str) -> CommandResult:
        """Run a command on a dedicated channel and wait until it closes.

        Args:
            handle: Authenticated connection handle.
            command: Complete command text, already line terminated.

        Returns:
            CommandResult with the raw output and exit status.
        """

    @abstractmethod
    def close(self, handle: Any) -> None:
        """Release the connection handle."""


class Session:
    """An authenticated connection owned by a single caller.

    The underlying handle is released exactly once, however many times
    close() is called.
    """

    def __init__(self, transport: Transport, handle: Any, target: Target):
        self.transport = transport
        self.handle = handle
        self.target = target
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def execute(self, command: str) -> CommandResult:
        if self._closed:
            raise RuntimeError(f"Session to {self.target} is already closed")
        return self.transport.execute(self.handle, command)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        logger.debug("Closing session to %s", self.target)
        self.transport.close(self.handle)

    def __enter__(self) -> "Session":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
