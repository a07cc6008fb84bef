"""SSH transport backed by paramiko."""

import logging
import socket
import time

import paramiko

from karafclient.errors import ChannelError, ConnectError
from karafclient.models import (
    AgentIdentity,
    CommandResult,
    Credential,
    Password,
    PrivateKey,
    Target,
)
from karafclient.remote.base import Transport

logger = logging.getLogger(__name__)

# paramiko reports this when the remote side closed without an exit status.
_NO_EXIT_STATUS = -1


class ParamikoTransport(Transport):
    """Runs commands over an SSH exec channel.

    Host keys are accepted without verification; the remote fingerprint
    is logged at debug level.
    """

    def __init__(
        self,
        connect_timeout: float = 30.0,
        poll_interval: float = 0.05,
        buffer_size: int = 32768,
    ):
        """Initialize the transport.

        Args:
            connect_timeout: Seconds allowed for TCP connect and SSH negotiation.
            poll_interval: Seconds between checks of an idle channel.
            buffer_size: Maximum bytes read from a channel at once.

        Raises:
            ValueError: If connect_timeout is not positive.
        """
        # A zero timeout would put the socket in non-blocking mode.
        if connect_timeout <= 0:
            raise ValueError("Connect timeout must be positive")
        self.connect_timeout = connect_timeout
        self.poll_interval = poll_interval
        self.buffer_size = buffer_size

    def open(self, target: Target) -> paramiko.Transport:
        """Connect and negotiate an SSH transport."""
        sock = None
        transport = None
        try:
            sock = socket.create_connection(
                (target.host, target.port), timeout=self.connect_timeout
            )
            transport = paramiko.Transport(sock)
            transport.start_client(timeout=self.connect_timeout)
        except (OSError, EOFError, paramiko.SSHException) as e:
            if transport is not None:
                transport.close()
            elif sock is not None:
                sock.close()
            raise ConnectError(f"Failed to connect to {target.host}:{target.port}: {e}") from e

        host_key = transport.get_remote_server_key()
        logger.debug(
            "Connected to %s:%s, host key %s %s",
            target.host,
            target.port,
            host_key.get_name(),
            host_key.get_fingerprint().hex(),
        )
        return transport

    def authenticate(
        self, handle: paramiko.Transport, username: str, credential: Credential
    ) -> bool:
        """Offer a single credential on the transport."""
        try:
            if isinstance(credential, AgentIdentity):
                handle.auth_publickey(credential.username or username, credential.key)
            elif isinstance(credential, PrivateKey):
                handle.auth_publickey(username, credential.key)
            elif isinstance(credential, Password):
                # Falls back to keyboard-interactive when password auth is disabled.
                handle.auth_password(username, credential.secret, fallback=True)
            else:
                raise TypeError(f"Unsupported credential type: {type(credential).__name__}")
        except paramiko.AuthenticationException as e:
            logger.debug("%s rejected: %s", type(credential).__name__, e)
            return False
        except (paramiko.SSHException, EOFError) as e:
            logger.warning("Authentication attempt with %s failed: %s", type(credential).__name__, e)
            return False
        return handle.is_authenticated()

    def execute(self, handle: paramiko.Transport, command: str) -> CommandResult:
        """Execute the command and collect output until the channel closes.

        No timeout is applied: a command that never finishes blocks here.
        """
        try:
            channel = handle.open_session()
        except (paramiko.SSHException, EOFError, OSError) as e:
            raise ChannelError(f"Unable to open an execution channel: {e}") from e
        try:
            channel.exec_command(command)
            channel.shutdown_write()

            stdout = bytearray()
            stderr = bytearray()
            while True:
                if channel.recv_ready():
                    stdout += channel.recv(self.buffer_size)
                elif channel.recv_stderr_ready():
                    stderr += channel.recv_stderr(self.buffer_size)
                elif channel.closed:
                    break
                else:
                    time.sleep(self.poll_interval)

            status = channel.recv_exit_status()
        except (paramiko.SSHException, EOFError, OSError) as e:
            raise ChannelError(f"Remote execution failed: {e}") from e
        finally:
            channel.close()

        return CommandResult(
            stdout=bytes(stdout),
            stderr=bytes(stderr),
            exit_status=None if status == _NO_EXIT_STATUS else status,
        )

    def close(self, handle: paramiko.Transport) -> None:
        handle.close()
