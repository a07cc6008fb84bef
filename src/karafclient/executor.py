"""Remote command execution."""

import logging
import sys
from typing import BinaryIO, Optional, TextIO, Union

from karafclient.models import CommandResult, EngineConfig
from karafclient.remote.base import Session

logger = logging.getLogger(__name__)


class CommandExecutor:
    """Runs a script on a session and echoes its output locally."""

    def __init__(self, config: Optional[EngineConfig] = None):
        """Initialize the executor.

        Args:
            config: Engine configuration (line separator and echo streams).
        """
        self.config = config or EngineConfig()

    def execute(self, session: Session, command: str) -> CommandResult:
        """Execute a command on the remote host.

        The command is terminated with the configured line separator so the
        remote shell sees a complete final line. Captured stdout and stderr
        are copied byte for byte to the local streams, color escapes
        included.

        Args:
            session: Authenticated session.
            command: Command text; may hold several lines.

        Returns:
            CommandResult with the raw output and exit status.
        """
        logger.debug("Executing %d line(s) on %s", command.count("\n") + 1, session.target)
        result = session.execute(command + self.config.line_separator)

        self._echo(result.stdout, self.config.stdout or sys.stdout)
        self._echo(result.stderr, self.config.stderr or sys.stderr)

        logger.debug(
            "Remote command finished: exit status %s, %d bytes stdout, %d bytes stderr",
            result.exit_status,
            len(result.stdout),
            len(result.stderr),
        )
        return result

    @staticmethod
    def _echo(data: bytes, stream: Union[BinaryIO, TextIO]) -> None:
        if not data:
            return
        # Text streams such as sys.stdout expose their binary layer as .buffer.
        target = getattr(stream, "buffer", stream)
        if hasattr(stream, "buffer"):
            stream.flush()
        try:
            target.write(data)
        except TypeError:
            target.write(data.decode("utf-8", errors="replace"))
        target.flush()
