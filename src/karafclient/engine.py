"""Connect, execute, classify, disconnect."""

import logging
import time
from pathlib import Path
from typing import Callable, Optional, Sequence, Union

from karafclient.classifier import AnsiMarkerClassifier, OutcomeClassifier
from karafclient.connector import Connector
from karafclient.credentials import CredentialProvider
from karafclient.errors import RemoteCommandFailure, ResourceCleanupError
from karafclient.executor import CommandExecutor
from karafclient.models import (
    CommandResult,
    EngineConfig,
    ExecutionOutcome,
    Failure,
    RetryPolicy,
    Target,
)
from karafclient.remote.base import Session, Transport
from karafclient.remote.ssh import ParamikoTransport

logger = logging.getLogger(__name__)


class RemoteCommandEngine:
    """Runs a list of commands as one script on a remote host."""

    def __init__(
        self,
        connector: Connector,
        executor: CommandExecutor,
        classifier: Optional[OutcomeClassifier] = None,
        config: Optional[EngineConfig] = None,
    ):
        self.connector = connector
        self.executor = executor
        self.classifier = classifier or AnsiMarkerClassifier()
        self.config = config or EngineConfig()

    def build_script(self, commands: Sequence[str]) -> str:
        """Join commands into a single multi-line script."""
        return self.config.line_separator.join(commands)

    def run(self, target: Target, commands: Sequence[str]) -> ExecutionOutcome:
        """Run the commands and classify the result.

        The session is closed exactly once before this returns or raises.

        Args:
            target: Host to run on.
            commands: Command lines, executed in order as one script.

        Returns:
            Success or Failure.

        Raises:
            ConnectError: If the host could not be reached.
            AuthError: If authentication failed.
            ResourceCleanupError: If closing the session failed after a success.
        """
        _, outcome = self._run(target, commands)
        return outcome

    def execute(self, target: Target, commands: Sequence[str]) -> CommandResult:
        """Run the commands, raising if the outcome is a failure.

        Raises:
            RemoteCommandFailure: If the remote command failed.
        """
        result, outcome = self._run(target, commands)
        if isinstance(outcome, Failure):
            raise RemoteCommandFailure(outcome.message, result)
        return result

    def _run(
        self, target: Target, commands: Sequence[str]
    ) -> tuple[CommandResult, ExecutionOutcome]:
        if not commands:
            raise ValueError("At least one command is required")
        for command in commands:
            logger.info(command)

        script = self.build_script(commands)
        session = self.connector.connect(target)
        try:
            result = self.executor.execute(session, script)
            outcome = self.classifier.classify(result)
        except BaseException:
            self._close_after_error(session)
            raise

        self._close(session, outcome)
        return result, outcome

    def _close(self, session: Session, outcome: ExecutionOutcome) -> None:
        try:
            session.close()
        except Exception as e:
            if isinstance(outcome, Failure):
                logger.warning("Failed to close session to %s: %s", session.target, e)
                return
            raise ResourceCleanupError(
                f"Failed to close session to {session.target}: {e}"
            ) from e

    def _close_after_error(self, session: Session) -> None:
        try:
            session.close()
        except Exception as e:
            logger.warning("Failed to close session to %s: %s", session.target, e)


def create_engine(
    user: str,
    password: Optional[str] = None,
    key_file: Optional[Union[str, Path]] = None,
    key_passphrase: Optional[str] = None,
    retry_policy: Optional[RetryPolicy] = None,
    config: Optional[EngineConfig] = None,
    legacy_error_text: bool = True,
    transport: Optional[Transport] = None,
    connect_timeout: float = 30.0,
    sleep: Callable[[float], None] = time.sleep,
) -> RemoteCommandEngine:
    """Wire an engine with the default collaborators.

    Args:
        user: User the bundled and supplied keys are registered for.
        password: Optional password.
        key_file: Optional private key file.
        key_passphrase: Passphrase for an encrypted key file.
        retry_policy: Connection retry budget (default: no retry).
        config: Engine configuration.
        legacy_error_text: Also detect failures by the legacy error text.
        transport: Transport binding (default: paramiko over SSH).
        connect_timeout: Connect timeout for the default transport.
        sleep: Blocking pause used between connection attempts.

    Returns:
        A ready RemoteCommandEngine.

    Raises:
        ValueError: If connect_timeout is not positive.
    """
    config = config or EngineConfig()
    transport = transport or ParamikoTransport(connect_timeout=connect_timeout)
    provider = CredentialProvider(
        user=user,
        key_file=key_file,
        key_passphrase=key_passphrase,
        password=password,
        config=config,
    )
    connector = Connector(transport, retry_policy or RetryPolicy(), provider, sleep=sleep)
    return RemoteCommandEngine(
        connector=connector,
        executor=CommandExecutor(config),
        classifier=AnsiMarkerClassifier(legacy_error_text=legacy_error_text),
        config=config,
    )
