"""Connection establishment with retry and ordered authentication."""

import logging
import time
from typing import Any, Callable

from karafclient.credentials import CredentialProvider
from karafclient.errors import AuthError, ConnectError
from karafclient.models import Password, PasswordPrompt, RetryPolicy, Target
from karafclient.remote.base import Session, Transport

logger = logging.getLogger(__name__)


class Connector:
    """Produces an authenticated Session for a target."""

    def __init__(
        self,
        transport: Transport,
        retry_policy: RetryPolicy,
        credential_provider: CredentialProvider,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize the connector.

        Args:
            transport: Library binding used to reach the host.
            retry_policy: Retry budget for transient connection failures.
            credential_provider: Source of the credentials to offer.
            sleep: Blocking pause between attempts.
        """
        self.transport = transport
        self.retry_policy = retry_policy
        self.credential_provider = credential_provider
        self._sleep = sleep

    def connect(self, target: Target) -> Session:
        """Open and authenticate a session.

        Connection failures are retried per the retry policy. Authentication
        failures are never retried.

        Args:
            target: Host, port and user to connect as.

        Returns:
            An authenticated Session the caller must close.

        Raises:
            ConnectError: If every connection attempt failed.
            AuthError: If no credential was accepted.
        """
        handle = self._open(target)
        try:
            self._authenticate(handle, target)
        except BaseException:
            try:
                self.transport.close(handle)
            except Exception as e:
                logger.warning("Failed to close connection to %s: %s", target, e)
            raise
        logger.debug("Authenticated to %s", target)
        return Session(self.transport, handle, target)

    def _open(self, target: Target) -> Any:
        retries = 0
        while True:
            try:
                return self.transport.open(target)
            except ConnectError as e:
                if retries >= self.retry_policy.max_attempts:
                    raise
                retries += 1
                logger.debug("Connection to %s failed: %s", target, e)
                self._sleep(self.retry_policy.delay)
                logger.info("retrying (attempt %d) ...", retries)

    def _authenticate(self, handle: Any, target: Target) -> None:
        credentials = self.credential_provider.credentials()
        for credential in credentials:
            if isinstance(credential, PasswordPrompt):
                credential = self._resolve_prompt(credential)
            if self.transport.authenticate(handle, target.user, credential):
                return
        raise AuthError(
            f"Authentication failure for {target}: "
            f"none of {len(credentials)} credential(s) was accepted"
        )

    def _resolve_prompt(self, prompt: PasswordPrompt) -> Password:
        return Password(self.credential_provider.provide_password(prompt.prompt))
