"""Success/failure classification of remote command output.

The Karaf shell highlights errors by wrapping them in ANSI foreground
color escapes. When a command fails, the text between the red marker and
the following reset-to-default marker is the error message.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

from karafclient.models import CommandResult, ExecutionOutcome, Failure, Success

logger = logging.getLogger(__name__)

ERROR_MARKER = "\x1b[31m"
DEFAULT_MARKER = "\x1b[39m"

# Printed by older Karaf shells that exit without a meaningful status (KARAF-2623).
LEGACY_ERROR_TEXT = "Error executing command"


def remove_error_marker(text: Optional[str]) -> Optional[str]:
    """Return the text enclosed by the error and default markers.

    Everything up to and including the first error marker is dropped, then
    everything from the first default marker after it. A missing marker
    leaves that side of the text alone, so the function never fails.
    """
    if not text:
        return text

    start = text.find(ERROR_MARKER)
    if start >= 0:
        text = text[start + len(ERROR_MARKER):]
    end = text.find(DEFAULT_MARKER)
    if end >= 0:
        text = text[:end]
    return text


def extract_legacy_error(text: str) -> Optional[str]:
    """Return the message following LEGACY_ERROR_TEXT, or None if absent.

    The message runs to the end of that line. A leading ``:`` separator is
    dropped; an empty remainder yields LEGACY_ERROR_TEXT itself.
    """
    start = text.find(LEGACY_ERROR_TEXT)
    if start < 0:
        return None
    rest = text[start + len(LEGACY_ERROR_TEXT):]
    line = rest.splitlines()[0] if rest else ""
    message = line.lstrip(":").strip()
    return message or LEGACY_ERROR_TEXT


class OutcomeClassifier(ABC):
    """Decides whether a CommandResult is a success or a failure."""

    @abstractmethod
    def classify(self, result: CommandResult) -> ExecutionOutcome:
        """Classify a command result.

        Args:
            result: Output and exit status of the remote command.

        Returns:
            Success, or Failure carrying the extracted message.
        """


class AnsiMarkerClassifier(OutcomeClassifier):
    """Classifies by exit status and in-band color markers.

    A non-zero exit status is a failure. When the remote side sent no exit
    status at all, the output is searched for LEGACY_ERROR_TEXT instead;
    that check exists only for shells affected by KARAF-2623 and can be
    switched off.
    """

    def __init__(self, legacy_error_text: bool = True):
        self.legacy_error_text = legacy_error_text

    def classify(self, result: CommandResult) -> ExecutionOutcome:
        stdout = result.stdout_text

        if result.exit_status is not None and result.exit_status != 0:
            logger.debug("Remote command exited with status %d", result.exit_status)
            return Failure(message=remove_error_marker(stdout))

        if result.exit_status is None and self.legacy_error_text:
            message = extract_legacy_error(stdout)
            if message is not None:
                logger.debug("No exit status reported; found legacy error text")
                return Failure(message=message)

        return Success()
