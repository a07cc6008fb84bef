"""Karaf Client data models."""

import os
import sys
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, BinaryIO, Callable, Optional, Union

if TYPE_CHECKING:
    import paramiko


@dataclass(frozen=True)
class Target:
    """The remote host and account the commands run against."""

    host: str
    port: int = 8101
    user: str = "karaf"

    def __post_init__(self) -> None:
        """Validate target configuration."""
        if not self.host:
            raise ValueError("Host is required")
        if not self.user:
            raise ValueError("User is required")
        if not 0 < self.port < 65536:
            raise ValueError(f"Port must be between 1 and 65535, got {self.port}")

    def __str__(self) -> str:
        return f"{self.user}@{self.host}:{self.port}"


@dataclass(frozen=True)
class RetryPolicy:
    """How often connection establishment is retried.

    ``max_attempts`` counts retries only, so a policy always makes
    ``max_attempts + 1`` connection attempts in total.
    """

    max_attempts: int = 0
    delay: float = 2.0

    def __post_init__(self) -> None:
        if self.max_attempts < 0:
            raise ValueError("max_attempts must not be negative")
        if self.delay < 0:
            raise ValueError("delay must not be negative")

    @property
    def total_attempts(self) -> int:
        return self.max_attempts + 1


@dataclass(frozen=True)
class Password:
    """A password offered to the remote host."""

    secret: str = field(repr=False)


@dataclass(frozen=True)
class PrivateKey:
    """A user-supplied private key, already parsed."""

    key: "paramiko.PKey" = field(repr=False)
    passphrase: Optional[str] = field(default=None, repr=False)
    source: Optional[str] = None


@dataclass(frozen=True)
class AgentIdentity:
    """A key pair registered for a specific user name."""

    key: "paramiko.PKey" = field(repr=False)
    username: str = ""


@dataclass(frozen=True)
class PasswordPrompt:
    """A password that is asked for only when authentication reaches it."""

    prompt: str = "Password:"


Credential = Union[Password, PrivateKey, AgentIdentity, PasswordPrompt]


@dataclass
class CommandResult:
    """Raw output of a remote command.

    ``exit_status`` is None when the remote side never reported one.
    """

    stdout: bytes = b""
    stderr: bytes = b""
    exit_status: Optional[int] = None

    @property
    def stdout_text(self) -> str:
        return self.stdout.decode("utf-8", errors="replace")

    @property
    def stderr_text(self) -> str:
        return self.stderr.decode("utf-8", errors="replace")


@dataclass(frozen=True)
class Success:
    """The remote command succeeded."""

    @property
    def succeeded(self) -> bool:
        return True


@dataclass(frozen=True)
class Failure:
    """The remote command failed; ``message`` is the extracted reason."""

    message: str

    @property
    def succeeded(self) -> bool:
        return False


ExecutionOutcome = Union[Success, Failure]


def _stdin_is_tty() -> bool:
    try:
        return sys.stdin is not None and sys.stdin.isatty()
    except (AttributeError, ValueError):
        return False


@dataclass
class EngineConfig:
    """Process-level settings handed to the engine at construction.

    Attributes:
        line_separator: Appended to the script before it is sent.
        is_interactive: Whether a password may be asked for on the terminal.
        prompt_fn: Called with a prompt and returns the typed password.
            None selects the masked terminal prompt.
        stdout: Binary stream remote stdout is echoed to (None: sys.stdout).
        stderr: Binary stream remote stderr is echoed to (None: sys.stderr).
    """

    line_separator: str = os.linesep
    is_interactive: bool = field(default_factory=_stdin_is_tty)
    prompt_fn: Optional[Callable[[str], str]] = None
    stdout: Optional[BinaryIO] = None
    stderr: Optional[BinaryIO] = None
