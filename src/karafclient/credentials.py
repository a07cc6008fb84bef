"""Authentication material offered to the remote host."""

import io
import logging
from importlib import resources
from pathlib import Path
from typing import Optional, Union

import click
import paramiko

from karafclient.errors import AuthError, KeyParseError
from karafclient.models import (
    AgentIdentity,
    Credential,
    EngineConfig,
    Password,
    PasswordPrompt,
    PrivateKey,
)

logger = logging.getLogger(__name__)

BUNDLED_KEY_RESOURCE = "karaf.key"

# Tried in order; each class rejects key material of another type.
_KEY_CLASSES = (paramiko.RSAKey, paramiko.ECDSAKey, paramiko.Ed25519Key)


def masked_prompt(prompt: str) -> str:
    """Ask for a password on the terminal without echoing it."""
    return click.prompt(prompt, hide_input=True, prompt_suffix=" ", err=True)


def load_bundled_key() -> paramiko.PKey:
    """Load the fallback key packaged with the client."""
    key_file = resources.files("karafclient") / "resources" / BUNDLED_KEY_RESOURCE
    return paramiko.RSAKey.from_private_key(io.StringIO(key_file.read_text()))


def load_private_key(
    path: Union[str, Path], passphrase: Optional[str] = None
) -> paramiko.PKey:
    """Parse a private key file.

    PEM encoded RSA and ECDSA keys and OpenSSH encoded keys (including
    Ed25519) are accepted, optionally protected by a passphrase.

    Args:
        path: Location of the key file.
        passphrase: Passphrase for an encrypted key.

    Returns:
        The parsed key.

    Raises:
        KeyParseError: If the file cannot be read or decoded.
    """
    key_path = Path(path).expanduser()
    try:
        data = key_path.read_text()
    except (OSError, UnicodeDecodeError) as e:
        raise KeyParseError(f"Unable to read key {key_path.name}: {e}") from e

    last_error: Optional[Exception] = None
    for key_class in _KEY_CLASSES:
        try:
            return key_class.from_private_key(io.StringIO(data), password=passphrase)
        except paramiko.PasswordRequiredException as e:
            raise KeyParseError(
                f"Unable to read key {key_path.name}: key is encrypted and no passphrase was given"
            ) from e
        except (paramiko.SSHException, ValueError) as e:
            last_error = e

    raise KeyParseError(f"Unable to read key {key_path.name}: {last_error}")


class CredentialProvider:
    """Assembles the ordered credentials offered during authentication."""

    def __init__(
        self,
        user: str,
        key_file: Optional[Union[str, Path]] = None,
        key_passphrase: Optional[str] = None,
        password: Optional[str] = None,
        config: Optional[EngineConfig] = None,
        include_bundled_key: bool = True,
    ):
        """Initialize the provider.

        Args:
            user: User name the key identities are registered for.
            key_file: Optional user-supplied private key file.
            key_passphrase: Passphrase for an encrypted key file.
            password: Optional password.
            config: Engine configuration (interactivity and prompt).
            include_bundled_key: Offer the packaged fallback key first.
        """
        self.user = user
        self.key_file = key_file
        self.key_passphrase = key_passphrase
        self.password = password
        self.config = config or EngineConfig()
        self.include_bundled_key = include_bundled_key

    def credentials(self) -> list[Credential]:
        """Build the credential list in the order it is offered.

        The bundled key comes first, then the user key file, then the
        password. A terminal prompt is queued last when there is neither a
        password nor a usable key file; it only fires if reached.
        """
        credentials: list[Credential] = []
        if self.include_bundled_key:
            credentials.append(AgentIdentity(key=load_bundled_key(), username=self.user))

        user_key_loaded = False
        if self.key_file:
            try:
                key = load_private_key(self.key_file, self.key_passphrase)
            except KeyParseError as e:
                logger.warning("%s; skipping this identity", e)
            else:
                credentials.append(
                    PrivateKey(key=key, passphrase=self.key_passphrase, source=str(self.key_file))
                )
                user_key_loaded = True

        if self.password is not None:
            credentials.append(Password(self.password))
        elif not user_key_loaded and self.config.is_interactive:
            credentials.append(PasswordPrompt(f"Password for {self.user}:"))

        return credentials

    def provide_password(self, prompt: str) -> str:
        """Ask the user for a password.

        Raises:
            AuthError: If no terminal is attached or the prompt is aborted.
        """
        if not self.config.is_interactive:
            raise AuthError("Unable to prompt for a password: no interactive terminal")
        prompt_fn = self.config.prompt_fn or masked_prompt
        try:
            return prompt_fn(prompt)
        except (click.Abort, EOFError, KeyboardInterrupt) as e:
            raise AuthError("Password prompt was aborted") from e
