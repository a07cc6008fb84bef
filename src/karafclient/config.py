"""Client settings loaded from YAML files and command-line overrides."""

import logging
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Optional, Union

import yaml

from karafclient.errors import ClientError
from karafclient.models import RetryPolicy, Target

logger = logging.getLogger(__name__)


@dataclass
class ClientSettings:
    """Everything needed to run one batch of remote commands."""

    host: str = "localhost"
    port: int = 8101
    user: str = "karaf"
    password: Optional[str] = None
    key_file: Optional[str] = None
    key_passphrase: Optional[str] = None
    attempts: int = 0
    delay: float = 2
    commands: list[str] = field(default_factory=list)
    scripts: list[str] = field(default_factory=list)
    skip: bool = False
    legacy_errors: bool = True
    connect_timeout: float = 30

    def __post_init__(self):
        if self.connect_timeout <= 0:
            raise ValueError("Connect timeout must be positive")

    def to_dict(self) -> dict[str, Any]:
        """Convert settings to dictionary, leaving out secrets."""
        return {
            "host": self.host,
            "port": self.port,
            "user": self.user,
            "key_file": self.key_file,
            "attempts": self.attempts,
            "delay": self.delay,
            "commands": list(self.commands),
            "scripts": list(self.scripts),
            "skip": self.skip,
            "legacy_errors": self.legacy_errors,
            "connect_timeout": self.connect_timeout,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ClientSettings":
        """Create settings from dictionary.

        Raises:
            ClientError: If the dictionary holds unknown keys, a flag that is
                not a boolean or a command or script that is not a string.
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ClientError(f"Unknown setting(s): {', '.join(unknown)}")

        defaults = cls()
        return cls(
            host=data.get("host", defaults.host),
            port=int(data.get("port", defaults.port)),
            user=data.get("user", defaults.user),
            password=data.get("password"),
            key_file=data.get("key_file"),
            key_passphrase=data.get("key_passphrase"),
            attempts=int(data.get("attempts", defaults.attempts)),
            delay=float(data.get("delay", defaults.delay)),
            commands=_string_list(data, "commands"),
            scripts=_string_list(data, "scripts"),
            skip=_flag(data, "skip", defaults.skip),
            legacy_errors=_flag(data, "legacy_errors", defaults.legacy_errors),
            connect_timeout=float(data.get("connect_timeout", defaults.connect_timeout)),
        )

    def merged(self, overrides: dict[str, Any]) -> "ClientSettings":
        """Return a copy with every non-None override applied.

        Empty sequences count as unset, so a command-line flag given no
        values keeps the commands from the file.
        """
        changes = {
            key: list(value) if isinstance(value, (list, tuple)) else value
            for key, value in overrides.items()
            if value is not None and value != () and value != []
        }
        return replace(self, **changes)

    def target(self) -> Target:
        return Target(host=self.host, port=self.port, user=self.user)

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(max_attempts=self.attempts, delay=self.delay)

    def all_commands(self) -> list[str]:
        """Declared commands followed by the lines of each script."""
        return list(self.commands) + read_scripts(self.scripts)


def _flag(data: dict[str, Any], key: str, default: bool) -> bool:
    value = data.get(key, default)
    if not isinstance(value, bool):
        raise ClientError(f"Setting '{key}' must be true or false, got {value!r}")
    return value


def _string_list(data: dict[str, Any], key: str) -> list[str]:
    """Read a list of strings; a single string counts as a one-item list."""
    value = data.get(key) or []
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list):
        raise ClientError(f"Setting '{key}' must be a list of strings, got {value!r}")
    for item in value:
        # Unquoted "name: value" lines parse as mappings in YAML.
        if not isinstance(item, str):
            raise ClientError(
                f"Setting '{key}' entries must be strings, got {item!r}; quote the line"
            )
    return list(value)


def load_settings(path: Union[str, Path]) -> ClientSettings:
    """Load settings from a YAML file.

    Raises:
        ClientError: If the file cannot be read or parsed.
    """
    config_path = Path(path)
    try:
        with open(config_path, "r") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ClientError(f"Failed to load config '{config_path}': {e}") from e

    if data is None:
        return ClientSettings()
    if not isinstance(data, dict):
        raise ClientError(f"Config '{config_path}' must contain a mapping")
    try:
        return ClientSettings.from_dict(data)
    except (TypeError, ValueError) as e:
        raise ClientError(f"Invalid config '{config_path}': {e}") from e


def read_scripts(paths: list[Union[str, Path]]) -> list[str]:
    """Read command lines from script files.

    Lines are trimmed and blank lines skipped; files are read in order.

    Raises:
        ClientError: If a script cannot be read.
    """
    commands: list[str] = []
    for path in paths:
        script = Path(path)
        try:
            with open(script, "r") as f:
                for line in f:
                    line = line.strip()
                    if line:
                        commands.append(line)
        except OSError as e:
            raise ClientError(f"Unable to read script '{script}': {e}") from e
        logger.debug("Read commands from %s", script)
    return commands
