"""Karaf Client CLI - Main entry point."""

import json
import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from karafclient import __version__
from karafclient.config import ClientSettings, load_settings
from karafclient.engine import create_engine
from karafclient.errors import ClientError
from karafclient.models import EngineConfig, Failure

console = Console()
error_console = Console(stderr=True)

logger = logging.getLogger(__name__)

_HANDLER_ATTR = "_karafclient_handler"


def _configure_logging(verbose: bool, quiet: bool) -> None:
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO

    handler = RichHandler(console=error_console, show_path=False, show_time=False)
    handler.setFormatter(logging.Formatter("%(message)s"))
    setattr(handler, _HANDLER_ATTR, True)

    root = logging.getLogger()
    root.handlers = [h for h in root.handlers if not getattr(h, _HANDLER_ATTR, False)]
    root.setLevel(level)
    root.addHandler(handler)
    # paramiko reports every negotiation step at INFO.
    logging.getLogger("paramiko").setLevel(logging.DEBUG if verbose else logging.WARNING)


class OutputFormatter:
    """Handles output formatting for CLI."""

    def __init__(self, json_output: bool = False):
        self.json_output = json_output

    def print_outcome(self, status: str, message: Optional[str] = None) -> None:
        """Print the run outcome in JSON mode."""
        if self.json_output:
            console.print_json(json.dumps({"status": status, "message": message}))

    def print_success(self, message: str) -> None:
        """Print success message."""
        if not self.json_output:
            error_console.print(f"[green]✓[/green] {message}")

    def print_error(self, message: str) -> None:
        """Print error message."""
        if self.json_output:
            error_console.print_json(json.dumps({"error": message}))
        else:
            error_console.print(f"[red]✗[/red] {escape(message)}", highlight=False)


@click.group()
@click.option("--json", "json_output", is_flag=True, help="Output in JSON format")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
@click.option("--quiet", "-q", is_flag=True, help="Only show warnings and errors")
@click.version_option(version=__version__, prog_name="karaf-client")
@click.pass_context
def cli(ctx: click.Context, json_output: bool, verbose: bool, quiet: bool) -> None:
    """Karaf Client - run commands on a remote Karaf shell.

    Fails with a non-zero exit status when a remote command fails, so it can
    be used as a build step.
    """
    ctx.ensure_object(dict)
    ctx.obj["formatter"] = OutputFormatter(json_output)
    _configure_logging(verbose, quiet)


@cli.command("run")
@click.option(
    "--config", "config_file", type=click.Path(exists=True, dir_okay=False),
    envvar="KARAF_CLIENT_CONFIG", help="YAML settings file",
)
@click.option("--host", "-H", envvar="KARAF_CLIENT_HOST", help="Server host (default: localhost)")
@click.option("--port", "-p", type=int, envvar="KARAF_CLIENT_PORT", help="Server port (default: 8101)")
@click.option("--user", "-u", envvar="KARAF_CLIENT_USER", help="User name (default: karaf)")
@click.option("--password", envvar="KARAF_CLIENT_PASSWORD", help="User password")
@click.option(
    "--key-file", type=click.Path(dir_okay=False), envvar="KARAF_CLIENT_KEY_FILE",
    help="Private key file for key login",
)
@click.option("--key-passphrase", envvar="KARAF_CLIENT_KEY_PASSPHRASE", help="Passphrase for the key file")
@click.option(
    "--attempts", type=click.IntRange(min=0), envvar="KARAF_CLIENT_ATTEMPTS",
    help="Retry connection establishment up to this many times (default: 0)",
)
@click.option(
    "--delay", type=click.FloatRange(min=0), envvar="KARAF_CLIENT_DELAY",
    help="Seconds between connection attempts (default: 2)",
)
@click.option("--command", "-c", "commands", multiple=True, help="Command to execute (repeatable)")
@click.option(
    "--script", "-s", "scripts", multiple=True, type=click.Path(exists=True, dir_okay=False),
    help="File with one command per line (repeatable)",
)
@click.option(
    "--connect-timeout", type=click.FloatRange(min=0, min_open=True),
    envvar="KARAF_CLIENT_CONNECT_TIMEOUT", help="Seconds allowed for connecting (default: 30)",
)
@click.option("--skip", is_flag=True, envvar="KARAF_CLIENT_SKIP", help="Skip execution")
@click.option(
    "--no-legacy-errors", is_flag=True,
    help="Do not treat 'Error executing command' output without exit status as failure",
)
@click.pass_context
def run_commands(
    ctx: click.Context,
    config_file: Optional[str],
    host: Optional[str],
    port: Optional[int],
    user: Optional[str],
    password: Optional[str],
    key_file: Optional[str],
    key_passphrase: Optional[str],
    attempts: Optional[int],
    delay: Optional[float],
    commands: tuple[str, ...],
    scripts: tuple[str, ...],
    connect_timeout: Optional[float],
    skip: bool,
    no_legacy_errors: bool,
) -> None:
    """Execute commands on the remote host."""
    formatter: OutputFormatter = ctx.obj["formatter"]

    try:
        settings = load_settings(Path(config_file)) if config_file else ClientSettings()
        settings = settings.merged(
            {
                "host": host,
                "port": port,
                "user": user,
                "password": password,
                "key_file": key_file,
                "key_passphrase": key_passphrase,
                "attempts": attempts,
                "delay": delay,
                "commands": commands,
                "scripts": scripts,
                "connect_timeout": connect_timeout,
                "skip": True if skip else None,
                "legacy_errors": False if no_legacy_errors else None,
            }
        )

        if settings.skip:
            logger.info("Execution is skipped")
            formatter.print_outcome("skipped")
            return

        all_commands = settings.all_commands()
        if not all_commands:
            logger.warning("No command was specified")
            formatter.print_outcome("skipped", "No command was specified")
            return

        target = settings.target()
        # Keep stdout for the status document in JSON mode.
        echo_stream = sys.stderr if formatter.json_output else None
        engine = create_engine(
            user=settings.user,
            password=settings.password,
            key_file=settings.key_file,
            key_passphrase=settings.key_passphrase,
            retry_policy=settings.retry_policy(),
            config=EngineConfig(stdout=echo_stream),
            legacy_error_text=settings.legacy_errors,
            connect_timeout=settings.connect_timeout,
        )
        logger.debug("Logging in as %s", settings.user)
        outcome = engine.run(target, all_commands)
    except ClientError as e:
        formatter.print_error(str(e))
        sys.exit(1)
    except ValueError as e:
        formatter.print_error(f"Invalid settings: {e}")
        sys.exit(1)

    if isinstance(outcome, Failure):
        formatter.print_error(outcome.message)
        formatter.print_outcome("failure", outcome.message)
        sys.exit(1)

    formatter.print_success(f"{len(all_commands)} command(s) executed on {target}")
    formatter.print_outcome("success")


def main() -> None:
    """Main entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
