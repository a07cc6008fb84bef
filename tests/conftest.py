"""Shared fixtures."""

import io

import pytest

from karafclient.errors import ConnectError
from karafclient.models import CommandResult, EngineConfig
from karafclient.remote.base import Transport


class FakeTransport(Transport):
    """In-memory transport recording every call made to it."""

    def __init__(
        self,
        results=None,
        connect_failures=0,
        accept=None,
        close_error=None,
        execute_error=None,
    ):
        self.results = list(results or [])
        self.connect_failures = connect_failures
        self.accept = accept or (lambda credential: True)
        self.close_error = close_error
        self.execute_error = execute_error
        self.open_calls = 0
        self.offered = []
        self.commands = []
        self.closed = []

    def open(self, target):
        self.open_calls += 1
        if self.open_calls <= self.connect_failures:
            raise ConnectError(f"Connection refused (attempt {self.open_calls})")
        return f"handle-{self.open_calls}"

    def authenticate(self, handle, username, credential):
        self.offered.append((username, credential))
        return self.accept(credential)

    def execute(self, handle, command):
        self.commands.append(command)
        if self.execute_error:
            raise self.execute_error
        if self.results:
            return self.results.pop(0)
        return CommandResult(exit_status=0)

    def close(self, handle):
        self.closed.append(handle)
        if self.close_error:
            raise self.close_error


@pytest.fixture
def make_transport():
    """Factory for fake transports."""
    return FakeTransport


@pytest.fixture
def engine_config():
    """Non-interactive config echoing into in-memory streams."""
    return EngineConfig(
        line_separator="\n",
        is_interactive=False,
        stdout=io.BytesIO(),
        stderr=io.BytesIO(),
    )


@pytest.fixture
def no_sleep():
    """Recording replacement for time.sleep."""
    calls = []

    def sleep(seconds):
        calls.append(seconds)

    sleep.calls = calls
    return sleep
