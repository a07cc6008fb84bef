"""Tests for the command executor."""

import io

import pytest

from karafclient.executor import CommandExecutor
from karafclient.models import CommandResult, EngineConfig, Target
from karafclient.remote.base import Session

ANSI_OUTPUT = b"\x1b[1mBold\x1b[0m \x1b[31mred\x1b[39m\n"


@pytest.fixture
def session(make_transport):
    transport = make_transport(
        results=[CommandResult(stdout=ANSI_OUTPUT, stderr=b"warn\n", exit_status=0)]
    )
    return Session(transport, "handle-1", Target("h", 22, "u"))


class TestCommandExecutor:
    """Tests for the CommandExecutor class."""

    def test_appends_line_separator(self, session, engine_config):
        CommandExecutor(engine_config).execute(session, "feature:list")
        assert session.transport.commands == ["feature:list\n"]

    def test_custom_line_separator(self, session):
        config = EngineConfig(line_separator="\r\n", stdout=io.BytesIO(), stderr=io.BytesIO())
        CommandExecutor(config).execute(session, "a\r\nb")
        assert session.transport.commands == ["a\r\nb\r\n"]

    def test_returns_result(self, session, engine_config):
        result = CommandExecutor(engine_config).execute(session, "feature:list")
        assert result.stdout == ANSI_OUTPUT
        assert result.stderr == b"warn\n"
        assert result.exit_status == 0

    def test_echoes_raw_bytes(self, session, engine_config):
        """Color escapes reach the local streams unchanged."""
        CommandExecutor(engine_config).execute(session, "feature:list")
        assert engine_config.stdout.getvalue() == ANSI_OUTPUT
        assert engine_config.stderr.getvalue() == b"warn\n"

    def test_echoes_into_text_stream(self, session):
        out = io.TextIOWrapper(io.BytesIO(), encoding="utf-8")
        err = io.TextIOWrapper(io.BytesIO(), encoding="utf-8")
        config = EngineConfig(line_separator="\n", stdout=out, stderr=err)

        CommandExecutor(config).execute(session, "feature:list")

        assert out.buffer.getvalue() == ANSI_OUTPUT
        assert err.buffer.getvalue() == b"warn\n"

    def test_empty_output_writes_nothing(self, make_transport, engine_config):
        transport = make_transport(results=[CommandResult(exit_status=None)])
        session = Session(transport, "handle-1", Target("h", 22, "u"))

        result = CommandExecutor(engine_config).execute(session, "noop")

        assert result.exit_status is None
        assert engine_config.stdout.getvalue() == b""

    def test_closed_session_refuses_execution(self, session, engine_config):
        session.close()
        with pytest.raises(RuntimeError):
            CommandExecutor(engine_config).execute(session, "feature:list")
