"""End-to-end tests for the remote command engine."""

import logging

import pytest

from karafclient.classifier import DEFAULT_MARKER, ERROR_MARKER
from karafclient.connector import Connector
from karafclient.credentials import CredentialProvider
from karafclient.engine import RemoteCommandEngine, create_engine
from karafclient.errors import (
    AuthError,
    ClientError,
    RemoteCommandFailure,
    ResourceCleanupError,
)
from karafclient.executor import CommandExecutor
from karafclient.models import (
    CommandResult,
    Failure,
    RetryPolicy,
    Success,
    Target,
)
from karafclient.remote.ssh import ParamikoTransport

TARGET = Target(host="h", port=22, user="u")


@pytest.fixture
def build_engine(engine_config, no_sleep):
    """Build an engine around a fake transport."""

    def build(transport, retry_policy=None):
        provider = CredentialProvider("u", password="pw", config=engine_config)
        connector = Connector(transport, retry_policy or RetryPolicy(), provider, sleep=no_sleep)
        return RemoteCommandEngine(
            connector, CommandExecutor(engine_config), config=engine_config
        )

    return build


class TestRemoteCommandEngine:
    """Tests for RemoteCommandEngine."""

    def test_successful_command(self, make_transport, build_engine, engine_config):
        transport = make_transport(
            results=[CommandResult(stdout=b"feature1\nfeature2\n", exit_status=0)]
        )
        engine = build_engine(transport)

        outcome = engine.run(TARGET, ["feature:list"])

        assert outcome == Success()
        assert engine_config.stdout.getvalue() == b"feature1\nfeature2\n"
        assert transport.commands == ["feature:list\n"]
        assert transport.closed == ["handle-1"]

    def test_failed_command_extracts_message(self, make_transport, build_engine):
        stdout = f"{ERROR_MARKER}command not found {DEFAULT_MARKER}".encode()
        transport = make_transport(results=[CommandResult(stdout=stdout, exit_status=1)])
        engine = build_engine(transport)

        outcome = engine.run(TARGET, ["bad-command"])

        assert outcome == Failure(message="command not found ")
        assert transport.closed == ["handle-1"]

    def test_commands_run_as_one_script(self, make_transport, build_engine):
        transport = make_transport()
        engine = build_engine(transport)

        engine.run(TARGET, ["feature:repo-add camel", "feature:install camel"])

        assert transport.commands == ["feature:repo-add camel\nfeature:install camel\n"]

    def test_commands_are_logged(self, make_transport, build_engine, caplog):
        engine = build_engine(make_transport())
        with caplog.at_level(logging.INFO, logger="karafclient.engine"):
            engine.run(TARGET, ["bundle:list", "feature:list"])
        assert "bundle:list" in caplog.text
        assert "feature:list" in caplog.text

    def test_empty_command_list_rejected(self, make_transport, build_engine):
        transport = make_transport()
        with pytest.raises(ValueError):
            build_engine(transport).run(TARGET, [])
        assert transport.open_calls == 0

    def test_retry_then_success(self, make_transport, build_engine, no_sleep):
        transport = make_transport(connect_failures=2)
        engine = build_engine(transport, RetryPolicy(max_attempts=2, delay=1))

        assert engine.run(TARGET, ["feature:list"]) == Success()
        assert no_sleep.calls == [1, 1]

    def test_execute_raises_on_failure(self, make_transport, build_engine):
        stdout = f"{ERROR_MARKER}boom{DEFAULT_MARKER}".encode()
        result = CommandResult(stdout=stdout, exit_status=1)
        engine = build_engine(make_transport(results=[result]))

        with pytest.raises(RemoteCommandFailure) as excinfo:
            engine.execute(TARGET, ["boom"])

        assert excinfo.value.message == "boom"
        assert excinfo.value.result is result

    def test_execute_returns_result_on_success(self, make_transport, build_engine):
        result = CommandResult(stdout=b"ok\n", exit_status=0)
        engine = build_engine(make_transport(results=[result]))
        assert engine.execute(TARGET, ["ok"]) is result

    def test_auth_failure_propagates(self, make_transport, build_engine):
        transport = make_transport(accept=lambda c: False)
        with pytest.raises(AuthError):
            build_engine(transport).run(TARGET, ["feature:list"])
        assert transport.commands == []


class TestSessionCleanup:
    """Tests for session release on every path."""

    def test_session_closed_when_execution_raises(self, make_transport, build_engine):
        transport = make_transport(execute_error=ClientError("channel broke"))

        with pytest.raises(ClientError, match="channel broke"):
            build_engine(transport).run(TARGET, ["feature:list"])

        assert transport.closed == ["handle-1"]

    def test_cleanup_error_does_not_mask_failure(self, make_transport, build_engine, caplog):
        stdout = f"{ERROR_MARKER}real problem{DEFAULT_MARKER}".encode()
        transport = make_transport(
            results=[CommandResult(stdout=stdout, exit_status=1)],
            close_error=OSError("socket already gone"),
        )

        with caplog.at_level(logging.WARNING, logger="karafclient.engine"):
            outcome = build_engine(transport).run(TARGET, ["feature:list"])

        assert outcome == Failure(message="real problem")
        assert "socket already gone" in caplog.text

    def test_cleanup_error_reported_after_success(self, make_transport, build_engine):
        transport = make_transport(close_error=OSError("socket already gone"))

        with pytest.raises(ResourceCleanupError, match="socket already gone"):
            build_engine(transport).run(TARGET, ["feature:list"])
        assert len(transport.closed) == 1

    def test_cleanup_error_does_not_mask_execution_error(self, make_transport, build_engine):
        transport = make_transport(
            execute_error=ClientError("channel broke"),
            close_error=OSError("socket already gone"),
        )

        with pytest.raises(ClientError, match="channel broke"):
            build_engine(transport).run(TARGET, ["feature:list"])

    def test_session_closed_once(self, make_transport, build_engine):
        transport = make_transport(results=[CommandResult(stdout=b"x", exit_status=2)])
        build_engine(transport).run(TARGET, ["feature:list"])
        assert transport.closed == ["handle-1"]


class TestCreateEngine:
    """Tests for the engine factory."""

    def test_defaults(self):
        engine = create_engine("karaf", password="karaf", connect_timeout=5)

        assert isinstance(engine.connector.transport, ParamikoTransport)
        assert engine.connector.transport.connect_timeout == 5
        assert engine.connector.retry_policy == RetryPolicy()
        assert engine.classifier.legacy_error_text is True

    def test_custom_transport(self, make_transport, engine_config):
        transport = make_transport()
        engine = create_engine(
            "karaf",
            password="karaf",
            config=engine_config,
            transport=transport,
            legacy_error_text=False,
        )

        assert engine.run(TARGET, ["feature:list"]) == Success()
        assert engine.classifier.legacy_error_text is False

    def test_zero_connect_timeout_rejected(self):
        with pytest.raises(ValueError, match="Connect timeout"):
            create_engine("karaf", password="karaf", connect_timeout=0)
