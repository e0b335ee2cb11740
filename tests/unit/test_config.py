"""
Unit tests for configuration, logging setup and the error taxonomy.
"""

import builtins
import logging

import json_log_formatter
import pytest

from huly_sdk.config import ClientConfig
from huly_sdk.errors import (
    AuthenticationError,
    ConnectionClosedError,
    DecodeError,
    HulyError,
    InvalidURLError,
    NotAuthenticatedError,
    NotConnectedError,
    RequestFailedError,
    ServerError,
    TimeoutError,
)
from huly_sdk.logs import setup_logging


class TestClientConfig:
    """Tests for ClientConfig."""

    def test_defaults(self):
        """Defaults target huly.io with the standard timeouts."""
        config = ClientConfig()

        assert config.hello_timeout == 10.0
        assert config.tx_timeout == 30.0
        assert config.blob_threshold == 10_240
        assert config.socket_writes is True

    def test_env_prefix(self, monkeypatch):
        """Settings load from HULY_* variables."""
        monkeypatch.setenv("HULY_WORKSPACE", "acme")
        monkeypatch.setenv("HULY_SOCKET_WRITES", "false")

        config = ClientConfig()

        assert config.workspace == "acme"
        assert config.socket_writes is False

    def test_trailing_slash_stripped(self):
        """Base URL is normalized."""
        config = ClientConfig(base_url="https://huly.example.com/")
        assert config.normalized_base_url == "https://huly.example.com"

    def test_invalid_scheme(self):
        """Only http(s) base URLs are accepted."""
        config = ClientConfig(base_url="ftp://huly.example.com")

        with pytest.raises(InvalidURLError):
            _ = config.normalized_base_url

    def test_log_config_omits_secrets(self, caplog):
        """Password is never logged."""
        config = ClientConfig(email="me@example.com", password="hunter2")

        with caplog.at_level(logging.INFO, logger="huly_sdk.config"):
            config.log_config()

        assert caplog.records
        for record in caplog.records:
            assert "hunter2" not in str(record.__dict__)


class TestSetupLogging:
    """Tests for setup_logging."""

    @pytest.fixture(autouse=True)
    def restore_root(self):
        """Restore root logger handlers after each test."""
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield
        root.handlers = handlers
        root.setLevel(level)

    def test_json_format(self):
        """JSON format uses the JSON formatter."""
        setup_logging(ClientConfig(log_format="json", log_level="DEBUG"))
        root = logging.getLogger()

        assert root.level == logging.DEBUG
        assert isinstance(root.handlers[0].formatter, json_log_formatter.JSONFormatter)

    def test_text_format(self):
        """Text format uses a plain formatter."""
        setup_logging(ClientConfig(log_format="text", log_level="WARNING"))
        root = logging.getLogger()

        assert root.level == logging.WARNING
        assert not isinstance(root.handlers[0].formatter, json_log_formatter.JSONFormatter)


class TestErrors:
    """Tests for the error taxonomy."""

    def test_all_inherit_from_base(self):
        """Every SDK error is a HulyError."""
        for error in (
            AuthenticationError("x"),
            NotAuthenticatedError(),
            RequestFailedError("x"),
            DecodeError("x", "value"),
            NotConnectedError(),
            ConnectionClosedError(),
            TimeoutError(),
            ServerError("c", "m"),
        ):
            assert isinstance(error, HulyError)

    def test_codes(self):
        """Errors carry stable codes."""
        assert AuthenticationError("x").code == "AUTHENTICATION_FAILED"
        assert NotConnectedError().code == "NOT_CONNECTED"
        assert ConnectionClosedError().code == "CONNECTION_CLOSED"
        assert TimeoutError().code == "TIMEOUT"

    def test_server_error_fields(self):
        """ServerError keeps the platform code and message."""
        error = ServerError("platform:status:Forbidden", "nope")

        assert error.server_code == "platform:status:Forbidden"
        assert error.server_message == "nope"
        assert error.code == "SERVER_ERROR"
        assert "nope" in str(error)

    def test_request_failed_details(self):
        """RequestFailedError exposes status and body."""
        error = RequestFailedError("failed", status=500, body="boom")

        assert error.details == {"status": 500, "body": "boom"}

    def test_timeout_is_not_builtin(self):
        """SDK TimeoutError is distinct from the builtin."""
        assert not issubclass(TimeoutError, builtins.TimeoutError)
