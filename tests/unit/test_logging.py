"""Unit tests for structured logging utilities."""

from __future__ import annotations

import json
import logging
from unittest.mock import MagicMock

import pytest
import structlog

from lode.utils.logging import REDACTED, get_logger, log_error, redact_sensitive, setup_logging


@pytest.fixture(autouse=True)
def reset_logging():
    """Reset logging configuration before and after each test."""
    logging.root.handlers = []
    structlog.reset_defaults()
    yield
    logging.root.handlers = []
    structlog.reset_defaults()


class TestSetupLogging:
    """Test setup_logging function."""

    def test_setup_logging_default_parameters(self):
        """Test setup_logging with default parameters."""
        setup_logging()

        assert len(logging.root.handlers) > 0

    def test_setup_logging_warning_level(self):
        """Test setup_logging with WARNING level."""
        setup_logging(level="WARNING")

        assert logging.root.level == logging.WARNING

    def test_json_output(self, capsys):
        """Test JSON rendering of an event with context."""
        setup_logging(level="INFO", format="json", output="stdout")

        get_logger("test").info("cluster_ready", cluster_id=12345)

        line = capsys.readouterr().out.strip().splitlines()[-1]
        payload = json.loads(line)
        assert payload["event"] == "cluster_ready"
        assert payload["cluster_id"] == 12345
        assert payload["level"] == "info"

    def test_level_filtering(self, capsys):
        """Test events below the configured level are dropped."""
        setup_logging(level="WARNING", format="json")

        get_logger("test").info("dropped_event")

        assert "dropped_event" not in capsys.readouterr().out

    def test_secrets_never_rendered(self, capsys):
        """Test kubeconfig and token values are masked in output."""
        setup_logging(level="INFO", format="json")

        get_logger("test").info(
            "credentials_loaded", kubeconfig="a3ViZWNvbmZpZw==", token="secret-token"
        )

        out = capsys.readouterr().out
        assert "a3ViZWNvbmZpZw==" not in out
        assert "secret-token" not in out
        assert REDACTED in out


class TestRedactSensitive:
    """Test the redaction processor."""

    def test_masks_sensitive_keys(self):
        """Test known sensitive keys are masked regardless of case."""
        event = {
            "event": "x",
            "Token": "t",
            "kubeconfig_blob": "b",
            "authorization": "Bearer t",
            "cluster_id": 1,
        }

        result = redact_sensitive(None, "info", event)

        assert result["Token"] == REDACTED
        assert result["kubeconfig_blob"] == REDACTED
        assert result["authorization"] == REDACTED
        assert result["cluster_id"] == 1
        assert result["event"] == "x"


class TestLogError:
    """Test log_error helper."""

    def test_log_error_includes_context(self):
        """Test the error type, message and operation are logged."""
        logger = MagicMock()
        error = ValueError("bad spec")

        log_error(logger, error, operation="workflow", state="stabilizing")

        logger.error.assert_called_once_with(
            "error_occurred",
            error_type="ValueError",
            error_message="bad spec",
            state="stabilizing",
            operation="workflow",
        )

    def test_log_error_without_operation(self):
        """Test operation is omitted when not given."""
        logger = MagicMock()

        log_error(logger, RuntimeError("boom"))

        kwargs = logger.error.call_args.kwargs
        assert "operation" not in kwargs
        assert kwargs["error_type"] == "RuntimeError"
