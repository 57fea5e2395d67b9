"""Tests for logging configuration module."""

import json
import logging
import sys
from collections.abc import Generator
from unittest.mock import MagicMock, patch

import pytest
import structlog
from opentelemetry import trace
from subway.core.config import settings
from subway.core.logging import NOISY_LOGGERS, _add_otel_context, configure_logging


@pytest.fixture(autouse=True)
def restore_logging() -> Generator[None]:
    """Put the application's logging configuration back after each test."""
    yield
    configure_logging(log_level=settings.LOG_LEVEL)


class TestConfigureLogging:
    """Tests for configure_logging function."""

    def test_configure_logging_sets_log_level(self) -> None:
        """Test that configure_logging sets the root logger level."""
        configure_logging(log_level="WARNING")
        assert logging.getLogger().level == logging.WARNING

        configure_logging(log_level="debug")
        assert logging.getLogger().level == logging.DEBUG

    def test_configure_logging_default_level_is_info(self) -> None:
        """Test that default log level is INFO."""
        configure_logging()
        assert logging.getLogger().level == logging.INFO

    def test_configure_logging_sets_noisy_loggers_to_warning(self) -> None:
        """Test that noisy third-party loggers stay at WARNING even in DEBUG."""
        configure_logging(log_level="DEBUG")

        for name in NOISY_LOGGERS:
            assert logging.getLogger(name).level == logging.WARNING

    def test_configure_logging_replaces_existing_handlers(self) -> None:
        """Test that repeated configuration leaves a single stdout handler."""
        logging.getLogger().addHandler(logging.StreamHandler())

        configure_logging()
        configure_logging()

        handlers = logging.getLogger().handlers
        assert len(handlers) == 1
        assert isinstance(handlers[0], logging.StreamHandler)
        assert handlers[0].stream == sys.stdout

    def test_debug_level_renders_json(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Test that DEBUG output is one JSON object per event with bound context."""
        configure_logging(log_level="DEBUG")

        with structlog.contextvars.bound_contextvars(request_id="req-1"):
            logging.getLogger("subway.test").info("section_added")

        line = capsys.readouterr().out.strip().splitlines()[-1]
        event = json.loads(line)
        assert event["event"] == "section_added"
        assert event["level"] == "info"
        assert event["request_id"] == "req-1"
        assert "timestamp" in event


class TestAddOtelContext:
    """Tests for _add_otel_context processor."""

    def test_adds_trace_and_span_ids_with_active_span(self) -> None:
        """Test that trace_id and span_id are added when there is an active span."""
        mock_span_context = MagicMock()
        mock_span_context.trace_id = 0x1234567890ABCDEF1234567890ABCDEF
        mock_span_context.span_id = 0x1234567890ABCDEF
        mock_span = MagicMock()
        mock_span.is_recording.return_value = True
        mock_span.get_span_context.return_value = mock_span_context

        with patch.object(trace, "get_current_span", return_value=mock_span):
            result = _add_otel_context(logging.getLogger(), "info", {"event": "line_created"})

        assert result["trace_id"] == "1234567890abcdef1234567890abcdef"
        assert result["span_id"] == "1234567890abcdef"
        assert result["event"] == "line_created"

    def test_no_trace_ids_without_active_span(self) -> None:
        """Test that nothing is added when the current span is not recording."""
        mock_span = MagicMock()
        mock_span.is_recording.return_value = False

        with patch.object(trace, "get_current_span", return_value=mock_span):
            result = _add_otel_context(logging.getLogger(), "info", {"event": "line_created"})

        assert "trace_id" not in result
        assert "span_id" not in result


class TestOtelLoggingHandler:
    """Tests for OTLP LoggingHandler integration."""

    def test_logging_handler_added_when_otel_enabled(self) -> None:
        """Test that the OTLP handler is attached with OTEL_LOG_LEVEL."""
        with (
            patch("subway.core.config.settings.OTEL_ENABLED", True),
            patch("subway.core.config.settings.OTEL_LOG_LEVEL", "WARNING"),
            patch("subway.core.telemetry.get_logger_provider", return_value=MagicMock()),
        ):
            configure_logging(log_level="INFO")

            handlers = logging.getLogger().handlers
            otel_handler = next(
                (h for h in handlers if type(h).__name__ == "AttrFilteredLoggingHandler"),
                None,
            )

        assert otel_handler is not None
        assert otel_handler.level == logging.WARNING

    def test_logging_handler_not_added_when_no_logger_provider(self) -> None:
        """Test that no OTLP handler is attached without a logger provider."""
        with (
            patch("subway.core.config.settings.OTEL_ENABLED", True),
            patch("subway.core.telemetry.get_logger_provider", return_value=None),
        ):
            configure_logging(log_level="INFO")

        handler_types = [type(h).__name__ for h in logging.getLogger().handlers]
        assert "AttrFilteredLoggingHandler" not in handler_types
