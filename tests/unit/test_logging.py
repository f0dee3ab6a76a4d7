"""Unit tests for structured logging configuration."""

from __future__ import annotations

from collections.abc import Iterator
from unittest.mock import patch

import pytest
import structlog


@pytest.fixture
def reset_structlog() -> Iterator[None]:
    """Restore structlog defaults after a test reconfigures it."""
    yield
    structlog.reset_defaults()


class TestAddTraceContext:
    """Tests for the trace context processor."""

    def test_no_active_span(self) -> None:
        """Test events are left alone outside a span."""
        from oidc_portal.logging import add_trace_context

        event = add_trace_context(None, "info", {"event": "x"})

        assert event == {"event": "x"}

    def test_active_span_ids_added(self) -> None:
        """Test trace and span ids are added as lowercase hex."""
        from opentelemetry.sdk.trace import TracerProvider

        from oidc_portal.logging import add_trace_context

        tracer = TracerProvider().get_tracer("test")

        with tracer.start_as_current_span("op") as span:
            event = add_trace_context(None, "info", {"event": "x"})
            ctx = span.get_span_context()

        assert event["trace_id"] == format(ctx.trace_id, "032x")
        assert event["span_id"] == format(ctx.span_id, "016x")
        assert len(event["trace_id"]) == 32
        assert len(event["span_id"]) == 16


class TestConfigureLogging:
    """Tests for configure_logging."""

    @pytest.mark.usefixtures("reset_structlog")
    def test_json_output(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Test events render as JSON lines with level and timestamp."""
        import json

        from oidc_portal.logging import configure_logging

        configure_logging("DEBUG", json_output=True)
        structlog.get_logger("test").info("clients_fetched", count=3)

        line = capsys.readouterr().out.strip()
        record = json.loads(line)
        assert record["event"] == "clients_fetched"
        assert record["count"] == 3
        assert record["level"] == "info"
        assert "timestamp" in record

    @pytest.mark.usefixtures("reset_structlog")
    def test_level_filters(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Test events below the configured level are dropped."""
        from oidc_portal.logging import configure_logging

        configure_logging("warning")
        structlog.get_logger("test").info("ignored")

        assert capsys.readouterr().out == ""

    def test_unknown_level_rejected(self) -> None:
        """Test an unknown level name raises ValueError."""
        from oidc_portal.logging import configure_logging

        with pytest.raises(ValueError, match="Unknown log level"):
            configure_logging("LOUD")


class TestConfigureLoggingFromEnv:
    """Tests for environment-driven logging configuration."""

    def test_level_and_console_format(self) -> None:
        """Test level and renderer are read from the environment."""
        from oidc_portal.logging import configure_logging_from_env

        with patch("oidc_portal.logging.configure_logging") as mock_configure:
            configure_logging_from_env(
                {"OIDC_PORTAL_LOG_LEVEL": "debug", "OIDC_PORTAL_LOG_FORMAT": "Console"}
            )

        mock_configure.assert_called_once_with(log_level="debug", json_output=False)

    def test_defaults(self) -> None:
        """Test INFO and JSON output when nothing is set."""
        from oidc_portal.logging import configure_logging_from_env

        with patch("oidc_portal.logging.configure_logging") as mock_configure:
            configure_logging_from_env({})

        mock_configure.assert_called_once_with(log_level="INFO", json_output=True)

    @pytest.mark.usefixtures("reset_structlog")
    def test_spans_correlated_in_output(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Test log lines emitted inside a span carry its trace id."""
        import json

        from opentelemetry.sdk.trace import TracerProvider

        from oidc_portal.logging import configure_logging_from_env

        configure_logging_from_env({"OIDC_PORTAL_LOG_LEVEL": "INFO"})
        tracer = TracerProvider().get_tracer("test")

        with tracer.start_as_current_span("op") as span:
            structlog.get_logger("test").info("inside_span")
            trace_id = span.get_span_context().trace_id

        record = json.loads(capsys.readouterr().out.strip())
        assert record["trace_id"] == format(trace_id, "032x")

    def test_invalid_level_rejected(self) -> None:
        """Test an unknown level from the environment raises ValueError."""
        from oidc_portal.logging import configure_logging_from_env

        with pytest.raises(ValueError, match="Unknown log level"):
            configure_logging_from_env({"OIDC_PORTAL_LOG_LEVEL": "chatty"})
