"""Structured logging setup with OpenTelemetry trace correlation.

Modules log through ``structlog.get_logger(__name__)`` with event-style
names and keyword context. ``configure_logging`` (or
``configure_logging_from_env``) is called once by the hosting application at
start-up; without it structlog's defaults apply.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping, MutableMapping
from typing import Any

import structlog
from opentelemetry import trace

EventDict = MutableMapping[str, Any]

ENV_LOG_LEVEL = "OIDC_PORTAL_LOG_LEVEL"
ENV_LOG_FORMAT = "OIDC_PORTAL_LOG_FORMAT"


def add_trace_context(_logger: Any, _method_name: str, event_dict: EventDict) -> EventDict:
    """Tag a log event with the ids of the span it was emitted under."""
    span_context = trace.get_current_span().get_span_context()
    if span_context.is_valid:
        event_dict["trace_id"] = trace.format_trace_id(span_context.trace_id)
        event_dict["span_id"] = trace.format_span_id(span_context.span_id)
    return event_dict


def configure_logging(log_level: str = "INFO", json_output: bool = True) -> None:
    """Configure structlog with trace context injection.

    Args:
        log_level: Minimum level to emit (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_output: Render JSON lines if True, else human-readable console output.

    Raises:
        ValueError: If ``log_level`` is not a known level name.
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {log_level}")

    renderer: Any = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            add_trace_context,
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=True,
    )


def configure_logging_from_env(environ: Mapping[str, str] | None = None) -> None:
    """Configure logging from ``OIDC_PORTAL_LOG_LEVEL`` and ``OIDC_PORTAL_LOG_FORMAT``.

    The level defaults to INFO. A format of ``console`` selects the
    human-readable renderer; anything else renders JSON lines.
    """
    env = os.environ if environ is None else environ
    configure_logging(
        log_level=env.get(ENV_LOG_LEVEL) or "INFO",
        json_output=(env.get(ENV_LOG_FORMAT) or "json").lower() != "console",
    )


__all__ = [
    "add_trace_context",
    "configure_logging",
    "configure_logging_from_env",
]
