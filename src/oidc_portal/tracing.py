"""OpenTelemetry tracing helpers for portal operations.

Security:
    - Spans MUST NOT include API keys, access tokens, or cookie contents
    - Only operation metadata (operation name, client id, counts) is recorded

Example:
    >>> from oidc_portal.tracing import get_tracer, portal_span
    >>> tracer = get_tracer()
    >>> with portal_span(tracer, "fetch_clients") as span:
    ...     span.set_attribute("portal.client_count", 12)
"""

from __future__ import annotations

import re
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

if TYPE_CHECKING:
    from collections.abc import Iterator

TRACER_NAME = "oidc_portal"

ATTR_OPERATION = "portal.operation"
ATTR_CLIENT_ID = "portal.client_id"
ATTR_CACHE_HIT = "portal.cache_hit"
ATTR_CLIENT_COUNT = "portal.client_count"

_SENSITIVE_KEY_PATTERN = re.compile(
    r"(password|secret|token|api_key|x-api-key|authorization|bearer)\s*[=:]?\s*(bearer\s+)?\S+",
    re.IGNORECASE,
)


def sanitize_error_message(msg: str, max_length: int = 500) -> str:
    """Redact credential-looking fragments from an error message and truncate.

    Args:
        msg: Raw error message.
        max_length: Maximum length of the returned message.

    Returns:
        Sanitized message.

    Example:
        >>> sanitize_error_message("rejected Bearer abc.def")
        'rejected <REDACTED>'
    """
    return _SENSITIVE_KEY_PATTERN.sub("<REDACTED>", msg)[:max_length]


def get_tracer() -> trace.Tracer:
    """Get the OpenTelemetry tracer for portal operations.

    Returns a no-op tracer when no tracer provider is configured.
    """
    return trace.get_tracer(TRACER_NAME)


@contextmanager
def portal_span(
    tracer: trace.Tracer,
    operation: str,
    *,
    client_id: str | None = None,
    extra_attributes: dict[str, Any] | None = None,
) -> Iterator[trace.Span]:
    """Context manager for creating portal operation spans.

    The span is named ``portal.{operation}``. Exceptions are recorded with a
    sanitized message and re-raised.

    Args:
        tracer: OpenTelemetry tracer instance.
        operation: Operation name (e.g., "fetch_clients").
        client_id: Client the operation targets, if any.
        extra_attributes: Additional span attributes.

    Yields:
        The active span for adding custom attributes.
    """
    attributes: dict[str, Any] = {ATTR_OPERATION: operation}
    if client_id is not None:
        attributes[ATTR_CLIENT_ID] = client_id
    if extra_attributes:
        attributes.update(extra_attributes)

    with tracer.start_as_current_span(
        f"portal.{operation}",
        attributes=attributes,
        record_exception=False,
    ) as span:
        try:
            yield span
            span.set_status(Status(StatusCode.OK))
        except Exception as e:
            span.set_status(Status(StatusCode.ERROR, type(e).__name__))
            span.set_attribute("exception.type", type(e).__name__)
            span.set_attribute("exception.message", sanitize_error_message(str(e)))
            raise
