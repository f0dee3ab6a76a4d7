"""Outbound authentication headers for the identity provider's admin API.

A configured static API key always wins. Without one, the caller's own access
token is taken from the session, where the login flow stores the token set
as a JSON object.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, Protocol

import structlog

from .errors import AuthenticationError

if TYPE_CHECKING:
    from .config import PortalConfig

logger = structlog.get_logger(__name__)

API_KEY_HEADER = "X-API-Key"

_BASE_HEADERS: dict[str, str] = {
    "Accept": "*/*",
    "Content-Type": "application/json",
}


class SessionState(Protocol):
    """Request-scoped key/value store, such as a cookie jar or a dict."""

    def get(self, key: str, /) -> Any: ...


def get_auth_headers(session: SessionState | None, config: PortalConfig) -> dict[str, str]:
    """Build headers for an outbound admin API call.

    Args:
        session: Request-scoped session state. Not consulted when an API key
            is configured.
        config: Portal configuration.

    Returns:
        Header mapping with ``Accept``, ``Content-Type`` and one credential
        header (``X-API-Key`` or ``Authorization``).

    Raises:
        AuthenticationError: If no API key is configured and the session holds
            no usable access token.
    """
    headers = dict(_BASE_HEADERS)

    if config.api_key is not None:
        headers[API_KEY_HEADER] = config.api_key.get_secret_value()
        logger.debug("auth_headers_resolved", method="api_key")
        return headers

    raw = session.get(config.auth_cookie_name) if session is not None else None
    if not raw:
        raise AuthenticationError(
            "No authentication method available",
            reason="missing_cookie",
        )

    try:
        auth_data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise AuthenticationError(
            "Invalid auth token format",
            reason="malformed_json",
        ) from e

    access_token = auth_data.get("access_token") if isinstance(auth_data, dict) else None
    if not access_token:
        raise AuthenticationError(
            "Invalid auth token - no access_token found",
            reason="missing_token",
        )

    headers["Authorization"] = f"Bearer {access_token}"
    logger.debug("auth_headers_resolved", method="access_token")
    return headers
