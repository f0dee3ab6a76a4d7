"""Unit tests for outbound authentication header resolution."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest
from structlog.testing import capture_logs

if TYPE_CHECKING:
    from oidc_portal.config import PortalConfig


class _CookieJar:
    """Minimal cookie jar exposing only get(), like a framework's cookies object."""

    def __init__(self, **cookies: str) -> None:
        self._cookies = cookies
        self.reads: list[str] = []

    def get(self, name: str) -> str | None:
        self.reads.append(name)
        return self._cookies.get(name)


class TestApiKeyAuth:
    """Tests for the static API key path."""

    def test_api_key_header(self, api_key_config: PortalConfig) -> None:
        """Test the API key is attached alongside the base headers."""
        from oidc_portal.auth import get_auth_headers

        headers = get_auth_headers(None, api_key_config)

        assert headers == {
            "Accept": "*/*",
            "Content-Type": "application/json",
            "X-API-Key": "static-api-key",
        }

    def test_api_key_never_reads_session(self, api_key_config: PortalConfig) -> None:
        """Test the session is not consulted when an API key is configured."""
        from oidc_portal.auth import get_auth_headers

        jar = _CookieJar(auth_token=json.dumps({"access_token": "ignored"}))

        headers = get_auth_headers(jar, api_key_config)

        assert jar.reads == []
        assert "Authorization" not in headers


class TestSessionTokenAuth:
    """Tests for the session bearer token path."""

    def test_bearer_header_from_cookie(self, portal_config: PortalConfig) -> None:
        """Test the access token becomes a bearer header."""
        from oidc_portal.auth import get_auth_headers

        jar = _CookieJar(auth_token=json.dumps({"access_token": "tok", "id_token": "x"}))

        headers = get_auth_headers(jar, portal_config)

        assert headers["Authorization"] == "Bearer tok"
        assert headers["Accept"] == "*/*"
        assert headers["Content-Type"] == "application/json"
        assert "X-API-Key" not in headers

    def test_plain_mapping_session(
        self, portal_config: PortalConfig, session: dict[str, str]
    ) -> None:
        """Test a dict works as session state."""
        from oidc_portal.auth import get_auth_headers

        headers = get_auth_headers(session, portal_config)

        assert headers["Authorization"] == "Bearer access-token-123"

    def test_custom_cookie_name(self) -> None:
        """Test the session field name comes from configuration."""
        from oidc_portal.auth import get_auth_headers
        from oidc_portal.config import PortalConfig

        config = PortalConfig(issuer_url="https://id.example.com", auth_cookie_name="portal_tokens")
        jar = _CookieJar(portal_tokens=json.dumps({"access_token": "tok"}))

        assert get_auth_headers(jar, config)["Authorization"] == "Bearer tok"

    @pytest.mark.parametrize(
        ("cookies", "reason"),
        [
            ({}, "missing_cookie"),
            ({"auth_token": ""}, "missing_cookie"),
            ({"auth_token": "{not json"}, "malformed_json"),
            ({"auth_token": json.dumps({"id_token": "x"})}, "missing_token"),
            ({"auth_token": json.dumps({"access_token": ""})}, "missing_token"),
            ({"auth_token": json.dumps(["access_token"])}, "missing_token"),
        ],
    )
    def test_unusable_session_raises(
        self,
        portal_config: PortalConfig,
        cookies: dict[str, str],
        reason: str,
    ) -> None:
        """Test each unusable session shape raises AuthenticationError."""
        from oidc_portal.auth import get_auth_headers
        from oidc_portal.errors import AuthenticationError

        with pytest.raises(AuthenticationError) as exc_info:
            get_auth_headers(_CookieJar(**cookies), portal_config)

        assert exc_info.value.reason == reason

    def test_no_session_raises(self, portal_config: PortalConfig) -> None:
        """Test a missing session without an API key raises."""
        from oidc_portal.auth import get_auth_headers
        from oidc_portal.errors import AuthenticationError

        with pytest.raises(AuthenticationError, match="No authentication method available"):
            get_auth_headers(None, portal_config)

    def test_token_not_logged(self, portal_config: PortalConfig, session: dict[str, str]) -> None:
        """Test the token value never reaches the logs."""
        from oidc_portal.auth import get_auth_headers

        with capture_logs() as logs:
            get_auth_headers(session, portal_config)

        assert logs
        assert logs[0]["method"] == "access_token"
        assert all("access-token-123" not in str(entry) for entry in logs)
