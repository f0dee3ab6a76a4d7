"""Configuration model for the OIDC client portal.

Security:
    - HTTPS required for all non-localhost issuer URLs
    - Proper hostname parsing prevents bypass attacks
    - The static API key is held as a SecretStr and never rendered in reprs
"""

from __future__ import annotations

import ipaddress
import os
from typing import TYPE_CHECKING, Annotated
from urllib.parse import quote, urlparse

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    ValidationError,
    field_validator,
)

from .errors import PortalConfigError

if TYPE_CHECKING:
    from collections.abc import Mapping

# Environment variable names read by PortalConfig.from_env()
ENV_ISSUER = "PUBLIC_OIDC_ISSUER"
ENV_API_KEY = "POCKET_ID_API_KEY"
ENV_TIMEOUT = "OIDC_PORTAL_TIMEOUT"

# SECURITY: Known localhost hostnames (exact match only)
_LOCALHOST_HOSTNAMES: frozenset[str] = frozenset(
    {
        "localhost",
        "localhost.localdomain",
    }
)


def _is_localhost(hostname: str) -> bool:
    """Check if hostname represents localhost.

    Args:
        hostname: The hostname to check.

    Returns:
        True if the hostname is localhost or a loopback IP address.
    """
    if hostname.lower() in _LOCALHOST_HOSTNAMES:
        return True

    try:
        addr = ipaddress.ip_address(hostname)
        # Handle IPv4-mapped IPv6 addresses (e.g., ::ffff:127.0.0.1)
        if isinstance(addr, ipaddress.IPv6Address) and addr.ipv4_mapped:
            return addr.ipv4_mapped.is_loopback
        return addr.is_loopback
    except ValueError:
        return False


def default_logo_url(issuer_url: str, client_id: str) -> str:
    """Build the logo URL the identity provider serves for a client.

    Args:
        issuer_url: Issuer base URL (no trailing slash).
        client_id: Client identifier.

    Returns:
        Absolute URL of the client's logo.

    Example:
        >>> default_logo_url("https://id.example.com", "grafana")
        'https://id.example.com/api/oidc/clients/grafana/logo'
    """
    return f"{issuer_url}/api/oidc/clients/{quote(client_id, safe='')}/logo"


class PortalConfig(BaseModel):
    """Configuration for OIDCClientService.

    Attributes:
        issuer_url: Public issuer base URL (must be HTTPS except for localhost).
        api_key: Optional static API key. Takes priority over session tokens.
        auth_cookie_name: Session field holding the JSON-serialized token set.
        timeout: HTTP request timeout in seconds.
        verify_ssl: Whether to verify SSL certificates.
        client_list_ttl: Seconds the client list stays cached.
        client_details_ttl: Seconds a client detail record stays cached.
        detail_concurrency: Maximum concurrent detail requests per call.

    Examples:
        >>> config = PortalConfig(issuer_url="https://id.example.com/")
        >>> config.clients_url
        'https://id.example.com/api/oidc/clients'
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        str_strip_whitespace=True,
    )

    issuer_url: Annotated[
        str,
        Field(
            ...,
            min_length=1,
            description="Public OIDC issuer URL (must be HTTPS except for localhost)",
        ),
    ]
    api_key: Annotated[
        SecretStr | None,
        Field(default=None, description="Static API key for the admin API"),
    ]
    auth_cookie_name: Annotated[
        str,
        Field(default="auth_token", min_length=1, description="Session field with tokens"),
    ]
    timeout: Annotated[
        float,
        Field(default=30.0, gt=0, description="HTTP request timeout in seconds"),
    ]
    verify_ssl: Annotated[
        bool,
        Field(default=True, description="Whether to verify SSL certificates"),
    ]
    client_list_ttl: Annotated[
        float,
        Field(default=5 * 60, gt=0, description="Client list cache TTL in seconds"),
    ]
    client_details_ttl: Annotated[
        float,
        Field(default=10 * 60, gt=0, description="Client detail cache TTL in seconds"),
    ]
    detail_concurrency: Annotated[
        int,
        Field(default=5, ge=1, description="Concurrent client detail requests"),
    ]

    @field_validator("issuer_url")
    @classmethod
    def validate_issuer_url(cls, v: str) -> str:
        """Validate issuer URL format and protocol.

        HTTP is only allowed for localhost/loopback addresses.

        Args:
            v: The issuer URL to validate.

        Returns:
            Validated issuer URL without trailing slashes.

        Raises:
            ValueError: If URL is not HTTPS (except for localhost).
        """
        v = v.rstrip("/")

        if v.startswith("http://"):
            hostname = urlparse(v).hostname or ""
            if _is_localhost(hostname):
                return v
            raise ValueError(
                f"HTTP not allowed for '{hostname}'. "
                "issuer_url must use HTTPS for non-localhost URLs."
            )

        if not v.startswith("https://"):
            raise ValueError("issuer_url must start with https:// or http://localhost")

        return v

    @field_validator("api_key")
    @classmethod
    def blank_api_key_is_none(cls, v: SecretStr | None) -> SecretStr | None:
        """Treat an empty API key as not configured."""
        if v is not None and not v.get_secret_value().strip():
            return None
        return v

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> PortalConfig:
        """Build configuration from environment variables.

        Args:
            environ: Mapping to read from. Defaults to ``os.environ``.

        Returns:
            Validated configuration.

        Raises:
            PortalConfigError: If the issuer is missing or a value is invalid.
        """
        env = os.environ if environ is None else environ

        issuer = env.get(ENV_ISSUER)
        if not issuer:
            raise PortalConfigError(f"{ENV_ISSUER} environment variable is not set.")

        values: dict[str, object] = {"issuer_url": issuer}
        if env.get(ENV_API_KEY):
            values["api_key"] = SecretStr(env[ENV_API_KEY])
        if env.get(ENV_TIMEOUT):
            values["timeout"] = env[ENV_TIMEOUT]

        try:
            return cls.model_validate(values)
        except ValidationError as e:
            raise PortalConfigError("Invalid portal configuration", details=str(e)) from e

    @property
    def clients_url(self) -> str:
        """URL of the client collection endpoint."""
        return f"{self.issuer_url}/api/oidc/clients"

    def client_url(self, client_id: str) -> str:
        """URL of a single client's detail endpoint.

        Args:
            client_id: Client identifier.

        Returns:
            Absolute URL of the client record.
        """
        return f"{self.clients_url}/{quote(client_id, safe='')}"
