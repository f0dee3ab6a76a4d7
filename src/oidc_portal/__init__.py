"""oidc-portal: lists the OIDC clients a portal user may see.

Aggregates the client registry of an OpenID-Connect identity provider's
admin API, caches it, and filters it by the caller's group memberships.

Example:
    >>> from oidc_portal import OIDCClientService, PortalConfig, configure_logging_from_env
    >>> configure_logging_from_env()
    >>> config = PortalConfig(issuer_url="https://id.example.com")
    >>> async with OIDCClientService(config) as service:
    ...     clients = await service.get_visible_clients(cookies, user_groups)
"""

from __future__ import annotations

from typing import Any

__version__ = "0.1.0"
__all__ = [
    # Service and config
    "OIDCClientService",
    "PortalConfig",
    "TTLCache",
    "configure_logging",
    "configure_logging_from_env",
    # Models
    "Client",
    "UserGroup",
    # Exceptions
    "PortalError",
    "PortalConfigError",
    "AuthenticationError",
    "UpstreamError",
]

_LAZY_ATTRS: dict[str, str] = {
    "OIDCClientService": "oidc_portal.service",
    "PortalConfig": "oidc_portal.config",
    "TTLCache": "oidc_portal.cache",
    "configure_logging": "oidc_portal.logging",
    "configure_logging_from_env": "oidc_portal.logging",
    "Client": "oidc_portal.models",
    "UserGroup": "oidc_portal.models",
    "PortalError": "oidc_portal.errors",
    "PortalConfigError": "oidc_portal.errors",
    "AuthenticationError": "oidc_portal.errors",
    "UpstreamError": "oidc_portal.errors",
}


# Lazy imports keep `import oidc_portal` free of httpx/OpenTelemetry start-up cost
def __getattr__(name: str) -> Any:
    """Lazy import of package components."""
    module_name = _LAZY_ATTRS.get(name)
    if module_name is None:
        msg = f"module {__name__!r} has no attribute {name!r}"
        raise AttributeError(msg)

    import importlib

    return getattr(importlib.import_module(module_name), name)
