"""Pytest configuration for oidc-portal tests.

Provides a fake clock for the TTL cache and an in-process stand-in for the
identity provider's admin API built on ``httpx.MockTransport``.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import httpx
import pytest

if TYPE_CHECKING:
    from oidc_portal import OIDCClientService, PortalConfig, TTLCache

DEFAULT_ISSUER = "https://id.example.com"
DEFAULT_ACCESS_TOKEN = "access-token-123"  # noqa: S105
DEFAULT_API_KEY = "static-api-key"  # noqa: S105

CLIENTS_PATH = "/api/oidc/clients"


class FakeClock:
    """Manually advanced clock returning seconds."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class UpstreamStub:
    """Route table answering admin API requests and recording them.

    Routes map a URL path to ``(status, body)``; a body that is not bytes is
    sent as JSON. Unknown paths answer 404.
    """

    def __init__(self) -> None:
        self.routes: dict[str, tuple[int, Any]] = {}
        self.requests: list[httpx.Request] = []

    def add(self, path: str, body: Any = None, status: int = 200) -> None:
        self.routes[path] = (status, body)

    def add_clients(self, clients: list[dict[str, Any]]) -> None:
        self.add(CLIENTS_PATH, {"data": clients})

    def add_detail(self, client_id: str, detail: Any = None, status: int = 200) -> None:
        self.add(f"{CLIENTS_PATH}/{client_id}", detail if detail is not None else {}, status)

    def calls(self, path: str) -> int:
        return sum(1 for request in self.requests if request.url.path == path)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path not in self.routes:
            return httpx.Response(404, json={"error": "not found"})
        status, body = self.routes[request.url.path]
        if isinstance(body, bytes):
            return httpx.Response(status, content=body)
        return httpx.Response(status, json=body)


@pytest.fixture
def clock() -> FakeClock:
    """Fake clock starting at t=1000s."""
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> TTLCache:
    """TTL cache driven by the fake clock."""
    from oidc_portal import TTLCache

    return TTLCache(now=clock)


@pytest.fixture
def upstream() -> UpstreamStub:
    """Empty identity provider stub."""
    return UpstreamStub()


@pytest.fixture
def http_client(upstream: UpstreamStub) -> httpx.AsyncClient:
    """Async HTTP client routed to the upstream stub."""
    return httpx.AsyncClient(transport=httpx.MockTransport(upstream.handler))


@pytest.fixture
def portal_config() -> PortalConfig:
    """Configuration without a static API key (session tokens are used)."""
    from oidc_portal import PortalConfig

    return PortalConfig(issuer_url=DEFAULT_ISSUER)


@pytest.fixture
def api_key_config() -> PortalConfig:
    """Configuration with a static API key."""
    from pydantic import SecretStr

    from oidc_portal import PortalConfig

    return PortalConfig(issuer_url=DEFAULT_ISSUER, api_key=SecretStr(DEFAULT_API_KEY))


@pytest.fixture
def session() -> dict[str, str]:
    """Session state holding a serialized token set."""
    return {"auth_token": json.dumps({"access_token": DEFAULT_ACCESS_TOKEN})}


@pytest.fixture
def service(
    portal_config: PortalConfig,
    cache: TTLCache,
    http_client: httpx.AsyncClient,
) -> OIDCClientService:
    """Service wired to the fake clock and the upstream stub."""
    from oidc_portal import OIDCClientService

    return OIDCClientService(portal_config, cache=cache, http_client=http_client)


@pytest.fixture
def sample_raw_clients() -> list[dict[str, Any]]:
    """Client list in the mixed legacy shapes the provider returns."""
    return [
        {
            "id": "a",
            "client_id": "a",
            "name": "Alpha",
            "callbackURLs": ["https://alpha.example.com/cb"],
        },
        {
            "id": "b",
            "client_id": "b",
            "client_name": "bravo",
            "hasLogo": True,
            "redirect_uris": "https://bravo.example.com/cb",
        },
        {
            "client_id": "c",
            "name": "Charlie",
            "is_public": True,
        },
    ]
