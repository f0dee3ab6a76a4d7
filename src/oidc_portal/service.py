"""OIDCClientService: the portal's view of registered OIDC clients.

Composes header resolution, cached fetching, normalization and group-based
filtering into the operations page-load handlers call.

Example:
    >>> config = PortalConfig.from_env()
    >>> async with OIDCClientService(config) as service:
    ...     clients = await service.get_visible_clients(cookies, user_groups)
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

import httpx
import structlog

from .access import apply_group_access
from .auth import get_auth_headers
from .cache import TTLCache
from .config import default_logo_url
from .errors import UpstreamError
from .fetcher import CLIENT_LIST_CACHE_KEY, OIDCClientFetcher, client_details_cache_key
from .tracing import ATTR_CLIENT_COUNT, get_tracer, portal_span

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence
    from types import TracebackType

    from .auth import SessionState
    from .cache import Cache
    from .config import PortalConfig
    from .models import Client, UserGroup

logger = structlog.get_logger(__name__)


class OIDCClientService:
    """Lists the OIDC clients a caller may see.

    One instance is shared by all requests of a process; its cache is the
    only state shared between them.

    Args:
        config: Portal configuration.
        cache: Cache for upstream responses. Defaults to a private TTLCache.
        http_client: Async HTTP client. When omitted, the service creates one
            from ``config`` and closes it in ``aclose()``.
        logo_url_builder: Builds client logo URLs from issuer and client id.
    """

    def __init__(
        self,
        config: PortalConfig,
        *,
        cache: Cache | None = None,
        http_client: httpx.AsyncClient | None = None,
        logo_url_builder: Callable[[str, str], str] | None = None,
    ) -> None:
        self._config = config
        self._cache: Cache = cache if cache is not None else TTLCache()
        self._owns_http_client = http_client is None
        self._http = http_client or httpx.AsyncClient(
            timeout=config.timeout,
            verify=config.verify_ssl,
        )
        self._fetcher = OIDCClientFetcher(
            config,
            self._cache,
            self._http,
            logo_url_builder=logo_url_builder or default_logo_url,
        )
        self._tracer = get_tracer()

    @property
    def config(self) -> PortalConfig:
        """The portal configuration."""
        return self._config

    async def __aenter__(self) -> OIDCClientService:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client if this service created it."""
        if self._owns_http_client:
            await self._http.aclose()

    def get_auth_headers(self, session: SessionState | None) -> dict[str, str]:
        """Resolve outbound headers; see :func:`oidc_portal.auth.get_auth_headers`."""
        return get_auth_headers(session, self._config)

    async def fetch_clients(self, headers: dict[str, str]) -> list[Client]:
        """Return all normalized clients, served from cache when fresh."""
        return await self._fetcher.fetch_clients(headers)

    async def fetch_client_details(
        self,
        client_id: str,
        headers: dict[str, str],
    ) -> dict[str, Any]:
        """Return one client's detail record, served from cache when fresh."""
        return await self._fetcher.fetch_client_details(client_id, headers)

    async def process_clients_with_group_access(
        self,
        clients: Sequence[Client],
        headers: dict[str, str],
        user_groups: Sequence[UserGroup | Mapping[str, Any]] = (),
    ) -> list[Client]:
        """Fetch detail records and keep the clients the caller may see.

        Detail requests run concurrently, at most ``detail_concurrency`` at a
        time. A client whose detail request fails is logged and treated as
        unrestricted; the other requests are unaffected.

        Args:
            clients: Normalized clients.
            headers: Outbound authentication headers.
            user_groups: The caller's group memberships.

        Returns:
            Visible clients with access fields set, sorted by name.
        """
        semaphore = asyncio.Semaphore(self._config.detail_concurrency)

        async def fetch_detail(client: Client) -> dict[str, Any] | None:
            async with semaphore:
                try:
                    return await self._fetcher.fetch_client_details(client.id, headers)
                except UpstreamError as e:
                    logger.warning(
                        "client_details_fetch_failed",
                        client_id=client.id,
                        status=e.status,
                        error=str(e),
                    )
                    return None

        results = await asyncio.gather(*(fetch_detail(client) for client in clients))
        details = {
            client.id: detail
            for client, detail in zip(clients, results)
            if detail is not None
        }

        return apply_group_access(clients, user_groups, details)

    async def get_visible_clients(
        self,
        session: SessionState | None,
        user_groups: Sequence[UserGroup | Mapping[str, Any]] = (),
    ) -> list[Client]:
        """Return the clients the caller may see, sorted by name.

        Args:
            session: Request session state holding the caller's token.
            user_groups: The caller's group memberships.

        Returns:
            Visible clients with access fields set.

        Raises:
            AuthenticationError: If no credential is available.
            UpstreamError: If the client list cannot be fetched.
        """
        with portal_span(self._tracer, "get_visible_clients") as span:
            headers = self.get_auth_headers(session)
            clients = await self.fetch_clients(headers)
            visible = await self.process_clients_with_group_access(
                clients, headers, user_groups
            )
            span.set_attribute(ATTR_CLIENT_COUNT, len(visible))
            logger.debug(
                "visible_clients_resolved",
                total=len(clients),
                visible=len(visible),
            )
            return visible

    def invalidate_cache(self, client_id: str | None = None) -> None:
        """Drop cached upstream data.

        Args:
            client_id: Drop only this client's detail record and the client
                list. When None, the whole cache is cleared.
        """
        if client_id is None:
            self._cache.clear()
            return
        self._cache.delete(client_details_cache_key(client_id))
        self._cache.delete(CLIENT_LIST_CACHE_KEY)
