"""Cache-checked retrieval of client records from the identity provider.

Both operations consult the cache before any network call and cache only
caller-independent data: the normalized client list and the per-client
detail records. No retries are attempted; any failure is final.
"""

from __future__ import annotations

import copy
from typing import TYPE_CHECKING, Any

import httpx
import structlog

from .config import default_logo_url
from .errors import UpstreamError
from .normalize import normalize_client, normalize_client_detail
from .tracing import ATTR_CACHE_HIT, ATTR_CLIENT_COUNT, get_tracer, portal_span

if TYPE_CHECKING:
    from collections.abc import Callable

    from .cache import Cache
    from .config import PortalConfig
    from .models import Client

logger = structlog.get_logger(__name__)

CLIENT_LIST_CACHE_KEY = "clients_all"
_CLIENT_DETAILS_KEY_PREFIX = "client_details_"


def client_details_cache_key(client_id: str) -> str:
    """Cache key of one client's detail record."""
    return f"{_CLIENT_DETAILS_KEY_PREFIX}{client_id}"


class OIDCClientFetcher:
    """Fetches and caches client data from the admin API.

    Args:
        config: Portal configuration (issuer URL and TTLs).
        cache: Cache shared by every caller of this fetcher.
        http_client: Async HTTP client used for all requests.
        logo_url_builder: Builds logo URLs during normalization.
    """

    def __init__(
        self,
        config: PortalConfig,
        cache: Cache,
        http_client: httpx.AsyncClient,
        logo_url_builder: Callable[[str, str], str] = default_logo_url,
    ) -> None:
        self._config = config
        self._cache = cache
        self._http = http_client
        self._logo_url_builder = logo_url_builder
        self._tracer = get_tracer()

    async def fetch_clients(self, headers: dict[str, str]) -> list[Client]:
        """Return all clients, normalized.

        The list is cached under one fixed key for ``client_list_ttl`` seconds,
        since it does not depend on who asks.

        Args:
            headers: Outbound authentication headers.

        Returns:
            Normalized clients in upstream order.

        Raises:
            UpstreamError: If the request fails or the body is malformed.
        """
        with portal_span(self._tracer, "fetch_clients") as span:
            cached = self._cache.get(CLIENT_LIST_CACHE_KEY)
            if cached is not None:
                span.set_attribute(ATTR_CACHE_HIT, True)
                return list(cached)
            span.set_attribute(ATTR_CACHE_HIT, False)

            url = self._config.clients_url
            body = await self._get_json(url, headers)

            raw_clients = body.get("data") if isinstance(body, dict) else None
            if not isinstance(raw_clients, list):
                raise UpstreamError(
                    "Unexpected client list response",
                    url=url,
                    details="expected an object with a 'data' array",
                )

            try:
                clients = [
                    normalize_client(
                        raw,
                        issuer_url=self._config.issuer_url,
                        logo_url_builder=self._logo_url_builder,
                    )
                    for raw in raw_clients
                ]
            except (AttributeError, ValueError) as e:
                raise UpstreamError(
                    "Malformed client record", url=url, original_error=e
                ) from e

            self._cache.set(CLIENT_LIST_CACHE_KEY, clients, self._config.client_list_ttl)
            span.set_attribute(ATTR_CLIENT_COUNT, len(clients))
            logger.debug("clients_fetched", count=len(clients))
            return list(clients)

    async def fetch_client_details(
        self,
        client_id: str,
        headers: dict[str, str],
    ) -> dict[str, Any]:
        """Return one client's detail record with normalized callback fields.

        Args:
            client_id: Client record id.
            headers: Outbound authentication headers.

        Returns:
            Detail record, including ``allowedUserGroups`` when restricted.

        Raises:
            UpstreamError: If the request fails, the body is not an object, or
                ``allowedUserGroups`` is not an array of objects.
        """
        with portal_span(self._tracer, "fetch_client_details", client_id=client_id) as span:
            cache_key = client_details_cache_key(client_id)
            cached = self._cache.get(cache_key)
            if cached is not None:
                span.set_attribute(ATTR_CACHE_HIT, True)
                return copy.deepcopy(cached)
            span.set_attribute(ATTR_CACHE_HIT, False)

            url = self._config.client_url(client_id)
            body = await self._get_json(url, headers)
            if not isinstance(body, dict):
                raise UpstreamError(
                    "Unexpected client details response",
                    url=url,
                    details="expected a JSON object",
                )

            allowed_groups = body.get("allowedUserGroups")
            if allowed_groups is not None and not (
                isinstance(allowed_groups, list)
                and all(isinstance(group, dict) for group in allowed_groups)
            ):
                raise UpstreamError(
                    "Unexpected client details response",
                    url=url,
                    details="allowedUserGroups must be an array of objects",
                )

            detail = normalize_client_detail(body)
            self._cache.set(cache_key, detail, self._config.client_details_ttl)
            return copy.deepcopy(detail)

    async def _get_json(self, url: str, headers: dict[str, str]) -> Any:
        """GET ``url`` and decode its JSON body.

        Raises:
            UpstreamError: On transport failure, non-2xx status, or invalid JSON.
        """
        try:
            response = await self._http.get(url, headers=headers)
        except httpx.HTTPError as e:
            logger.warning("upstream_request_failed", url=url, error=type(e).__name__)
            raise UpstreamError(
                "Cannot reach identity provider", url=url, original_error=e
            ) from e

        if not response.is_success:
            raise UpstreamError(
                "API request failed",
                status=response.status_code,
                url=url,
            )

        try:
            return response.json()
        except ValueError as e:
            raise UpstreamError(
                "Invalid JSON from identity provider",
                status=response.status_code,
                url=url,
                original_error=e,
            ) from e
