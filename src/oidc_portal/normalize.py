"""Normalization of upstream client records.

The identity provider has exposed client records under several historical
JSON shapes. These helpers map all of them onto the canonical ``Client``
model. Fallback orders are part of the observable output and must not be
reordered.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .config import default_logo_url
from .models import Client

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

# List endpoint callback fields, in precedence order
_CLIENT_CALLBACK_FIELDS = ("callbackURLs", "redirect_uris", "callback_urls")


def _first(raw: Mapping[str, Any], *fields: str, default: Any = None) -> Any:
    """Return the first truthy value among ``fields``, else ``default``."""
    for field in fields:
        value = raw.get(field)
        if value:
            return value
    return default


def coerce_url_list(value: Any) -> list[str]:
    """Coerce a callback URL field into a list of strings.

    A bare string becomes a one-element list, a list keeps its string items,
    and anything else (None, numbers, objects) becomes an empty list.

    Args:
        value: Raw field value.

    Returns:
        List of URL strings.

    Examples:
        >>> coerce_url_list("https://app.example.com/cb")
        ['https://app.example.com/cb']
        >>> coerce_url_list(42)
        []
    """
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)):
        return [item for item in value if isinstance(item, str)]
    return []


def normalize_client(
    raw: Mapping[str, Any],
    *,
    issuer_url: str,
    logo_url_builder: Callable[[str, str], str] = default_logo_url,
) -> Client:
    """Map a raw client record from the list endpoint onto ``Client``.

    Args:
        raw: Client record as returned by the identity provider.
        issuer_url: Issuer base URL, used to build logo URLs.
        logo_url_builder: Builds a logo URL from issuer and client id.

    Returns:
        Normalized client with unrestricted access defaults.

    Raises:
        ValueError: If the record carries neither ``id`` nor ``client_id``.
    """
    client_id = raw.get("client_id")
    record_id = raw.get("id") or client_id
    if not record_id:
        raise ValueError("client record has neither 'id' nor 'client_id'")

    has_logo = bool(raw.get("hasLogo")) or bool(raw.get("logo_uri"))
    logo_url = logo_url_builder(issuer_url, str(record_id)) if has_logo else None

    return Client(
        id=record_id,
        client_id=client_id or record_id,
        name=_first(raw, "client_name", "name", "client_id", default=record_id),
        description=raw.get("description") or "",
        is_public=bool(_first(raw, "isPublic", "is_public", default=False)),
        has_logo=has_logo,
        logo_url=logo_url,
        icon=raw.get("icon") or None,
        callback_urls=coerce_url_list(_first(raw, *_CLIENT_CALLBACK_FIELDS, default=[])),
    )


def normalize_client_detail(raw: Mapping[str, Any]) -> dict[str, Any]:
    """Normalize the callback URL fields of a client detail record.

    Only the callback fields are touched; everything else, notably
    ``allowedUserGroups``, is kept as returned. ``callback_urls`` is filled
    from ``callbackURLs`` then ``redirect_uris`` when missing, and
    ``callbackURLs`` is coerced on its own when present.

    Args:
        raw: Detail record as returned by the identity provider.

    Returns:
        A shallow copy with list-valued callback fields.
    """
    detail = dict(raw)

    if not detail.get("callback_urls"):
        detail["callback_urls"] = _first(detail, "callbackURLs", "redirect_uris", default=[])
    detail["callback_urls"] = coerce_url_list(detail["callback_urls"])

    if detail.get("callbackURLs"):
        detail["callbackURLs"] = coerce_url_list(detail["callbackURLs"])

    return detail
