"""Group-based visibility of clients.

A client whose detail record lists ``allowedUserGroups`` is visible only to
members of one of those groups; every other client is visible to everyone.
Clients the caller may not see are removed from the result, not flagged.
"""

from __future__ import annotations

import locale
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

import structlog

from .models import EVERYONE_GROUP, Client, UserGroup
from .normalize import coerce_url_list

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

logger = structlog.get_logger(__name__)


def _group_id(group: UserGroup | Mapping[str, Any]) -> str | None:
    """Return the id of a group given as a model or a raw dict."""
    if isinstance(group, UserGroup):
        return group.id
    if not isinstance(group, Mapping):
        return None
    value = group.get("id")
    return None if value is None else str(value)


def _group_display_name(group: Mapping[str, Any]) -> str:
    return group.get("friendlyName") or group.get("name") or ""


def _allowed_groups(detail: Mapping[str, Any] | None) -> list[Mapping[str, Any]]:
    """Return the object entries of the detail's ``allowedUserGroups`` array."""
    groups = detail.get("allowedUserGroups") if detail else None
    if not isinstance(groups, list):
        return []
    return [group for group in groups if isinstance(group, Mapping)]


def _sort_key(client: Client) -> str:
    return locale.strxfrm(client.name.lower())


def annotate_access(
    client: Client,
    detail: Mapping[str, Any] | None,
    user_group_ids: set[str],
) -> Client:
    """Return a copy of ``client`` with access fields set for one caller.

    Args:
        client: Normalized client. Not modified.
        detail: The client's detail record, or None if it could not be fetched.
        user_group_ids: Ids of the groups the caller belongs to.

    Returns:
        Annotated copy of the client.
    """
    update: dict[str, Any] = {}

    if detail and not client.callback_urls:
        update["callback_urls"] = coerce_url_list(
            detail.get("callback_urls") or detail.get("callbackURLs") or []
        )

    allowed_groups = _allowed_groups(detail)
    if allowed_groups:
        allowed_ids = {str(group.get("id")) for group in allowed_groups}
        has_access = not user_group_ids.isdisjoint(allowed_ids)
        update.update(
            access_groups=[_group_display_name(group) for group in allowed_groups],
            restricted_access=True,
            has_access=has_access,
        )
        if not has_access:
            logger.info(
                "client_access_denied",
                client_id=client.id,
                client_name=client.name,
            )
    else:
        update.update(
            access_groups=[EVERYONE_GROUP],
            restricted_access=False,
            has_access=True,
        )

    return client.model_copy(update=update, deep=True)


def apply_group_access(
    clients: Iterable[Client],
    user_groups: Sequence[UserGroup | Mapping[str, Any]],
    details: Mapping[str, Mapping[str, Any]],
) -> list[Client]:
    """Filter clients down to those the caller may see, sorted by name.

    Args:
        clients: Normalized clients, typically the cached list. Not modified.
        user_groups: The caller's group memberships.
        details: Detail records keyed by client id. A missing entry means the
            client is treated as unrestricted.

    Returns:
        Annotated copies of the visible clients, sorted case-insensitively by
        name. Ties keep their input order.
    """
    user_group_ids = {gid for gid in map(_group_id, user_groups) if gid is not None}

    annotated = (
        annotate_access(client, details.get(client.id), user_group_ids) for client in clients
    )
    visible = [client for client in annotated if client.has_access is True]
    return sorted(visible, key=_sort_key)
