"""Page-load helpers returning the data envelope the portal front end renders.

Failures never escape: the envelope carries ``status="error"`` with an empty
client list so the page can degrade instead of crashing.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

import structlog

from .errors import PortalError
from .models import UserGroup

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

    from .auth import SessionState
    from .models import Client
    from .service import OIDCClientService

    GroupLookup = Callable[
        [SessionState | None, dict[str, str]],
        Awaitable[Sequence[UserGroup | Mapping[str, Any]]],
    ]

logger = structlog.get_logger(__name__)


def _dump_group(group: UserGroup | Mapping[str, Any]) -> dict[str, Any]:
    if isinstance(group, UserGroup):
        return group.model_dump(by_alias=True)
    return dict(group)


async def _resolve_user_groups(
    group_lookup: GroupLookup | None,
    session: SessionState | None,
    headers: dict[str, str],
) -> list[UserGroup | Mapping[str, Any]]:
    """Ask the group lookup for memberships, continuing without on failure."""
    if group_lookup is None:
        return []
    try:
        groups = list(await group_lookup(session, headers))
    except Exception as e:
        logger.warning(
            "user_groups_fetch_failed", error=str(e), error_type=type(e).__name__
        )
        return []

    valid = [group for group in groups if isinstance(group, (UserGroup, Mapping))]
    if len(valid) != len(groups):
        logger.warning("user_groups_entries_ignored", count=len(groups) - len(valid))
    logger.debug("user_groups_fetched", count=len(valid))
    return valid


async def _load_clients(
    service: OIDCClientService,
    session: SessionState | None,
    group_lookup: GroupLookup | None,
) -> tuple[list[Client], list[UserGroup | Mapping[str, Any]]]:
    headers = service.get_auth_headers(session)
    clients = await service.fetch_clients(headers)
    user_groups = await _resolve_user_groups(group_lookup, session, headers)
    visible = await service.process_clients_with_group_access(clients, headers, user_groups)
    return visible, user_groups


def _error_envelope(error: Exception) -> dict[str, Any]:
    return {
        "clients": {"data": []},
        "userGroups": [],
        "status": "error",
        "error": str(error),
    }


async def load_portal_page(
    service: OIDCClientService,
    session: SessionState | None,
    group_lookup: GroupLookup | None = None,
) -> dict[str, Any]:
    """Load the client grid for the portal landing page.

    Args:
        service: Client service.
        session: Request session state.
        group_lookup: Async callable returning the caller's groups, given the
            session and the resolved outbound headers.

    Returns:
        Envelope with ``clients``, ``userGroups``, ``status`` and ``error``.
    """
    try:
        clients, user_groups = await _load_clients(service, session, group_lookup)
    except PortalError as e:
        logger.error("portal_page_load_failed", error=str(e))
        return _error_envelope(e)
    except Exception as e:
        logger.exception("portal_page_load_unexpected_error", error_type=type(e).__name__)
        return _error_envelope(e)

    return {
        "clients": {"data": [client.to_json_dict() for client in clients]},
        "userGroups": [_dump_group(group) for group in user_groups],
        "status": "success",
        "error": None,
    }


async def load_dashboard_page(
    service: OIDCClientService,
    session: SessionState | None,
    group_lookup: GroupLookup | None = None,
) -> dict[str, Any]:
    """Load the dashboard, adding a per-client ``dashboardUrl``.

    Takes the same arguments and returns the same envelope as
    :func:`load_portal_page`.
    """
    try:
        clients, user_groups = await _load_clients(service, session, group_lookup)
    except PortalError as e:
        logger.error("dashboard_page_load_failed", error=str(e))
        return _error_envelope(e)
    except Exception as e:
        logger.exception("dashboard_page_load_unexpected_error", error_type=type(e).__name__)
        return _error_envelope(e)

    data = [
        {**client.to_json_dict(), "dashboardUrl": f"/dashboard/apps/{client.client_id}"}
        for client in clients
    ]
    return {
        "clients": {"data": data},
        "userGroups": [_dump_group(group) for group in user_groups],
        "status": "success",
        "error": None,
    }
