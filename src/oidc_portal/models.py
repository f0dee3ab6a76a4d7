"""Data models for clients and groups exposed by the portal.

``Client`` is the canonical shape every upstream client record is normalized
into. Field names follow the JSON the portal front end consumes, so the
Python attributes are snake_case with camelCase aliases used on dump.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

EVERYONE_GROUP = "Everyone"


class UserGroup(BaseModel):
    """A group the caller belongs to, or a group a client is restricted to.

    Attributes:
        id: Group identifier.
        name: Group name.
        friendly_name: Display name, preferred over ``name`` when set.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore", coerce_numbers_to_str=True)

    id: str
    name: str = ""
    friendly_name: str | None = Field(default=None, alias="friendlyName")

    @property
    def display_name(self) -> str:
        """Name shown to users: the friendly name, else the name."""
        return self.friendly_name or self.name


class Client(BaseModel):
    """Canonical OIDC client as shown in the portal.

    Access fields default to the unrestricted state; the access filter fills
    them in per request on a copy, never on a cached instance.

    Attributes:
        id: Upstream record id (falls back to ``client_id``).
        client_id: OIDC client identifier.
        name: Display name.
        description: Free-text description.
        is_public: Whether the client is a public (secretless) client.
        has_logo: Whether the provider holds a logo for the client.
        logo_url: Logo URL, only when ``has_logo``.
        icon: Optional icon hint.
        callback_urls: Redirect URIs, always a list.
        access_groups: Display names of groups allowed to see the client.
        restricted_access: Whether visibility is group-restricted.
        has_access: Whether the current caller may see the client.
        logo_error: Set by the front end when the logo fails to load.
    """

    model_config = ConfigDict(populate_by_name=True, extra="forbid", coerce_numbers_to_str=True)

    id: str
    client_id: str
    name: str
    description: str = ""
    is_public: bool = Field(default=False, alias="isPublic")
    has_logo: bool = Field(default=False, alias="hasLogo")
    logo_url: str | None = Field(default=None, alias="logoUrl")
    icon: Any = None
    callback_urls: list[str] = Field(default_factory=list)
    access_groups: list[str] = Field(
        default_factory=lambda: [EVERYONE_GROUP], alias="accessGroups"
    )
    restricted_access: bool = Field(default=False, alias="restrictedAccess")
    has_access: bool = Field(default=True, alias="hasAccess")
    logo_error: bool = Field(default=False, alias="logoError")

    def to_json_dict(self) -> dict[str, Any]:
        """Dump using the front end's field names."""
        return self.model_dump(by_alias=True)
