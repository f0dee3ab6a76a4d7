"""In-memory TTL cache for upstream identity provider responses.

Entries expire lazily: an expired entry is indistinguishable from a missing
one and is purged by the read that finds it. There is no background sweep
and no size bound. Writes overwrite unconditionally and are not locked, so
concurrent writers for the same key race with last-write-wins semantics.

Example:
    >>> cache = TTLCache()
    >>> cache.set("clients_all", [client], ttl=300)
    >>> cache.get("clients_all")
    [client]
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic, Protocol, TypeVar

import structlog

if TYPE_CHECKING:
    from collections.abc import Callable

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class Cache(Protocol):
    """Keyed store with per-entry expiration."""

    def get(self, key: str) -> Any | None: ...

    def set(self, key: str, value: Any, ttl: float) -> None: ...

    def delete(self, key: str) -> None: ...

    def clear(self) -> None: ...


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """Cached value with its absolute expiry time.

    Attributes:
        value: The cached value.
        expires_at: Clock reading at which the entry stops being served.
    """

    value: T
    expires_at: float

    def is_expired(self, now: float) -> bool:
        """Check whether the entry has expired at clock reading ``now``."""
        return now >= self.expires_at


class TTLCache:
    """Dictionary-backed cache with per-entry TTL.

    Args:
        now: Clock returning seconds. Defaults to ``time.monotonic``; tests
            pass a fake clock to control expiry.

    Example:
        >>> clock = FakeClock()
        >>> cache = TTLCache(now=clock)
        >>> cache.set("k", "v", ttl=10)
        >>> clock.advance(10)
        >>> cache.get("k") is None
        True
    """

    def __init__(self, now: Callable[[], float] | None = None) -> None:
        self._now = now or time.monotonic
        self._entries: dict[str, CacheEntry[Any]] = {}

    def get(self, key: str) -> Any | None:
        """Return the cached value, or None if missing or expired.

        Args:
            key: Cache key.

        Returns:
            The cached value, or None.
        """
        entry = self._entries.get(key)
        if entry is None:
            return None

        if entry.is_expired(self._now()):
            self._entries.pop(key, None)
            logger.debug("cache_entry_expired", key=key)
            return None

        return entry.value

    def set(self, key: str, value: Any, ttl: float) -> None:
        """Store a value for ``ttl`` seconds, replacing any existing entry.

        Args:
            key: Cache key.
            value: Value to store.
            ttl: Time-to-live in seconds.
        """
        self._entries[key] = CacheEntry(value=value, expires_at=self._now() + ttl)

    def delete(self, key: str) -> None:
        """Remove an entry if present."""
        self._entries.pop(key, None)

    def clear(self) -> None:
        """Remove all entries."""
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
