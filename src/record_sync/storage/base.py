"""Abstract key/value store used as the local record store."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import StrEnum


class StorageKind(StrEnum):
    """Kind of local store backing a collection."""

    LOCAL = "local"
    """Persistent, shared by all contexts of an origin. Emits change events."""

    SESSION = "session"
    """Scoped to one session. Emits change events."""

    INDEXED = "indexed"
    """Origin-isolated, larger-capacity store. Emits no change events."""

    @property
    def emits_change_events(self) -> bool:
        return self in (StorageKind.LOCAL, StorageKind.SESSION)


@dataclass(frozen=True)
class StorageEvent:
    """A mutation observed on a store by a sibling context."""

    key: str | None  # None when the whole store was cleared
    old_value: str | None
    new_value: str | None


StorageListener = Callable[[StorageEvent], Awaitable[None] | None]


class KeyValueStore(ABC):
    """
    Opaque key -> JSON string map.

    The sync and migration core only touch local data through these four
    operations, all of which may suspend.
    """

    kind: StorageKind = StorageKind.LOCAL

    @abstractmethod
    async def save(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""
        ...

    @abstractmethod
    async def retrieve(self, key: str) -> str | None:
        """Return the value stored under ``key``, or None."""
        ...

    @abstractmethod
    async def remove(self, key: str) -> None:
        """Delete ``key``. Missing keys are ignored."""
        ...

    @abstractmethod
    async def clear(self) -> None:
        """Delete every key."""
        ...

    @property
    def supports_change_events(self) -> bool:
        """True if sibling contexts can observe writes to this store."""
        return False

    def add_listener(self, listener: StorageListener) -> None:  # noqa: B027
        """Register a change-event listener. No-op by default."""

    def remove_listener(self, listener: StorageListener) -> None:  # noqa: B027
        """Unregister a change-event listener. No-op by default."""
