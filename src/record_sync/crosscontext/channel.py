"""Notification channel capability and channel selection."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import StrEnum

from record_sync.crosscontext.message import ChangeNotification
from record_sync.storage.base import StorageKind

NotificationHandler = Callable[[ChangeNotification], Awaitable[None] | None]


class SyncMethod(StrEnum):
    """Mechanism used to reach sibling contexts."""

    BROADCAST = "broadcast"
    STORAGE_EVENTS = "storage-events"
    NONE = "none"


@dataclass(frozen=True)
class PlatformCapabilities:
    """Which publish/subscribe primitives the host platform offers."""

    broadcast_channel: bool = False
    storage_events: bool = False


def select_sync_method(
    capabilities: PlatformCapabilities,
    storage_kind: StorageKind,
    *,
    force_storage_events: bool = False,
) -> SyncMethod:
    """Pick the preferred cross-context mechanism.

    Preference order:
    1. Broadcast channel (works with every storage kind)
    2. Storage mutation events (only for kinds that emit them)
    3. None
    """
    if capabilities.broadcast_channel and not force_storage_events:
        return SyncMethod.BROADCAST
    if capabilities.storage_events and storage_kind.emits_change_events:
        return SyncMethod.STORAGE_EVENTS
    return SyncMethod.NONE


class NotificationChannel(ABC):
    """Single publish/subscribe/close contract over any cross-context primitive."""

    @abstractmethod
    async def publish(self, notification: ChangeNotification) -> None:
        ...

    @abstractmethod
    def subscribe(self, handler: NotificationHandler) -> None:
        ...

    @abstractmethod
    def close(self) -> None:
        ...
