"""Propagates local mutations to sibling contexts sharing a storage key."""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from record_sync.crosscontext.broadcast import BroadcastHub
from record_sync.crosscontext.channel import (
    NotificationChannel,
    PlatformCapabilities,
    SyncMethod,
    select_sync_method,
)
from record_sync.crosscontext.message import (
    ChangeNotification,
    ChangeType,
    create_clear,
    create_remove,
    create_update,
)
from record_sync.crosscontext.storage_events import StorageEventNotificationChannel
from record_sync.storage.base import KeyValueStore, StorageKind

logger = logging.getLogger(__name__)

CHANNEL_PREFIX = "record-sync"

UpdateCallback = Callable[[list[dict[str, Any]]], Awaitable[None] | None]
SignalCallback = Callable[[], Awaitable[None] | None]


@dataclass(frozen=True)
class CrossContextConfig:
    """Options for one coordinator."""

    storage_key: str
    storage_kind: StorageKind = StorageKind.LOCAL
    on_update: UpdateCallback | None = None
    on_remove: SignalCallback | None = None
    on_clear: SignalCallback | None = None
    force_storage_events: bool = False


class CrossContextCoordinator:
    """
    Keeps sibling contexts of one origin informed about local writes.

    Prefers a broadcast channel from ``hub``; falls back to change events
    on ``store`` when the storage kind emits them; otherwise stays inactive
    and every broadcast is a no-op.

    Usage:
        coordinator = CrossContextCoordinator(
            CrossContextConfig(storage_key="orders", on_update=apply_items),
            hub=hub,
        )
        await coordinator.broadcast(items)
        coordinator.close()
    """

    def __init__(
        self,
        config: CrossContextConfig,
        *,
        hub: BroadcastHub | None = None,
        store: KeyValueStore | None = None,
    ) -> None:
        self._config = config
        self._context_id: str | None = None
        self._channel: NotificationChannel | None = None
        self._method = SyncMethod.NONE

        capabilities = PlatformCapabilities(
            broadcast_channel=hub is not None,
            storage_events=store is not None and store.supports_change_events,
        )
        method = select_sync_method(
            capabilities,
            config.storage_kind,
            force_storage_events=config.force_storage_events,
        )

        try:
            if method == SyncMethod.BROADCAST and hub is not None:
                self._channel = hub.open(f"{CHANNEL_PREFIX}:{config.storage_key}")
            elif method == SyncMethod.STORAGE_EVENTS and store is not None:
                self._channel = StorageEventNotificationChannel(store, config.storage_key)
        except Exception as e:
            logger.warning("Failed to initialize %s sync for %s: %s", method, config.storage_key, e)
            self._channel = None

        if self._channel is not None:
            self._method = method
            self._channel.subscribe(self._handle_notification)
            logger.debug("Cross-context sync for %s using %s", config.storage_key, method)

    @property
    def config(self) -> CrossContextConfig:
        return self._config

    @property
    def context_id(self) -> str:
        """Identity stamped on every published notification.

        Generated on first use and stable until ``close()``.
        """
        if self._context_id is None:
            self._context_id = f"ctx-{uuid.uuid4().hex[:12]}"
        return self._context_id

    def is_active(self) -> bool:
        return self._channel is not None

    def get_sync_method(self) -> SyncMethod:
        return self._method

    @staticmethod
    def is_supported(capabilities: PlatformCapabilities, storage_kind: StorageKind) -> bool:
        return select_sync_method(capabilities, storage_kind) != SyncMethod.NONE

    @staticmethod
    def get_recommended_method(
        capabilities: PlatformCapabilities, storage_kind: StorageKind
    ) -> SyncMethod:
        return select_sync_method(capabilities, storage_kind)

    async def broadcast(self, items: list[dict[str, Any]]) -> None:
        """Announce the full new item list to sibling contexts."""
        if self._channel is None:
            return
        await self._publish(create_update(self.context_id, self._config.storage_key, items))

    async def broadcast_remove(self) -> None:
        if self._channel is None:
            return
        await self._publish(create_remove(self.context_id, self._config.storage_key))

    async def broadcast_clear(self) -> None:
        if self._channel is None:
            return
        await self._publish(create_clear(self.context_id, self._config.storage_key))

    def close(self) -> None:
        """Release the channel. Later broadcasts are no-ops."""
        if self._channel is not None:
            self._channel.close()
            self._channel = None
        self._method = SyncMethod.NONE
        self._context_id = None

    async def _publish(self, notification: ChangeNotification) -> None:
        assert self._channel is not None
        try:
            await self._channel.publish(notification)
        except Exception as e:
            logger.error("Failed to publish %s for %s: %s", notification.type, notification.storage_key, e)

    async def _handle_notification(self, notification: ChangeNotification) -> None:
        if notification.origin_id == self._context_id:
            return
        if notification.storage_key != self._config.storage_key:
            return

        if notification.type == ChangeType.UPDATE:
            callback: Callable[..., Any] | None = self._config.on_update
            args: tuple[Any, ...] = (list(notification.items or []),)
        elif notification.type == ChangeType.REMOVE:
            callback, args = self._config.on_remove, ()
        else:
            callback, args = self._config.on_clear, ()

        if callback is None:
            return
        try:
            result = callback(*args)
            if asyncio.iscoroutine(result):
                await result
        except Exception as e:
            logger.warning(
                "Cross-context %s callback for %s raised: %s",
                notification.type,
                notification.storage_key,
                e,
            )
