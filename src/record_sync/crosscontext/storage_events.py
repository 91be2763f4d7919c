"""Storage mutation events as a receive-only notification channel."""

from __future__ import annotations

import asyncio
import json
import logging

from record_sync.core.versioned import extract_items
from record_sync.crosscontext.channel import NotificationChannel, NotificationHandler
from record_sync.crosscontext.message import ChangeNotification, ChangeType
from record_sync.storage.base import KeyValueStore, StorageEvent
from record_sync.utils.timeutils import utcnow_iso

logger = logging.getLogger(__name__)

# Storage events carry no sender; this never equals a real context id
STORAGE_EVENT_ORIGIN = "storage-event"


class StorageEventNotificationChannel(NotificationChannel):
    """
    Translates sibling writes on a shared store into change notifications.

    Publishing is a no-op: the write to the store is the notification.
    A removed key and a cleared store both arrive as ``remove``, since the
    underlying event cannot tell them apart.
    """

    def __init__(self, store: KeyValueStore, storage_key: str) -> None:
        if not store.supports_change_events:
            raise ValueError(f"{type(store).__name__} ({store.kind}) does not emit change events")
        self._store = store
        self._storage_key = storage_key
        self._handlers: list[NotificationHandler] = []
        self._closed = False
        store.add_listener(self._on_storage_event)

    async def publish(self, notification: ChangeNotification) -> None:
        return None

    def subscribe(self, handler: NotificationHandler) -> None:
        self._handlers.append(handler)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._handlers.clear()
        self._store.remove_listener(self._on_storage_event)

    def _to_notification(self, event: StorageEvent) -> ChangeNotification | None:
        if event.key is None or event.new_value is None:
            return ChangeNotification(
                type=ChangeType.REMOVE,
                origin_id=STORAGE_EVENT_ORIGIN,
                storage_key=self._storage_key,
                timestamp=utcnow_iso(),
            )
        try:
            data = json.loads(event.new_value)
        except json.JSONDecodeError as e:
            logger.warning("Failed to parse storage event for %s: %s", self._storage_key, e)
            return None
        return ChangeNotification(
            type=ChangeType.UPDATE,
            origin_id=STORAGE_EVENT_ORIGIN,
            storage_key=self._storage_key,
            timestamp=utcnow_iso(),
            items=extract_items(data),
        )

    async def _on_storage_event(self, event: StorageEvent) -> None:
        if self._closed:
            return
        if event.key is not None and event.key != self._storage_key:
            return
        notification = self._to_notification(event)
        if notification is None:
            return
        for handler in list(self._handlers):
            try:
                result = handler(notification)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as e:
                logger.warning("Storage event handler error for %s: %s", self._storage_key, e)
