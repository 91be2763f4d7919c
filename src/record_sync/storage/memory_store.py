"""In-memory key/value store with sibling-context change events."""

from __future__ import annotations

import asyncio
import logging

from record_sync.storage.base import KeyValueStore, StorageEvent, StorageKind, StorageListener

logger = logging.getLogger(__name__)


class SharedStorageArea:
    """Backing map shared by every context of one origin.

    Each context gets its own :class:`InMemoryKeyValueStore` view over the
    same area. A write through one view is delivered as a
    :class:`StorageEvent` to the listeners of every *other* view, never to
    the writer itself.
    """

    def __init__(self, kind: StorageKind = StorageKind.LOCAL) -> None:
        self.kind = kind
        self._data: dict[str, str] = {}
        self._views: list[InMemoryKeyValueStore] = []

    def view(self) -> InMemoryKeyValueStore:
        """Create a store view for a new context."""
        return InMemoryKeyValueStore(area=self)

    def _attach(self, view: InMemoryKeyValueStore) -> None:
        self._views.append(view)

    async def _notify(self, writer: InMemoryKeyValueStore, event: StorageEvent) -> None:
        if not self.kind.emits_change_events:
            return
        for view in [v for v in self._views if v is not writer]:
            await view._dispatch(event)


class InMemoryKeyValueStore(KeyValueStore):
    """Dict-backed store for development and testing.

    Data is lost when the process exits.
    """

    def __init__(
        self,
        *,
        area: SharedStorageArea | None = None,
        kind: StorageKind | None = None,
    ) -> None:
        if area is None:
            area = SharedStorageArea(kind or StorageKind.LOCAL)
        self._area = area
        self.kind = area.kind
        self._listeners: list[StorageListener] = []
        area._attach(self)

    @property
    def area(self) -> SharedStorageArea:
        return self._area

    @property
    def supports_change_events(self) -> bool:
        return self.kind.emits_change_events

    def add_listener(self, listener: StorageListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: StorageListener) -> None:
        self._listeners = [h for h in self._listeners if h != listener]

    async def save(self, key: str, value: str) -> None:
        old = self._area._data.get(key)
        self._area._data[key] = value
        await self._area._notify(self, StorageEvent(key=key, old_value=old, new_value=value))

    async def retrieve(self, key: str) -> str | None:
        return self._area._data.get(key)

    async def remove(self, key: str) -> None:
        old = self._area._data.pop(key, None)
        if old is not None:
            await self._area._notify(self, StorageEvent(key=key, old_value=old, new_value=None))

    async def clear(self) -> None:
        self._area._data.clear()
        await self._area._notify(self, StorageEvent(key=None, old_value=None, new_value=None))

    async def _dispatch(self, event: StorageEvent) -> None:
        # Copy so listeners may unregister while being notified
        for listener in list(self._listeners):
            try:
                result = listener(event)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as e:
                logger.warning("Storage listener error for key %r: %s", event.key, e)
