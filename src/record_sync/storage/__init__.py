"""Local storage collaborators."""

from record_sync.storage.base import KeyValueStore, StorageEvent, StorageKind, StorageListener
from record_sync.storage.memory_store import InMemoryKeyValueStore, SharedStorageArea

__all__ = [
    "InMemoryKeyValueStore",
    "KeyValueStore",
    "SharedStorageArea",
    "StorageEvent",
    "StorageKind",
    "StorageListener",
]
