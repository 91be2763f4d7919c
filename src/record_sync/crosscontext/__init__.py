"""Cross-context change propagation."""

from record_sync.crosscontext.broadcast import BroadcastHub, BroadcastNotificationChannel
from record_sync.crosscontext.channel import (
    NotificationChannel,
    PlatformCapabilities,
    SyncMethod,
    select_sync_method,
)
from record_sync.crosscontext.coordinator import CrossContextConfig, CrossContextCoordinator
from record_sync.crosscontext.message import ChangeNotification, ChangeType
from record_sync.crosscontext.storage_events import StorageEventNotificationChannel

__all__ = [
    "BroadcastHub",
    "BroadcastNotificationChannel",
    "ChangeNotification",
    "ChangeType",
    "CrossContextConfig",
    "CrossContextCoordinator",
    "NotificationChannel",
    "PlatformCapabilities",
    "StorageEventNotificationChannel",
    "SyncMethod",
    "select_sync_method",
]
