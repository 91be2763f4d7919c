"""Server synchronization: coordinator, delivery strategies and conflict resolution."""

from record_sync.sync.conflict_resolver import get_resolver, resolve
from record_sync.sync.connectivity import ConnectivityMonitor
from record_sync.sync.coordinator import SyncCoordinator
from record_sync.sync.protocol import (
    ConflictContext,
    ConflictPolicy,
    SyncConfig,
    SyncError,
    SyncResult,
    SyncStatus,
    SyncStrategyType,
)
from record_sync.sync.strategies import (
    BatchStrategy,
    ImmediateStrategy,
    QueuedStrategy,
    SyncStrategy,
    create_strategy,
)
from record_sync.sync.transport import HttpEndpoint, RemoteEndpoint

__all__ = [
    "get_resolver",
    "resolve",
    "ConnectivityMonitor",
    "SyncCoordinator",
    "ConflictContext",
    "ConflictPolicy",
    "SyncConfig",
    "SyncError",
    "SyncResult",
    "SyncStatus",
    "SyncStrategyType",
    "BatchStrategy",
    "ImmediateStrategy",
    "QueuedStrategy",
    "SyncStrategy",
    "create_strategy",
    "HttpEndpoint",
    "RemoteEndpoint",
]
