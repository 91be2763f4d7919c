"""record_sync - local record collections with server sync, migration and cross-context propagation."""

from record_sync.config import RecordSyncConfig
from record_sync.core.record import RecordMetadata
from record_sync.core.versioned import MigrationRecord, VersionedRecordSet
from record_sync.crosscontext import (
    BroadcastHub,
    CrossContextConfig,
    CrossContextCoordinator,
    PlatformCapabilities,
    SyncMethod,
)
from record_sync.errors import (
    MigrationDowngradeError,
    MigrationError,
    MissingMigrationError,
    RecordSyncError,
    SyncConfigurationError,
    SyncNotEnabledError,
    TransportError,
)
from record_sync.migration import MigrationEngine
from record_sync.storage import InMemoryKeyValueStore, KeyValueStore, SharedStorageArea, StorageKind
from record_sync.storage.collection import RecordCollection
from record_sync.sync import (
    ConflictPolicy,
    ConnectivityMonitor,
    HttpEndpoint,
    RemoteEndpoint,
    SyncConfig,
    SyncCoordinator,
    SyncResult,
    SyncStatus,
    SyncStrategyType,
)

__version__ = "0.1.0"

__all__ = [
    # Records
    "RecordMetadata",
    "VersionedRecordSet",
    "MigrationRecord",
    # Storage
    "KeyValueStore",
    "InMemoryKeyValueStore",
    "SharedStorageArea",
    "StorageKind",
    "RecordCollection",
    # Server sync
    "SyncCoordinator",
    "SyncConfig",
    "SyncStatus",
    "SyncResult",
    "SyncStrategyType",
    "ConflictPolicy",
    "ConnectivityMonitor",
    "RemoteEndpoint",
    "HttpEndpoint",
    # Cross-context
    "BroadcastHub",
    "CrossContextConfig",
    "CrossContextCoordinator",
    "PlatformCapabilities",
    "SyncMethod",
    # Migration
    "MigrationEngine",
    # Config
    "RecordSyncConfig",
    # Errors
    "RecordSyncError",
    "SyncConfigurationError",
    "SyncNotEnabledError",
    "TransportError",
    "MigrationError",
    "MigrationDowngradeError",
    "MissingMigrationError",
    # Version
    "__version__",
]
