"""Record and versioned-set data model."""

from record_sync.core.record import (
    Record,
    RecordMetadata,
    get_metadata,
    mark_pending,
    needs_sync,
    stamp_new,
    stamp_records,
    stamp_update,
    strip_sync_fields,
)
from record_sync.core.versioned import (
    MigrationRecord,
    VersionedRecordSet,
    extract_items,
    get_data_version,
    is_versioned_data,
)

__all__ = [
    "Record",
    "RecordMetadata",
    "get_metadata",
    "mark_pending",
    "needs_sync",
    "stamp_new",
    "stamp_records",
    "stamp_update",
    "strip_sync_fields",
    "MigrationRecord",
    "VersionedRecordSet",
    "extract_items",
    "get_data_version",
    "is_versioned_data",
]
