"""Record collection: one storage key wired to sync, migration and cross-context."""

from __future__ import annotations

import json
import logging
from typing import Any

from record_sync.core.record import (
    SYNC_FIELDS,
    Record,
    mark_pending,
    stamp_records,
    strip_sync_fields,
)
from record_sync.core.versioned import VersionedRecordSet, extract_items, is_versioned_data
from record_sync.crosscontext.broadcast import BroadcastHub
from record_sync.crosscontext.coordinator import (
    CrossContextConfig,
    CrossContextCoordinator,
    SignalCallback,
    UpdateCallback,
)
from record_sync.migration.engine import MigrationEngine
from record_sync.storage.base import KeyValueStore
from record_sync.sync.connectivity import ConnectivityMonitor
from record_sync.sync.coordinator import SyncCoordinator
from record_sync.sync.protocol import SyncConfig, SyncResult, SyncStatus
from record_sync.sync.transport import RemoteEndpoint

logger = logging.getLogger(__name__)


class RecordCollection:
    """
    A list of records persisted as JSON under one key of a KeyValueStore.

    Writes stamp record metadata, flag records for delivery while sync is
    enabled, keep the schema version envelope when a MigrationEngine is
    configured, and announce the change to sibling contexts.

    Usage:
        orders = RecordCollection(store, "orders", migration_engine=engine)
        await orders.enable_sync(SyncConfig(endpoint="https://api.example.com/orders"))
        orders.enable_cross_context(hub=hub, on_update=refresh_view)
        await orders.store([{"id": 1, "total": 10}])
        items = await orders.retrieve()
    """

    def __init__(
        self,
        store: KeyValueStore,
        storage_key: str,
        *,
        id_key: str = "id",
        track_timestamps: bool = True,
        migration_engine: MigrationEngine | None = None,
        endpoint: RemoteEndpoint | None = None,
        connectivity: ConnectivityMonitor | None = None,
    ) -> None:
        if not storage_key:
            raise ValueError("storage_key is required")
        self._store = store
        self._storage_key = storage_key
        self._id_key = id_key
        self._track_timestamps = track_timestamps
        self._migration_engine = migration_engine
        self._owns_endpoint = endpoint is None
        self._sync = SyncCoordinator(self, endpoint=endpoint, connectivity=connectivity)
        self._cross_context: CrossContextCoordinator | None = None

    @property
    def storage_key(self) -> str:
        return self._storage_key

    @property
    def id_key(self) -> str:
        return self._id_key

    @property
    def track_timestamps(self) -> bool:
        return self._track_timestamps

    @property
    def migration_engine(self) -> MigrationEngine | None:
        return self._migration_engine

    @property
    def sync_coordinator(self) -> SyncCoordinator:
        return self._sync

    @property
    def cross_context(self) -> CrossContextCoordinator | None:
        return self._cross_context

    # ── Raw persistence ───────────────────────────────────────────────

    async def _read_raw(self) -> Any:
        value = await self._store.retrieve(self._storage_key)
        if value is None:
            return None
        try:
            return json.loads(value)
        except json.JSONDecodeError as e:
            logger.warning("Corrupt data under %s, treating as empty: %s", self._storage_key, e)
            return None

    async def _write_raw(self, data: Any) -> None:
        await self._store.save(self._storage_key, json.dumps(data))

    async def _write_items(self, items: list[Record], previous_raw: Any) -> None:
        if self._migration_engine is None:
            await self._write_raw(items)
            return
        previous = (
            VersionedRecordSet.from_dict(previous_raw)
            if is_versioned_data(previous_raw)
            else VersionedRecordSet()
        )
        record_set = VersionedRecordSet(
            items=items,
            version=self._migration_engine.get_current_version(),
            migration_history=previous.migration_history,
            migrated_at=previous.migrated_at,
        )
        await self._write_raw(record_set.to_dict())

    # ── Strategy-facing store ─────────────────────────────────────────

    async def load_records(self) -> list[Record]:
        """Stored records including their sync bookkeeping fields."""
        return extract_items(await self._read_raw())

    async def save_records(self, records: list[Record]) -> None:
        await self._write_items(records, await self._read_raw())

    # ── Application API ───────────────────────────────────────────────

    async def retrieve(self) -> list[Record]:
        """Load the stored items, upgrading their schema first if needed.

        Raises:
            MigrationError: If auto-migration fails; stored data is left untouched
        """
        raw = await self._read_raw()
        if raw is None:
            return []

        engine = self._migration_engine
        if engine is not None and engine.auto_migrate and engine.needs_migration(raw):
            record_set = await engine.migrate(raw)
            await self._write_raw(record_set.to_dict())
            items = record_set.items
        else:
            items = extract_items(raw)
        return [strip_sync_fields(item) for item in items]

    async def store(self, items: list[Record]) -> None:
        """Replace the stored items.

        Changed and new records are flagged for delivery while sync is
        enabled. A record that was already pending keeps its flags whatever
        the sync state, so only a confirmed delivery clears them. Delivery
        itself happens on ``sync()``, on reconnect or on the batch interval.
        """
        previous_raw = await self._read_raw()
        previous_items = extract_items(previous_raw)

        records = [strip_sync_fields(item) for item in items]
        if self._track_timestamps:
            records = stamp_records(records, previous_items, self._id_key)
        records = self._carry_sync_state(records, previous_items, flag=self._sync.is_active())

        await self._write_items(records, previous_raw)

        if self._cross_context is not None:
            await self._cross_context.broadcast([strip_sync_fields(r) for r in records])

    def _carry_sync_state(
        self, records: list[Record], previous_items: list[Record], *, flag: bool
    ) -> list[Record]:
        previous_by_id = {p[self._id_key]: p for p in previous_items if self._id_key in p}
        result: list[Record] = []
        for record in records:
            prev = previous_by_id.get(record.get(self._id_key)) if self._id_key in record else None
            if prev is not None:
                record = {**record, **{k: prev[k] for k in SYNC_FIELDS if k in prev}}
                if flag and strip_sync_fields(prev) != strip_sync_fields(record):
                    record = mark_pending(record)
            elif flag:
                record = mark_pending(record)
            result.append(record)
        return result

    async def remove(self) -> None:
        """Delete this collection's key."""
        await self._store.remove(self._storage_key)
        if self._cross_context is not None:
            await self._cross_context.broadcast_remove()

    async def clear(self) -> None:
        """Clear the whole backing store."""
        await self._store.clear()
        if self._cross_context is not None:
            await self._cross_context.broadcast_clear()

    # ── Sync ──────────────────────────────────────────────────────────

    async def enable_sync(self, config: SyncConfig) -> None:
        """Start server sync.

        Raises:
            SyncConfigurationError: If timestamp tracking is off
        """
        await self._sync.enable(config)

    def disable_sync(self) -> None:
        self._sync.disable()

    async def sync(self) -> SyncResult:
        return await self._sync.sync()

    def get_sync_status(self) -> SyncStatus:
        return self._sync.get_status()

    # ── Cross-context ─────────────────────────────────────────────────

    def enable_cross_context(
        self,
        *,
        hub: BroadcastHub | None = None,
        on_update: UpdateCallback | None = None,
        on_remove: SignalCallback | None = None,
        on_clear: SignalCallback | None = None,
        force_storage_events: bool = False,
    ) -> CrossContextCoordinator:
        """Start propagating writes to sibling contexts. Replaces any previous coordinator."""
        if self._cross_context is not None:
            self._cross_context.close()
        self._cross_context = CrossContextCoordinator(
            CrossContextConfig(
                storage_key=self._storage_key,
                storage_kind=self._store.kind,
                on_update=on_update,
                on_remove=on_remove,
                on_clear=on_clear,
                force_storage_events=force_storage_events,
            ),
            hub=hub,
            store=self._store,
        )
        return self._cross_context

    async def close(self) -> None:
        """Stop sync, release channels and any endpoint this collection created."""
        self._sync.disable()
        if self._cross_context is not None:
            self._cross_context.close()
            self._cross_context = None
        if self._owns_endpoint:
            await self._sync.endpoint.close()
