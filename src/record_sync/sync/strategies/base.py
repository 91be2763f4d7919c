"""Base class and shared delivery logic for sync strategies."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Protocol

from record_sync.core.record import (
    Record,
    get_updated_at,
    get_version,
    mark_failed,
    mark_synced,
    needs_sync,
    strip_sync_fields,
    sync_failed,
)
from record_sync.sync.conflict_resolver import resolve
from record_sync.sync.protocol import ConflictContext, SyncConfig, SyncResult

if TYPE_CHECKING:
    from record_sync.sync.transport import RemoteEndpoint

logger = logging.getLogger(__name__)

MAX_BACKOFF = 60.0  # seconds


class RecordStore(Protocol):
    """What a strategy needs from the local record collection."""

    @property
    def storage_key(self) -> str: ...

    @property
    def id_key(self) -> str: ...

    @property
    def track_timestamps(self) -> bool: ...

    async def load_records(self) -> list[Record]: ...

    async def save_records(self, records: list[Record]) -> None: ...


class Outcome(StrEnum):
    SUCCESS = "success"
    FAILED = "failed"
    CONFLICT = "conflict"


@dataclass(frozen=True)
class ItemOutcome:
    """Delivery outcome for one record, with the record to persist."""

    outcome: Outcome
    record: Record
    error: str | None = None


def record_key(record: Record, index: int, id_key: str) -> Any:
    """Identity used to match a record across loads."""
    if id_key in record:
        return ("id", record[id_key])
    return ("index", index)


def has_conflict(local: Record, remote: Record) -> bool:
    """True if the remote copy diverges from what was sent.

    Only fields present on both sides are compared; a mismatch in either
    version or ``updated_at`` is a conflict.
    """
    local_version = get_version(local)
    remote_version = get_version(remote)
    if local_version is not None and remote_version is not None:
        if local_version != remote_version:
            return True
    local_updated = get_updated_at(local)
    remote_updated = get_updated_at(remote)
    if local_updated and remote_updated and local_updated != remote_updated:
        return True
    return False


def backoff_delay(base: float, attempt: int) -> float:
    """Exponential backoff for the given 1-based attempt number."""
    return min(base * (2 ** (attempt - 1)), MAX_BACKOFF)


class SyncStrategy(ABC):
    """
    Delivery algorithm for pending records.

    A pass reads every record flagged as pending, delivers it, and commits
    the per-record outcome back to the store:
    - success clears the pending flag
    - transport failure leaves the record pending and counts as failed
    - conflict persists the resolved record and counts as a conflict
    """

    def __init__(self, endpoint: RemoteEndpoint) -> None:
        self._endpoint = endpoint

    @property
    def endpoint(self) -> RemoteEndpoint:
        return self._endpoint

    @abstractmethod
    async def execute(
        self,
        store: RecordStore,
        config: SyncConfig,
        *,
        is_active: Callable[[], bool] | None = None,
    ) -> SyncResult:
        """Run one full delivery pass.

        Args:
            store: Local record collection
            config: Active sync configuration
            is_active: Checked before committing outcomes; when it returns
                False the outcomes are discarded

        Returns:
            Counts of successful, failed and conflicting deliveries
        """
        ...

    async def get_pending_count(self, store: RecordStore) -> int:
        records = await store.load_records()
        return sum(1 for r in records if self.is_pending(r))

    @staticmethod
    def is_pending(record: Record) -> bool:
        return needs_sync(record) or sync_failed(record)

    async def _pending(self, store: RecordStore) -> list[tuple[Any, Record]]:
        records = await store.load_records()
        return [
            (record_key(r, i, store.id_key), r)
            for i, r in enumerate(records)
            if self.is_pending(r)
        ]

    @staticmethod
    def _wire_payload(record: Record) -> Record:
        return strip_sync_fields(record)

    async def _handle_response(
        self,
        local: Record,
        response: Any,
        config: SyncConfig,
        store: RecordStore,
    ) -> ItemOutcome:
        """Classify a single-item response into success, failure or conflict."""
        remote: Any = response
        if isinstance(response, dict) and "success" in response:
            if not response.get("success"):
                error = str(response.get("error") or "Remote rejected item")
                return ItemOutcome(Outcome.FAILED, mark_failed(local), error)
            remote = response.get("item")

        if isinstance(remote, dict) and has_conflict(local, remote):
            return await self._resolve(local, remote, config, store)
        return ItemOutcome(Outcome.SUCCESS, mark_synced(local))

    async def _resolve(
        self,
        local: Record,
        remote: Record,
        config: SyncConfig,
        store: RecordStore,
    ) -> ItemOutcome:
        context = ConflictContext(
            storage_key=store.storage_key,
            item_id=local.get(store.id_key),
            local_version=get_version(local),
            remote_version=get_version(remote),
        )
        resolved = await resolve(
            self._wire_payload(local), remote, config.conflict_resolution, context
        )
        return ItemOutcome(Outcome.CONFLICT, mark_synced(resolved))

    @staticmethod
    def _tally(outcomes: list[ItemOutcome]) -> SyncResult:
        return SyncResult(
            success=sum(1 for o in outcomes if o.outcome == Outcome.SUCCESS),
            failed=sum(1 for o in outcomes if o.outcome == Outcome.FAILED),
            conflicts=sum(1 for o in outcomes if o.outcome == Outcome.CONFLICT),
        )

    async def _commit(
        self,
        store: RecordStore,
        snapshot: dict[Any, Record],
        updates: dict[Any, Record],
        is_active: Callable[[], bool] | None,
    ) -> bool:
        """Write delivery outcomes back to the store.

        The store is re-read first: a record that changed locally while its
        delivery was in flight keeps the newer local copy (still pending).
        Returns False if the outcomes were discarded.
        """
        if not updates:
            return True
        if is_active is not None and not is_active():
            logger.debug("Sync disabled during pass, discarding %d outcomes", len(updates))
            return False

        current = await store.load_records()
        merged: list[Record] = []
        changed = False
        for i, record in enumerate(current):
            key = record_key(record, i, store.id_key)
            update = updates.get(key)
            if update is not None and strip_sync_fields(record) == strip_sync_fields(
                snapshot.get(key, {})
            ):
                merged.append(update)
                changed = True
            else:
                merged.append(record)

        if changed:
            await store.save_records(merged)
        return True
