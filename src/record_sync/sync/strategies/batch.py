"""Batch strategy: one request per chunk carrying every record in it."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from record_sync.core.record import Record, mark_failed, mark_synced
from record_sync.errors import TransportError
from record_sync.sync.protocol import SyncConfig, SyncResult
from record_sync.sync.strategies.base import (
    ItemOutcome,
    Outcome,
    RecordStore,
    SyncStrategy,
    has_conflict,
)

logger = logging.getLogger(__name__)


class BatchStrategy(SyncStrategy):
    """Deliver pending records ``batch_size`` at a time in a single payload.

    The remote answers with one result per record::

        {"results": [{"success": true, "item_id": 1},
                     {"success": true, "item_id": 2, "item": {...}},
                     {"success": false, "item_id": 3, "error": "..."}]}

    A result carrying an ``item`` that diverges from what was sent is a
    conflict. A transport failure fails every record in the chunk.
    """

    async def execute(
        self,
        store: RecordStore,
        config: SyncConfig,
        *,
        is_active: Callable[[], bool] | None = None,
    ) -> SyncResult:
        pending = await self._pending(store)
        if not pending:
            return SyncResult()

        result = SyncResult()
        for start in range(0, len(pending), config.batch_size):
            chunk = pending[start : start + config.batch_size]
            outcomes = await self._deliver_chunk([r for _, r in chunk], config, store)
            updates = {key: o.record for (key, _), o in zip(chunk, outcomes, strict=True)}
            committed = await self._commit(store, dict(chunk), updates, is_active)
            result = result + self._tally(outcomes)
            if not committed:
                break

        return result

    async def _deliver_chunk(
        self, chunk: list[Record], config: SyncConfig, store: RecordStore
    ) -> list[ItemOutcome]:
        try:
            response = await self.endpoint.send_batch(
                [self._wire_payload(r) for r in chunk], config
            )
        except TransportError as e:
            logger.debug("Batch of %d records failed: %s", len(chunk), e)
            return [ItemOutcome(Outcome.FAILED, mark_failed(r), str(e)) for r in chunk]

        results = response.get("results") if isinstance(response, dict) else None
        if not isinstance(results, list):
            results = []

        by_id: dict[str, dict[str, Any]] = {}
        by_index: dict[int, dict[str, Any]] = {}
        for entry in results:
            if not isinstance(entry, dict):
                continue
            item_id = entry.get("item_id", entry.get("itemId"))
            if item_id is None and isinstance(entry.get("item"), dict):
                item_id = entry["item"].get(store.id_key)
            if item_id is not None:
                by_id[str(item_id)] = entry
            elif isinstance(entry.get("index"), int):
                by_index[entry["index"]] = entry

        outcomes: list[ItemOutcome] = []
        for index, record in enumerate(chunk):
            entry = by_id.get(str(record[store.id_key])) if store.id_key in record else None
            if entry is None:
                entry = by_index.get(index)
            outcomes.append(await self._classify(record, entry, config, store))
        return outcomes

    async def _classify(
        self,
        record: Record,
        entry: dict[str, Any] | None,
        config: SyncConfig,
        store: RecordStore,
    ) -> ItemOutcome:
        if entry is None:
            return ItemOutcome(Outcome.FAILED, mark_failed(record), "No result returned for item")
        if not entry.get("success"):
            error = str(entry.get("error") or "Remote rejected item")
            return ItemOutcome(Outcome.FAILED, mark_failed(record), error)

        remote = entry.get("item")
        if isinstance(remote, dict) and has_conflict(record, remote):
            try:
                return await self._resolve(record, remote, config, store)
            except Exception as e:
                logger.warning(
                    "Conflict resolution failed for %r", record.get(store.id_key), exc_info=True
                )
                return ItemOutcome(Outcome.FAILED, mark_failed(record), str(e))
        return ItemOutcome(Outcome.SUCCESS, mark_synced(record))
