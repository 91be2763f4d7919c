"""Queued strategy: chunked per-record delivery with in-pass retries."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from record_sync.core.record import Record, mark_failed
from record_sync.errors import TransportError
from record_sync.sync.protocol import SyncConfig, SyncResult
from record_sync.sync.strategies.base import (
    ItemOutcome,
    Outcome,
    RecordStore,
    SyncStrategy,
    backoff_delay,
)

logger = logging.getLogger(__name__)


class QueuedStrategy(SyncStrategy):
    """Deliver pending records in chunks of ``batch_size``.

    Each record still gets its own request; the chunk only bounds how many
    requests are in flight at once. ``max_retries`` is the total number of
    attempts per record per pass, never less than one, so ``max_retries=3``
    means the first try plus two retries. Retries back off exponentially
    from ``retry_delay``. Progress is committed after every chunk.
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
            outcomes = await asyncio.gather(
                *(self._deliver_with_retry(record, config, store) for _, record in chunk)
            )
            updates = {key: o.record for (key, _), o in zip(chunk, outcomes, strict=True)}
            committed = await self._commit(store, dict(chunk), updates, is_active)
            result = result + self._tally(list(outcomes))
            if not committed:
                break

        return result

    async def _deliver_with_retry(
        self, record: Record, config: SyncConfig, store: RecordStore
    ) -> ItemOutcome:
        item_id = record.get(store.id_key)
        max_attempts = max(1, config.max_retries)
        outcome = ItemOutcome(Outcome.FAILED, mark_failed(record), "not attempted")

        for attempt in range(1, max_attempts + 1):
            try:
                response = await self.endpoint.send_item(self._wire_payload(record), config)
                outcome = await self._handle_response(record, response, config, store)
            except TransportError as e:
                outcome = ItemOutcome(Outcome.FAILED, mark_failed(record), str(e))
            except Exception as e:
                logger.warning("Unexpected error delivering %r", item_id, exc_info=True)
                return ItemOutcome(Outcome.FAILED, mark_failed(record), str(e))

            if outcome.outcome != Outcome.FAILED:
                return outcome

            logger.debug(
                "Queued delivery of %r failed (attempt %d/%d): %s",
                item_id,
                attempt,
                max_attempts,
                outcome.error,
            )
            if attempt < max_attempts:
                await asyncio.sleep(backoff_delay(config.retry_delay, attempt))

        return outcome
