"""Immediate strategy: one sequential request per pending record, no retries."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from record_sync.core.record import Record, mark_failed
from record_sync.errors import TransportError
from record_sync.sync.protocol import SyncConfig, SyncResult
from record_sync.sync.strategies.base import (
    ItemOutcome,
    Outcome,
    RecordStore,
    SyncStrategy,
)

logger = logging.getLogger(__name__)


class ImmediateStrategy(SyncStrategy):
    """Deliver each pending record on its own, in order.

    Intended for small change volumes. A failed record stays pending for
    the next pass.
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

        snapshot: dict[Any, Record] = dict(pending)
        updates: dict[Any, Record] = {}
        outcomes: list[ItemOutcome] = []

        for key, record in pending:
            outcome = await self._deliver(record, config, store)
            outcomes.append(outcome)
            updates[key] = outcome.record

        await self._commit(store, snapshot, updates, is_active)
        return self._tally(outcomes)

    async def _deliver(self, record: Record, config: SyncConfig, store: RecordStore) -> ItemOutcome:
        try:
            response = await self.endpoint.send_item(self._wire_payload(record), config)
            return await self._handle_response(record, response, config, store)
        except TransportError as e:
            logger.debug("Immediate delivery failed for %r: %s", record.get(store.id_key), e)
            return ItemOutcome(Outcome.FAILED, mark_failed(record), str(e))
        except Exception as e:
            logger.warning(
                "Unexpected error delivering %r", record.get(store.id_key), exc_info=True
            )
            return ItemOutcome(Outcome.FAILED, mark_failed(record), str(e))
