"""Delivery strategies for pending records."""

from __future__ import annotations

from typing import TYPE_CHECKING

from record_sync.sync.protocol import SyncStrategyType
from record_sync.sync.strategies.base import RecordStore, SyncStrategy
from record_sync.sync.strategies.batch import BatchStrategy
from record_sync.sync.strategies.immediate import ImmediateStrategy
from record_sync.sync.strategies.queued import QueuedStrategy

if TYPE_CHECKING:
    from record_sync.sync.transport import RemoteEndpoint

_STRATEGIES: dict[SyncStrategyType, type[SyncStrategy]] = {
    SyncStrategyType.IMMEDIATE: ImmediateStrategy,
    SyncStrategyType.QUEUED: QueuedStrategy,
    SyncStrategyType.BATCH: BatchStrategy,
}


def create_strategy(strategy: SyncStrategyType, endpoint: RemoteEndpoint) -> SyncStrategy:
    """Instantiate the strategy selected by the sync configuration."""
    return _STRATEGIES[SyncStrategyType(strategy)](endpoint)


__all__ = [
    "BatchStrategy",
    "ImmediateStrategy",
    "QueuedStrategy",
    "RecordStore",
    "SyncStrategy",
    "create_strategy",
]
