"""Sync coordinator: owns the active strategy, status counters and triggers."""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from collections.abc import Callable
from dataclasses import replace
from typing import Any

from record_sync.errors import SyncConfigurationError, SyncNotEnabledError
from record_sync.sync.connectivity import ConnectivityMonitor
from record_sync.sync.protocol import SyncConfig, SyncError, SyncResult, SyncStatus, SyncStrategyType
from record_sync.sync.strategies import RecordStore, SyncStrategy, create_strategy
from record_sync.sync.transport import HttpEndpoint, RemoteEndpoint
from record_sync.utils.timeutils import utcnow_iso

logger = logging.getLogger(__name__)


class SyncCoordinator:
    """
    Coordinates synchronization between a local record store and a remote endpoint.

    State machine: disabled -> idle -> syncing -> idle. A pass with item
    failures still returns to idle; item failures are counted, not raised.

    Passes never overlap: a ``sync()`` issued while another is in flight
    waits for it to finish.

    Usage:
        coordinator = SyncCoordinator(collection)
        await coordinator.enable(SyncConfig(endpoint="https://api.example.com/orders"))
        result = await coordinator.sync()
        coordinator.disable()
    """

    def __init__(
        self,
        store: RecordStore,
        *,
        endpoint: RemoteEndpoint | None = None,
        connectivity: ConnectivityMonitor | None = None,
    ) -> None:
        self._store = store
        self._endpoint = endpoint or HttpEndpoint()
        self._connectivity = connectivity
        self._config: SyncConfig | None = None
        self._strategy: SyncStrategy | None = None
        self._status = SyncStatus()
        self._active = False
        self._generation = 0
        self._lock = asyncio.Lock()
        self._interval_task: asyncio.Task[None] | None = None

    @property
    def config(self) -> SyncConfig | None:
        return self._config

    @property
    def strategy(self) -> SyncStrategy | None:
        return self._strategy

    @property
    def endpoint(self) -> RemoteEndpoint:
        return self._endpoint

    def is_active(self) -> bool:
        return self._active

    def get_status(self) -> SyncStatus:
        """Snapshot of the status counters."""
        return self._status.copy()

    async def enable(self, config: SyncConfig) -> None:
        """Start synchronizing and run an initial pass.

        No-op if already active.

        Raises:
            SyncConfigurationError: If the store does not track change timestamps
        """
        if self._active:
            return

        if not self._store.track_timestamps:
            raise SyncConfigurationError(
                "Server sync requires timestamp tracking to be enabled on the record store"
            )

        self._config = config
        self._strategy = create_strategy(config.strategy, self._endpoint)
        self._status = SyncStatus()
        self._active = True
        self._generation += 1

        if self._connectivity is not None:
            self._connectivity.on_online(self._handle_online)

        if config.strategy == SyncStrategyType.BATCH and config.sync_interval:
            self._interval_task = asyncio.create_task(self._run_interval(config.sync_interval))

        logger.info("Sync enabled with %s strategy -> %s", config.strategy, config.endpoint)

        if self._connectivity is None or self._connectivity.is_online:
            await self.sync()

    def disable(self) -> None:
        """Stop scheduling passes.

        In-flight deliveries are not aborted; their outcomes are discarded.
        """
        if not self._active:
            return
        self._active = False
        self._generation += 1

        if self._connectivity is not None:
            self._connectivity.off_online(self._handle_online)

        if self._interval_task is not None:
            self._interval_task.cancel()
            self._interval_task = None

        logger.info("Sync disabled")

    async def sync(self) -> SyncResult:
        """Run one full pass of the active strategy.

        Raises:
            SyncNotEnabledError: If called while inactive
        """
        if not self._active:
            raise SyncNotEnabledError()

        async with self._lock:
            if not self._active or self._strategy is None or self._config is None:
                return SyncResult()
            return await self._run_pass(self._strategy, self._config, self._generation)

    async def _run_pass(self, strategy: SyncStrategy, config: SyncConfig, generation: int) -> SyncResult:
        def still_current() -> bool:
            return self._active and self._generation == generation

        self._status.is_syncing = True
        await self._invoke_callback("on_sync_start", config.on_sync_start)
        started = time.monotonic()

        try:
            result = await strategy.execute(self._store, config, is_active=still_current)
        except SyncConfigurationError:
            raise
        except Exception as e:
            duration = (time.monotonic() - started) * 1000
            logger.warning("Sync pass failed: %s", e, exc_info=True)
            if still_current():
                self._status.add_error(
                    SyncError(item_id="unknown", attempts=1, last_attempt=utcnow_iso(), error=str(e))
                )
                await self._invoke_callback("on_sync_error", config.on_sync_error, e)
            return SyncResult(duration=duration)
        finally:
            self._status.is_syncing = False

        result = replace(result, duration=(time.monotonic() - started) * 1000)
        if not still_current():
            logger.debug("Discarding results of a pass that outlived its sync session")
            return result

        self._status.synced += result.success + result.conflicts
        self._status.failed += result.failed
        self._status.last_sync = utcnow_iso()
        self._status.pending = await strategy.get_pending_count(self._store)

        logger.debug(
            "Sync pass: %d ok, %d failed, %d conflicts in %.1fms",
            result.success,
            result.failed,
            result.conflicts,
            result.duration,
        )
        await self._invoke_callback("on_sync_complete", config.on_sync_complete, result)
        return result

    async def _handle_online(self) -> None:
        # Batch deliveries run on their own interval
        if self._active and self._config and self._config.strategy != SyncStrategyType.BATCH:
            await self.sync()

    async def _run_interval(self, interval: float) -> None:
        while self._active:
            await asyncio.sleep(interval)
            if not self._active:
                break
            try:
                # Shielded so disable() stops the timer without aborting a pass
                await asyncio.shield(self.sync())
            except SyncNotEnabledError:
                break
            except Exception:
                logger.warning("Periodic sync failed", exc_info=True)

    @staticmethod
    async def _invoke_callback(name: str, callback: Callable[..., Any] | None, *args: Any) -> None:
        if callback is None:
            return
        try:
            result = callback(*args)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.warning("Sync lifecycle callback %s raised: %s", name, e)
