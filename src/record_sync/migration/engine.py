"""Schema migration of versioned record sets."""

from __future__ import annotations

import copy
import inspect
import logging
import time
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from record_sync.core.versioned import (
    MigrationRecord,
    VersionedRecordSet,
    extract_items,
    get_data_version,
    to_record_set,
)
from record_sync.errors import MigrationDowngradeError, MigrationError, MissingMigrationError
from record_sync.utils.timeutils import utcnow_iso

logger = logging.getLogger(__name__)

MigrationFn = Callable[[list[dict[str, Any]]], list[dict[str, Any]] | Awaitable[list[dict[str, Any]]]]


def _is_empty(data: Any) -> bool:
    return data is None or (isinstance(data, list) and not data)


class MigrationEngine:
    """
    Upgrades stored record sets to a target schema version.

    ``migrations`` maps each version to the transform producing it from the
    previous version: ``{2: add_status, 3: rename_total}`` upgrades version 1
    data through 2 to 3. Steps run in increasing order, each exactly once.
    A downgrade, a gap on the path, a non-list transform result or a raising
    transform aborts the whole call.

    Usage:
        engine = MigrationEngine(version=3, migrations={2: add_status, 3: rename_total})
        if engine.needs_migration(data):
            record_set = await engine.migrate(data)
    """

    def __init__(
        self,
        version: int = 1,
        migrations: Mapping[int, MigrationFn] | None = None,
        *,
        on_migration_start: Callable[[int, int], Any] | None = None,
        on_migration_complete: Callable[[int, int, int], Any] | None = None,
        on_migration_error: Callable[[int, int, Exception], Any] | None = None,
        auto_migrate: bool = True,
    ) -> None:
        if isinstance(version, bool) or not isinstance(version, int) or version < 1:
            raise MigrationError(f"Migration version must be an integer >= 1, got {version!r}")
        migrations = dict(migrations or {})
        for step, fn in migrations.items():
            if not callable(fn):
                raise MigrationError(f"Migration for version {step} must be callable", version=step)

        self._version = version
        self._migrations = migrations
        self._on_start = on_migration_start
        self._on_complete = on_migration_complete
        self._on_error = on_migration_error
        self.auto_migrate = auto_migrate

    def get_current_version(self) -> int:
        """Target version this engine migrates to."""
        return self._version

    def get_data_version(self, data: Any) -> int:
        return get_data_version(data)

    def needs_migration(self, data: Any) -> bool:
        if _is_empty(data):
            return False
        return get_data_version(data) != self._version

    async def migrate(self, data: Any) -> VersionedRecordSet:
        """Bring ``data`` up to the target version.

        Returns:
            The upgraded record set with one history entry appended

        Raises:
            MigrationDowngradeError: If the data is newer than the target
            MissingMigrationError: If a step on the path has no transform
            MigrationError: If a transform fails or returns a non-list
        """
        if _is_empty(data):
            return VersionedRecordSet(items=[], version=self._version)

        record_set = to_record_set(data)
        from_version = record_set.version
        to_version = self._version
        if from_version == to_version:
            return record_set

        await self._notify(self._on_start, from_version, to_version)
        started = time.monotonic()
        try:
            items = await self._apply_steps(record_set.items, from_version, to_version)
        except MigrationError as e:
            logger.error("Migration %d -> %d failed: %s", from_version, to_version, e)
            await self._notify(self._on_error, from_version, to_version, e)
            raise

        entry = MigrationRecord(
            from_version=from_version,
            to_version=to_version,
            timestamp=utcnow_iso(),
            item_count=len(items),
            duration=(time.monotonic() - started) * 1000,
        )
        logger.info(
            "Migrated %d items from version %d to %d", len(items), from_version, to_version
        )
        await self._notify(self._on_complete, from_version, to_version, len(items))
        return VersionedRecordSet(
            items=items,
            version=to_version,
            migration_history=[*record_set.migration_history, entry],
            migrated_at=entry.timestamp,
        )

    async def _apply_steps(
        self, items: list[dict[str, Any]], from_version: int, to_version: int
    ) -> list[dict[str, Any]]:
        if from_version > to_version:
            raise MigrationDowngradeError(
                f"Cannot migrate from version {from_version} down to {to_version}",
                version=to_version,
            )

        for step in range(from_version + 1, to_version + 1):
            if step not in self._migrations:
                raise MissingMigrationError(f"No migration registered for version {step}", version=step)

        current = copy.deepcopy(extract_items(items))
        for step in range(from_version + 1, to_version + 1):
            try:
                result = self._migrations[step](current)
                if inspect.isawaitable(result):
                    result = await result
            except Exception as e:
                raise MigrationError(f"Migration to version {step} failed: {e}", version=step) from e
            if not isinstance(result, list):
                raise MigrationError(
                    f"Migration to version {step} returned {type(result).__name__}, expected a list",
                    version=step,
                )
            logger.debug("Applied migration step %d (%d items)", step, len(result))
            current = result
        return current

    @staticmethod
    async def _notify(callback: Callable[..., Any] | None, *args: Any) -> None:
        if callback is None:
            return
        try:
            result = callback(*args)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.warning("Migration callback raised: %s", e)
