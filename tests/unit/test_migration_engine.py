"""Tests for migration/engine.py: versioned schema migration."""

from __future__ import annotations

import asyncio
from typing import Any
from unittest.mock import MagicMock

import pytest

from record_sync.core.versioned import MigrationRecord, VersionedRecordSet
from record_sync.errors import MigrationDowngradeError, MigrationError, MissingMigrationError
from record_sync.migration.engine import MigrationEngine


def add_status(items: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return [{**item, "status": "open"} for item in items]


async def add_currency(items: list[dict[str, Any]]) -> list[dict[str, Any]]:
    await asyncio.sleep(0)
    return [{**item, "currency": "EUR"} for item in items]


# ─────────── Construction ───────────


class TestMigrationEngineConfig:
    """Tests for constructor validation."""

    def test_version_must_be_positive(self) -> None:
        with pytest.raises(MigrationError, match=">= 1"):
            MigrationEngine(version=0)

    def test_migrations_must_be_callable(self) -> None:
        with pytest.raises(MigrationError, match="callable") as exc_info:
            MigrationEngine(version=2, migrations={2: "add_status"})  # type: ignore[dict-item]
        assert exc_info.value.version == 2

    def test_current_version(self) -> None:
        assert MigrationEngine(version=4).get_current_version() == 4


# ─────────── Version detection ───────────


class TestVersionDetection:
    """Tests for get_data_version() and needs_migration()."""

    def test_unversioned_data_is_version_one(self) -> None:
        engine = MigrationEngine(version=2, migrations={2: add_status})
        assert engine.get_data_version([{"id": 1}]) == 1
        assert engine.needs_migration([{"id": 1}])

    def test_versioned_data(self) -> None:
        engine = MigrationEngine(version=2, migrations={2: add_status})
        assert engine.get_data_version({"version": 2, "items": []}) == 2
        assert not engine.needs_migration({"version": 2, "items": [{"id": 1}]})

    def test_empty_data_never_needs_migration(self) -> None:
        engine = MigrationEngine(version=3)
        assert not engine.needs_migration([])
        assert not engine.needs_migration(None)


# ─────────── migrate() ───────────


class TestMigrate:
    """Tests for the upgrade path."""

    @pytest.mark.asyncio
    async def test_unversioned_to_version_three(self) -> None:
        engine = MigrationEngine(version=3, migrations={2: add_status, 3: add_currency})

        result = await engine.migrate([{"id": 1}])

        assert result.version == 3
        assert result.items == [{"id": 1, "status": "open", "currency": "EUR"}]
        assert len(result.migration_history) == 1
        entry = result.migration_history[0]
        assert (entry.from_version, entry.to_version, entry.item_count) == (1, 3, 1)
        assert result.migrated_at == entry.timestamp

    @pytest.mark.asyncio
    async def test_steps_run_once_in_order(self) -> None:
        calls: list[int] = []

        def step(version: int) -> Any:
            def transform(items: list[dict[str, Any]]) -> list[dict[str, Any]]:
                calls.append(version)
                return items

            return transform

        engine = MigrationEngine(version=4, migrations={4: step(4), 2: step(2), 3: step(3)})
        await engine.migrate({"version": 1, "items": [{"id": 1}]})

        assert calls == [2, 3, 4]

    @pytest.mark.asyncio
    async def test_current_data_unchanged(self) -> None:
        engine = MigrationEngine(version=2, migrations={2: add_status})
        data = {"version": 2, "items": [{"id": 1}]}

        result = await engine.migrate(data)

        assert result == VersionedRecordSet(items=[{"id": 1}], version=2)

    @pytest.mark.asyncio
    async def test_empty_data_yields_empty_set_at_target(self) -> None:
        engine = MigrationEngine(version=3)

        result = await engine.migrate([])

        assert result == VersionedRecordSet(items=[], version=3)

    @pytest.mark.asyncio
    async def test_prior_history_preserved(self) -> None:
        earlier = MigrationRecord(
            from_version=1, to_version=2, timestamp="2026-01-01T00:00:00", item_count=1, duration=0.1
        )
        data = VersionedRecordSet(items=[{"id": 1}], version=2, migration_history=[earlier]).to_dict()
        engine = MigrationEngine(version=3, migrations={3: add_currency})

        result = await engine.migrate(data)

        assert result.migration_history[0] == earlier
        assert (result.migration_history[1].from_version, result.migration_history[1].to_version) == (2, 3)

    @pytest.mark.asyncio
    async def test_input_items_not_mutated(self) -> None:
        def mutate(items: list[dict[str, Any]]) -> list[dict[str, Any]]:
            for item in items:
                item["touched"] = True
            return items

        data = [{"id": 1}]
        await MigrationEngine(version=2, migrations={2: mutate}).migrate(data)

        assert data == [{"id": 1}]


# ─────────── Failures ───────────


class TestMigrateFailures:
    """Tests for fatal migration errors."""

    @pytest.mark.asyncio
    async def test_downgrade_rejected(self) -> None:
        engine = MigrationEngine(version=2, migrations={2: add_status})

        with pytest.raises(MigrationDowngradeError) as exc_info:
            await engine.migrate({"version": 3, "items": [{"id": 1}]})
        assert exc_info.value.version == 2

    @pytest.mark.asyncio
    async def test_gap_is_fatal_even_with_later_steps(self) -> None:
        transform = MagicMock(side_effect=add_status)
        engine = MigrationEngine(version=4, migrations={2: transform, 4: add_status})

        with pytest.raises(MissingMigrationError) as exc_info:
            await engine.migrate([{"id": 1}])
        assert exc_info.value.version == 3
        transform.assert_not_called()

    @pytest.mark.asyncio
    async def test_non_list_result_rejected(self) -> None:
        engine = MigrationEngine(version=2, migrations={2: lambda items: {"items": items}})

        with pytest.raises(MigrationError, match="expected a list"):
            await engine.migrate([{"id": 1}])

    @pytest.mark.asyncio
    async def test_raising_transform_wrapped_with_step(self) -> None:
        def broken(items: list[dict[str, Any]]) -> list[dict[str, Any]]:
            raise KeyError("total")

        engine = MigrationEngine(version=3, migrations={2: add_status, 3: broken})

        with pytest.raises(MigrationError, match="version 3") as exc_info:
            await engine.migrate([{"id": 1}])
        assert isinstance(exc_info.value.__cause__, KeyError)
        assert exc_info.value.version == 3


# ─────────── Callbacks ───────────


class TestMigrationCallbacks:
    """Tests for lifecycle callbacks."""

    @pytest.mark.asyncio
    async def test_start_and_complete(self) -> None:
        on_start = MagicMock()
        on_complete = MagicMock()
        engine = MigrationEngine(
            version=2,
            migrations={2: add_status},
            on_migration_start=on_start,
            on_migration_complete=on_complete,
        )

        await engine.migrate([{"id": 1}, {"id": 2}])

        on_start.assert_called_once_with(1, 2)
        on_complete.assert_called_once_with(1, 2, 2)

    @pytest.mark.asyncio
    async def test_error_callback_then_raise(self) -> None:
        on_error = MagicMock()
        engine = MigrationEngine(version=3, migrations={2: add_status}, on_migration_error=on_error)

        with pytest.raises(MissingMigrationError):
            await engine.migrate([{"id": 1}])

        from_version, to_version, error = on_error.call_args.args
        assert (from_version, to_version) == (1, 3)
        assert isinstance(error, MissingMigrationError)

    @pytest.mark.asyncio
    async def test_raising_callback_contained(self) -> None:
        engine = MigrationEngine(
            version=2,
            migrations={2: add_status},
            on_migration_start=MagicMock(side_effect=RuntimeError("hook bug")),
        )

        result = await engine.migrate([{"id": 1}])

        assert result.version == 2
