"""Tests for core/record.py and core/versioned.py: record metadata and versioned sets."""

from __future__ import annotations

from datetime import datetime, timedelta

from record_sync.core.record import (
    LAST_SYNCED,
    METADATA_KEY,
    NEEDS_SYNC,
    SYNC_ATTEMPTS,
    SYNC_FAILED,
    RecordMetadata,
    get_age,
    get_metadata,
    get_updated_at,
    get_version,
    is_modified_since,
    is_stale,
    mark_failed,
    mark_pending,
    mark_synced,
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
    to_record_set,
)

# ─────────── RecordMetadata ───────────


class TestRecordMetadata:
    """Tests for the immutable metadata block."""

    def test_new_starts_at_version_one(self) -> None:
        meta = RecordMetadata.new()
        assert meta.version == 1
        assert meta.created_at == meta.updated_at

    def test_bumped_increments_version(self) -> None:
        meta = RecordMetadata(created_at="2026-01-01T00:00:00", updated_at="2026-01-01T00:00:00")
        bumped = meta.bumped()
        assert bumped.version == 2
        assert bumped.created_at == meta.created_at
        assert bumped.updated_at >= meta.updated_at

    def test_bumped_never_moves_before_creation(self) -> None:
        future = (datetime.now() + timedelta(days=365)).isoformat()
        meta = RecordMetadata(created_at=future, updated_at=future)
        assert meta.bumped().updated_at == future

    def test_from_dict_missing_timestamps_returns_none(self) -> None:
        assert RecordMetadata.from_dict({"version": 3}) is None

    def test_from_dict_invalid_version_defaults(self) -> None:
        meta = RecordMetadata.from_dict({"created_at": "2026-01-01T00:00:00", "version": "x"})
        assert meta is not None
        assert meta.version == 1
        assert meta.updated_at == "2026-01-01T00:00:00"

    def test_roundtrip(self) -> None:
        meta = RecordMetadata(
            created_at="2026-01-01T00:00:00", updated_at="2026-01-02T00:00:00", version=4
        )
        assert RecordMetadata.from_dict(meta.to_dict()) == meta


# ─────────── Stamping ───────────


class TestStamping:
    """Tests for metadata stamping helpers."""

    def test_stamp_new_attaches_metadata(self) -> None:
        record = stamp_new({"id": 1})
        assert get_version(record) == 1
        assert METADATA_KEY in record

    def test_stamp_new_keeps_existing_metadata(self) -> None:
        meta = RecordMetadata(created_at="2026-01-01T00:00:00", updated_at="2026-01-01T00:00:00", version=5)
        record = stamp_new({"id": 1, METADATA_KEY: meta.to_dict()})
        assert get_version(record) == 5

    def test_stamp_update_preserves_created_at(self) -> None:
        previous = {
            "id": 1,
            METADATA_KEY: {"created_at": "2026-01-01T00:00:00", "updated_at": "2026-01-01T00:00:00", "version": 2},
        }
        updated = stamp_update({"id": 1, "total": 5}, previous)
        meta = get_metadata(updated)
        assert meta is not None
        assert meta.created_at == "2026-01-01T00:00:00"
        assert meta.version == 3

    def test_stamp_does_not_mutate_input(self) -> None:
        record = {"id": 1}
        stamp_new(record)
        assert record == {"id": 1}

    def test_stamp_records_distinguishes_new_changed_unchanged(self) -> None:
        stamp = {"created_at": "2026-01-01T00:00:00", "updated_at": "2026-01-01T00:00:00", "version": 1}
        previous = [
            {"id": 1, "total": 10, METADATA_KEY: stamp},
            {"id": 2, "total": 20, METADATA_KEY: stamp},
        ]
        items = [{"id": 1, "total": 10}, {"id": 2, "total": 21}, {"id": 3, "total": 30}]

        stamped = stamp_records(items, previous)

        assert get_metadata(stamped[0]) == RecordMetadata.from_dict(stamp)
        assert get_version(stamped[1]) == 2
        assert get_version(stamped[2]) == 1

    def test_version_falls_back_to_top_level(self) -> None:
        assert get_version({"id": 1, "version": 7}) == 7
        assert get_version({"id": 1}) is None

    def test_updated_at_falls_back_to_top_level(self) -> None:
        assert get_updated_at({"updated_at": "2026-01-01T00:00:00"}) == "2026-01-01T00:00:00"


# ─────────── Sync bookkeeping ───────────


class TestSyncFlags:
    """Tests for the transient sync fields."""

    def test_mark_pending(self) -> None:
        record = mark_pending({"id": 1})
        assert needs_sync(record)
        assert record[SYNC_ATTEMPTS] == 0

    def test_mark_failed_keeps_pending(self) -> None:
        record = mark_failed(mark_failed(mark_pending({"id": 1})))
        assert needs_sync(record)
        assert record[SYNC_FAILED] is True
        assert record[SYNC_ATTEMPTS] == 2

    def test_mark_synced_clears_flags(self) -> None:
        record = mark_synced(mark_failed(mark_pending({"id": 1})))
        assert not needs_sync(record)
        assert record[SYNC_FAILED] is False
        assert record[SYNC_ATTEMPTS] == 0
        assert LAST_SYNCED in record

    def test_strip_sync_fields(self) -> None:
        record = mark_pending(stamp_new({"id": 1}))
        stripped = strip_sync_fields(record)
        assert NEEDS_SYNC not in stripped
        assert METADATA_KEY in stripped


# ─────────── Age helpers ───────────


class TestAgeHelpers:
    """Tests for modification and staleness checks."""

    def test_is_modified_since(self) -> None:
        meta = RecordMetadata(created_at="2026-01-01T00:00:00", updated_at="2026-01-05T00:00:00")
        assert is_modified_since(meta, "2026-01-04T00:00:00")
        assert not is_modified_since(meta, "2026-01-06T00:00:00")

    def test_get_age_and_staleness(self) -> None:
        meta = RecordMetadata(created_at="2026-01-01T00:00:00", updated_at="2026-01-01T00:00:00")
        now = datetime(2026, 1, 1, 0, 10, 0)
        assert get_age(meta, now) == 600.0
        assert is_stale(meta, 300, now)
        assert not is_stale(meta, 900, now)


# ─────────── Versioned sets ───────────


class TestVersionedRecordSet:
    """Tests for versioned-set detection and conversion."""

    def test_plain_list_is_version_one(self) -> None:
        assert not is_versioned_data([{"id": 1}])
        assert get_data_version([{"id": 1}]) == 1

    def test_dict_form_detected(self) -> None:
        data = {"version": 2, "items": [{"id": 1}]}
        assert is_versioned_data(data)
        assert get_data_version(data) == 2
        assert extract_items(data) == [{"id": 1}]

    def test_bool_version_not_versioned(self) -> None:
        assert not is_versioned_data({"version": True, "items": []})

    def test_to_record_set_wraps_plain_list(self) -> None:
        record_set = to_record_set([{"id": 1}])
        assert record_set == VersionedRecordSet(items=[{"id": 1}], version=1)

    def test_dict_roundtrip_preserves_history(self) -> None:
        entry = MigrationRecord(
            from_version=1, to_version=2, timestamp="2026-01-01T00:00:00", item_count=3, duration=1.5
        )
        record_set = VersionedRecordSet(
            items=[{"id": 1}], version=2, migration_history=[entry], migrated_at=entry.timestamp
        )
        assert VersionedRecordSet.from_dict(record_set.to_dict()) == record_set

    def test_extract_items_unknown_shape(self) -> None:
        assert extract_items("not records") == []
        assert extract_items(None) == []
