"""Record metadata and per-record sync bookkeeping.

A record is a plain JSON-compatible dict owned by the application. This
module attaches a ``metadata`` block (creation time, last update time and a
monotonically increasing version) and the transient ``_``-prefixed sync
fields used by the delivery strategies. All helpers return new dicts and
never mutate their inputs.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from record_sync.utils.timeutils import parse_timestamp, utcnow, utcnow_iso

Record = dict[str, Any]

METADATA_KEY = "metadata"

NEEDS_SYNC = "_needs_sync"
SYNC_FAILED = "_sync_failed"
SYNC_ATTEMPTS = "_sync_attempts"
LAST_SYNCED = "_last_synced"

SYNC_FIELDS: tuple[str, ...] = (NEEDS_SYNC, SYNC_FAILED, SYNC_ATTEMPTS, LAST_SYNCED)


@dataclass(frozen=True)
class RecordMetadata:
    """Immutable metadata block attached to every tracked record."""

    created_at: str
    updated_at: str
    version: int = 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RecordMetadata | None:
        """Create from dictionary. Returns None if timestamps are missing."""
        created_at = data.get("created_at")
        updated_at = data.get("updated_at") or created_at
        if not created_at or not updated_at:
            return None
        try:
            version = max(1, int(data.get("version", 1)))
        except (TypeError, ValueError):
            version = 1
        return cls(created_at=created_at, updated_at=updated_at, version=version)

    @classmethod
    def new(cls) -> RecordMetadata:
        now = utcnow_iso()
        return cls(created_at=now, updated_at=now, version=1)

    def bumped(self) -> RecordMetadata:
        """Return metadata for the next local mutation.

        ``updated_at`` never moves before ``created_at`` and ``version``
        always increases by one.
        """
        now = utcnow_iso()
        created = parse_timestamp(self.created_at)
        current = parse_timestamp(now)
        if created is not None and current is not None and current < created:
            now = self.created_at
        return RecordMetadata(
            created_at=self.created_at,
            updated_at=now,
            version=self.version + 1,
        )


def get_metadata(record: Record) -> RecordMetadata | None:
    raw = record.get(METADATA_KEY)
    if not isinstance(raw, dict):
        return None
    return RecordMetadata.from_dict(raw)


def get_version(record: Record) -> int | None:
    """Version from the record's metadata block, or a top-level ``version``."""
    metadata = get_metadata(record)
    if metadata is not None:
        return metadata.version
    value = record.get("version")
    return value if isinstance(value, int) else None


def get_updated_at(record: Record) -> str | None:
    metadata = get_metadata(record)
    if metadata is not None:
        return metadata.updated_at
    value = record.get("updated_at")
    return value if isinstance(value, str) else None


def with_metadata(record: Record, metadata: RecordMetadata) -> Record:
    return {**record, METADATA_KEY: metadata.to_dict()}


def stamp_new(record: Record) -> Record:
    """Attach fresh metadata unless the record already carries some."""
    if get_metadata(record) is not None:
        return dict(record)
    return with_metadata(record, RecordMetadata.new())


def stamp_update(record: Record, previous: Record | None = None) -> Record:
    """Bump metadata for a mutated record.

    ``created_at`` is taken from ``previous`` when given (it is immutable
    after creation), otherwise from the record itself.
    """
    base = get_metadata(previous) if previous is not None else None
    if base is None:
        base = get_metadata(record)
    if base is None:
        return with_metadata(record, RecordMetadata.new())
    return with_metadata(record, base.bumped())


def _content(record: Record) -> Record:
    return {k: v for k, v in record.items() if k != METADATA_KEY and k not in SYNC_FIELDS}


def stamp_records(
    items: list[Record],
    previous_items: list[Record],
    id_key: str = "id",
) -> list[Record]:
    """Stamp a new item list against what was stored before.

    New records get fresh metadata, changed records are bumped and
    unchanged records keep their metadata as-is.
    """
    previous_by_id: dict[Any, Record] = {}
    for prev in previous_items:
        if id_key in prev:
            previous_by_id[prev[id_key]] = prev

    stamped: list[Record] = []
    for item in items:
        prev = previous_by_id.get(item.get(id_key)) if id_key in item else None
        if prev is None:
            stamped.append(stamp_new(item))
        elif _content(prev) != _content(item):
            stamped.append(stamp_update(item, prev))
        else:
            prev_meta = get_metadata(prev)
            stamped.append(with_metadata(item, prev_meta) if prev_meta else stamp_new(item))
    return stamped


# ── Sync bookkeeping ──────────────────────────────────────────────────


def needs_sync(record: Record) -> bool:
    return record.get(NEEDS_SYNC) is True


def sync_failed(record: Record) -> bool:
    return record.get(SYNC_FAILED) is True


def sync_attempts(record: Record) -> int:
    value = record.get(SYNC_ATTEMPTS, 0)
    return value if isinstance(value, int) else 0


def mark_pending(record: Record) -> Record:
    return {**record, NEEDS_SYNC: True, SYNC_ATTEMPTS: sync_attempts(record)}


def mark_synced(record: Record) -> Record:
    return {
        **record,
        NEEDS_SYNC: False,
        SYNC_FAILED: False,
        SYNC_ATTEMPTS: 0,
        LAST_SYNCED: utcnow_iso(),
    }


def mark_failed(record: Record) -> Record:
    """Record a failed delivery attempt. The record stays pending."""
    return {**record, SYNC_FAILED: True, SYNC_ATTEMPTS: sync_attempts(record) + 1}


def strip_sync_fields(record: Record) -> Record:
    """Drop the internal sync fields, leaving application data and metadata."""
    return {k: v for k, v in record.items() if k not in SYNC_FIELDS}


# ── Age helpers ───────────────────────────────────────────────────────


def is_modified_since(metadata: RecordMetadata, since: str) -> bool:
    updated = parse_timestamp(metadata.updated_at)
    since_dt = parse_timestamp(since)
    if updated is None or since_dt is None:
        return False
    return updated > since_dt


def get_age(metadata: RecordMetadata, now: datetime | None = None) -> float:
    """Seconds elapsed since the last update."""
    updated = parse_timestamp(metadata.updated_at)
    if updated is None:
        return 0.0
    return ((now or utcnow()) - updated).total_seconds()


def is_stale(metadata: RecordMetadata, max_age_seconds: float, now: datetime | None = None) -> bool:
    return get_age(metadata, now) > max_age_seconds
