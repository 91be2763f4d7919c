"""Versioned record sets and migration history."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class MigrationRecord:
    """One completed migrate() call."""

    from_version: int
    to_version: int
    timestamp: str  # ISO format
    item_count: int
    duration: float  # milliseconds

    def to_dict(self) -> dict[str, Any]:
        return {
            "from_version": self.from_version,
            "to_version": self.to_version,
            "timestamp": self.timestamp,
            "item_count": self.item_count,
            "duration": self.duration,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MigrationRecord:
        return cls(
            from_version=int(data.get("from_version", 1)),
            to_version=int(data.get("to_version", 1)),
            timestamp=str(data.get("timestamp", "")),
            item_count=int(data.get("item_count", 0)),
            duration=float(data.get("duration", 0.0)),
        )


@dataclass(frozen=True)
class VersionedRecordSet:
    """A record collection tagged with the schema version its items conform to."""

    items: list[dict[str, Any]] = field(default_factory=list)
    version: int = 1
    migration_history: list[MigrationRecord] = field(default_factory=list)
    migrated_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "version": self.version,
            "items": list(self.items),
            "migration_history": [r.to_dict() for r in self.migration_history],
        }
        if self.migrated_at is not None:
            result["migrated_at"] = self.migrated_at
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> VersionedRecordSet:
        history_raw = data.get("migration_history") or []
        return cls(
            items=list(data.get("items", [])),
            version=int(data.get("version", 1)),
            migration_history=[
                MigrationRecord.from_dict(r) for r in history_raw if isinstance(r, dict)
            ],
            migrated_at=data.get("migrated_at"),
        )


def is_versioned_data(data: Any) -> bool:
    """True if ``data`` is a versioned set (object form or dict form)."""
    if isinstance(data, VersionedRecordSet):
        return True
    return (
        isinstance(data, dict)
        and isinstance(data.get("version"), int)
        and not isinstance(data.get("version"), bool)
        and isinstance(data.get("items"), list)
    )


def to_record_set(data: Any) -> VersionedRecordSet:
    """Wrap raw data as a record set. Unversioned data is version 1."""
    if isinstance(data, VersionedRecordSet):
        return data
    if is_versioned_data(data):
        return VersionedRecordSet.from_dict(data)
    return VersionedRecordSet(items=extract_items(data), version=1)


def extract_items(data: Any) -> list[dict[str, Any]]:
    if isinstance(data, VersionedRecordSet):
        return list(data.items)
    if is_versioned_data(data):
        return list(data["items"])
    if isinstance(data, list):
        return list(data)
    return []


def get_data_version(data: Any) -> int:
    """Schema version of ``data``. Legacy unversioned data is version 1."""
    if isinstance(data, VersionedRecordSet):
        return data.version
    if is_versioned_data(data):
        version: int = data["version"]
        return version
    return 1
