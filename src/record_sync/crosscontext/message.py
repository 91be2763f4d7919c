"""Change notifications exchanged between sibling contexts."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from record_sync.utils.timeutils import utcnow_iso


class ChangeType(StrEnum):
    """Kind of local mutation being announced."""

    UPDATE = "update"
    REMOVE = "remove"
    CLEAR = "clear"


@dataclass(frozen=True)
class ChangeNotification:
    """Wire shape published between contexts."""

    type: ChangeType
    origin_id: str
    storage_key: str
    timestamp: str  # ISO format
    items: list[dict[str, Any]] | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "type": self.type.value,
            "origin_id": self.origin_id,
            "storage_key": self.storage_key,
            "timestamp": self.timestamp,
        }
        if self.items is not None:
            result["items"] = self.items
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ChangeNotification | None:
        """Create from dictionary. Returns None if the message is malformed."""
        try:
            change_type = ChangeType(data.get("type"))
        except ValueError:
            return None
        origin_id = data.get("origin_id")
        if not origin_id:
            return None
        items = data.get("items")
        return cls(
            type=change_type,
            origin_id=origin_id,
            storage_key=data.get("storage_key", ""),
            timestamp=data.get("timestamp") or utcnow_iso(),
            items=list(items) if isinstance(items, list) else None,
        )


def create_update(origin_id: str, storage_key: str, items: list[dict[str, Any]]) -> ChangeNotification:
    return ChangeNotification(
        type=ChangeType.UPDATE,
        origin_id=origin_id,
        storage_key=storage_key,
        timestamp=utcnow_iso(),
        items=list(items),
    )


def create_remove(origin_id: str, storage_key: str) -> ChangeNotification:
    return ChangeNotification(
        type=ChangeType.REMOVE,
        origin_id=origin_id,
        storage_key=storage_key,
        timestamp=utcnow_iso(),
    )


def create_clear(origin_id: str, storage_key: str) -> ChangeNotification:
    return ChangeNotification(
        type=ChangeType.CLEAR,
        origin_id=origin_id,
        storage_key=storage_key,
        timestamp=utcnow_iso(),
    )
