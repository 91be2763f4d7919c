"""Sync protocol data structures: configuration, status and results."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from record_sync.errors import SyncConfigurationError

DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_DELAY = 1.0  # seconds
DEFAULT_BATCH_SIZE = 50
DEFAULT_TIMEOUT = 30.0  # seconds
MAX_ERROR_LOG = 10


class SyncStrategyType(StrEnum):
    """Delivery algorithm for pending records."""

    IMMEDIATE = "immediate"
    QUEUED = "queued"
    BATCH = "batch"


class ConflictPolicy(StrEnum):
    """Built-in conflict resolution policies."""

    LAST_WRITE_WINS = "last-write-wins"
    FIRST_WRITE_WINS = "first-write-wins"
    SERVER_WINS = "server-wins"


@dataclass(frozen=True)
class ConflictContext:
    """Information handed to a resolver alongside the two record versions."""

    storage_key: str
    item_id: Any
    local_version: int | None = None
    remote_version: int | None = None


ConflictResolverFn = Callable[..., dict[str, Any] | Awaitable[dict[str, Any]]]


@dataclass(frozen=True)
class SyncResult:
    """Outcome counts of one execution pass."""

    success: int = 0
    failed: int = 0
    conflicts: int = 0
    duration: float = 0.0  # milliseconds

    def __add__(self, other: SyncResult) -> SyncResult:
        return SyncResult(
            success=self.success + other.success,
            failed=self.failed + other.failed,
            conflicts=self.conflicts + other.conflicts,
            duration=self.duration + other.duration,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "failed": self.failed,
            "conflicts": self.conflicts,
            "duration": self.duration,
        }


@dataclass(frozen=True)
class SyncError:
    """A strategy-level failure kept in the status error log."""

    item_id: Any
    attempts: int
    last_attempt: str  # ISO format
    error: str


@dataclass
class SyncStatus:
    """Process-lifetime sync counters."""

    is_syncing: bool = False
    pending: int = 0
    synced: int = 0
    failed: int = 0
    last_sync: str | None = None
    errors: list[SyncError] = field(default_factory=list)

    def copy(self) -> SyncStatus:
        return SyncStatus(
            is_syncing=self.is_syncing,
            pending=self.pending,
            synced=self.synced,
            failed=self.failed,
            last_sync=self.last_sync,
            errors=list(self.errors),
        )

    def add_error(self, error: SyncError) -> None:
        """Prepend an error, keeping only the newest ``MAX_ERROR_LOG`` entries."""
        self.errors = [error, *self.errors][:MAX_ERROR_LOG]


@dataclass(frozen=True)
class SyncConfig:
    """Configuration for server synchronization.

    Raises:
        SyncConfigurationError: On a missing endpoint, unknown strategy or
            policy, or out-of-range numeric option.
    """

    endpoint: str
    strategy: SyncStrategyType = SyncStrategyType.IMMEDIATE
    conflict_resolution: ConflictPolicy | ConflictResolverFn = ConflictPolicy.LAST_WRITE_WINS
    max_retries: int = DEFAULT_MAX_RETRIES
    retry_delay: float = DEFAULT_RETRY_DELAY
    batch_size: int = DEFAULT_BATCH_SIZE
    sync_interval: float | None = None
    """Seconds between periodic passes (Batch strategy only)."""
    timeout: float = DEFAULT_TIMEOUT
    headers: Mapping[str, str] = field(default_factory=dict)
    on_sync_start: Callable[[], Any] | None = None
    on_sync_complete: Callable[[SyncResult], Any] | None = None
    on_sync_error: Callable[[BaseException], Any] | None = None

    def __post_init__(self) -> None:
        if not self.endpoint:
            raise SyncConfigurationError("Sync endpoint is required")

        try:
            object.__setattr__(self, "strategy", SyncStrategyType(self.strategy))
        except ValueError as e:
            raise SyncConfigurationError(f"Unknown sync strategy: {self.strategy}") from e

        if not callable(self.conflict_resolution):
            try:
                policy = ConflictPolicy(self.conflict_resolution)
            except ValueError as e:
                raise SyncConfigurationError(
                    f"Unknown conflict resolution strategy: {self.conflict_resolution}"
                ) from e
            object.__setattr__(self, "conflict_resolution", policy)

        if self.max_retries < 0:
            raise SyncConfigurationError("max_retries must be >= 0")
        if self.retry_delay < 0:
            raise SyncConfigurationError("retry_delay must be >= 0")
        if self.batch_size < 1:
            raise SyncConfigurationError("batch_size must be >= 1")
        if self.sync_interval is not None and self.sync_interval <= 0:
            raise SyncConfigurationError("sync_interval must be > 0")

    def to_dict(self) -> dict[str, Any]:
        """Serializable fields only. Callables are omitted."""
        result: dict[str, Any] = {
            "endpoint": self.endpoint,
            "strategy": self.strategy.value,
            "max_retries": self.max_retries,
            "retry_delay": self.retry_delay,
            "batch_size": self.batch_size,
            "timeout": self.timeout,
            "headers": dict(self.headers),
        }
        if isinstance(self.conflict_resolution, ConflictPolicy):
            result["conflict_resolution"] = self.conflict_resolution.value
        if self.sync_interval is not None:
            result["sync_interval"] = self.sync_interval
        return result

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], **overrides: Any) -> SyncConfig:
        """Create from a mapping such as the ``[sync]`` table of the config file.

        Keyword overrides (e.g. lifecycle callbacks or a custom resolver)
        take precedence over values in ``data``.
        """

        def _int(key: str, default: int) -> int:
            try:
                return int(data.get(key, default))
            except (TypeError, ValueError):
                return default

        def _float(key: str, default: float) -> float:
            try:
                return float(data.get(key, default))
            except (TypeError, ValueError):
                return default

        raw_interval = data.get("sync_interval")
        try:
            sync_interval = float(raw_interval) if raw_interval is not None else None
        except (TypeError, ValueError):
            sync_interval = None
        if sync_interval is not None and sync_interval <= 0:
            sync_interval = None

        kwargs: dict[str, Any] = {
            "endpoint": str(data.get("endpoint", "")),
            "strategy": data.get("strategy", SyncStrategyType.IMMEDIATE.value),
            "conflict_resolution": data.get(
                "conflict_resolution", ConflictPolicy.LAST_WRITE_WINS.value
            ),
            "max_retries": max(0, _int("max_retries", DEFAULT_MAX_RETRIES)),
            "retry_delay": max(0.0, _float("retry_delay", DEFAULT_RETRY_DELAY)),
            "batch_size": max(1, _int("batch_size", DEFAULT_BATCH_SIZE)),
            "sync_interval": sync_interval,
            "timeout": max(1.0, _float("timeout", DEFAULT_TIMEOUT)),
            "headers": dict(data.get("headers") or {}),
        }
        kwargs.update(overrides)
        return cls(**kwargs)
