"""Exception hierarchy for record synchronization."""

from __future__ import annotations


class RecordSyncError(Exception):
    """Base class for all record_sync errors."""


class SyncConfigurationError(RecordSyncError, ValueError):
    """Invalid or unusable configuration. Never retried."""


class SyncNotEnabledError(SyncConfigurationError):
    """A sync pass was requested while synchronization is disabled."""

    def __init__(self, message: str = "Sync is not enabled. Call enable() first.") -> None:
        super().__init__(message)


class TransportError(RecordSyncError):
    """Delivery to the remote endpoint failed (network error or non-2xx status)."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class MigrationError(RecordSyncError):
    """A schema migration could not be completed."""

    def __init__(self, message: str, version: int | None = None) -> None:
        super().__init__(message)
        self.version = version


class MigrationDowngradeError(MigrationError):
    """Stored data is newer than the target version."""


class MissingMigrationError(MigrationError):
    """No transform is registered for a version on the upgrade path."""
