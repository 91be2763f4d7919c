"""File-based configuration for record_sync.

Configuration is stored in ~/.record_sync/config.toml (or the path named by
the RECORD_SYNC_CONFIG environment variable):

    [sync]
    endpoint = "https://api.example.com/orders"
    strategy = "queued"
    max_retries = 5

    [cross_context]
    enabled = true

    [migration]
    version = 3
"""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from record_sync.errors import SyncConfigurationError
from record_sync.sync.protocol import SyncConfig

logger = logging.getLogger(__name__)


def get_config_path() -> Path:
    """Get the configuration file path.

    Priority:
    1. RECORD_SYNC_CONFIG environment variable
    2. ~/.record_sync/config.toml
    """
    env_path = os.environ.get("RECORD_SYNC_CONFIG")
    if env_path:
        return Path(env_path)
    return Path.home() / ".record_sync" / "config.toml"


@dataclass(frozen=True)
class CrossContextSettings:
    """Cross-context propagation settings."""

    enabled: bool = False
    force_storage_events: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "enabled": self.enabled,
            "force_storage_events": self.force_storage_events,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CrossContextSettings:
        return cls(
            enabled=bool(data.get("enabled", False)),
            force_storage_events=bool(data.get("force_storage_events", False)),
        )


@dataclass(frozen=True)
class MigrationSettings:
    """Schema version settings. Transforms are registered in code."""

    version: int = 1
    auto_migrate: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {"version": self.version, "auto_migrate": self.auto_migrate}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MigrationSettings:
        try:
            version = max(1, int(data.get("version", 1)))
        except (TypeError, ValueError):
            version = 1
        return cls(version=version, auto_migrate=bool(data.get("auto_migrate", True)))


@dataclass(frozen=True)
class RecordSyncConfig:
    """Top-level configuration.

    ``sync`` is None when no ``[sync]`` table with an endpoint is present.
    """

    sync: SyncConfig | None = None
    cross_context: CrossContextSettings = field(default_factory=CrossContextSettings)
    migration: MigrationSettings = field(default_factory=MigrationSettings)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "cross_context": self.cross_context.to_dict(),
            "migration": self.migration.to_dict(),
        }
        if self.sync is not None:
            result["sync"] = self.sync.to_dict()
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RecordSyncConfig:
        """Create from parsed TOML.

        Raises:
            SyncConfigurationError: If the ``[sync]`` table is present but invalid
        """
        sync_data = data.get("sync") or {}
        sync = SyncConfig.from_dict(sync_data) if sync_data.get("endpoint") else None
        return cls(
            sync=sync,
            cross_context=CrossContextSettings.from_dict(data.get("cross_context", {})),
            migration=MigrationSettings.from_dict(data.get("migration", {})),
        )

    @classmethod
    def load(cls, config_path: Path | None = None) -> RecordSyncConfig:
        """Load configuration from file, or defaults if it doesn't exist."""
        if config_path is None:
            config_path = get_config_path()

        if not config_path.exists():
            logger.debug("No config file at %s, using defaults", config_path)
            return cls()

        try:
            with open(config_path, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise SyncConfigurationError(f"Invalid config file {config_path}: {e}") from e

        return cls.from_dict(data)
