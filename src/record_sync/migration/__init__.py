"""Versioned schema migration."""

from record_sync.migration.engine import MigrationEngine, MigrationFn

__all__ = ["MigrationEngine", "MigrationFn"]
