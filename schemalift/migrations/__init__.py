"""Database migration units: discovery, loading, the ledger and the runner."""

from schemalift.migrations.base import BaseMigration
from schemalift.migrations.catalog import MigrationCatalog, parse_migration_filename
from schemalift.migrations.ledger import MigrationLedger
from schemalift.migrations.runner import MigrationRunner

__all__ = [
    "BaseMigration",
    "MigrationCatalog",
    "MigrationLedger",
    "MigrationRunner",
    "parse_migration_filename",
]
