"""Migration runner — applies pending migration units for a version range.

Units in ``(from_version, to_version]`` run strictly one at a time in
sequence order, each gated by the ledger. A failure whose database error is
classified as "already exists" / "duplicate" means the unit's effect is
already in place (typically a crashed earlier run); the unit is recorded and
the run continues. Every other failure is fatal and leaves the unit
unrecorded so the next boot retries it.
"""

from __future__ import annotations

import structlog

from schemalift.db import Database, is_idempotent
from schemalift.exceptions import MigrationExecutionError
from schemalift.migrations.base import maybe_await
from schemalift.migrations.catalog import MigrationCatalog
from schemalift.migrations.ledger import MigrationLedger
from schemalift.migrations.loader import load_migration
from schemalift.types import MigrationUnit

logger = structlog.get_logger()


class MigrationRunner:
    """Runs migration units from one catalog against one ledger."""

    def __init__(
        self,
        db: Database,
        catalog: MigrationCatalog,
        ledger: MigrationLedger | None = None,
        scope: str = "core",
    ) -> None:
        self._db = db
        self.catalog = catalog
        self.ledger = ledger or MigrationLedger(db)
        self.scope = scope
        self._ledger_ready = False

    async def _ensure_ledger(self) -> None:
        if not self._ledger_ready:
            await self.ledger.ensure_table()
            self._ledger_ready = True

    async def pending(
        self, from_version: str | None, to_version: str
    ) -> list[MigrationUnit]:
        """Units in range that the ledger has not seen yet."""
        await self._ensure_ledger()
        executed = await self.ledger.names()
        return [
            u for u in self.catalog.select(from_version, to_version)
            if u.name not in executed
        ]

    async def run_migrations(
        self, from_version: str | None, to_version: str
    ) -> list[MigrationUnit]:
        """Apply the units for ``(from_version, to_version]``.

        Returns the units executed or recorded as already applied.

        Raises:
            MigrationLoadError: A unit could not be loaded.
            MigrationExecutionError: A unit failed with a non-idempotent error.
        """
        await self._ensure_ledger()
        units = self.catalog.select(from_version, to_version)
        if not units:
            logger.info(
                "no_migrations_to_run",
                scope=self.scope,
                from_version=from_version or "initial",
                to_version=to_version,
            )
            return []

        logger.info(
            "migrations_found",
            scope=self.scope,
            count=len(units),
            from_version=from_version or "initial",
            to_version=to_version,
        )
        applied = []
        for unit in units:
            if await self._execute(unit):
                applied.append(unit)
        return applied

    async def run_across_versions(self, versions: list[str]) -> list[MigrationUnit]:
        """Run consecutive ranges, threading the previous version forward.

        Stops at the first fatal error; earlier ranges keep their ledger rows.
        """
        if not versions:
            return []
        logger.info("cross_version_migration", scope=self.scope, path=" -> ".join(versions))

        applied: list[MigrationUnit] = []
        previous: str | None = None
        for version in versions:
            applied.extend(await self.run_migrations(previous, version))
            previous = version
        return applied

    async def _execute(self, unit: MigrationUnit) -> bool:
        log = logger.bind(scope=self.scope, unit=unit.name, version=unit.version)

        if await self.ledger.is_executed(unit.name):
            log.info("migration_skipped", reason="already_executed")
            return False

        migration = load_migration(unit)
        log.info("migration_executing")
        try:
            async with self._db.transaction(immediate=True):
                # Another runner may have committed the unit since the check above
                if await self.ledger.is_executed(unit.name):
                    log.info("migration_skipped", reason="executed_concurrently")
                    return False
                await maybe_await(migration.up(self._db))
                if not await self.ledger.record(unit):
                    raise _RecordedConcurrently(unit.name)
        except _RecordedConcurrently:
            log.info("migration_skipped", reason="recorded_concurrently")
            return False
        except Exception as e:
            if is_idempotent(e):
                log.warning("migration_already_applied", error=str(e))
                await self.ledger.record(unit)
                return True
            log.error("migration_failed", error=str(e))
            raise MigrationExecutionError(
                f"Migration {unit.name} failed: {e}",
                unit=unit.name,
                version=unit.version,
            ) from e

        log.info("migration_completed")
        return True


class _RecordedConcurrently(Exception):
    """Raised inside a unit's transaction to roll back its effects."""
