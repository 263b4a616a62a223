"""Version manager — runs one scope's upgrade, version by version.

For every version on the computed path:

1. run the migration units in ``(previous, version]``
2. run the version's upgrade script, if it has one
3. write the version marker

The marker is written last, so a crash anywhere in steps 1-2 leaves the
version unmarked and the next run starts from the same version again. The
ledger turns every unit that already ran into a no-op, so nothing beyond the
ledger and the markers is needed to resume.
"""

from __future__ import annotations

from typing import Any, Callable

import structlog

from schemalift.config import CORE_SCOPE, ScopePaths, SchemaliftSettings, settings
from schemalift.db import Database
from schemalift.migrations.catalog import MigrationCatalog
from schemalift.migrations.ledger import MigrationLedger
from schemalift.migrations.runner import MigrationRunner
from schemalift.types import UpgradeState, VersionInfo
from schemalift.upgrade.base import UpgradeContext
from schemalift.upgrade.detector import VersionDetector
from schemalift.upgrade.markers import VersionMarkerStore
from schemalift.upgrade.scripts import UpgradeScriptRunner
from schemalift.upgrade.state_machine import TransitionCallback, UpgradeStateMachine

logger = structlog.get_logger()

ContextFactory = Callable[[str], UpgradeContext]


class VersionManager:
    """Upgrade orchestration for the core system or a single extension."""

    def __init__(
        self,
        db: Database,
        detector: VersionDetector,
        runner: MigrationRunner,
        scripts: UpgradeScriptRunner,
        markers: VersionMarkerStore,
        scope: str = CORE_SCOPE,
        config: SchemaliftSettings | None = None,
        services: dict[str, Any] | None = None,
        context_factory: ContextFactory | None = None,
    ) -> None:
        self._db = db
        self.detector = detector
        self.runner = runner
        self.scripts = scripts
        self.markers = markers
        self.scope = scope
        self._config = config
        self._services = dict(services or {})
        self._context_factory = context_factory
        self._listeners: list[TransitionCallback] = []
        self._machine = UpgradeStateMachine(scope)
        self.failed_version: str | None = None
        self.error: BaseException | None = None

    # ── Construction ─────────────────────────────────────────────────────────

    @classmethod
    def from_paths(
        cls,
        db: Database,
        paths: ScopePaths,
        config: SchemaliftSettings | None = None,
        services: dict[str, Any] | None = None,
    ) -> VersionManager:
        catalog = MigrationCatalog(paths.migrations_dir)
        scripts = UpgradeScriptRunner(paths.scripts_dir, scope=paths.scope)
        markers = VersionMarkerStore(paths.versions_dir)
        return cls(
            db=db,
            detector=VersionDetector(
                paths.manifest_path, markers, catalog, scripts, scope=paths.scope
            ),
            runner=MigrationRunner(
                db, catalog, MigrationLedger(db, paths.namespace), scope=paths.scope
            ),
            scripts=scripts,
            markers=markers,
            scope=paths.scope,
            config=config,
            services=services,
        )

    @classmethod
    def for_core(
        cls,
        db: Database,
        config: SchemaliftSettings = settings,
        services: dict[str, Any] | None = None,
    ) -> VersionManager:
        return cls.from_paths(db, ScopePaths.for_core(config), config, services)

    @classmethod
    def for_extension(
        cls,
        db: Database,
        identifier: str,
        config: SchemaliftSettings = settings,
        services: dict[str, Any] | None = None,
    ) -> VersionManager:
        return cls.from_paths(
            db, ScopePaths.for_extension(config, identifier), config, services
        )

    # ── State ────────────────────────────────────────────────────────────────

    @property
    def state(self) -> UpgradeState:
        return self._machine.state

    def on_transition(self, callback: TransitionCallback) -> None:
        self._listeners.append(callback)

    def version_info(self) -> VersionInfo:
        """Detect without upgrading."""
        return self.detector.detect()

    def create_context(self, version: str) -> UpgradeContext:
        if self._context_factory is not None:
            return self._context_factory(version)
        return UpgradeContext(
            db=self._db,
            scope=self.scope,
            version=version,
            settings=self._config,
            logger=logger.bind(scope=self.scope, version=version),
            services=dict(self._services),
        )

    # ── Upgrade ──────────────────────────────────────────────────────────────

    async def check_and_upgrade(self) -> VersionInfo:
        """Detect and, if needed, upgrade through every pending version.

        Raises whatever stopped the upgrade; the version in progress stays
        unmarked.
        """
        machine = UpgradeStateMachine(self.scope)
        for listener in self._listeners:
            machine.on_transition(listener)
        self._machine = machine
        self.failed_version = None
        self.error = None

        log = logger.bind(scope=self.scope)
        in_progress: str | None = None
        try:
            await machine.transition(UpgradeState.DETECTING)
            info = self.detector.detect()

            if not info.needs_upgrade:
                log.info("version_up_to_date", version=info.current)
                await machine.transition(UpgradeState.DONE)
                return info

            log.warning(
                "upgrade_needed",
                installed=info.installed or "initial",
                current=info.current,
                path=" -> ".join(info.upgrade_versions),
            )

            previous = info.installed
            for version in info.upgrade_versions:
                in_progress = version
                await self._upgrade_version(machine, previous, version)
                previous = version
            in_progress = None

            await machine.transition(UpgradeState.DONE)
            log.info("upgrade_completed", version=info.current)
            return info
        except Exception as e:
            self.failed_version = in_progress
            self.error = e
            if not machine.is_terminal:
                await machine.transition(UpgradeState.FAILED, in_progress)
            log.error("upgrade_failed", version=in_progress, error=str(e))
            raise

    async def _upgrade_version(
        self, machine: UpgradeStateMachine, previous: str | None, version: str
    ) -> None:
        log = logger.bind(scope=self.scope, version=version)
        log.info("version_upgrade_started")

        await machine.transition(UpgradeState.MIGRATING, version)
        await self.runner.run_migrations(previous, version)

        if self.scripts.has_script(version):
            await machine.transition(UpgradeState.RUNNING_SCRIPT, version)
            await self.scripts.execute(version, self.create_context(version))

        await machine.transition(UpgradeState.MARKING_COMPLETE, version)
        self.markers.write(version, description=self._marker_description(version))
        log.info("version_upgrade_completed")

    def _marker_description(self, version: str) -> str:
        if self.scope == CORE_SCOPE:
            return f"System upgraded to version {version}"
        return f"Extension {self.scope} upgraded to version {version}"
