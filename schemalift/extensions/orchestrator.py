"""Extension upgrade orchestrator.

Runs an independent VersionManager for every enabled extension. An extension
whose build output is missing is skipped, and one that fails is recorded and
left behind; neither stops the others. Whether any failure should fail the
boot is the caller's decision (see UpgradeReport.raise_for_failures).
"""

from __future__ import annotations

from typing import Any, Callable, Iterable

import structlog

from schemalift.config import SchemaliftSettings, settings
from schemalift.db import Database
from schemalift.extensions.registry import ExtensionRegistry
from schemalift.extensions.schema import SchemaProvisioner
from schemalift.types import ExtensionRegistration, UpgradeReport
from schemalift.upgrade.manager import VersionManager

logger = structlog.get_logger()

ManagerFactory = Callable[[str], VersionManager]


class ExtensionUpgradeOrchestrator:
    def __init__(
        self,
        registry: ExtensionRegistry | Iterable[ExtensionRegistration],
        manager_factory: ManagerFactory,
        provisioner: SchemaProvisioner | None = None,
    ) -> None:
        if not isinstance(registry, ExtensionRegistry):
            registry = ExtensionRegistry(registry)
        self.registry = registry
        self._manager_factory = manager_factory
        self._provisioner = provisioner

    @classmethod
    def for_settings(
        cls,
        db: Database,
        registry: ExtensionRegistry,
        config: SchemaliftSettings = settings,
        services: dict[str, Any] | None = None,
    ) -> ExtensionUpgradeOrchestrator:
        return cls(
            registry,
            lambda identifier: VersionManager.for_extension(
                db, identifier, config=config, services=services
            ),
            provisioner=SchemaProvisioner(db, config.schemas_dir),
        )

    async def check_and_upgrade_all(self) -> UpgradeReport:
        report = UpgradeReport()
        enabled = self.registry.enabled()
        if not enabled:
            logger.info("extension_upgrade_none_enabled")
            return report

        logger.info(
            "extension_upgrade_started",
            count=len(enabled),
            extensions=", ".join(e.identifier for e in enabled),
        )

        for extension in enabled:
            identifier = extension.identifier
            if not extension.build_ready:
                logger.warning("extension_upgrade_skipped", scope=identifier, reason="build_not_found")
                report.skipped.append(identifier)
                continue
            try:
                if self._provisioner is not None:
                    await self._provisioner.create_for_extension(extension)
                manager = self._manager_factory(identifier)
                await manager.check_and_upgrade()
            except Exception as e:
                logger.error("extension_upgrade_failed", scope=identifier, error=str(e))
                report.failed.append(identifier)
                report.errors[identifier] = str(e)
                continue
            report.upgraded.append(identifier)

        logger.info(
            "extension_upgrade_finished",
            upgraded=report.upgraded_count,
            skipped=report.skipped_count,
            failed=report.failed_count,
        )
        return report
