"""Boot sequence — core upgrade first, then every enabled extension.

A core failure propagates: running on a stale core schema is unsafe. An
extension failure is isolated and reported, unless ``strict`` asks for the
boot to fail as well.
"""

from __future__ import annotations

from typing import Any

import structlog
from pydantic import BaseModel

from schemalift.config import SchemaliftSettings, settings
from schemalift.db import Database
from schemalift.exceptions import ExtensionRegistryError
from schemalift.extensions.orchestrator import ExtensionUpgradeOrchestrator
from schemalift.extensions.registry import ExtensionRegistry
from schemalift.types import UpgradeReport, VersionInfo
from schemalift.upgrade.manager import VersionManager

logger = structlog.get_logger()


class BootResult(BaseModel):
    core: VersionInfo | None = None
    extensions: UpgradeReport | None = None


async def upgrade_core(
    db: Database,
    config: SchemaliftSettings = settings,
    services: dict[str, Any] | None = None,
) -> VersionInfo:
    manager = VersionManager.for_core(db, config=config, services=services)
    return await manager.check_and_upgrade()


async def upgrade_extensions(
    db: Database,
    config: SchemaliftSettings = settings,
    services: dict[str, Any] | None = None,
    registry: ExtensionRegistry | None = None,
) -> UpgradeReport:
    if registry is None:
        try:
            registry = ExtensionRegistry.from_settings(config)
        except ExtensionRegistryError as e:
            logger.error("extension_registry_unavailable", error=str(e))
            raise
    orchestrator = ExtensionUpgradeOrchestrator.for_settings(
        db, registry, config=config, services=services
    )
    return await orchestrator.check_and_upgrade_all()


async def boot(
    config: SchemaliftSettings = settings,
    services: dict[str, Any] | None = None,
    core: bool = True,
    extensions: bool = True,
    strict: bool | None = None,
    registry: ExtensionRegistry | None = None,
) -> BootResult:
    """Run the whole upgrade pass against ``config.db_path``.

    Raises:
        UnknownVersionError, MigrationLoadError, MigrationExecutionError, ...:
            The core upgrade failed.
        ExtensionUpgradeError: ``strict`` and at least one extension failed.
    """
    strict = config.fail_on_extension_error if strict is None else strict
    result = BootResult()

    async with Database(config.db_path) as db:
        if core:
            result.core = await upgrade_core(db, config, services)
        if extensions:
            try:
                result.extensions = await upgrade_extensions(
                    db, config, services, registry
                )
            except ExtensionRegistryError:
                if strict:
                    raise
                result.extensions = UpgradeReport()
            if strict:
                result.extensions.raise_for_failures()

    logger.info("boot_upgrade_finished", core=bool(result.core), extensions=bool(result.extensions))
    return result
