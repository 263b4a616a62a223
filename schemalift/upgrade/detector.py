"""Version detector — decides whether a scope needs upgrading and how.

The declared build version is compared with the persisted version markers.
The upgrade path is every version tag known to the migration catalog or the
upgrade-script catalog that lies in ``(installed, current]``, ascending,
always ending with ``current`` so the final step records its marker.
"""

from __future__ import annotations

import logging
from pathlib import Path

from schemalift import versioning
from schemalift.migrations.catalog import MigrationCatalog
from schemalift.types import VersionInfo
from schemalift.upgrade.markers import VersionMarkerStore
from schemalift.upgrade.scripts import UpgradeScriptRunner

_logger = logging.getLogger(__name__)


class VersionDetector:
    def __init__(
        self,
        manifest_path: Path,
        markers: VersionMarkerStore,
        catalog: MigrationCatalog,
        scripts: UpgradeScriptRunner,
        scope: str = "core",
    ) -> None:
        self.manifest_path = manifest_path
        self.markers = markers
        self.catalog = catalog
        self.scripts = scripts
        self.scope = scope

    def current_version(self) -> str:
        """Raises UnknownVersionError if the manifest has no usable version."""
        return versioning.read_declared_version(self.manifest_path)

    def installed_version(self) -> str | None:
        return self.markers.latest()

    def upgrade_versions(self, installed: str | None, current: str) -> list[str]:
        if installed is None:
            return [current]
        if installed == current:
            return []
        if versioning.gt(installed, current):
            _logger.warning(
                "[%s] Installed version %s is newer than deployed %s",
                self.scope, installed, current,
            )

        tags = self.catalog.version_tags() | self.scripts.version_tags()
        path = [
            tag
            for tag in versioning.sort_versions(tags)
            if versioning.gt(tag, installed) and versioning.lte(tag, current)
        ]
        if current not in path:
            path.append(current)
        return path

    def detect(self) -> VersionInfo:
        current = self.current_version()
        installed = self.installed_version()
        needs_upgrade = not self.markers.exists(current)
        return VersionInfo(
            scope=self.scope,
            current=current,
            installed=installed,
            needs_upgrade=needs_upgrade,
            upgrade_versions=self.upgrade_versions(installed, current)
            if needs_upgrade
            else [],
        )
