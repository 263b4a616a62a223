"""Version detection, upgrade scripts and the per-scope version manager."""

from schemalift.upgrade.base import BaseUpgradeScript, UpgradeContext
from schemalift.upgrade.detector import VersionDetector
from schemalift.upgrade.manager import VersionManager
from schemalift.upgrade.markers import VersionMarkerStore
from schemalift.upgrade.scripts import UpgradeScriptRunner

__all__ = [
    "BaseUpgradeScript",
    "UpgradeContext",
    "UpgradeScriptRunner",
    "VersionDetector",
    "VersionManager",
    "VersionMarkerStore",
]
