"""Version markers — one JSON file per fully applied version.

A marker is written only after a version's migrations and upgrade script
have both succeeded, so its presence is the resumption checkpoint. The file
name is the version string; anything else in the directory is ignored.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from pydantic import ValidationError

from schemalift import versioning
from schemalift.types import VersionMarker

_logger = logging.getLogger(__name__)


class VersionMarkerStore:
    """Directory-backed marker store for one scope."""

    def __init__(self, directory: Path) -> None:
        self.directory = directory

    def versions(self) -> list[str]:
        """All marked versions, ascending."""
        if not self.directory.is_dir():
            return []
        names = [p.name for p in self.directory.iterdir() if p.is_file()]
        return versioning.sort_versions(names)

    def latest(self) -> str | None:
        versions = self.versions()
        return versions[-1] if versions else None

    def exists(self, version: str) -> bool:
        return (self.directory / version).is_file()

    def read(self, version: str) -> VersionMarker | None:
        path = self.directory / version
        if not path.is_file():
            return None
        try:
            return VersionMarker.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as e:
            # The file still counts as a marker; only its details are lost.
            _logger.warning("Unreadable version marker %s: %s", path, e)
            return None

    def write(self, version: str, description: str = "") -> VersionMarker:
        """Persist the marker for ``version`` atomically."""
        marker = VersionMarker(version=version, description=description)
        self.directory.mkdir(parents=True, exist_ok=True)
        tmp = self.directory / f".{version}.tmp"
        tmp.write_text(marker.model_dump_json(indent=2), encoding="utf-8")
        os.replace(tmp, self.directory / version)
        _logger.info("Version marker written: %s", self.directory / version)
        return marker

    def remove(self, version: str) -> bool:
        """Delete one marker so that version is upgraded again on next run."""
        path = self.directory / version
        if not path.is_file():
            return False
        path.unlink()
        return True
