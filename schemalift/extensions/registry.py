"""Extension registry — which extensions are enabled, and which are built.

Read from ``extensions.json``::

    {
      "applications": {"buildingai-simple-blog": {"enabled": true, ...}},
      "functionals": {"sms-gateway": {"enabled": false, ...}}
    }

The registry is loaded once into an immutable snapshot; nothing in this
package mutates it.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Iterable, Iterator

from schemalift.config import SchemaliftSettings
from schemalift.exceptions import ExtensionRegistryError
from schemalift.types import ExtensionKind, ExtensionRegistration

_logger = logging.getLogger(__name__)

_SECTIONS = {
    "applications": ExtensionKind.APPLICATION,
    "functionals": ExtensionKind.FUNCTIONAL,
}


def is_extension_ready(extensions_dir: Path, identifier: str) -> bool:
    """An extension is ready once its directory and build output exist."""
    extension_dir = extensions_dir / identifier
    return extension_dir.is_dir() and (extension_dir / "build").is_dir()


class ExtensionRegistry:
    def __init__(self, registrations: Iterable[ExtensionRegistration] = ()) -> None:
        self._registrations = tuple(registrations)

    @classmethod
    def load(cls, config_path: Path, extensions_dir: Path) -> ExtensionRegistry:
        """Read ``extensions.json``; a missing file means no extensions.

        Raises:
            ExtensionRegistryError: The file exists but is not a JSON object.
        """
        if not config_path.is_file():
            _logger.warning("Extensions config file not found: %s", config_path)
            return cls()

        try:
            data = json.loads(config_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise ExtensionRegistryError(
                f"Failed to read extensions config {config_path}: {e}"
            ) from e
        if not isinstance(data, dict):
            raise ExtensionRegistryError(
                f"Extensions config {config_path} must be a JSON object"
            )

        registrations: list[ExtensionRegistration] = []
        seen: set[str] = set()
        for section, kind in _SECTIONS.items():
            entries = data.get(section) or {}
            if not isinstance(entries, dict):
                _logger.warning("Ignoring malformed '%s' section in %s", section, config_path)
                continue
            for identifier, entry in entries.items():
                if identifier in seen:
                    _logger.warning("Duplicate extension %s in %s", identifier, config_path)
                    continue
                if not isinstance(entry, dict):
                    _logger.warning("Ignoring malformed extension entry %s", identifier)
                    continue
                seen.add(identifier)
                registrations.append(
                    ExtensionRegistration(
                        identifier=identifier,
                        enabled=bool(entry.get("enabled", False)),
                        build_ready=is_extension_ready(extensions_dir, identifier),
                        kind=kind,
                    )
                )
        return cls(registrations)

    @classmethod
    def from_settings(cls, config: SchemaliftSettings) -> ExtensionRegistry:
        return cls.load(config.extensions_config, config.extensions_dir)

    def all(self) -> tuple[ExtensionRegistration, ...]:
        return self._registrations

    def enabled(self) -> list[ExtensionRegistration]:
        return [r for r in self._registrations if r.enabled]

    def get(self, identifier: str) -> ExtensionRegistration | None:
        return next((r for r in self._registrations if r.identifier == identifier), None)

    def __iter__(self) -> Iterator[ExtensionRegistration]:
        return iter(self._registrations)

    def __len__(self) -> int:
        return len(self._registrations)
