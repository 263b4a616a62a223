"""Upgrade script runner — optional custom procedure per version.

Two layouts are supported, tried in this order:

1. ``{scripts_dir}/{version}/index.py`` (directory form, may ship data files)
2. ``{scripts_dir}/{version}.py`` (legacy single file)

A script module must export ``Upgrade`` (class or instance) or a
BaseUpgradeScript subclass exposing ``execute(context)``. A module without
such an export is treated as "no script". Errors raised by a script are
never classified; they propagate unchanged.
"""

from __future__ import annotations

from pathlib import Path
from types import ModuleType
from typing import Any

import structlog

from schemalift import versioning
from schemalift.exceptions import UpgradeScriptError
from schemalift.migrations.base import maybe_await
from schemalift.migrations.loader import import_module_from_path, module_name_for
from schemalift.upgrade.base import BaseUpgradeScript, UpgradeContext

logger = structlog.get_logger()

SCRIPT_ENTRY = "index.py"


class UpgradeScriptRunner:
    def __init__(self, scripts_dir: Path, scope: str = "core") -> None:
        self.scripts_dir = scripts_dir
        self.scope = scope

    def script_path(self, version: str) -> tuple[Path, str] | None:
        """Return ``(path, layout)`` for the version's script, if any."""
        directory_form = self.scripts_dir / version / SCRIPT_ENTRY
        if directory_form.is_file():
            return directory_form, "directory"
        file_form = self.scripts_dir / f"{version}.py"
        if file_form.is_file():
            return file_form, "file"
        return None

    def has_script(self, version: str) -> bool:
        return self.script_path(version) is not None

    def version_tags(self) -> set[str]:
        if not self.scripts_dir.is_dir():
            return set()
        tags = set()
        for entry in self.scripts_dir.iterdir():
            tag = entry.name if entry.is_dir() else entry.stem
            if versioning.is_valid(tag) and self.has_script(tag):
                tags.add(tag)
        return tags

    def load(self, version: str) -> Any | None:
        """Import and instantiate the script for ``version``.

        Returns None if there is no script or it exports nothing runnable.

        Raises:
            UpgradeScriptError: The script file exists but cannot be imported
                or instantiated.
        """
        found = self.script_path(version)
        if found is None:
            return None
        path, layout = found
        log = logger.bind(scope=self.scope, version=version)
        log.info("upgrade_script_loading", layout=layout, path=str(path))

        try:
            module = import_module_from_path(
                module_name_for(f"schemalift_upgrade_{self.scope}", version), path
            )
        except Exception as e:
            raise UpgradeScriptError(
                f"Cannot import upgrade script for {version} ({path}): {e}"
            ) from e

        export = _find_export(module)
        if export is None:
            log.warning("upgrade_script_no_export", path=str(path))
            return None

        if isinstance(export, type):
            try:
                export = export()
            except Exception as e:
                raise UpgradeScriptError(
                    f"Cannot instantiate upgrade script for {version}: {e}"
                ) from e

        if not callable(getattr(export, "execute", None)):
            log.warning("upgrade_script_missing_execute", path=str(path))
            return None
        return export

    async def execute(self, version: str, context: UpgradeContext) -> bool:
        """Run the script for ``version``; returns False if there is none."""
        log = logger.bind(scope=self.scope, version=version)
        script = self.load(version)
        if script is None:
            log.info("upgrade_script_not_found")
            return False

        log.info("upgrade_script_executing")
        try:
            await maybe_await(script.execute(context))
        except Exception as e:
            log.error("upgrade_script_failed", error=str(e))
            raise
        log.info("upgrade_script_completed")
        return True


def _find_export(module: ModuleType) -> Any | None:
    export = getattr(module, "Upgrade", None)
    if export is not None:
        return export
    for value in vars(module).values():
        if (
            isinstance(value, type)
            and issubclass(value, BaseUpgradeScript)
            and value is not BaseUpgradeScript
            and value.__module__ == module.__name__
        ):
            return value
    return None
