"""Migration loader: turns a catalog entry into something with ``up(db)``."""

from __future__ import annotations

import importlib.util
import logging
import re
from types import ModuleType

from schemalift.db import split_statements
from schemalift.exceptions import MigrationLoadError
from schemalift.migrations.base import (
    BaseMigration,
    FunctionMigration,
    Migration,
    SqlMigration,
)
from schemalift.types import MigrationUnit

_logger = logging.getLogger(__name__)


def import_module_from_path(module_name: str, path) -> ModuleType:
    """Import a Python file that is not on sys.path."""
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise ImportError(f"Cannot load module from {path}")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def module_name_for(prefix: str, stem: str) -> str:
    return prefix + "_" + re.sub(r"\W", "_", stem)


def _find_migration_class(module: ModuleType) -> type | None:
    candidates = [
        value
        for value in vars(module).values()
        if isinstance(value, type)
        and value.__module__ == module.__name__
        and callable(getattr(value, "up", None))
    ]
    for cls in candidates:
        if issubclass(cls, BaseMigration):
            return cls
    return candidates[0] if candidates else None


def _load_python(unit: MigrationUnit) -> Migration:
    try:
        module = import_module_from_path(
            module_name_for("schemalift_migration", unit.path.stem), unit.path
        )
    except Exception as e:
        raise MigrationLoadError(f"Cannot import migration {unit.name}: {e}") from e

    migration_class = _find_migration_class(module)
    if migration_class is not None:
        try:
            return migration_class()
        except Exception as e:
            raise MigrationLoadError(
                f"Cannot instantiate {migration_class.__name__} in {unit.name}: {e}"
            ) from e

    up = getattr(module, "up", None)
    if callable(up):
        return FunctionMigration(up)

    raise MigrationLoadError(
        f"Migration {unit.name} does not export an 'up' function or class"
    )


def _load_sql(unit: MigrationUnit) -> Migration:
    try:
        script = unit.path.read_text(encoding="utf-8")
    except OSError as e:
        raise MigrationLoadError(f"Cannot read migration {unit.name}: {e}") from e
    statements = split_statements(script)
    if not statements:
        _logger.warning("Migration %s contains no statements", unit.name)
    return SqlMigration(statements)


def load_migration(unit: MigrationUnit) -> Migration:
    """Load a migration unit's executable content.

    Raises:
        MigrationLoadError: If the file cannot be read, imported or has no
            ``up`` entry point.
    """
    if unit.kind == "sql":
        return _load_sql(unit)
    if unit.kind == "py":
        return _load_python(unit)
    raise MigrationLoadError(f"Unsupported migration type: {unit.name}")
