"""Migration catalog — discovers migration units from their file names.

File names follow ``{sequence}-{version}-{description}.{py|sql}``, e.g.
``1762769127629-1.2.0-add-extension-identifier.sql``. The sequence is a
monotonically increasing integer (usually a millisecond timestamp) and is the
only ordering key. Files that do not match are ignored so that helpers and
notes can live in the same directory.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from schemalift import versioning
from schemalift.types import MigrationUnit

_logger = logging.getLogger(__name__)

MIGRATION_SUFFIXES = ("py", "sql")
# Inside a file name a pre-release may only use dot-separated alphanumeric
# identifiers and needs at least two of them (``beta.1``), and the description
# has no dots. That keeps "1.2.0-pre-fill" a 1.2.0 unit, not a 1.2.0-pre one.
_FILE_IDENTIFIER = r"[0-9A-Za-z]+"
FILE_VERSION_PATTERN = (
    rf"\d+\.\d+\.\d+(?:-{_FILE_IDENTIFIER}(?:\.{_FILE_IDENTIFIER})+)?"
)
MIGRATION_FILE_RE = re.compile(
    rf"^(?P<sequence>\d+)-(?P<version>{FILE_VERSION_PATTERN})"
    rf"-(?P<description>[^.]+)\.(?P<ext>{'|'.join(MIGRATION_SUFFIXES)})$"
)


def parse_migration_filename(path: Path) -> MigrationUnit | None:
    """Parse a migration file name, or return None if it is not one."""
    if path.name.startswith((".", "__")):
        return None
    match = MIGRATION_FILE_RE.match(path.name)
    if not match or not versioning.is_valid(match.group("version")):
        return None
    return MigrationUnit(
        name=path.name,
        version=match.group("version"),
        sequence=int(match.group("sequence")),
        description=match.group("description"),
        path=path,
    )


class MigrationCatalog:
    """All migration units found in one directory, ordered by sequence."""

    def __init__(self, directory: Path) -> None:
        self.directory = directory

    def units(self) -> list[MigrationUnit]:
        if not self.directory.is_dir():
            _logger.debug("Migrations directory not found: %s", self.directory)
            return []

        units = []
        for path in self.directory.iterdir():
            if not path.is_file():
                continue
            unit = parse_migration_filename(path)
            if unit is None:
                _logger.debug("Ignoring non-migration file %s", path.name)
                continue
            units.append(unit)
        return sorted(units, key=lambda u: (u.sequence, u.name))

    def version_tags(self) -> set[str]:
        return {u.version for u in self.units()}

    def select(self, from_version: str | None, to_version: str) -> list[MigrationUnit]:
        """Units with ``from_version < version <= to_version``, in sequence order.

        A ``from_version`` of None selects everything up to ``to_version``.
        """
        return [
            u
            for u in self.units()
            if (from_version is None or versioning.gt(u.version, from_version))
            and versioning.lte(u.version, to_version)
        ]
