"""Scaffolding for new migration files.

Generates ``{timestamp_ms}-{version}-{description}.{py|sql}`` in the right
catalog directory with a ready-to-edit template.
"""

from __future__ import annotations

import re
import time
from datetime import datetime, timezone
from pathlib import Path

from schemalift import versioning
from schemalift.migrations.catalog import parse_migration_filename

_DESCRIPTION_RE = re.compile(r"^[a-z0-9]+(-[a-z0-9]+)*$")

_PY_TEMPLATE = '''"""Migration: {description}

Scope: {scope}
Version: {version}
Created: {created}
"""

from schemalift.migrations import BaseMigration


class Migration(BaseMigration):
    description = "{description}"

    async def up(self, db):
        # await db.execute("""
        #     ALTER TABLE {table_prefix}article ADD COLUMN new_field TEXT
        # """)
        pass
'''

_SQL_TEMPLATE = """-- Migration: {description}
-- Scope: {scope}
-- Version: {version}
-- Created: {created}

-- ALTER TABLE {table_prefix}article ADD COLUMN new_field TEXT;
"""


def migration_filename(version: str, description: str, suffix: str = "py",
                       sequence: int | None = None) -> str:
    if not versioning.is_valid(version):
        raise ValueError(f"Invalid version format: {version} (expected e.g. 1.2.3)")
    if not _DESCRIPTION_RE.match(description):
        raise ValueError(
            f"Invalid description: {description} (expected kebab-case, e.g. add-new-field)"
        )
    if suffix not in ("py", "sql"):
        raise ValueError(f"Unsupported migration type: {suffix}")
    sequence = sequence if sequence is not None else int(time.time() * 1000)
    filename = f"{sequence}-{version}-{description}.{suffix}"
    unit = parse_migration_filename(Path(filename))
    if unit is None or unit.version != version or unit.description != description:
        raise ValueError(
            f"Version {version} cannot be used in a migration file name "
            "(use a dotted pre-release such as 2.0.0-beta.1)"
        )
    return filename


def create_migration(
    directory: Path,
    version: str,
    description: str,
    suffix: str = "py",
    scope: str = "core",
    namespace: str | None = None,
    sequence: int | None = None,
) -> Path:
    """Write a new migration file and return its path.

    Raises:
        ValueError: Bad version, description or type.
        FileExistsError: A file with the generated name already exists.
    """
    filename = migration_filename(version, description, suffix, sequence)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / filename
    if path.exists():
        raise FileExistsError(f"Migration already exists: {path}")

    template = _SQL_TEMPLATE if suffix == "sql" else _PY_TEMPLATE
    path.write_text(
        template.format(
            description=description,
            scope=scope,
            version=version,
            created=datetime.now(timezone.utc).isoformat(),
            table_prefix=f"{namespace}." if namespace else "",
        ),
        encoding="utf-8",
    )
    return path
