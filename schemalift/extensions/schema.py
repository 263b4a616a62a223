"""Extension schema namespaces.

Each extension gets its own namespace in the shared database so its tables
never collide with the core system's or another extension's. With SQLite a
namespace is an attached database file, ``{schemas_dir}/{name}.db``;
``main`` stays reserved for the core system.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Iterable

import structlog

from schemalift.config import CORE_NAMESPACE
from schemalift.db import Database, is_idempotent
from schemalift.exceptions import DatabaseError, SchemaProvisionError
from schemalift.types import ExtensionRegistration

logger = structlog.get_logger()

_RESERVED = {CORE_NAMESPACE, "temp"}


def schema_name(identifier: str) -> str:
    """Deterministic namespace name for an extension identifier.

    Lowercased, every character outside ``[a-z0-9_]`` replaced by ``_``, and
    prefixed with ``ext_`` unless it starts with a letter or underscore.
    """
    name = re.sub(r"[^a-z0-9_]", "_", identifier.lower())
    if not re.match(r"^[a-z_]", name) or name in _RESERVED:
        name = f"ext_{name}"
    return name


def _identifier(extension: ExtensionRegistration | str) -> str:
    return extension if isinstance(extension, str) else extension.identifier


class SchemaProvisioner:
    """Creates extension namespaces idempotently."""

    def __init__(self, db: Database, schemas_dir: Path) -> None:
        self._db = db
        self.schemas_dir = schemas_dir

    def schema_name(self, identifier: str) -> str:
        return schema_name(identifier)

    def schema_file(self, identifier: str) -> Path:
        return self.schemas_dir / f"{schema_name(identifier)}.db"

    async def list_namespaces(self) -> dict[str, str]:
        return await self._db.namespaces()

    async def namespace_exists(self, name: str) -> bool:
        return name in await self._db.namespaces()

    async def ensure_schemas(
        self, extensions: Iterable[ExtensionRegistration | str]
    ) -> None:
        extensions = list(extensions)
        if not extensions:
            logger.info("extension_schemas_skipped", reason="no_extensions")
            return

        logger.info("extension_schemas_creating", count=len(extensions))
        for extension in extensions:
            await self.create_for_extension(extension)
        logger.info("extension_schemas_ready", count=len(extensions))

    async def create_for_extension(
        self, extension: ExtensionRegistration | str
    ) -> bool:
        """Make the extension's namespace available.

        Returns True if this call created it, False if it already existed.
        A concurrent creation by another runner counts as already existing.
        """
        identifier = _identifier(extension)
        name = schema_name(identifier)
        log = logger.bind(scope=identifier, namespace=name)

        if await self.namespace_exists(name):
            log.info("schema_exists")
            return False

        path = self.schema_file(identifier)
        existed_on_disk = path.exists()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            await self._db.attach(name, path)
        except DatabaseError as e:
            if is_idempotent(e):
                log.info("schema_exists", race=True)
                return False
            log.error("schema_create_failed", error=str(e))
            raise SchemaProvisionError(
                f'Failed to create schema "{name}" for {identifier}: {e}'
            ) from e
        except OSError as e:
            raise SchemaProvisionError(
                f'Failed to create schema "{name}" for {identifier}: {e}'
            ) from e

        log.info("schema_attached" if existed_on_disk else "schema_created", path=str(path))
        return not existed_on_disk

    async def drop_for_extension(self, identifier: str, remove_file: bool = False) -> None:
        """Detach an extension's namespace; optionally delete its data file."""
        name = schema_name(identifier)
        if await self.namespace_exists(name):
            try:
                await self._db.detach(name)
            except DatabaseError as e:
                raise SchemaProvisionError(f'Failed to drop schema "{name}": {e}') from e
        if remove_file:
            self.schema_file(identifier).unlink(missing_ok=True)
        logger.info("schema_dropped", scope=identifier, namespace=name, removed=remove_file)
