"""Custom exception hierarchy for schemalift."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from schemalift.db.errors import DbErrorKind


class SchemaliftError(Exception):
    """Base for all schemalift errors."""


class UnknownVersionError(SchemaliftError):
    """The build's declared version cannot be determined."""


class DatabaseError(SchemaliftError):
    """A database call failed. ``kind`` classifies the underlying driver error."""

    def __init__(self, message: str, kind: DbErrorKind) -> None:
        super().__init__(message)
        self.kind = kind


class MigrationLoadError(SchemaliftError):
    """A migration unit's content could not be loaded."""


class MigrationExecutionError(SchemaliftError):
    """A migration unit failed with a non-idempotent error."""

    def __init__(self, message: str, unit: str = "", version: str = "") -> None:
        super().__init__(message)
        self.unit = unit
        self.version = version


class UpgradeScriptError(SchemaliftError):
    """An upgrade script exists but could not be imported."""


class UpgradeStateError(SchemaliftError):
    """Invalid version manager state transition."""


class SchemaProvisionError(SchemaliftError):
    """A schema namespace could not be created or removed."""


class ExtensionRegistryError(SchemaliftError):
    """The extension registry is unusable."""


class ExtensionUpgradeError(SchemaliftError):
    """One or more extensions failed to upgrade."""

    def __init__(self, message: str, failed: dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.failed = failed or {}
