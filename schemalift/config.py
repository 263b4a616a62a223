"""Global configuration — loaded from environment variables."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from pydantic_settings import BaseSettings


class SchemaliftSettings(BaseSettings):
    db_path: Path = Path("data/schemalift.db")

    # Core system layout
    manifest_path: Path = Path("pyproject.toml")
    migrations_dir: Path = Path("migrations")
    scripts_dir: Path = Path("upgrade/scripts")
    versions_dir: Path = Path("data/versions")

    # Extensions
    extensions_dir: Path = Path("extensions")
    extensions_config: Path = Path("extensions/extensions.json")
    extension_manifest: str = "manifest.json"
    schemas_dir: Path = Path("data/schemas")
    fail_on_extension_error: bool = False

    log_level: str = "INFO"

    model_config = {"env_prefix": "SCHEMALIFT_"}


settings = SchemaliftSettings()


CORE_SCOPE = "core"
CORE_NAMESPACE = "main"


@dataclass(frozen=True)
class ScopePaths:
    """Where one scope (the core system or a single extension) keeps its artifacts."""

    scope: str
    manifest_path: Path
    migrations_dir: Path
    scripts_dir: Path
    versions_dir: Path
    namespace: str = CORE_NAMESPACE

    @classmethod
    def for_core(cls, cfg: SchemaliftSettings) -> ScopePaths:
        return cls(
            scope=CORE_SCOPE,
            manifest_path=cfg.manifest_path,
            migrations_dir=cfg.migrations_dir,
            scripts_dir=cfg.scripts_dir,
            versions_dir=cfg.versions_dir,
        )

    @classmethod
    def for_extension(cls, cfg: SchemaliftSettings, identifier: str) -> ScopePaths:
        from schemalift.extensions.schema import schema_name

        root = cfg.extensions_dir / identifier
        return cls(
            scope=identifier,
            manifest_path=root / cfg.extension_manifest,
            migrations_dir=root / "build" / "db" / "migrations",
            scripts_dir=root / "build" / "upgrade",
            versions_dir=root / "data" / "versions",
            namespace=schema_name(identifier),
        )
