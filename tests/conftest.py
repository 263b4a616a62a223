"""Shared test fixtures — throwaway project layouts and a live database."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
import pytest_asyncio
import structlog

from schemalift.config import SchemaliftSettings
from schemalift.db import Database


@pytest.fixture(autouse=True)
def _reset_structlog():
    """Keep logging configuration done by one test (e.g. the CLI) from leaking into others."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def config(tmp_path) -> SchemaliftSettings:
    """Settings with every path pointing into tmp_path."""
    return SchemaliftSettings(
        db_path=tmp_path / "data" / "app.db",
        manifest_path=tmp_path / "pyproject.toml",
        migrations_dir=tmp_path / "migrations",
        scripts_dir=tmp_path / "upgrade" / "scripts",
        versions_dir=tmp_path / "data" / "versions",
        extensions_dir=tmp_path / "extensions",
        extensions_config=tmp_path / "extensions" / "extensions.json",
        schemas_dir=tmp_path / "data" / "schemas",
    )


@pytest_asyncio.fixture
async def db(tmp_path):
    database = Database(tmp_path / "test.db")
    await database.connect()
    yield database
    await database.close()


@pytest.fixture
def write_manifest():
    def _write(path: Path, version: str) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        if path.suffix == ".toml":
            path.write_text(f'[project]\nname = "app"\nversion = "{version}"\n')
        else:
            path.write_text(json.dumps({"name": path.parent.name, "version": version}))
        return path
    return _write


@pytest.fixture
def write_migration():
    def _write(directory: Path, sequence: int, version: str, description: str,
               body: str, suffix: str = "sql") -> Path:
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / f"{sequence}-{version}-{description}.{suffix}"
        path.write_text(body)
        return path
    return _write


@pytest.fixture
def write_script():
    def _write(directory: Path, version: str, body: str,
               layout: str = "directory") -> Path:
        if layout == "directory":
            path = directory / version / "index.py"
        else:
            path = directory / f"{version}.py"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(body)
        return path
    return _write


@pytest.fixture
def write_extensions_config():
    def _write(config: SchemaliftSettings, applications: dict | None = None,
               functionals: dict | None = None) -> Path:
        path = config.extensions_config
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps({
            "applications": applications or {},
            "functionals": functionals or {},
        }))
        return path
    return _write


@pytest.fixture
def make_extension(config, write_manifest, write_migration):
    """Lay out an extension under config.extensions_dir.

    ``migrations`` is a list of ``(version, description, sql)`` tuples.
    """
    def _make(identifier: str, version: str | None = "0.1.0",
              migrations: list[tuple[str, str, str]] = (), built: bool = True) -> Path:
        root = config.extensions_dir / identifier
        root.mkdir(parents=True, exist_ok=True)
        if built:
            (root / "build").mkdir(exist_ok=True)
        if version is not None:
            write_manifest(root / config.extension_manifest, version)
        for seq, (v, description, body) in enumerate(migrations, start=1):
            write_migration(root / "build" / "db" / "migrations", seq, v, description, body)
        return root
    return _make
