"""Tests for the boot sequence."""

import pytest

from schemalift.db import Database
from schemalift.exceptions import (
    ExtensionRegistryError,
    ExtensionUpgradeError,
    UnknownVersionError,
)
from schemalift.startup import boot


@pytest.fixture
def deployment(config, write_manifest, write_migration, make_extension, write_extensions_config):
    write_manifest(config.manifest_path, "1.0.0")
    write_migration(config.migrations_dir, 1, "1.0.0", "users", "CREATE TABLE users (id INTEGER);")
    make_extension("simple-blog", "0.1.0", [
        ("0.1.0", "article", 'CREATE TABLE "simple_blog".article (id INTEGER);'),
    ])
    make_extension("broken", version="not-a-version")
    write_extensions_config(
        config,
        applications={"simple-blog": {"enabled": True}, "broken": {"enabled": True}},
    )
    return config


@pytest.mark.asyncio
async def test_boot_upgrades_core_and_extensions(deployment):
    result = await boot(deployment)

    assert result.core.current == "1.0.0"
    assert result.core.needs_upgrade
    assert result.extensions.upgraded == ["simple-blog"]
    assert result.extensions.failed == ["broken"]

    async with Database(deployment.db_path) as db:
        assert await db.fetchone(
            "SELECT name FROM sqlite_master WHERE name = 'users'"
        ) == ("users",)


@pytest.mark.asyncio
async def test_boot_strict_fails_on_extension_error(deployment):
    with pytest.raises(ExtensionUpgradeError) as exc:
        await boot(deployment, strict=True)
    assert "broken" in exc.value.failed


@pytest.mark.asyncio
async def test_boot_strict_from_settings(deployment):
    deployment.fail_on_extension_error = True
    with pytest.raises(ExtensionUpgradeError):
        await boot(deployment)


@pytest.mark.asyncio
async def test_core_failure_propagates(deployment):
    deployment.manifest_path.unlink()
    with pytest.raises(UnknownVersionError):
        await boot(deployment)


@pytest.mark.asyncio
async def test_core_only(deployment):
    result = await boot(deployment, extensions=False)
    assert result.extensions is None
    assert not (deployment.schemas_dir / "simple_blog.db").exists()


@pytest.mark.asyncio
async def test_extensions_only(deployment):
    result = await boot(deployment, core=False)
    assert result.core is None
    assert result.extensions.upgraded == ["simple-blog"]


@pytest.mark.asyncio
async def test_unreadable_registry(deployment):
    deployment.extensions_config.write_text("{oops")

    result = await boot(deployment)
    assert result.extensions.upgraded_count == 0
    assert result.core.current == "1.0.0"

    with pytest.raises(ExtensionRegistryError):
        await boot(deployment, strict=True)
