"""Tests for migration file discovery and range selection."""

from pathlib import Path

import pytest

from schemalift.migrations.catalog import MigrationCatalog, parse_migration_filename


def test_parse_migration_filename():
    unit = parse_migration_filename(Path("1762769127629-1.2.0-add-extension-identifier.sql"))
    assert unit is not None
    assert unit.sequence == 1762769127629
    assert unit.version == "1.2.0"
    assert unit.description == "add-extension-identifier"
    assert unit.kind == "sql"


def test_parse_prerelease_version():
    unit = parse_migration_filename(Path("5-2.0.0-beta.1-init-tables.py"))
    assert unit is not None
    assert unit.version == "2.0.0-beta.1"
    assert unit.description == "init-tables"


def test_parse_rejects_non_migrations():
    for name in ["README.md", "__init__.py", ".hidden.sql", "abc-1.0.0-x.sql",
                 "1-1.0-x.sql", "1-1.0.0-x.txt"]:
        assert parse_migration_filename(Path(name)) is None, name


def test_units_sorted_by_sequence(tmp_path, write_migration):
    write_migration(tmp_path, 300, "1.1.0", "third", "SELECT 1;")
    write_migration(tmp_path, 100, "1.2.0", "first", "SELECT 1;")
    write_migration(tmp_path, 200, "1.0.0", "second", "SELECT 1;")
    (tmp_path / "notes.txt").write_text("ignored")

    names = [u.description for u in MigrationCatalog(tmp_path).units()]
    assert names == ["first", "second", "third"]


def test_missing_directory_is_empty(tmp_path):
    catalog = MigrationCatalog(tmp_path / "missing")
    assert catalog.units() == []
    assert catalog.version_tags() == set()


def test_select_half_open_range(tmp_path, write_migration):
    write_migration(tmp_path, 1, "1.0.0", "base", "SELECT 1;")
    write_migration(tmp_path, 2, "1.1.0", "a", "SELECT 1;")
    write_migration(tmp_path, 3, "1.2.0", "b", "SELECT 1;")
    write_migration(tmp_path, 4, "1.3.0", "c", "SELECT 1;")
    catalog = MigrationCatalog(tmp_path)

    selected = [u.version for u in catalog.select("1.0.0", "1.2.0")]
    assert selected == ["1.1.0", "1.2.0"]

    everything = [u.version for u in catalog.select(None, "1.2.0")]
    assert everything == ["1.0.0", "1.1.0", "1.2.0"]


def test_version_tags(tmp_path, write_migration):
    write_migration(tmp_path, 1, "1.1.0", "a", "SELECT 1;")
    write_migration(tmp_path, 2, "1.1.0", "b", "SELECT 1;")
    write_migration(tmp_path, 3, "1.3.0", "c", "SELECT 1;")
    assert MigrationCatalog(tmp_path).version_tags() == {"1.1.0", "1.3.0"}


@pytest.mark.parametrize("name,version,description", [
    ("1-1.2.0-pre-fill-defaults.sql", "1.2.0", "pre-fill-defaults"),
    ("2-1.2.0-rc-cleanup.sql", "1.2.0", "rc-cleanup"),
    ("3-2.0.0-canary.1-dev-tools.py", "2.0.0-canary.1", "dev-tools"),
    ("4-2.0.0-rc.2-beta-flag.sql", "2.0.0-rc.2", "beta-flag"),
])
def test_description_prefix_never_becomes_prerelease(name, version, description):
    unit = parse_migration_filename(Path(name))
    assert unit is not None
    assert (unit.version, unit.description) == (version, description)
