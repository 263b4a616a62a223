"""Tests for locating, loading and running per-version upgrade scripts."""

import pytest

from schemalift.exceptions import UpgradeScriptError
from schemalift.upgrade import UpgradeContext, UpgradeScriptRunner

CLASS_SCRIPT = '''
from schemalift.upgrade import BaseUpgradeScript


class Upgrade(BaseUpgradeScript):
    version = "{version}"

    async def execute(self, context):
        context.services["calls"].append(("{layout}", context.version))
'''


@pytest.fixture
def scripts_dir(tmp_path):
    return tmp_path / "scripts"


def _context(db, version, calls):
    return UpgradeContext(db=db, version=version, services={"calls": calls})


def test_directory_layout_wins_over_file(scripts_dir, write_script):
    write_script(scripts_dir, "1.2.0", "", layout="file")
    write_script(scripts_dir, "1.2.0", "", layout="directory")

    path, layout = UpgradeScriptRunner(scripts_dir).script_path("1.2.0")
    assert layout == "directory"
    assert path.name == "index.py"


def test_version_tags(scripts_dir, write_script):
    write_script(scripts_dir, "1.1.0", "", layout="file")
    write_script(scripts_dir, "1.3.0", "", layout="directory")
    (scripts_dir / "helpers.py").write_text("")
    (scripts_dir / "1.4.0").mkdir()  # no index.py

    assert UpgradeScriptRunner(scripts_dir).version_tags() == {"1.1.0", "1.3.0"}


def test_missing_scripts_dir(tmp_path):
    runner = UpgradeScriptRunner(tmp_path / "nope")
    assert runner.version_tags() == set()
    assert not runner.has_script("1.0.0")


@pytest.mark.asyncio
@pytest.mark.parametrize("layout", ["directory", "file"])
async def test_execute_class_script(db, scripts_dir, write_script, layout):
    write_script(scripts_dir, "1.2.0", CLASS_SCRIPT.format(version="1.2.0", layout=layout), layout)
    calls = []

    ran = await UpgradeScriptRunner(scripts_dir).execute("1.2.0", _context(db, "1.2.0", calls))

    assert ran
    assert calls == [(layout, "1.2.0")]


@pytest.mark.asyncio
async def test_execute_plain_object_export(db, scripts_dir, write_script):
    body = (
        "class _Upgrade:\n"
        "    def execute(self, context):\n"
        "        context.services['calls'].append('sync')\n\n"
        "Upgrade = _Upgrade()\n"
    )
    write_script(scripts_dir, "1.0.0", body)
    calls = []
    assert await UpgradeScriptRunner(scripts_dir).execute("1.0.0", _context(db, "1.0.0", calls))
    assert calls == ["sync"]


@pytest.mark.asyncio
async def test_no_script_is_not_an_error(db, scripts_dir):
    assert not await UpgradeScriptRunner(scripts_dir).execute("9.9.9", _context(db, "9.9.9", []))


@pytest.mark.asyncio
async def test_script_without_export_counts_as_none(db, scripts_dir, write_script):
    write_script(scripts_dir, "1.0.0", "HELPER = 1\n")
    runner = UpgradeScriptRunner(scripts_dir)
    assert runner.load("1.0.0") is None
    assert not await runner.execute("1.0.0", _context(db, "1.0.0", []))


def test_import_failure_raises(scripts_dir, write_script):
    write_script(scripts_dir, "1.0.0", "raise RuntimeError('bad import')\n")
    with pytest.raises(UpgradeScriptError, match="Cannot import"):
        UpgradeScriptRunner(scripts_dir).load("1.0.0")


@pytest.mark.asyncio
async def test_script_errors_propagate_unchanged(db, scripts_dir, write_script):
    body = (
        "from schemalift.upgrade import BaseUpgradeScript\n\n"
        "class Broken(BaseUpgradeScript):\n"
        "    async def execute(self, context):\n"
        "        raise LookupError('missing admin user')\n"
    )
    write_script(scripts_dir, "1.0.0", body)
    with pytest.raises(LookupError, match="missing admin user"):
        await UpgradeScriptRunner(scripts_dir).execute("1.0.0", _context(db, "1.0.0", []))


def test_context_service_lookup(db):
    context = UpgradeContext(db=db, scope="blog", services={"mailer": object()})
    assert context.service("mailer") is context.services["mailer"]
    with pytest.raises(KeyError, match="no service 'cache'"):
        context.service("cache")

    extended = context.with_services(cache="c")
    assert extended.service("cache") == "c"
    assert "cache" not in context.services
