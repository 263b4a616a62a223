"""Tests for the async database handle and driver error classification."""

import sqlite3

import pytest

from schemalift.db import (
    Database,
    DbErrorKind,
    classify_error,
    is_idempotent,
    quote_identifier,
    split_statements,
)
from schemalift.exceptions import DatabaseError


# ── Error classification ────────────────────────────────────────

@pytest.mark.asyncio
async def test_create_existing_table_is_already_exists(db):
    await db.execute("CREATE TABLE t (id INTEGER)")
    with pytest.raises(DatabaseError) as exc:
        await db.execute("CREATE TABLE t (id INTEGER)")
    assert exc.value.kind is DbErrorKind.ALREADY_EXISTS
    assert is_idempotent(exc.value)


@pytest.mark.asyncio
async def test_duplicate_column_is_already_exists(db):
    await db.execute("CREATE TABLE t (id INTEGER, name TEXT)")
    with pytest.raises(DatabaseError) as exc:
        await db.execute("ALTER TABLE t ADD COLUMN name TEXT")
    assert exc.value.kind is DbErrorKind.ALREADY_EXISTS


@pytest.mark.asyncio
async def test_unique_violation_is_duplicate(db):
    await db.execute("CREATE TABLE t (name TEXT UNIQUE)")
    await db.execute("INSERT INTO t (name) VALUES ('a')")
    with pytest.raises(DatabaseError) as exc:
        await db.execute("INSERT INTO t (name) VALUES ('a')")
    assert exc.value.kind is DbErrorKind.DUPLICATE


@pytest.mark.asyncio
async def test_missing_table_is_other(db):
    with pytest.raises(DatabaseError) as exc:
        await db.execute("SELECT * FROM nowhere")
    assert exc.value.kind is DbErrorKind.OTHER
    assert not is_idempotent(exc.value)


def test_classify_follows_cause_chain():
    try:
        try:
            raise sqlite3.OperationalError("table users already exists")
        except sqlite3.OperationalError as inner:
            raise RuntimeError("migration blew up") from inner
    except RuntimeError as outer:
        assert classify_error(outer) is DbErrorKind.ALREADY_EXISTS


def test_classify_unrelated_exception():
    assert classify_error(ValueError("nope")) is DbErrorKind.OTHER


# ── Transactions ────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_transaction_commits(db):
    await db.execute("CREATE TABLE t (id INTEGER)")
    async with db.transaction():
        await db.execute("INSERT INTO t VALUES (1)")
    assert await db.fetchall("SELECT id FROM t") == [(1,)]


@pytest.mark.asyncio
async def test_transaction_rolls_back_on_error(db):
    await db.execute("CREATE TABLE t (id INTEGER)")
    with pytest.raises(RuntimeError):
        async with db.transaction():
            await db.execute("INSERT INTO t VALUES (1)")
            raise RuntimeError("boom")
    assert await db.fetchall("SELECT id FROM t") == []
    assert not db.in_transaction


@pytest.mark.asyncio
async def test_nested_transaction_joins_outer(db):
    await db.execute("CREATE TABLE t (id INTEGER)")
    with pytest.raises(RuntimeError):
        async with db.transaction():
            async with db.transaction():
                await db.execute("INSERT INTO t VALUES (1)")
            raise RuntimeError("boom")
    assert await db.fetchone("SELECT COUNT(*) FROM t") == (0,)


# ── Namespaces ──────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_attach_and_detach(db, tmp_path):
    await db.attach("blog", tmp_path / "blog.db")
    assert "blog" in await db.namespaces()
    await db.execute('CREATE TABLE "blog".article (id INTEGER)')
    await db.detach("blog")
    assert "blog" not in await db.namespaces()


@pytest.mark.asyncio
async def test_attach_twice_is_duplicate(db, tmp_path):
    await db.attach("blog", tmp_path / "blog.db")
    with pytest.raises(DatabaseError) as exc:
        await db.attach("blog", tmp_path / "blog.db")
    assert exc.value.kind is DbErrorKind.DUPLICATE


@pytest.mark.asyncio
async def test_connection_required():
    database = Database(":memory:")
    with pytest.raises(DatabaseError, match="not connected"):
        await database.execute("SELECT 1")


# ── Helpers ─────────────────────────────────────────────────────

def test_quote_identifier():
    assert quote_identifier("ext_blog") == '"ext_blog"'
    with pytest.raises(ValueError):
        quote_identifier('bad"; DROP TABLE x; --')


def test_split_statements_handles_comments_and_literals():
    script = """
    -- header comment
    CREATE TABLE t (note TEXT);

    INSERT INTO t VALUES ('a;b');
    """
    assert split_statements(script) == [
        "CREATE TABLE t (note TEXT);",
        "INSERT INTO t VALUES ('a;b');",
    ]


def test_split_statements_keeps_trailing_statement():
    assert split_statements("SELECT 1") == ["SELECT 1"]
