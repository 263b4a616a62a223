"""Async database handle shared by every upgrade component.

Wraps a single aiosqlite connection in autocommit mode. Transactions are
explicit (``async with db.transaction()``), and every driver error leaves
this module as a DatabaseError carrying its DbErrorKind.
"""

from __future__ import annotations

import re
import sqlite3
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Iterable, Sequence

import aiosqlite

from schemalift.db.errors import DbErrorKind, classify_error
from schemalift.exceptions import DatabaseError

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def quote_identifier(name: str) -> str:
    """Quote a schema or table name. Only plain identifiers are accepted."""
    if not _IDENTIFIER_RE.match(name):
        raise ValueError(f"Invalid SQL identifier: {name!r}")
    return f'"{name}"'


def split_statements(script: str) -> list[str]:
    """Split a SQL script into complete statements.

    Uses sqlite3.complete_statement so that semicolons inside string
    literals and trigger bodies do not end a statement early.
    """
    statements: list[str] = []
    buffer = ""
    for line in script.splitlines(keepends=True):
        if not buffer and (not line.strip() or line.strip().startswith("--")):
            continue
        buffer += line
        if sqlite3.complete_statement(buffer):
            statements.append(buffer.strip())
            buffer = ""
    if buffer.strip():
        statements.append(buffer.strip())
    return statements


class Database:
    """One connection, used sequentially by the upgrade pipeline."""

    def __init__(self, path: str | Path) -> None:
        self._path = str(path)
        self._conn: aiosqlite.Connection | None = None

    @property
    def path(self) -> str:
        return self._path

    @property
    def connection(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise DatabaseError("Database is not connected", DbErrorKind.OTHER)
        return self._conn

    async def connect(self) -> Database:
        if self._conn is not None:
            return self
        if self._path != ":memory:":
            Path(self._path).parent.mkdir(parents=True, exist_ok=True)
        try:
            self._conn = await aiosqlite.connect(self._path, isolation_level=None)
        except sqlite3.Error as e:
            raise _wrap(e) from e
        return self

    async def close(self) -> None:
        if self._conn is not None:
            await self._conn.close()
            self._conn = None

    async def __aenter__(self) -> Database:
        return await self.connect()

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # ── Statements ───────────────────────────────────────────────────────────

    async def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        """Run one statement; returns the number of affected rows."""
        try:
            async with self.connection.execute(sql, params) as cursor:
                return cursor.rowcount
        except sqlite3.Error as e:
            raise _wrap(e) from e

    async def execute_statements(self, statements: Iterable[str]) -> None:
        for statement in statements:
            await self.execute(statement)

    async def fetchall(self, sql: str, params: Sequence[Any] = ()) -> list[tuple]:
        try:
            async with self.connection.execute(sql, params) as cursor:
                rows = await cursor.fetchall()
        except sqlite3.Error as e:
            raise _wrap(e) from e
        return [tuple(r) for r in rows]

    async def fetchone(self, sql: str, params: Sequence[Any] = ()) -> tuple | None:
        rows = await self.fetchall(sql, params)
        return rows[0] if rows else None

    @property
    def in_transaction(self) -> bool:
        return self._conn is not None and self._conn.in_transaction

    @asynccontextmanager
    async def transaction(self, immediate: bool = False) -> AsyncIterator[Database]:
        """Run the block in one transaction; nested calls join the outer one.

        ``immediate`` takes the write lock up front (``BEGIN IMMEDIATE``) so
        reads inside the block cannot go stale before the first write.
        """
        if self.in_transaction:
            yield self
            return
        await self.execute("BEGIN IMMEDIATE" if immediate else "BEGIN")
        try:
            yield self
        except BaseException:
            if self.in_transaction:
                await self.execute("ROLLBACK")
            raise
        else:
            await self.execute("COMMIT")

    # ── Namespaces ───────────────────────────────────────────────────────────

    async def namespaces(self) -> dict[str, str]:
        """Attached databases, name -> file path (``main`` is the core namespace)."""
        rows = await self.fetchall("PRAGMA database_list")
        return {row[1]: row[2] for row in rows}

    async def attach(self, name: str, file_path: str | Path) -> None:
        await self.execute(
            f"ATTACH DATABASE ? AS {quote_identifier(name)}", (str(file_path),)
        )

    async def detach(self, name: str) -> None:
        await self.execute(f"DETACH DATABASE {quote_identifier(name)}")


def _wrap(error: sqlite3.Error) -> DatabaseError:
    return DatabaseError(str(error), classify_error(error))
