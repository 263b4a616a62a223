"""Migration ledger — the durable record of every migration unit executed.

One row per unit name. Rows are only ever inserted: never updated, never
deleted. The UNIQUE name constraint is what makes concurrent runners safe.
"""

from __future__ import annotations

import logging

from schemalift.config import CORE_NAMESPACE
from schemalift.db import Database, DbErrorKind, quote_identifier
from schemalift.exceptions import DatabaseError
from schemalift.types import LedgerEntry, MigrationUnit, utcnow

_logger = logging.getLogger(__name__)

LEDGER_TABLE = "migrations_history"


class MigrationLedger:
    """Append-only ledger table living in one schema namespace."""

    def __init__(self, db: Database, namespace: str = CORE_NAMESPACE) -> None:
        self._db = db
        self.namespace = namespace
        self._table = f"{quote_identifier(namespace)}.{LEDGER_TABLE}"

    async def ensure_table(self) -> None:
        """Create the ledger table if it does not exist yet."""
        await self._db.execute(
            f"""
            CREATE TABLE IF NOT EXISTS {self._table} (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL UNIQUE,
                version TEXT NOT NULL,
                sequence INTEGER NOT NULL,
                executed_at TEXT NOT NULL
            )
            """
        )

    async def is_executed(self, name: str) -> bool:
        row = await self._db.fetchone(
            f"SELECT 1 FROM {self._table} WHERE name = ?", (name,)
        )
        return row is not None

    async def record(self, unit: MigrationUnit) -> bool:
        """Insert the ledger row for ``unit``.

        Returns False if another runner recorded it first.
        """
        try:
            await self._db.execute(
                f"INSERT INTO {self._table} (name, version, sequence, executed_at) "
                "VALUES (?, ?, ?, ?)",
                (unit.name, unit.version, unit.sequence, utcnow().isoformat()),
            )
        except DatabaseError as e:
            if e.kind is DbErrorKind.DUPLICATE:
                _logger.debug("Ledger entry for %s already present", unit.name)
                return False
            raise
        return True

    async def entries(self) -> list[LedgerEntry]:
        rows = await self._db.fetchall(
            f"SELECT id, name, version, sequence, executed_at FROM {self._table} "
            "ORDER BY id"
        )
        return [
            LedgerEntry(
                id=row[0],
                name=row[1],
                version=row[2],
                sequence=row[3],
                executed_at=row[4],
            )
            for row in rows
        ]

    async def names(self) -> set[str]:
        rows = await self._db.fetchall(f"SELECT name FROM {self._table}")
        return {row[0] for row in rows}
