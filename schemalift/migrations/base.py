"""Base migration classes for schemalift migration units.

A ``.py`` migration unit exposes either a class with an ``up(db)`` method
(preferably a BaseMigration subclass) or a module-level ``up(db)`` function.
``up`` may be a coroutine function or a plain function.
"""

from __future__ import annotations

import inspect
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Protocol

if TYPE_CHECKING:
    from schemalift.db import Database


class Migration(Protocol):
    def up(self, db: Database) -> Awaitable[None] | None: ...


class BaseMigration(ABC):
    """Base class for class-based migration units."""

    description: str = ""

    @abstractmethod
    async def up(self, db: Database) -> None:
        """Apply the migration. Runs inside a transaction."""


class FunctionMigration:
    """Adapts a module-level ``up`` function to the Migration protocol."""

    def __init__(self, func: Callable[..., Any]) -> None:
        self._func = func

    def up(self, db: Database) -> Awaitable[None] | None:
        return self._func(db)


class SqlMigration:
    """A migration that is a plain list of SQL statements."""

    def __init__(self, statements: list[str]) -> None:
        self.statements = statements

    async def up(self, db: Database) -> None:
        await db.execute_statements(self.statements)


async def maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value
