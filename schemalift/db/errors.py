"""Driver error classification.

SQLite reports "object already exists" as a generic SQLITE_ERROR with a
message, and uniqueness violations as constraint errors with extended codes.
Both are mapped here, once, to a small enumeration the rest of the system
switches on.
"""

from __future__ import annotations

import sqlite3
from enum import Enum


class DbErrorKind(str, Enum):
    ALREADY_EXISTS = "already_exists"  # table, index, column, trigger ...
    DUPLICATE = "duplicate"  # unique key or attached name already taken
    OTHER = "other"


_UNIQUE_ERROR_NAMES = {"SQLITE_CONSTRAINT_UNIQUE", "SQLITE_CONSTRAINT_PRIMARYKEY"}

_ALREADY_EXISTS_MARKERS = ("already exists", "duplicate column name")
_DUPLICATE_MARKERS = ("unique constraint failed", "is already in use")


def _classify_sqlite(exc: sqlite3.Error) -> DbErrorKind:
    message = str(exc).lower()
    if isinstance(exc, sqlite3.IntegrityError):
        if getattr(exc, "sqlite_errorname", "") in _UNIQUE_ERROR_NAMES:
            return DbErrorKind.DUPLICATE
    if any(marker in message for marker in _ALREADY_EXISTS_MARKERS):
        return DbErrorKind.ALREADY_EXISTS
    if any(marker in message for marker in _DUPLICATE_MARKERS):
        return DbErrorKind.DUPLICATE
    return DbErrorKind.OTHER


def classify_error(exc: BaseException) -> DbErrorKind:
    """Classify an exception raised while talking to the database.

    Follows the ``__cause__`` chain so that errors re-raised by migration
    code keep the classification of the driver error underneath.
    """
    from schemalift.exceptions import DatabaseError

    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if isinstance(current, DatabaseError):
            return current.kind
        if isinstance(current, sqlite3.Error):
            return _classify_sqlite(current)
        current = current.__cause__
    return DbErrorKind.OTHER


def is_idempotent(exc: BaseException) -> bool:
    """True for errors whose effect is indistinguishable from earlier success."""
    return classify_error(exc) in (DbErrorKind.ALREADY_EXISTS, DbErrorKind.DUPLICATE)
