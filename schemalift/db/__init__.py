"""Database access layer: one async connection plus error classification."""

from schemalift.db.connection import Database, quote_identifier, split_statements
from schemalift.db.errors import DbErrorKind, classify_error, is_idempotent

__all__ = [
    "Database",
    "DbErrorKind",
    "classify_error",
    "is_idempotent",
    "quote_identifier",
    "split_statements",
]
