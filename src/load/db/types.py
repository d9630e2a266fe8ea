"""Shared types and exceptions for the storage layer."""

from enum import Enum
from typing import Any


class DatabaseType(str, Enum):
    """Supported database types."""

    SQLITE = "sqlite"


class DatabaseError(Exception):
    """Base exception for database operations."""

    pass


class ConnectionError(DatabaseError):
    """Error connecting to database."""

    pass


class IntegrityError(DatabaseError):
    """Uniqueness or foreign-key constraint violation.

    Raised when two syncs race on the same (user, date) insight or the same
    remote life-log id.
    """

    pass


class SchemaError(DatabaseError):
    """Error with database schema."""

    pass


# Type alias for database rows
Row = dict[str, Any]
