"""Persistence layer exceptions.

All persistence exceptions inherit from PersistenceError so callers such as
the matching engine can catch every data-store failure with one clause.
"""


class PersistenceError(Exception):
    """Base exception for all persistence layer errors."""

    pass


class DatabaseConnectionError(PersistenceError):
    """Raised when database connection or initialization fails.

    Examples:
    - Invalid database URL format
    - Database file not accessible
    - Database not initialized before use
    """

    pass


class RecordNotFoundError(PersistenceError):
    """Raised when a listing or requirement expected to exist is missing.

    Optional lookups return None instead of raising this.
    """

    pass


class DataIntegrityError(PersistenceError):
    """Raised on constraint violations (e.g. duplicate listing id)."""

    pass


class UnsupportedFilterError(PersistenceError):
    """Raised when a match filter names an unknown collection or field."""

    pass
