"""Persistence layer for listings, requirements, and profile state.

Public API:
    # Database initialization and session management
    - init_database(database_url: str) -> None
    - get_session() -> ContextManager[Session]
    - close_database() -> None

    # Data store used by the matching engine
    - SqlDataStore: runs MatchFilter queries

    # Repository classes
    - ListingRepository, RequirementRepository, UserRepository
    - ProfileStateRepository: key-value entries per browser profile

    # Exceptions
    - PersistenceError and subclasses

Example usage:
    >>> from app.persistence import init_database, SqlDataStore
    >>> from app.matching import MatchingEngine
    >>>
    >>> init_database("sqlite:///./data/marketplace.db")
    >>> engine = MatchingEngine(SqlDataStore())
"""

from .database import close_database, get_session, init_database
from .exceptions import (
    DatabaseConnectionError,
    DataIntegrityError,
    PersistenceError,
    RecordNotFoundError,
    UnsupportedFilterError,
)
from .repositories import (
    ListingRepository,
    ProfileStateRepository,
    RequirementRepository,
    UserRepository,
)
from .store import SqlDataStore

__all__ = [
    # Database functions
    "init_database",
    "get_session",
    "close_database",
    # Data store
    "SqlDataStore",
    # Repositories
    "ListingRepository",
    "RequirementRepository",
    "UserRepository",
    "ProfileStateRepository",
    # Exceptions
    "PersistenceError",
    "DatabaseConnectionError",
    "RecordNotFoundError",
    "DataIntegrityError",
    "UnsupportedFilterError",
]
