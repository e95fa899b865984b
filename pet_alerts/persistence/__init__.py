"""Persistence layer: the preference store and the alert ledger.

Public API:
    # Database initialization and session management
    - init_database(database_url: str) -> None
    - get_session() -> ContextManager[Session]
    - close_database() -> None
    - get_engine() -> Engine

    # Repository classes
    - PreferenceRepository: preference reads, writes and the candidate query
    - ListingAlertRepository: (listing, user) notification ledger

    # Exceptions
    - PersistenceError, DatabaseConnectionError, RecordNotFoundError,
      DataIntegrityError, StoreUnavailable

Example usage:
    >>> init_database("sqlite:///./data/pet_alerts.db")
    >>> with get_session() as session:
    ...     repo = PreferenceRepository(session)
    ...     record = repo.get_by_user("user-1")
"""

from .database import close_database, get_engine, get_session, init_database
from .exceptions import (
    DatabaseConnectionError,
    DataIntegrityError,
    PersistenceError,
    RecordNotFoundError,
    StoreUnavailable,
)
from .repositories import ListingAlertRepository, PreferenceRepository
from .seeding import SeedReport, read_preference_file, seed_preferences

__all__ = [
    # Database functions
    "init_database",
    "get_session",
    "close_database",
    "get_engine",
    # Repositories
    "PreferenceRepository",
    "ListingAlertRepository",
    # Seeding
    "seed_preferences",
    "read_preference_file",
    "SeedReport",
    # Exceptions
    "PersistenceError",
    "DatabaseConnectionError",
    "RecordNotFoundError",
    "DataIntegrityError",
    "StoreUnavailable",
]
