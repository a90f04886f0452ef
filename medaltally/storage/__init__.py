"""
Storage module for the medal tally service.

Provides a unified interface over the database backend:
- SQLite (local development, self-hosted)

Usage:
    from medaltally.storage import get_database

    db = get_database()  # Uses DB_TYPE env var
    teams = db.get_teams()
"""

from .base import DatabaseInterface
from .factory import get_database, reset_database
from .exceptions import (
    DatabaseError,
    StorageError,
    ConnectionError,
    ConfigurationError,
    SchemaError,
    QueryError
)

__all__ = [
    'DatabaseInterface',
    'get_database',
    'reset_database',
    'DatabaseError',
    'StorageError',
    'ConnectionError',
    'ConfigurationError',
    'SchemaError',
    'QueryError'
]
