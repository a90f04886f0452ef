"""
Custom exceptions for the storage layer.

These exceptions provide clear error categories for database operations:
- DatabaseError: Base exception for all database errors (StorageError)
- ConnectionError: Connection failures
- ConfigurationError: Missing or invalid configuration
- SchemaError: Schema initialization issues
- QueryError: Query execution failures
"""

from ..exceptions import MedalTallyError


class DatabaseError(MedalTallyError):
    """Base exception for all database errors."""
    pass


# Name used by the service layer and the API error envelope
StorageError = DatabaseError


class ConnectionError(DatabaseError):
    """Failed to connect to database."""
    pass


class ConfigurationError(DatabaseError):
    """Missing or invalid database configuration."""
    pass


class SchemaError(DatabaseError):
    """Error initializing the schema."""
    pass


class QueryError(DatabaseError):
    """Error executing a query."""
    pass
