"""
Domain exceptions for the medal tally service.

Every error raised by the service and storage layers derives from
MedalTallyError so the API layer can translate it in one place:
- ValidationError: missing or invalid input (client fixable)
- ConflictError: a uniqueness or state rule would be violated (client fixable)
- NotFoundError: a referenced category, team, event or medal does not exist
- StorageError: the persistence layer failed (see storage.exceptions)
"""

from typing import Any, Dict, Optional


class MedalTallyError(Exception):
    """Base exception carrying a message and structured details."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to a dictionary for API responses."""
        return {
            "error": type(self).__name__,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(MedalTallyError):
    """Invalid input, e.g. negative points or a team listed twice."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        details = dict(details or {})
        if field is not None:
            details.setdefault("field", field)
        super().__init__(message, details)
        self.field = field


class ConflictError(MedalTallyError):
    """A ledger invariant or state transition rule would be broken."""
    pass


class NotFoundError(MedalTallyError):
    """A referenced record does not exist."""

    def __init__(self, resource: str, resource_id: Any, details: Optional[Dict[str, Any]] = None):
        details = dict(details or {})
        details.setdefault("resource", resource)
        details.setdefault("id", resource_id)
        super().__init__(f"{resource} {resource_id} not found", details)
        self.resource = resource
        self.resource_id = resource_id
