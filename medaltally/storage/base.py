"""
Abstract base class defining the database interface.

All database implementations must inherit from this class and implement
all abstract methods. This ensures consistent behavior across backends.

Records cross this boundary as plain dictionaries with snake_case keys;
the service layer turns them into pydantic models.
"""

from abc import ABC, abstractmethod
from typing import Optional, List, Dict, Any


class DatabaseInterface(ABC):
    """
    Abstract interface for medal tally storage.

    All methods must be implemented by concrete database classes.
    Methods should be thread-safe where applicable.
    """

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    @abstractmethod
    def initialize(self) -> None:
        """
        Initialize the database connection and schema.

        Called once when the database is first created.
        Should create tables if they don't exist and seed the score
        settings row with the configured defaults.
        Should be idempotent (safe to call multiple times).
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Close database connections and clean up resources."""
        pass

    @abstractmethod
    def health_check(self) -> bool:
        """
        Check if the database connection is healthy.

        Returns:
            True if database is accessible, False otherwise
        """
        pass

    @abstractmethod
    def optimize(self) -> None:
        """Run backend specific housekeeping (statistics, checkpoints)."""
        pass

    @abstractmethod
    def get_database_size(self) -> int:
        """Get database size in bytes (0 if unknown)."""
        pass

    # =========================================================================
    # SCORE SETTINGS
    # =========================================================================

    @abstractmethod
    def get_score_settings(self) -> Dict[str, Any]:
        """
        Get the singleton score settings record.

        Returns:
            Dict with gold_points, silver_points, bronze_points,
            non_winner_points and updated_at
        """
        pass

    @abstractmethod
    def save_score_settings(self, values: Dict[str, int]) -> Dict[str, Any]:
        """
        Merge the given point values into the settings record.

        Args:
            values: Subset of gold_points, silver_points, bronze_points,
                    non_winner_points

        Returns:
            The merged settings record
        """
        pass

    # =========================================================================
    # CATEGORIES
    # =========================================================================

    @abstractmethod
    def get_categories(self) -> List[Dict[str, Any]]:
        """Get all categories ordered by name."""
        pass

    @abstractmethod
    def get_category(self, category_id: int) -> Optional[Dict[str, Any]]:
        """Get a category by id, or None."""
        pass

    @abstractmethod
    def create_category(self, name: str) -> Dict[str, Any]:
        """
        Create a category.

        Raises:
            ConflictError: If a category with the same name exists
        """
        pass

    @abstractmethod
    def delete_category(self, category_id: int) -> bool:
        """
        Delete a category.

        Returns:
            False if the category does not exist

        Raises:
            ConflictError: If any event references the category
        """
        pass

    # =========================================================================
    # TEAMS
    # =========================================================================

    @abstractmethod
    def get_teams(self) -> List[Dict[str, Any]]:
        """Get all teams ordered by name, then id."""
        pass

    @abstractmethod
    def get_team(self, team_id: int) -> Optional[Dict[str, Any]]:
        """Get a team by id, or None."""
        pass

    @abstractmethod
    def create_team(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Create a team from name, icon and color."""
        pass

    @abstractmethod
    def update_team(self, team_id: int, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Apply changes to a team.

        Returns:
            The updated team, or None if it does not exist
        """
        pass

    @abstractmethod
    def delete_team(self, team_id: int) -> bool:
        """
        Delete a team.

        Returns:
            False if the team does not exist

        Raises:
            ConflictError: If any medal references the team
        """
        pass

    # =========================================================================
    # EVENTS
    # =========================================================================

    @abstractmethod
    def get_events(
        self,
        status: Optional[str] = None,
        category_id: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """
        Get events with optional filters.

        Ordered by event date (undated last), then name, then id.
        Each event dict includes the category name as 'category'.
        """
        pass

    @abstractmethod
    def get_event(self, event_id: int) -> Optional[Dict[str, Any]]:
        """Get an event by id (with 'category' name), or None."""
        pass

    @abstractmethod
    def create_event(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create an event with status PENDING.

        Raises:
            NotFoundError: If the category does not exist
        """
        pass

    @abstractmethod
    def update_event(self, event_id: int, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Apply changes (name, category_id, event_date, status) to an event.

        Returns:
            The updated event, or None if it does not exist

        Raises:
            NotFoundError: If a new category_id does not exist
        """
        pass

    @abstractmethod
    def delete_event(self, event_id: int) -> bool:
        """
        Delete an event.

        Returns:
            False if the event does not exist

        Raises:
            ConflictError: If any medal references the event
        """
        pass

    # =========================================================================
    # MEDAL LEDGER
    # =========================================================================

    @abstractmethod
    def get_medals(
        self,
        event_id: Optional[int] = None,
        team_id: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """Get medal records, optionally filtered, in insertion order."""
        pass

    @abstractmethod
    def get_medal(self, medal_id: int) -> Optional[Dict[str, Any]]:
        """Get a medal record by id, or None."""
        pass

    @abstractmethod
    def insert_medals(
        self,
        event_id: int,
        medals: List[Dict[str, Any]],
        complete_event: bool = False,
        replace_existing: bool = False
    ) -> List[Dict[str, Any]]:
        """
        Insert medal records for one event in a single transaction.

        Args:
            event_id: Event receiving the medals
            medals: Dicts with team_id, medal_type and points
            complete_event: Also move the event to COMPLETED
            replace_existing: Delete the event's current medals first

        Returns:
            Created medal records with id and created_at

        Raises:
            NotFoundError: If the event or any team does not exist
            ConflictError: If a medal breaks a ledger rule, or results are
                           submitted for a COMPLETED event without
                           replace_existing. Nothing is written.

        Behavior:
            - The ledger rules are checked against the stored medals and the
              earlier medals of the same batch while holding the write lock
            - All or nothing
        """
        pass

    @abstractmethod
    def delete_medal(self, medal_id: int) -> bool:
        """
        Delete a medal record.

        Returns:
            False if the medal does not exist
        """
        pass
