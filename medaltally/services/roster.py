"""
Roster store: categories, teams and events.

Deletion policy: a category used by an event, or a team or event referenced
by a medal record, is never deleted. The storage layer checks references
inside the delete transaction and raises ConflictError.
"""

import logging
from typing import List, Optional, Union

from ..exceptions import ConflictError, NotFoundError
from ..models import (
    Category,
    CategoryCreate,
    Event,
    EventCreate,
    EventStatus,
    EventUpdate,
    Team,
    TeamCreate,
    TeamUpdate,
)
from ..storage import DatabaseInterface
from .notifications import LedgerNotifier

logger = logging.getLogger(__name__)

# Allowed status moves; setting the current status again is a no-op
STATUS_TRANSITIONS = {
    EventStatus.PENDING: {EventStatus.COMPLETED},
    EventStatus.COMPLETED: set(),
}


class RosterService:
    """CRUD over categories, teams and events."""

    def __init__(self, db: DatabaseInterface, notifier: Optional[LedgerNotifier] = None):
        self.db = db
        self.notifier = notifier

    def _changed(self, **info) -> None:
        if self.notifier:
            self.notifier.publish("roster", **info)

    # =========================================================================
    # CATEGORIES
    # =========================================================================

    def list_categories(self) -> List[Category]:
        return [Category(**row) for row in self.db.get_categories()]

    def get_category(self, category_id: int) -> Category:
        row = self.db.get_category(category_id)
        if row is None:
            raise NotFoundError("Category", category_id)
        return Category(**row)

    def create_category(self, payload: CategoryCreate) -> Category:
        category = Category(**self.db.create_category(payload.name))
        logger.info("Created category %s (%s)", category.id, category.name)
        self._changed(category_id=category.id)
        return category

    def delete_category(self, category_id: int) -> None:
        if not self.db.delete_category(category_id):
            raise NotFoundError("Category", category_id)
        logger.info("Deleted category %s", category_id)
        self._changed(category_id=category_id)

    # =========================================================================
    # TEAMS
    # =========================================================================

    def list_teams(self) -> List[Team]:
        return [Team(**row) for row in self.db.get_teams()]

    def get_team(self, team_id: int) -> Team:
        row = self.db.get_team(team_id)
        if row is None:
            raise NotFoundError("Team", team_id)
        return Team(**row)

    def create_team(self, payload: TeamCreate) -> Team:
        team = Team(**self.db.create_team(payload.model_dump()))
        logger.info("Created team %s (%s)", team.id, team.name)
        self._changed(team_id=team.id)
        return team

    def update_team(self, team_id: int, payload: TeamUpdate) -> Team:
        """Rename or recolor a team. Only fields present in the payload change."""
        changes = payload.model_dump(exclude_unset=True)
        if changes.get("name", "") is None:
            changes.pop("name")
        row = self.db.update_team(team_id, changes)
        if row is None:
            raise NotFoundError("Team", team_id)
        self._changed(team_id=team_id)
        return Team(**row)

    def delete_team(self, team_id: int) -> None:
        if not self.db.delete_team(team_id):
            raise NotFoundError("Team", team_id)
        logger.info("Deleted team %s", team_id)
        self._changed(team_id=team_id)

    # =========================================================================
    # EVENTS
    # =========================================================================

    def list_events(
        self,
        status: Optional[Union[EventStatus, str]] = None,
        category_id: Optional[int] = None
    ) -> List[Event]:
        status_value = EventStatus(status).value if status else None
        rows = self.db.get_events(status=status_value, category_id=category_id)
        return [Event(**row) for row in rows]

    def get_event(self, event_id: int) -> Event:
        row = self.db.get_event(event_id)
        if row is None:
            raise NotFoundError("Event", event_id)
        return Event(**row)

    def create_event(self, payload: EventCreate) -> Event:
        """Create an event in an existing category. Status starts PENDING."""
        event = Event(**self.db.create_event(payload.model_dump()))
        logger.info("Created event %s (%s)", event.id, event.name)
        self._changed(event_id=event.id)
        return event

    def update_event(self, event_id: int, payload: EventUpdate) -> Event:
        """
        Update an event's details and/or status.

        Raises:
            NotFoundError: Unknown event or category
            ConflictError: Status change not allowed (e.g. COMPLETED -> PENDING)
        """
        current = self.get_event(event_id)
        changes = payload.model_dump(exclude_unset=True)
        for key in ("name", "category_id", "status"):
            if key in changes and changes[key] is None:
                changes.pop(key)

        if "status" in changes:
            target = EventStatus(changes["status"])
            if target == current.status:
                changes.pop("status")
            elif target not in STATUS_TRANSITIONS[current.status]:
                raise ConflictError(
                    f"Event {event_id} cannot move from {current.status.value} to {target.value}",
                    {"eventId": event_id, "from": current.status.value, "to": target.value}
                )
            else:
                changes["status"] = target.value

        row = self.db.update_event(event_id, changes)
        if row is None:
            raise NotFoundError("Event", event_id)
        event = Event(**row)
        if changes:
            logger.info("Updated event %s: %s", event_id, sorted(changes))
            self._changed(event_id=event_id)
        return event

    def delete_event(self, event_id: int) -> None:
        if not self.db.delete_event(event_id):
            raise NotFoundError("Event", event_id)
        logger.info("Deleted event %s", event_id)
        self._changed(event_id=event_id)
