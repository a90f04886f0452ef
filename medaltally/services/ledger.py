"""
Medal ledger: the append (and delete) log of medal assignments.

Each record snapshots its point value when it is written, so changing the
score settings later never alters past results.
"""

import logging
from collections import defaultdict
from typing import Any, Dict, List, Optional, Union

from ..exceptions import NotFoundError, ValidationError
from ..models import Medal, MedalType, ScoreSettings
from ..models.medal import NO_ENTRY_POINTS, EventMedalState
from ..storage import DatabaseInterface
from .notifications import LedgerNotifier
from .settings import SettingsService

logger = logging.getLogger(__name__)


def snapshot_points(
    medal_type: MedalType,
    points: Optional[int],
    settings: Optional[ScoreSettings]
) -> int:
    """
    Resolve the points stored with a medal.

    Explicit points must be a non-negative integer, and NO_ENTRY is always 0.
    Without explicit points the settings value for the kind is used.
    """
    if points is None:
        return settings.points_for(medal_type)
    if isinstance(points, bool) or not isinstance(points, int) or points < 0:
        raise ValidationError("points must be a non-negative integer", field="points",
                              details={"value": points})
    if medal_type == MedalType.NO_ENTRY and points != NO_ENTRY_POINTS:
        raise ValidationError("NO_ENTRY medals are worth 0 points", field="points",
                              details={"value": points})
    return points


def parse_medal_type(value: Union[MedalType, str]) -> MedalType:
    """Exact, case-sensitive medal kind lookup."""
    if isinstance(value, MedalType):
        return value
    try:
        return MedalType(value)
    except ValueError:
        raise ValidationError(
            f"Unknown medal type: {value!r}",
            field="medalType",
            details={"allowed": [m.value for m in MedalType]}
        ) from None


class MedalLedger:
    """Adds, deletes and lists medal records."""

    def __init__(
        self,
        db: DatabaseInterface,
        settings: SettingsService,
        notifier: Optional[LedgerNotifier] = None
    ):
        self.db = db
        self.settings = settings
        self.notifier = notifier

    def _changed(self, **info: Any) -> None:
        if self.notifier:
            self.notifier.publish("medals", **info)

    def add_medal(
        self,
        event_id: int,
        team_id: int,
        medal_type: Union[MedalType, str],
        points: Optional[int] = None
    ) -> Medal:
        """
        Record one medal.

        Args:
            event_id: Event the medal belongs to
            team_id: Team receiving the medal
            medal_type: Medal kind (exact string or MedalType)
            points: Explicit snapshot; the current setting when None

        Raises:
            ValidationError: Unknown medal kind or invalid points
            NotFoundError: Unknown event or team
            ConflictError: A ledger rule would be broken
        """
        medal_type = parse_medal_type(medal_type)
        settings = self.settings.get_settings() if points is None else None
        value = snapshot_points(medal_type, points, settings)

        rows = self.db.insert_medals(event_id, [
            {'team_id': team_id, 'medal_type': medal_type.value, 'points': value}
        ])
        medal = Medal(**rows[0])
        logger.info(
            "Medal %s: event %s team %s %s (%d pts)",
            medal.id, event_id, team_id, medal_type.value, value
        )
        self._changed(event_id=event_id, team_ids=[team_id])
        return medal

    def record_batch(
        self,
        event_id: int,
        medals: List[Dict[str, Any]],
        complete_event: bool = False,
        replace_existing: bool = False
    ) -> List[Medal]:
        """
        Write several medals for one event in a single transaction.

        Points must already be resolved on each row. Nothing is written if
        any row fails.
        """
        rows = self.db.insert_medals(
            event_id,
            medals,
            complete_event=complete_event,
            replace_existing=replace_existing
        )
        self._changed(event_id=event_id, team_ids=sorted({m['team_id'] for m in medals}))
        return [Medal(**row) for row in rows]

    def delete_medal(self, medal_id: int) -> Medal:
        """
        Remove a medal record.

        Returns:
            The removed record

        Raises:
            NotFoundError: If the medal does not exist
        """
        medal = self.get_medal(medal_id)
        if not self.db.delete_medal(medal_id):
            raise NotFoundError("Medal", medal_id)
        logger.info(
            "Deleted medal %s (event %s team %s %s, %d pts)",
            medal.id, medal.event_id, medal.team_id, medal.medal_type.value, medal.points
        )
        self._changed(event_id=medal.event_id, team_ids=[medal.team_id])
        return medal

    def get_medal(self, medal_id: int) -> Medal:
        row = self.db.get_medal(medal_id)
        if row is None:
            raise NotFoundError("Medal", medal_id)
        return Medal(**row)

    def list_medals(
        self,
        event_id: Optional[int] = None,
        team_id: Optional[int] = None
    ) -> List[Medal]:
        """List medals in insertion order, optionally filtered."""
        return [Medal(**row) for row in self.db.get_medals(event_id=event_id, team_id=team_id)]

    def audit(self) -> List[Dict[str, Any]]:
        """
        Replay every event's medals against the ledger rules.

        Read-only. Returns one entry per offending medal, which should only
        happen if rows were written around this service.
        """
        by_event: Dict[int, EventMedalState] = defaultdict(EventMedalState)
        violations: List[Dict[str, Any]] = []

        for medal in self.list_medals():
            if medal.medal_type == MedalType.NO_ENTRY and medal.points != NO_ENTRY_POINTS:
                violations.append({
                    "medalId": medal.id,
                    "eventId": medal.event_id,
                    "reason": f"NO_ENTRY medal carries {medal.points} points",
                })
            state = by_event[medal.event_id]
            reason = state.conflict(medal.team_id, medal.medal_type)
            if reason:
                violations.append({"medalId": medal.id, "eventId": medal.event_id, "reason": reason})
            state.add(medal.team_id, medal.medal_type)

        return violations
