"""
Admin workflow: submit a whole event's results in one call.

The submission is validated up front, priced with a single read of the score
settings, and written together with the COMPLETED status change in one
storage transaction. A rule violation on any row leaves the ledger exactly
as it was.
"""

import logging
from collections import Counter
from typing import Any, Dict, List

from .. import config
from ..exceptions import NotFoundError, ValidationError
from ..models import MedalType, ResultSubmission, ScoreSettings, SubmissionResult
from .ledger import MedalLedger
from .roster import RosterService
from .settings import SettingsService

logger = logging.getLogger(__name__)

PODIUM_FIELDS = {
    MedalType.GOLD: "goldTeamId",
    MedalType.SILVER: "silverTeamId",
    MedalType.BRONZE: "bronzeTeamId",
}


def validate_submission(submission: ResultSubmission) -> None:
    """
    Check a submission for internal contradictions.

    A team may hold at most one of gold, silver, bronze or no-entry. A
    no-entry team may not have non-winner units. A podium team may also
    have non-winner units.

    Raises:
        ValidationError: details["errors"] lists every problem found
    """
    errors: List[Dict[str, Any]] = []

    placed: Dict[int, str] = {}
    for medal_type, team_id in submission.podium():
        field = PODIUM_FIELDS[medal_type]
        if team_id in placed:
            errors.append({
                "field": field,
                "teamId": team_id,
                "message": f"team {team_id} is already {placed[team_id]}",
            })
        else:
            placed[team_id] = field

    for team_id, count in Counter(submission.no_entries).items():
        if count > 1:
            errors.append({
                "field": "noEntries",
                "teamId": team_id,
                "message": f"team {team_id} is listed {count} times",
            })

    for team_id in sorted(set(submission.no_entries)):
        if team_id <= 0:
            errors.append({"field": "noEntries", "teamId": team_id, "message": "invalid team id"})
        if team_id in placed:
            errors.append({
                "field": "noEntries",
                "teamId": team_id,
                "message": f"team {team_id} is already {placed[team_id]}",
            })
        if submission.non_winners.get(team_id, 0) > 0:
            errors.append({
                "field": "nonWinners",
                "teamId": team_id,
                "message": f"team {team_id} is marked no entry",
            })

    for team_id, count in sorted(submission.non_winners.items()):
        if team_id <= 0:
            errors.append({"field": "nonWinners", "teamId": team_id, "message": "invalid team id"})
        if count < 0:
            errors.append({
                "field": "nonWinners",
                "teamId": team_id,
                "message": "count must be a non-negative integer",
            })
        elif count > config.MAX_NON_WINNER_UNITS:
            errors.append({
                "field": "nonWinners",
                "teamId": team_id,
                "message": f"count must not exceed {config.MAX_NON_WINNER_UNITS}",
            })

    if errors:
        raise ValidationError(
            f"Invalid result submission ({len(errors)} problem(s))",
            details={"errors": errors}
        )


def build_medal_rows(submission: ResultSubmission, settings: ScoreSettings) -> List[Dict[str, Any]]:
    """
    Expand a submission into ledger rows priced from one settings snapshot.

    Order: GOLD, SILVER, BRONZE, then NON_WINNER units and NO_ENTRY marks,
    each by team id.
    """
    def row(team_id: int, medal_type: MedalType) -> Dict[str, Any]:
        return {
            "team_id": team_id,
            "medal_type": medal_type.value,
            "points": settings.points_for(medal_type),
        }

    rows = [row(team_id, medal_type) for medal_type, team_id in submission.podium()]
    for team_id, count in sorted(submission.non_winners.items()):
        rows.extend(row(team_id, MedalType.NON_WINNER) for _ in range(count))
    for team_id in sorted(set(submission.no_entries)):
        rows.append(row(team_id, MedalType.NO_ENTRY))
    return rows


class ResultSubmissionService:
    """Orchestrates result submission over the roster, settings and ledger."""

    def __init__(self, roster: RosterService, settings: SettingsService, ledger: MedalLedger):
        self.roster = roster
        self.settings = settings
        self.ledger = ledger

    def submit_results(self, event_id: int, submission: ResultSubmission) -> SubmissionResult:
        """
        Record an event's results and mark the event COMPLETED.

        Raises:
            NotFoundError: Unknown event or team(s)
            ValidationError: Contradictory submission
            ConflictError: A ledger rule would be broken, or the event is
                           already COMPLETED and replaceExisting is false.
                           Nothing is written.
        """
        self.roster.get_event(event_id)
        validate_submission(submission)

        known = {team.id for team in self.roster.list_teams()}
        missing = [team_id for team_id in submission.team_ids() if team_id not in known]
        if missing:
            raise NotFoundError("Team", missing[0], {"missing": missing})

        settings = self.settings.get_settings()
        rows = build_medal_rows(submission, settings)

        medals = self.ledger.record_batch(
            event_id,
            rows,
            complete_event=True,
            replace_existing=submission.replace_existing
        )
        event = self.roster.get_event(event_id)

        logger.info(
            "Results submitted for event %s: %d medal(s), %d pts total%s",
            event_id,
            len(medals),
            sum(m.points for m in medals),
            " (replaced previous results)" if submission.replace_existing else ""
        )
        return SubmissionResult(event=event, medals=medals, points_snapshot=settings)
