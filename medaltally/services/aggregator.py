"""
Aggregator: standings and event results derived from the medal ledger.

Nothing here is stored. The pure functions recompute from the roster and
the ledger; the Aggregator class fetches the inputs and keeps the output in
a TTL cache that is cleared on every ledger or roster write notification.
"""

import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Mapping, Optional

from ..exceptions import NotFoundError
from ..models import Event, EventResult, Medal, MedalType, Standing, Team, TeamRef
from ..storage import DatabaseInterface
from .cache import CacheService
from .notifications import LedgerNotifier

logger = logging.getLogger(__name__)

COUNTED_KINDS = {
    MedalType.GOLD: "gold",
    MedalType.SILVER: "silver",
    MedalType.BRONZE: "bronze",
    MedalType.NON_WINNER: "non_winner",
}


def compute_standings(teams: Iterable[Team], medals: Iterable[Medal]) -> List[Standing]:
    """
    Sum medal points per team.

    Every team is listed, including teams without medals. Order is total
    points descending, then gold, silver and bronze counts descending, then
    name and id. Equal totals share a rank (1, 1, 3).
    """
    teams = list(teams)
    tallies: Dict[int, Dict[str, int]] = {
        team.id: defaultdict(int) for team in teams
    }

    for medal in medals:
        tally = tallies.get(medal.team_id)
        if tally is None:
            logger.warning("Medal %s references unknown team %s", medal.id, medal.team_id)
            continue
        tally["total_points"] += medal.points
        kind = COUNTED_KINDS.get(medal.medal_type)
        if kind:
            tally[kind] += 1

    def sort_key(team: Team):
        tally = tallies[team.id]
        return (
            -tally["total_points"],
            -tally["gold"],
            -tally["silver"],
            -tally["bronze"],
            team.name,
            team.id,
        )

    standings: List[Standing] = []
    previous_total: Optional[int] = None
    rank = 0
    for position, team in enumerate(sorted(teams, key=sort_key), start=1):
        tally = tallies[team.id]
        if tally["total_points"] != previous_total:
            rank = position
            previous_total = tally["total_points"]
        standings.append(Standing(
            rank=rank,
            team_id=team.id,
            team_name=team.name,
            icon=team.icon,
            color=team.color,
            total_points=tally["total_points"],
            gold=tally["gold"],
            silver=tally["silver"],
            bronze=tally["bronze"],
            non_winner=tally["non_winner"],
        ))
    return standings


def compute_event_result(
    event: Event,
    category_name: Optional[str],
    teams: Mapping[int, Team],
    medals: Iterable[Medal]
) -> EventResult:
    """
    Summarize an event's podium.

    Missing podium places (including events with no medals at all) are
    None rather than an error.
    """
    winners: Dict[MedalType, TeamRef] = {}
    for medal in medals:
        if medal.event_id != event.id:
            continue
        if medal.medal_type in (MedalType.GOLD, MedalType.SILVER, MedalType.BRONZE):
            team = teams.get(medal.team_id)
            if team is not None:
                winners[medal.medal_type] = TeamRef(id=team.id, name=team.name)

    return EventResult(
        id=event.id,
        name=event.name,
        category=category_name,
        category_id=event.category_id,
        event_date=event.event_date,
        status=event.status,
        gold_team=winners.get(MedalType.GOLD),
        silver_team=winners.get(MedalType.SILVER),
        bronze_team=winners.get(MedalType.BRONZE),
    )


class Aggregator:
    """Read side of the scoreboard, with cached derived views."""

    def __init__(
        self,
        db: DatabaseInterface,
        cache: Optional[CacheService] = None,
        notifier: Optional[LedgerNotifier] = None
    ):
        self.db = db
        self.cache = cache
        if cache is not None and notifier is not None:
            notifier.subscribe(cache.invalidate, topics=("medals", "roster"))

    def _teams(self) -> Dict[int, Team]:
        return {row["id"]: Team(**row) for row in self.db.get_teams()}

    def compute_standings(self) -> List[Standing]:
        """Current standings for every team."""
        if self.cache is not None:
            cached = self.cache.get("standings", cache_type="standings")
            if cached is not None:
                return list(cached)

        teams = self._teams()
        medals = [Medal(**row) for row in self.db.get_medals()]
        standings = compute_standings(teams.values(), medals)

        if self.cache is not None:
            self.cache.set("standings", standings, cache_type="standings")
        return list(standings)

    def compute_event_result(self, event_id: int) -> EventResult:
        """
        Podium summary for one event.

        Raises:
            NotFoundError: If the event does not exist
        """
        key = f"event:{event_id}"
        if self.cache is not None:
            cached = self.cache.get(key, cache_type="results")
            if cached is not None:
                return cached

        row = self.db.get_event(event_id)
        if row is None:
            raise NotFoundError("Event", event_id)
        medals = [Medal(**m) for m in self.db.get_medals(event_id=event_id)]
        result = compute_event_result(Event(**row), row.get("category"), self._teams(), medals)

        if self.cache is not None:
            self.cache.set(key, result, cache_type="results")
        return result

    def compute_event_results(self) -> List[EventResult]:
        """Podium summaries for all events, in event listing order."""
        if self.cache is not None:
            cached = self.cache.get("all", cache_type="results")
            if cached is not None:
                return list(cached)

        teams = self._teams()
        medals_by_event: Dict[int, List[Medal]] = defaultdict(list)
        for row in self.db.get_medals():
            medal = Medal(**row)
            medals_by_event[medal.event_id].append(medal)

        results = [
            compute_event_result(Event(**row), row.get("category"), teams, medals_by_event[row["id"]])
            for row in self.db.get_events()
        ]

        if self.cache is not None:
            self.cache.set("all", results, cache_type="results")
        return list(results)
