"""Medal, score settings, standing and submission data models."""

from collections import defaultdict
from datetime import datetime
from enum import Enum
from typing import Dict, Iterable, List, Optional, Set, Tuple
from pydantic import BaseModel, Field, StrictInt

from .event import Event


class MedalType(str, Enum):
    """Medal kinds, declared in display rank order."""

    GOLD = "GOLD"
    SILVER = "SILVER"
    BRONZE = "BRONZE"
    NON_WINNER = "NON_WINNER"
    NO_ENTRY = "NO_ENTRY"


PODIUM = (MedalType.GOLD, MedalType.SILVER, MedalType.BRONZE)

# Kinds that may exist at most once per event
UNIQUE_PER_EVENT = frozenset(PODIUM)

NO_ENTRY_POINTS = 0


class EventMedalState:
    """
    Medal kinds already recorded for one event, indexed for rule checks.

    Rules:
        - GOLD, SILVER and BRONZE are awarded at most once per event
        - a team is marked NO_ENTRY at most once per event
        - a NO_ENTRY team holds no other medal kind in the same event,
          and a team holding any other kind cannot be NO_ENTRY
        - NON_WINNER may repeat for the same team

    Checks and additions are constant time, so validating a batch is linear
    in its size.
    """

    def __init__(self, existing: Iterable[Tuple[int, MedalType]] = ()):
        self._podium: Dict[MedalType, int] = {}
        self._held: Dict[int, Set[MedalType]] = defaultdict(set)
        for team_id, medal_type in existing:
            self.add(team_id, medal_type)

    def add(self, team_id: int, medal_type: MedalType) -> None:
        medal_type = MedalType(medal_type)
        if medal_type in UNIQUE_PER_EVENT:
            self._podium.setdefault(medal_type, team_id)
        self._held[team_id].add(medal_type)

    def conflict(self, team_id: int, medal_type: MedalType) -> Optional[str]:
        """
        Check a candidate medal against the recorded ones.

        Returns:
            A human readable reason if the candidate breaks a ledger rule,
            otherwise None.
        """
        medal_type = MedalType(medal_type)
        if medal_type in self._podium:
            return f"{medal_type.value} already awarded to team {self._podium[medal_type]}"
        held = self._held.get(team_id)
        if not held:
            return None
        if medal_type == MedalType.NO_ENTRY:
            if MedalType.NO_ENTRY in held:
                return f"team {team_id} is already marked NO_ENTRY"
            first = next(kind for kind in MedalType if kind in held)
            return f"team {team_id} already holds {first.value}"
        if MedalType.NO_ENTRY in held:
            return f"team {team_id} is marked NO_ENTRY"
        return None


def find_medal_conflict(
    existing: Iterable[Tuple[int, MedalType]],
    team_id: int,
    medal_type: MedalType
) -> Optional[str]:
    """One-off check of a candidate medal against an event's (team_id, medal_type) pairs."""
    return EventMedalState(existing).conflict(team_id, medal_type)


class Medal(BaseModel):
    """A recorded medal with its points snapshot."""

    id: int
    event_id: int = Field(..., alias="eventId")
    team_id: int = Field(..., alias="teamId")
    medal_type: MedalType = Field(..., alias="medalType")
    points: int
    created_at: datetime = Field(..., alias="createdAt")

    class Config:
        """Pydantic configuration."""

        populate_by_name = True


class MedalCreate(BaseModel):
    """
    Payload for recording a single medal.

    When points is omitted the current score setting for the medal kind
    is snapshotted at insert time.
    """

    event_id: int = Field(..., alias="eventId", gt=0)
    team_id: int = Field(..., alias="teamId", gt=0)
    medal_type: MedalType = Field(..., alias="medalType")
    points: Optional[StrictInt] = Field(default=None, ge=0)

    class Config:
        """Pydantic configuration."""

        populate_by_name = True


class ScoreSettings(BaseModel):
    """Point values per medal kind. NO_ENTRY is always worth 0."""

    gold_points: int = Field(..., alias="goldPoints", ge=0)
    silver_points: int = Field(..., alias="silverPoints", ge=0)
    bronze_points: int = Field(..., alias="bronzePoints", ge=0)
    non_winner_points: int = Field(..., alias="nonWinnerPoints", ge=0)
    no_entry_points: int = Field(default=NO_ENTRY_POINTS, alias="noEntryPoints")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")

    class Config:
        """Pydantic configuration."""

        populate_by_name = True

    def points_for(self, medal_type: MedalType) -> int:
        """Resolve the point value of a medal kind."""
        return {
            MedalType.GOLD: self.gold_points,
            MedalType.SILVER: self.silver_points,
            MedalType.BRONZE: self.bronze_points,
            MedalType.NON_WINNER: self.non_winner_points,
            MedalType.NO_ENTRY: NO_ENTRY_POINTS,
        }[MedalType(medal_type)]


class ScoreSettingsUpdate(BaseModel):
    """Partial update of the configurable point values."""

    gold_points: Optional[StrictInt] = Field(default=None, alias="goldPoints", ge=0)
    silver_points: Optional[StrictInt] = Field(default=None, alias="silverPoints", ge=0)
    bronze_points: Optional[StrictInt] = Field(default=None, alias="bronzePoints", ge=0)
    non_winner_points: Optional[StrictInt] = Field(default=None, alias="nonWinnerPoints", ge=0)

    class Config:
        """Pydantic configuration."""

        populate_by_name = True
        extra = "forbid"


class Standing(BaseModel):
    """A team's aggregated position on the scoreboard."""

    rank: int
    team_id: int = Field(..., alias="teamId")
    team_name: str = Field(..., alias="teamName")
    icon: Optional[str] = None
    color: Optional[str] = None
    total_points: int = Field(default=0, alias="totalPoints")
    gold: int = 0
    silver: int = 0
    bronze: int = 0
    non_winner: int = Field(default=0, alias="nonWinner")

    class Config:
        """Pydantic configuration."""

        populate_by_name = True


class ResultSubmission(BaseModel):
    """
    A whole event's results, submitted in one call.

    Podium fields are optional; omitting one means nobody gets that rank.
    nonWinners maps team id to the number of non-winning participation
    units, each recorded as its own NON_WINNER medal.
    """

    gold_team_id: Optional[int] = Field(default=None, alias="goldTeamId", gt=0)
    silver_team_id: Optional[int] = Field(default=None, alias="silverTeamId", gt=0)
    bronze_team_id: Optional[int] = Field(default=None, alias="bronzeTeamId", gt=0)
    non_winners: Dict[int, StrictInt] = Field(default_factory=dict, alias="nonWinners")
    no_entries: List[int] = Field(default_factory=list, alias="noEntries")
    replace_existing: bool = Field(default=False, alias="replaceExisting")

    class Config:
        """Pydantic configuration."""

        populate_by_name = True

    def podium(self) -> List[Tuple[MedalType, int]]:
        """Assigned podium places as (medal_type, team_id) pairs."""
        places = zip(PODIUM, (self.gold_team_id, self.silver_team_id, self.bronze_team_id))
        return [(medal_type, team_id) for medal_type, team_id in places if team_id is not None]

    def team_ids(self) -> List[int]:
        """Every team the submission writes a medal for, sorted."""
        ids = {team_id for _, team_id in self.podium()}
        ids.update(team_id for team_id, count in self.non_winners.items() if count > 0)
        ids.update(self.no_entries)
        return sorted(ids)


class SubmissionResult(BaseModel):
    """Outcome of a result submission."""

    event: Event
    medals: List[Medal]
    points_snapshot: ScoreSettings = Field(..., alias="pointsSnapshot")

    class Config:
        """Pydantic configuration."""

        populate_by_name = True
