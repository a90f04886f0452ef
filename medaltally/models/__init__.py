"""Data models for the medal tally service."""

from .team import Team, TeamCreate, TeamUpdate
from .event import (
    Category,
    CategoryCreate,
    Event,
    EventCreate,
    EventResult,
    EventStatus,
    EventUpdate,
    TeamRef,
)
from .medal import (
    EventMedalState,
    Medal,
    MedalCreate,
    MedalType,
    ResultSubmission,
    ScoreSettings,
    ScoreSettingsUpdate,
    Standing,
    SubmissionResult,
    find_medal_conflict,
)

__all__ = [
    "Team", "TeamCreate", "TeamUpdate",
    "Category", "CategoryCreate",
    "Event", "EventCreate", "EventUpdate", "EventStatus", "EventResult", "TeamRef",
    "Medal", "MedalCreate", "MedalType", "EventMedalState", "find_medal_conflict",
    "ScoreSettings", "ScoreSettingsUpdate", "Standing",
    "ResultSubmission", "SubmissionResult",
]
