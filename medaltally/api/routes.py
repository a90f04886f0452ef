"""API route definitions."""

from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from medaltally import __version__
from medaltally.api.dependencies import (
    get_aggregator,
    get_ledger,
    get_roster,
    get_services,
    get_settings_service,
    get_submissions,
)
from medaltally.models import (
    CategoryCreate,
    EventCreate,
    EventStatus,
    EventUpdate,
    MedalCreate,
    ResultSubmission,
    ScoreSettingsUpdate,
    TeamCreate,
    TeamUpdate,
)
from medaltally.services import (
    Aggregator,
    MedalLedger,
    ResultSubmissionService,
    RosterService,
    Services,
    SettingsService,
)

router = APIRouter()


def _dump(value: Any) -> Any:
    """Serialize models (or lists of models) with camelCase field names."""
    if isinstance(value, list):
        return [_dump(item) for item in value]
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    return value


def _json(value: Any, status_code: int = 200) -> JSONResponse:
    return JSONResponse(content=_dump(value), status_code=status_code)


# =============================================================================
# HEALTH
# =============================================================================

@router.get("/health")
async def health_check(services: Services = Depends(get_services)) -> JSONResponse:
    """Health check endpoint.

    Returns:
        Health status, 503 when the database is unreachable
    """
    healthy = services.db.health_check()
    return JSONResponse(
        status_code=200 if healthy else 503,
        content={
            "status": "ok" if healthy else "degraded",
            "version": __version__,
            "database": healthy,
            "database_size_mb": round(services.db.get_database_size() / (1024 * 1024), 2),
            "cache": services.cache.stats(),
        },
    )


# =============================================================================
# CATEGORIES
# =============================================================================

@router.get("/api/categories")
async def list_categories(roster: RosterService = Depends(get_roster)) -> JSONResponse:
    """List all categories ordered by name."""
    return _json(roster.list_categories())


@router.post("/api/categories")
async def create_category(
    payload: CategoryCreate,
    roster: RosterService = Depends(get_roster),
) -> JSONResponse:
    """Create a category. Names are unique."""
    return _json(roster.create_category(payload), status_code=201)


@router.get("/api/categories/{category_id}")
async def get_category(category_id: int, roster: RosterService = Depends(get_roster)) -> JSONResponse:
    """Get a single category."""
    return _json(roster.get_category(category_id))


@router.delete("/api/categories/{category_id}")
async def delete_category(
    category_id: int,
    roster: RosterService = Depends(get_roster),
) -> Response:
    """Delete a category that no event uses."""
    roster.delete_category(category_id)
    return Response(status_code=204)


# =============================================================================
# TEAMS
# =============================================================================

@router.get("/api/teams")
async def list_teams(roster: RosterService = Depends(get_roster)) -> JSONResponse:
    """List all teams ordered by name.

    Returns:
        List of teams with id, name, icon and color
    """
    return _json(roster.list_teams())


@router.post("/api/teams")
async def create_team(
    payload: TeamCreate,
    roster: RosterService = Depends(get_roster),
) -> JSONResponse:
    """Create a team."""
    return _json(roster.create_team(payload), status_code=201)


@router.get("/api/teams/{team_id}")
async def get_team(team_id: int, roster: RosterService = Depends(get_roster)) -> JSONResponse:
    """Get a single team."""
    return _json(roster.get_team(team_id))


@router.patch("/api/teams/{team_id}")
async def update_team(
    team_id: int,
    payload: TeamUpdate,
    roster: RosterService = Depends(get_roster),
) -> JSONResponse:
    """Rename or recolor a team."""
    return _json(roster.update_team(team_id, payload))


@router.delete("/api/teams/{team_id}")
async def delete_team(team_id: int, roster: RosterService = Depends(get_roster)) -> Response:
    """Delete a team that holds no medals."""
    roster.delete_team(team_id)
    return Response(status_code=204)


# =============================================================================
# EVENTS
# =============================================================================

@router.get("/api/events")
async def list_events(
    status: Optional[EventStatus] = Query(default=None, description="PENDING or COMPLETED"),
    category_id: Optional[int] = Query(default=None, alias="categoryId", gt=0),
    roster: RosterService = Depends(get_roster),
) -> JSONResponse:
    """List events, optionally filtered by status and category."""
    return _json(roster.list_events(status=status, category_id=category_id))


@router.post("/api/events")
async def create_event(
    payload: EventCreate,
    roster: RosterService = Depends(get_roster),
) -> JSONResponse:
    """Create a PENDING event in an existing category."""
    return _json(roster.create_event(payload), status_code=201)


@router.get("/api/events/results")
async def list_event_results(aggregator: Aggregator = Depends(get_aggregator)) -> JSONResponse:
    """Podium summary (gold/silver/bronze team) for every event."""
    return _json(aggregator.compute_event_results())


@router.get("/api/events/{event_id}")
async def get_event(event_id: int, roster: RosterService = Depends(get_roster)) -> JSONResponse:
    """Get a single event."""
    return _json(roster.get_event(event_id))


@router.get("/api/events/{event_id}/result")
async def get_event_result(
    event_id: int,
    aggregator: Aggregator = Depends(get_aggregator),
) -> JSONResponse:
    """Podium summary for one event. Empty winners when nothing is recorded."""
    return _json(aggregator.compute_event_result(event_id))


@router.api_route("/api/events/{event_id}", methods=["POST", "PATCH"])
async def update_event(
    event_id: int,
    payload: EventUpdate,
    roster: RosterService = Depends(get_roster),
) -> JSONResponse:
    """Update an event. A body of {"status": "COMPLETED"} closes it."""
    return _json(roster.update_event(event_id, payload))


@router.delete("/api/events/{event_id}")
async def delete_event(event_id: int, roster: RosterService = Depends(get_roster)) -> Response:
    """Delete an event that has no medals."""
    roster.delete_event(event_id)
    return Response(status_code=204)


@router.post("/api/events/{event_id}/results")
async def submit_event_results(
    event_id: int,
    payload: ResultSubmission,
    submissions: ResultSubmissionService = Depends(get_submissions),
) -> JSONResponse:
    """Record a whole event's results and mark it COMPLETED, atomically.

    Example body:
        {"goldTeamId": 1, "silverTeamId": 2, "bronzeTeamId": 3,
         "nonWinners": {"1": 2}, "noEntries": [4]}
    """
    return _json(submissions.submit_results(event_id, payload), status_code=201)


# =============================================================================
# MEDALS
# =============================================================================

@router.get("/api/medals")
async def list_medals(
    event_id: Optional[int] = Query(default=None, alias="eventId", gt=0),
    team_id: Optional[int] = Query(default=None, alias="teamId", gt=0),
    ledger: MedalLedger = Depends(get_ledger),
) -> JSONResponse:
    """List medal records, optionally filtered by event and/or team."""
    return _json(ledger.list_medals(event_id=event_id, team_id=team_id))


@router.post("/api/medals")
async def create_medal(
    payload: MedalCreate,
    ledger: MedalLedger = Depends(get_ledger),
) -> JSONResponse:
    """Record one medal. Points default to the current score settings."""
    medal = ledger.add_medal(
        payload.event_id,
        payload.team_id,
        payload.medal_type,
        points=payload.points,
    )
    return _json(medal, status_code=201)


@router.delete("/api/medals/{medal_id}")
async def delete_medal(medal_id: int, ledger: MedalLedger = Depends(get_ledger)) -> Response:
    """Delete a medal record."""
    ledger.delete_medal(medal_id)
    return Response(status_code=204)


# =============================================================================
# SCORE SETTINGS
# =============================================================================

@router.get("/api/score-settings")
async def get_score_settings(
    settings: SettingsService = Depends(get_settings_service),
) -> JSONResponse:
    """Current point values per medal kind."""
    return _json(settings.get_settings())


@router.api_route("/api/score-settings", methods=["PUT", "PATCH"])
async def update_score_settings(
    payload: ScoreSettingsUpdate,
    settings: SettingsService = Depends(get_settings_service),
) -> JSONResponse:
    """Update some or all point values. Recorded medals keep their points."""
    return _json(settings.update_settings(payload.model_dump(exclude_unset=True)))


# =============================================================================
# SCOREBOARD
# =============================================================================

@router.get("/api/scoreboard")
async def scoreboard(aggregator: Aggregator = Depends(get_aggregator)) -> JSONResponse:
    """Public scoreboard: ordered standings plus per-event podiums."""
    return JSONResponse(content={
        "standings": _dump(aggregator.compute_standings()),
        "events": _dump(aggregator.compute_event_results()),
    })
