"""FastAPI dependencies for dependency injection."""

from typing import Optional

from fastapi import Depends

from medaltally.services import (
    Aggregator,
    MedalLedger,
    ResultSubmissionService,
    RosterService,
    Services,
    SettingsService,
    build_services,
)
from medaltally.storage import get_database

_services: Optional[Services] = None


def get_services() -> Services:
    """
    Get the service container for the current database.

    Rebuilt whenever the database singleton changes (e.g. after
    reset_database() in tests).
    """
    global _services
    db = get_database()
    if _services is None or _services.db is not db:
        _services = build_services(db)
    return _services


def reset_services() -> None:
    """Drop the cached service container."""
    global _services
    _services = None


def get_settings_service(services: Services = Depends(get_services)) -> SettingsService:
    """Get score settings service dependency."""
    return services.settings


def get_roster(services: Services = Depends(get_services)) -> RosterService:
    """Get roster service dependency."""
    return services.roster


def get_ledger(services: Services = Depends(get_services)) -> MedalLedger:
    """Get medal ledger dependency."""
    return services.ledger


def get_aggregator(services: Services = Depends(get_services)) -> Aggregator:
    """Get aggregator dependency."""
    return services.aggregator


def get_submissions(services: Services = Depends(get_services)) -> ResultSubmissionService:
    """Get result submission service dependency."""
    return services.submissions
