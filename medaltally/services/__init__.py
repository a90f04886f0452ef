"""Services for the medal tally application."""

from dataclasses import dataclass
from typing import Optional

from ..storage import DatabaseInterface
from .aggregator import Aggregator
from .cache import CacheService
from .ledger import MedalLedger
from .notifications import LedgerNotifier
from .roster import RosterService
from .settings import SettingsService
from .submission import ResultSubmissionService


@dataclass
class Services:
    """All services bound to one database and one notifier."""

    db: DatabaseInterface
    notifier: LedgerNotifier
    cache: CacheService
    settings: SettingsService
    roster: RosterService
    ledger: MedalLedger
    aggregator: Aggregator
    submissions: ResultSubmissionService


def build_services(db: DatabaseInterface, cache_ttl: Optional[int] = None) -> Services:
    """Wire the services together over a database."""
    notifier = LedgerNotifier()
    cache = CacheService(ttl=cache_ttl)
    settings = SettingsService(db, notifier)
    roster = RosterService(db, notifier)
    ledger = MedalLedger(db, settings, notifier)
    return Services(
        db=db,
        notifier=notifier,
        cache=cache,
        settings=settings,
        roster=roster,
        ledger=ledger,
        aggregator=Aggregator(db, cache, notifier),
        submissions=ResultSubmissionService(roster, settings, ledger),
    )


__all__ = [
    "Services", "build_services",
    "Aggregator", "CacheService", "LedgerNotifier", "MedalLedger",
    "ResultSubmissionService", "RosterService", "SettingsService",
]
