"""
Background scheduler for database maintenance.

Every job is an idempotent unit of work that can run on a schedule or once
on demand:
- health: database connectivity check (every MAINTENANCE_HEALTH_MINUTES)
- audit: replay the medal ledger against its rules, read-only (hourly)
- optimize: planner statistics and WAL checkpoint (daily)

Run with: python -m medaltally.maintenance.scheduler
"""

import argparse
import logging
import sys
import time
from typing import Callable, Dict, List, Optional

import schedule

from .. import config
from ..services import Services, build_services
from ..storage import StorageError, get_database

logger = logging.getLogger(__name__)


def check_health(services: Services) -> bool:
    """Log whether the database answers."""
    healthy = services.db.health_check()
    if healthy:
        logger.info("Database health check passed")
    else:
        logger.error("Database health check failed")
    return healthy


def audit_ledger(services: Services) -> List[Dict]:
    """Log any medal that breaks a ledger rule."""
    violations = services.ledger.audit()
    for violation in violations:
        logger.error(
            "Ledger violation: medal %s in event %s: %s",
            violation["medalId"], violation["eventId"], violation["reason"]
        )
    if not violations:
        logger.info("Ledger audit clean")
    return violations


def optimize_database(services: Services) -> None:
    """Run backend housekeeping and drop expired cache entries."""
    services.db.optimize()
    services.cache.expire()
    logger.info("Database optimized")


JOBS: Dict[str, Callable[[Services], object]] = {
    "health": check_health,
    "audit": audit_ledger,
    "optimize": optimize_database,
}


def run_job(name: str, services: Optional[Services] = None):
    """
    Run one job now.

    Storage errors are logged and swallowed so a failing run does not stop
    the scheduler loop; the next run retries from scratch.
    """
    if name not in JOBS:
        raise KeyError(f"Unknown job: {name}. Valid jobs: {', '.join(sorted(JOBS))}")
    services = services or build_services(get_database())
    try:
        return JOBS[name](services)
    except StorageError as e:
        logger.error("Job %s failed: %s", name, e)
        return None


def register_jobs(
    services: Services,
    scheduler: Optional[schedule.Scheduler] = None
) -> schedule.Scheduler:
    """Register every job on a scheduler (a new one by default)."""
    scheduler = scheduler or schedule.Scheduler()
    scheduler.every(config.MAINTENANCE_HEALTH_MINUTES).minutes.do(run_job, "health", services)
    scheduler.every().hour.do(run_job, "audit", services)
    scheduler.every().day.at("03:00").do(run_job, "optimize", services)
    return scheduler


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for scheduler."""
    parser = argparse.ArgumentParser(description="Medal tally maintenance jobs")
    parser.add_argument("--once", choices=sorted(JOBS), help="Run a single job and exit")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )

    services = build_services(get_database())

    if args.once:
        result = run_job(args.once, services)
        return 1 if result is False or (args.once == "audit" and result) else 0

    if not config.MAINTENANCE_ENABLED:
        logger.info("Maintenance disabled (MAINTENANCE_ENABLED=false)")
        return 0

    scheduler = register_jobs(services)
    logger.info("Scheduled %d maintenance job(s)", len(scheduler.get_jobs()))

    # Run the health check immediately on start
    run_job("health", services)

    try:
        while True:
            scheduler.run_pending()
            time.sleep(30)
    except KeyboardInterrupt:
        logger.info("Scheduler stopped")
    return 0


if __name__ == '__main__':
    sys.exit(main())
