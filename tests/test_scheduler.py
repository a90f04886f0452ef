"""Tests for the maintenance scheduler."""

from unittest.mock import patch

import pytest
import schedule

from medaltally.maintenance import scheduler
from medaltally.storage.exceptions import QueryError


class TestRunJob:
    """Single job runs."""

    def test_health(self, services):
        assert scheduler.run_job("health", services) is True

    def test_health_failure(self, services):
        with patch.object(services.db, "health_check", return_value=False):
            assert scheduler.run_job("health", services) is False

    def test_audit_clean(self, services, roster_ids):
        services.ledger.add_medal(roster_ids["sprint"], roster_ids["alpha"], "GOLD")
        assert scheduler.run_job("audit", services) == []

    def test_optimize(self, services):
        services.cache.set("standings", [])
        with patch.object(services.cache, "expire") as expire:
            scheduler.run_job("optimize", services)
        expire.assert_called_once()

    def test_jobs_are_repeatable(self, services):
        for _ in range(2):
            scheduler.run_job("optimize", services)
            assert scheduler.run_job("audit", services) == []

    def test_storage_error_is_logged(self, services, caplog):
        with patch.object(services.db, "optimize", side_effect=QueryError("database is locked")):
            assert scheduler.run_job("optimize", services) is None
        assert "database is locked" in caplog.text

    def test_unknown_job(self, services):
        with pytest.raises(KeyError):
            scheduler.run_job("vacuum", services)


class TestRegisterJobs:
    """Schedule registration."""

    def test_registers_three_jobs(self, services):
        jobs = scheduler.register_jobs(services, schedule.Scheduler()).get_jobs()

        assert len(jobs) == 3
        assert {job.job_func.args[0] for job in jobs} == {"health", "audit", "optimize"}

    def test_health_interval_from_config(self, services):
        with patch.object(scheduler.config, "MAINTENANCE_HEALTH_MINUTES", 5):
            jobs = scheduler.register_jobs(services).get_jobs()
        health = next(job for job in jobs if job.job_func.args[0] == "health")
        assert health.interval == 5
        assert health.unit == "minutes"


class TestMain:
    """Command line entry point."""

    def test_once_health(self, db_fixture):
        assert scheduler.main(["--once", "health"]) == 0

    def test_disabled(self, db_fixture):
        with patch.object(scheduler.config, "MAINTENANCE_ENABLED", False):
            assert scheduler.main([]) == 0
