"""Tests for whole-event result submission."""

from unittest.mock import patch

import pytest

from medaltally.exceptions import ConflictError, NotFoundError, ValidationError
from medaltally import config
from medaltally.models import EventStatus, MedalType, ResultSubmission
from medaltally.services.submission import build_medal_rows, validate_submission


class TestValidateSubmission:
    """Internal consistency checks, before any storage access."""

    def test_valid(self):
        validate_submission(ResultSubmission(
            gold_team_id=1, silver_team_id=2, bronze_team_id=3,
            non_winners={1: 2, 4: 1}, no_entries=[5]
        ))

    def test_team_on_two_podium_places(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_submission(ResultSubmission(gold_team_id=1, silver_team_id=1))
        errors = exc_info.value.details["errors"]
        assert errors == [{
            "field": "silverTeamId", "teamId": 1, "message": "team 1 is already goldTeamId"
        }]

    def test_no_entry_conflicts(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_submission(ResultSubmission(
                bronze_team_id=3, non_winners={4: 1}, no_entries=[3, 4, 4]
            ))
        fields = sorted(e["field"] for e in exc_info.value.details["errors"])
        assert fields == ["noEntries", "noEntries", "nonWinners"]

    def test_negative_count(self):
        with pytest.raises(ValidationError):
            validate_submission(ResultSubmission(non_winners={2: -1}))

    def test_zero_count_allowed_with_no_entry(self):
        validate_submission(ResultSubmission(non_winners={2: 0}, no_entries=[2]))

    def test_count_above_limit(self):
        with patch.object(config, "MAX_NON_WINNER_UNITS", 5):
            validate_submission(ResultSubmission(non_winners={2: 5}))
            with pytest.raises(ValidationError) as exc_info:
                validate_submission(ResultSubmission(non_winners={2: 6}))
        assert exc_info.value.details["errors"][0]["message"] == "count must not exceed 5"

    def test_zero_counts_reference_no_team(self):
        submission = ResultSubmission(gold_team_id=1, non_winners={7: 0, 8: 2})
        assert submission.team_ids() == [1, 8]


class TestBuildMedalRows:
    """Expansion of a submission into ledger rows."""

    def test_order_and_points(self, services):
        settings = services.settings.get_settings()
        rows = build_medal_rows(ResultSubmission(
            silver_team_id=2, gold_team_id=1,
            non_winners={3: 2, 1: 1}, no_entries=[4]
        ), settings)
        assert [(r["team_id"], r["medal_type"], r["points"]) for r in rows] == [
            (1, "GOLD", 10),
            (2, "SILVER", 7),
            (1, "NON_WINNER", 1),
            (3, "NON_WINNER", 1),
            (3, "NON_WINNER", 1),
            (4, "NO_ENTRY", 0),
        ]


class TestSubmitResults:
    """End-to-end submission through the services."""

    def submit(self, services, event_id, **fields):
        return services.submissions.submit_results(event_id, ResultSubmission(**fields))

    def test_full_podium_with_non_winners(self, services, roster_ids):
        """Gold A, silver B, bronze C and two non-winner units for A."""
        a, b, c = roster_ids["alpha"], roster_ids["bravo"], roster_ids["charlie"]
        result = self.submit(
            services, roster_ids["sprint"],
            gold_team_id=a, silver_team_id=b, bronze_team_id=c, non_winners={a: 2}
        )

        assert result.event.status == EventStatus.COMPLETED
        assert [(m.team_id, m.medal_type, m.points) for m in result.medals] == [
            (a, MedalType.GOLD, 10),
            (b, MedalType.SILVER, 7),
            (c, MedalType.BRONZE, 5),
            (a, MedalType.NON_WINNER, 1),
            (a, MedalType.NON_WINNER, 1),
        ]
        assert result.points_snapshot.gold_points == 10

        totals = {s.team_name: s.total_points for s in services.aggregator.compute_standings()}
        assert totals == {"Alpha": 12, "Bravo": 7, "Charlie": 5, "Delta": 0}

    def test_settings_change_keeps_recorded_points(self, services, roster_ids):
        a, b, c = roster_ids["alpha"], roster_ids["bravo"], roster_ids["charlie"]
        self.submit(
            services, roster_ids["sprint"],
            gold_team_id=a, silver_team_id=b, bronze_team_id=c, non_winners={a: 2}
        )
        services.settings.update_settings({"goldPoints": 15})

        standings = services.aggregator.compute_standings()
        assert standings[0].team_name == "Alpha"
        assert standings[0].total_points == 12

        # New submissions use the new value
        self.submit(services, roster_ids["relay"], gold_team_id=b)
        totals = {s.team_name: s.total_points for s in services.aggregator.compute_standings()}
        assert totals["Bravo"] == 22

    def test_empty_submission_completes_event(self, services, roster_ids):
        result = self.submit(services, roster_ids["freestyle"])
        assert result.medals == []
        assert result.event.is_completed

    def test_unknown_event(self, services, roster_ids):
        with pytest.raises(NotFoundError):
            self.submit(services, 999, gold_team_id=roster_ids["alpha"])

    def test_unknown_team_writes_nothing(self, services, roster_ids):
        with pytest.raises(NotFoundError) as exc_info:
            self.submit(
                services, roster_ids["sprint"],
                gold_team_id=roster_ids["alpha"], no_entries=[998, 999]
            )
        assert exc_info.value.details["missing"] == [998, 999]
        assert services.ledger.list_medals() == []
        assert not services.roster.get_event(roster_ids["sprint"]).is_completed

    def test_zero_count_for_unknown_team(self, services, roster_ids):
        result = self.submit(
            services, roster_ids["sprint"],
            gold_team_id=roster_ids["alpha"], non_winners={999: 0}
        )
        assert [m.team_id for m in result.medals] == [roster_ids["alpha"]]

    def test_large_batch(self, services, roster_ids):
        """Several teams at the unit limit are written in one submission."""
        limit = config.MAX_NON_WINNER_UNITS
        result = self.submit(
            services, roster_ids["sprint"],
            gold_team_id=roster_ids["alpha"],
            non_winners={roster_ids["bravo"]: limit, roster_ids["charlie"]: limit},
            no_entries=[roster_ids["delta"]]
        )

        assert len(result.medals) == 2 * limit + 2
        totals = {s.team_name: s.non_winner for s in services.aggregator.compute_standings()}
        assert totals["Bravo"] == totals["Charlie"] == limit

    def test_conflict_with_existing_medal_rolls_back(self, services, roster_ids):
        """A gold recorded earlier blocks the submission; nothing else is written."""
        services.ledger.add_medal(roster_ids["sprint"], roster_ids["delta"], "GOLD")
        with pytest.raises(ConflictError):
            self.submit(
                services, roster_ids["sprint"],
                silver_team_id=roster_ids["alpha"], gold_team_id=roster_ids["bravo"]
            )
        medals = services.ledger.list_medals(event_id=roster_ids["sprint"])
        assert [m.team_id for m in medals] == [roster_ids["delta"]]
        assert not services.roster.get_event(roster_ids["sprint"]).is_completed

    def test_resubmit_requires_replace(self, services, roster_ids):
        event_id = roster_ids["sprint"]
        self.submit(services, event_id, gold_team_id=roster_ids["alpha"])
        with pytest.raises(ConflictError):
            self.submit(services, event_id, gold_team_id=roster_ids["bravo"])

        result = self.submit(
            services, event_id, gold_team_id=roster_ids["bravo"], replace_existing=True
        )
        assert [m.team_id for m in result.medals] == [roster_ids["bravo"]]
        assert services.ledger.list_medals(event_id=event_id) == result.medals

    def test_submission_clears_cached_standings(self, services, roster_ids):
        services.aggregator.compute_standings()
        self.submit(services, roster_ids["sprint"], gold_team_id=roster_ids["delta"])
        assert services.aggregator.compute_standings()[0].team_name == "Delta"
