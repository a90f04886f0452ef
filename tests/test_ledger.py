"""Tests for the medal ledger service."""

import pytest

from medaltally.exceptions import ConflictError, NotFoundError, ValidationError
from medaltally.models import EventMedalState, MedalType, find_medal_conflict
from medaltally.services.ledger import parse_medal_type, snapshot_points


class TestSnapshotPoints:
    """Tests for point resolution."""

    def test_uses_settings_when_points_missing(self, services):
        settings = services.settings.get_settings()
        assert snapshot_points(MedalType.GOLD, None, settings) == 10
        assert snapshot_points(MedalType.NO_ENTRY, None, settings) == 0

    def test_explicit_points_kept(self):
        assert snapshot_points(MedalType.SILVER, 3, None) == 3

    @pytest.mark.parametrize("points", [-1, 1.5, True, "7"])
    def test_invalid_points(self, points):
        with pytest.raises(ValidationError) as exc_info:
            snapshot_points(MedalType.GOLD, points, None)
        assert exc_info.value.details["field"] == "points"

    def test_no_entry_must_be_zero(self):
        with pytest.raises(ValidationError):
            snapshot_points(MedalType.NO_ENTRY, 2, None)


class TestParseMedalType:
    """Medal kinds are matched exactly."""

    def test_exact_match(self):
        assert parse_medal_type("NON_WINNER") is MedalType.NON_WINNER

    @pytest.mark.parametrize("value", ["gold", "Gold", "PLATINUM", ""])
    def test_unknown_kind(self, value):
        with pytest.raises(ValidationError) as exc_info:
            parse_medal_type(value)
        assert exc_info.value.details["field"] == "medalType"


class TestMedalLedger:
    """Tests for add, delete, list and audit."""

    def test_add_medal_snapshots_current_setting(self, services, roster_ids):
        medal = services.ledger.add_medal(roster_ids["sprint"], roster_ids["alpha"], "GOLD")
        assert medal.points == 10
        assert medal.medal_type == MedalType.GOLD

        services.settings.update_settings({"goldPoints": 12})
        assert services.ledger.get_medal(medal.id).points == 10

    def test_add_medal_with_explicit_points(self, services, roster_ids):
        medal = services.ledger.add_medal(
            roster_ids["sprint"], roster_ids["alpha"], MedalType.BRONZE, points=2
        )
        assert medal.points == 2

    def test_second_gold_rejected(self, services, roster_ids):
        ledger = services.ledger
        ledger.add_medal(roster_ids["sprint"], roster_ids["alpha"], "GOLD")
        with pytest.raises(ConflictError):
            ledger.add_medal(roster_ids["sprint"], roster_ids["bravo"], "GOLD")
        assert len(ledger.list_medals(event_id=roster_ids["sprint"])) == 1

    def test_gold_in_different_events(self, services, roster_ids):
        ledger = services.ledger
        ledger.add_medal(roster_ids["sprint"], roster_ids["alpha"], "GOLD")
        ledger.add_medal(roster_ids["relay"], roster_ids["bravo"], "GOLD")
        assert len(ledger.list_medals()) == 2

    def test_non_winner_repeats(self, services, roster_ids):
        ledger = services.ledger
        for _ in range(3):
            ledger.add_medal(roster_ids["sprint"], roster_ids["alpha"], "NON_WINNER")
        assert len(ledger.list_medals(team_id=roster_ids["alpha"])) == 3

    def test_podium_team_may_hold_non_winner(self, services, roster_ids):
        ledger = services.ledger
        ledger.add_medal(roster_ids["sprint"], roster_ids["alpha"], "SILVER")
        ledger.add_medal(roster_ids["sprint"], roster_ids["alpha"], "NON_WINNER")
        assert len(ledger.list_medals(event_id=roster_ids["sprint"])) == 2

    def test_no_entry_excludes_other_kinds(self, services, roster_ids):
        ledger = services.ledger
        ledger.add_medal(roster_ids["sprint"], roster_ids["alpha"], "NO_ENTRY")
        with pytest.raises(ConflictError):
            ledger.add_medal(roster_ids["sprint"], roster_ids["alpha"], "NON_WINNER")
        with pytest.raises(ConflictError):
            ledger.add_medal(roster_ids["sprint"], roster_ids["alpha"], "NO_ENTRY")

    def test_no_entry_after_medal_rejected(self, services, roster_ids):
        ledger = services.ledger
        ledger.add_medal(roster_ids["sprint"], roster_ids["alpha"], "BRONZE")
        with pytest.raises(ConflictError):
            ledger.add_medal(roster_ids["sprint"], roster_ids["alpha"], "NO_ENTRY")

    def test_no_entry_per_team(self, services, roster_ids):
        """Several teams can be marked no entry in the same event."""
        ledger = services.ledger
        ledger.add_medal(roster_ids["sprint"], roster_ids["alpha"], "NO_ENTRY")
        ledger.add_medal(roster_ids["sprint"], roster_ids["bravo"], "NO_ENTRY")
        assert all(m.points == 0 for m in ledger.list_medals())

    def test_unknown_references(self, services, roster_ids):
        with pytest.raises(NotFoundError):
            services.ledger.add_medal(999, roster_ids["alpha"], "GOLD")
        with pytest.raises(NotFoundError):
            services.ledger.add_medal(roster_ids["sprint"], 999, "GOLD")

    def test_delete_medal_frees_slot(self, services, roster_ids):
        ledger = services.ledger
        gold = ledger.add_medal(roster_ids["sprint"], roster_ids["alpha"], "GOLD")
        removed = ledger.delete_medal(gold.id)
        assert removed.id == gold.id
        ledger.add_medal(roster_ids["sprint"], roster_ids["bravo"], "GOLD")

    def test_delete_missing_medal(self, services):
        with pytest.raises(NotFoundError):
            services.ledger.delete_medal(12345)

    def test_writes_publish_medals_topic(self, services, roster_ids):
        seen = []
        services.notifier.subscribe(lambda topic, info: seen.append((topic, info)), topics=["medals"])
        medal = services.ledger.add_medal(roster_ids["sprint"], roster_ids["alpha"], "GOLD")
        services.ledger.delete_medal(medal.id)
        assert [topic for topic, _ in seen] == ["medals", "medals"]
        assert seen[0][1]["team_ids"] == [roster_ids["alpha"]]

    def test_failed_write_publishes_nothing(self, services, roster_ids):
        seen = []
        services.notifier.subscribe(lambda topic, info: seen.append(topic), topics=["medals"])
        with pytest.raises(NotFoundError):
            services.ledger.add_medal(roster_ids["sprint"], 999, "GOLD")
        assert seen == []


class TestAudit:
    """Tests for the read-only ledger audit."""

    def test_clean_ledger(self, services, roster_ids):
        services.ledger.add_medal(roster_ids["sprint"], roster_ids["alpha"], "GOLD")
        services.ledger.add_medal(roster_ids["sprint"], roster_ids["bravo"], "NO_ENTRY")
        assert services.ledger.audit() == []

    def test_flags_rows_written_around_the_service(self, services, roster_ids):
        services.ledger.add_medal(roster_ids["sprint"], roster_ids["alpha"], "NO_ENTRY")
        with services.db.transaction() as conn:
            conn.execute(
                "INSERT INTO medals (event_id, team_id, medal_type, points, created_at) "
                "VALUES (?, ?, 'NON_WINNER', 1, '2025-01-01T00:00:00+00:00')",
                (roster_ids["sprint"], roster_ids["alpha"])
            )
            conn.execute(
                "INSERT INTO medals (event_id, team_id, medal_type, points, created_at) "
                "VALUES (?, ?, 'NO_ENTRY', 4, '2025-01-01T00:00:00+00:00')",
                (roster_ids["sprint"], roster_ids["bravo"])
            )

        violations = services.ledger.audit()
        assert len(violations) == 2
        assert {v["eventId"] for v in violations} == {roster_ids["sprint"]}
        assert any("4 points" in v["reason"] for v in violations)


class TestEventMedalState:
    """Per-event rule checks."""

    def test_podium_taken_once(self):
        state = EventMedalState([(1, MedalType.GOLD)])
        assert state.conflict(2, MedalType.GOLD) == "GOLD already awarded to team 1"
        assert state.conflict(2, MedalType.SILVER) is None

    def test_no_entry_rules(self):
        state = EventMedalState([(1, MedalType.NO_ENTRY), (2, MedalType.BRONZE)])
        assert state.conflict(1, MedalType.NON_WINNER) == "team 1 is marked NO_ENTRY"
        assert state.conflict(1, MedalType.NO_ENTRY) == "team 1 is already marked NO_ENTRY"
        assert state.conflict(2, MedalType.NO_ENTRY) == "team 2 already holds BRONZE"
        assert state.conflict(3, MedalType.NO_ENTRY) is None

    def test_add_updates_state(self):
        state = EventMedalState()
        for _ in range(5000):
            assert state.conflict(1, MedalType.NON_WINNER) is None
            state.add(1, MedalType.NON_WINNER)
        assert state.conflict(1, MedalType.SILVER) is None
        assert state.conflict(1, MedalType.NO_ENTRY) == "team 1 already holds NON_WINNER"

    def test_one_off_check(self):
        existing = [(1, MedalType.SILVER), (1, MedalType.NON_WINNER)]
        assert find_medal_conflict(existing, 1, "NO_ENTRY") == "team 1 already holds SILVER"
        assert find_medal_conflict(existing, 2, "SILVER") == "SILVER already awarded to team 1"
