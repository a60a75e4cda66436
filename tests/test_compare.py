"""Tests for friend comparison: stats, leaderboards and head-to-heads."""

import json
from datetime import date, datetime, timezone

import pytest

from strava_dash.compare import (
    AthleteStats,
    athlete_name,
    athlete_stats,
    head_to_head,
    leaderboard,
    load_athletes,
)
from strava_dash.parser import ActivityRecord
from strava_dash.periods import DateRange, compute_range

MARCH = compute_range("monthly", date(2024, 3, 15))


def _record(local: str, activity_id: str, type_: str = "Run", **kwargs) -> ActivityRecord:
    start_local = datetime.fromisoformat(local)
    return ActivityRecord(
        id=activity_id,
        name=f"Activity {activity_id}",
        type=type_,
        sport_type=None,
        start_date=start_local.replace(tzinfo=timezone.utc),
        start_date_local=start_local,
        **kwargs,
    )


@pytest.fixture
def athletes():
    return {
        "alex": [
            _record("2024-02-28T07:00:00", "a0", distance=5000, moving_time=1500),
            _record("2024-03-02T07:00:00", "a1", distance=10000, moving_time=3000,
                    total_elevation_gain=100, average_heartrate=150, average_speed=3.3),
            _record("2024-03-20T07:00:00", "a2", "Ride", distance=30000, moving_time=3600,
                    total_elevation_gain=300, average_heartrate=130, calories=700),
        ],
        "sam": [
            _record("2024-03-05T07:00:00", "s1", distance=8000, moving_time=2400, total_elevation_gain=50),
            _record("2024-03-06T07:00:00", "s2", distance=8000, moving_time=2400, total_elevation_gain=50),
        ],
    }


class TestAthleteStats:
    def test_totals_over_period(self, athletes):
        stats = athlete_stats(athletes["alex"], MARCH)
        assert stats.activity_count == 2
        assert stats.total_distance == 40000
        assert stats.total_time == 6600
        assert stats.total_elevation == 400
        assert stats.total_calories == 700
        assert stats.average_speed == pytest.approx(40000 / 6600)
        assert stats.average_heartrate == pytest.approx(140)
        assert stats.best_distance == 30000
        assert stats.best_speed == 3.3

    def test_all_time(self, athletes):
        assert athlete_stats(athletes["alex"]).activity_count == 3

    def test_type_filter(self, athletes):
        stats = athlete_stats(athletes["alex"], MARCH, types=["run"])
        assert stats.total_distance == 10000

    def test_no_activities(self):
        stats = athlete_stats([], MARCH)
        assert stats == AthleteStats()
        assert stats.average_heartrate is None

    def test_period_boundary_is_inclusive(self, athletes):
        one_day = DateRange(date(2024, 3, 20), date(2024, 3, 20))
        assert athlete_stats(athletes["alex"], one_day).activity_count == 1


class TestLeaderboard:
    def test_ranked_by_distance(self, athletes):
        entries = leaderboard(athletes, MARCH)
        assert [(e.athlete, e.rank, e.percentile) for e in entries] == [("alex", 1, 100), ("sam", 2, 50)]

    def test_sort_by_type_filtered(self, athletes):
        entries = leaderboard(athletes, MARCH, types=["Run"])
        assert [e.athlete for e in entries] == ["sam", "alex"]

    def test_tie_broken_by_name(self, athletes):
        entries = leaderboard(athletes, MARCH, sort_by="activity_count")
        assert [e.athlete for e in entries] == ["alex", "sam"]

    def test_unknown_metric(self, athletes):
        with pytest.raises(ValueError):
            leaderboard(athletes, MARCH, sort_by="kudos")

    def test_percentile_rounds_half_up(self):
        field = {name: [] for name in "abcdefgh"}
        entries = leaderboard(field, MARCH)
        # (8 - 5) / 8 = 37.5%
        assert entries[5].percentile == 38

    def test_empty(self):
        assert leaderboard({}, MARCH) == []

    def test_to_dict(self, athletes):
        data = leaderboard(athletes, MARCH)[0].to_dict()
        assert data["athlete"] == "alex"
        assert data["stats"]["totalDistance"] == 40000


class TestHeadToHead:
    def test_metric_winners(self, athletes):
        result = head_to_head("alex", athletes["alex"], "sam", athletes["sam"], MARCH)
        assert result.comparisons["distance"].winner == "alex"
        assert result.comparisons["distance"].difference == 24000
        assert result.comparisons["distance"].percent_difference == 150
        assert result.comparisons["activities"].winner is None
        assert result.first_wins == 4
        assert result.second_wins == 0
        assert result.overall_winner == "alex"

    def test_tie_overall(self):
        result = head_to_head("a", [], "b", [], MARCH)
        assert result.overall_winner is None
        assert result.comparisons["distance"].percent_difference == 0

    def test_to_dict(self, athletes):
        data = head_to_head("alex", athletes["alex"], "sam", athletes["sam"], MARCH).to_dict()
        assert data["winScore"] == {"first": 4, "second": 0}
        assert set(data["comparison"]) == {"distance", "time", "elevation", "activities", "avgSpeed"}


class TestLoadAthletes:
    def _activity(self, activity_id: int) -> dict:
        return {
            "id": activity_id, "type": "Run", "distance": 5000, "moving_time": 1500,
            "start_date": "2024-03-01T06:00:00Z", "start_date_local": "2024-03-01T07:00:00Z",
        }

    def test_reads_exports(self, tmp_path):
        (tmp_path / "alex.json").write_text(json.dumps([self._activity(1)]), encoding="utf-8")
        (tmp_path / "sam.jsonl").write_text(
            "\n".join(json.dumps(self._activity(i)) for i in (2, 3)), encoding="utf-8"
        )
        (tmp_path / "notes.txt").write_text("ignore me", encoding="utf-8")
        (tmp_path / "empty.json").write_text("[]", encoding="utf-8")

        athletes = load_athletes(tmp_path)
        assert list(athletes) == ["alex", "sam"]
        assert len(athletes["sam"]) == 2

    def test_missing_directory(self, tmp_path):
        assert load_athletes(tmp_path / "nope") == {}

    def test_athlete_name(self, tmp_path):
        assert athlete_name(tmp_path / "jo.doe.jsonl") == "jo.doe"
