"""Tests for CLI commands."""

from __future__ import annotations

import json
from unittest.mock import patch

import pytest

from strava_dash.cli import (
    build_parser,
    do_compare,
    do_config_set_file,
    do_config_set_weight,
    do_config_show,
    do_goal,
    do_heatmap,
    do_range,
    do_records,
    main,
)
from strava_dash.heatmap import InvalidMetricError
from strava_dash.periods import InvalidPeriodError


@pytest.fixture(autouse=True)
def isolated_config(tmp_path):
    """Point the config file at a temp dir so tests never read ~/.strava-dash."""
    with patch("strava_dash.config.DEFAULT_CONFIG_PATH", tmp_path / "config.json"):
        yield tmp_path / "config.json"


@pytest.fixture
def activities_file(tmp_path):
    path = tmp_path / "activities.json"
    activities = [
        {
            "id": 1, "name": "Easy Run", "type": "Run",
            "distance": 5000, "moving_time": 1800, "elapsed_time": 1850,
            "total_elevation_gain": 20,
            "start_date": "2024-03-01T06:00:00Z", "start_date_local": "2024-03-01T07:00:00Z",
        },
        {
            "id": 2, "name": "Long Run", "type": "Run",
            "distance": 10000, "moving_time": 3600, "elapsed_time": 3700,
            "total_elevation_gain": 80,
            "start_date": "2024-03-01T16:00:00Z", "start_date_local": "2024-03-01T17:00:00Z",
        },
        {
            "id": 3, "name": "Commute", "type": "Ride",
            "distance": 12000, "moving_time": 2400, "elapsed_time": 2500,
            "total_elevation_gain": 30,
            "start_date": "2024-03-03T07:00:00Z", "start_date_local": "2024-03-03T08:00:00Z",
        },
    ]
    path.write_text(json.dumps(activities), encoding="utf-8")
    return path


# ── Argument Parsing ──────────────────────────────────────────────────────────


class TestArgumentParsing:
    def test_no_args_defaults_to_none_command(self):
        args = build_parser().parse_args([])
        assert args.command is None

    def test_range_defaults(self):
        args = build_parser().parse_args(["range"])
        assert args.period == "weekly"

    def test_heatmap_options(self):
        args = build_parser().parse_args(["heatmap", "--metric", "distance", "--view", "3months", "-t", "Run,Ride"])
        assert args.metric == "distance"
        assert args.view == "3months"
        assert args.types == "Run,Ride"

    def test_period_and_view_exclusive(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["heatmap", "--period", "weekly", "--view", "year"])

    def test_goal_requires_type_and_target(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["goal"])

    def test_invalid_period_choice(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["range", "--period", "daily"])

    def test_config_set_weight(self):
        args = build_parser().parse_args(["config", "set-weight", "timeMultiplier", "25"])
        assert args.cfg_command == "set-weight"
        assert args.value == 25.0


# ── do_range ──────────────────────────────────────────────────────────────────


class TestDoRange:
    def test_weekly(self):
        assert do_range("weekly", today="2024-03-03") == {"start": "2024-02-26", "end": "2024-03-03"}

    def test_monthly_json(self, capsys):
        result = do_range("monthly", today="2024-02-10", as_json=True)
        assert result == {"start": "2024-02-01", "end": "2024-02-29"}
        assert "2024-02-29" in capsys.readouterr().out

    def test_custom(self):
        result = do_range("custom", start="2024-01-01", end="2024-01-14")
        assert result == {"start": "2024-01-01", "end": "2024-01-14"}

    def test_bad_today(self):
        with pytest.raises(InvalidPeriodError):
            do_range("weekly", today="yesterday")


# ── do_heatmap ────────────────────────────────────────────────────────────────


class TestDoHeatmap:
    def test_custom_period_distance(self, activities_file):
        result = do_heatmap(
            file=str(activities_file), metric="distance", period="custom",
            start="2024-03-01", end="2024-03-03",
        )
        assert result["ok"] is True
        assert len(result["buckets"]) == 3
        assert result["buckets"][0] == {"date": "2024-03-01", "value": 15000, "count": 2}
        assert result["stats"]["totalActivities"] == 3
        assert result["stats"]["streak"] == 1

    def test_type_filter(self, activities_file):
        result = do_heatmap(
            file=str(activities_file), metric="count", period="custom",
            start="2024-03-01", end="2024-03-03", types="ride",
        )
        assert result["stats"]["totalActivities"] == 1
        assert result["buckets"][2]["count"] == 1

    def test_view_window(self, activities_file):
        result = do_heatmap(file=str(activities_file), metric="count", view="3months", today="2024-03-31")
        assert result["dateRange"] == {"start": "2023-12-31", "end": "2024-03-31"}
        assert result["stats"]["totalActivities"] == 3

    def test_uses_configured_weights(self, activities_file, isolated_config):
        isolated_config.write_text(json.dumps({"intensity": {"distanceMultiplier": 0, "timeMultiplier": 0, "elevationMultiplier": 1}}))
        result = do_heatmap(
            file=str(activities_file), metric="intensity", period="custom",
            start="2024-03-01", end="2024-03-01",
        )
        assert result["buckets"][0]["value"] == pytest.approx(100)

    def test_renders_heatmap(self, activities_file, capsys):
        do_heatmap(file=str(activities_file), metric="count", period="monthly", today="2024-03-15")
        out = capsys.readouterr().out
        assert "Activity Heatmap" in out
        assert "Summary" in out

    def test_no_data(self, tmp_path):
        result = do_heatmap(file=str(tmp_path / "missing.json"), period="weekly", today="2024-03-01")
        assert result == {"ok": False, "reason": "no_data"}

    def test_invalid_metric(self, activities_file):
        with pytest.raises(InvalidMetricError):
            do_heatmap(file=str(activities_file), metric="watts")


# ── do_goal ───────────────────────────────────────────────────────────────────


class TestDoGoal:
    def test_monthly_distance(self, activities_file):
        result = do_goal("distance", 30000, period="monthly", file=str(activities_file), types="Run", today="2024-03-10")
        assert result["ok"] is True
        assert result["progress"]["current"] == 15000
        assert result["progress"]["percentage"] == 50
        assert result["goal"]["startDate"] == "2024-03-01"

    def test_unknown_type(self, activities_file):
        with pytest.raises(ValueError):
            do_goal("power", 100, file=str(activities_file))


# ── do_records ────────────────────────────────────────────────────────────────


class TestDoRecords:
    def test_records_from_export(self, activities_file):
        result = do_records(file=str(activities_file), today="2024-03-10")
        assert result["ok"] is True
        names = [(r["distance"]["category"], r["distance"]["name"]) for r in result["personalRecords"]]
        assert names == [("running", "1K"), ("running", "5K"), ("running", "10K"), ("cycling", "10K")]
        assert result["summary"]["recentRecords"] == 4

    def test_type_filter(self, activities_file):
        result = do_records(file=str(activities_file), types="Ride", today="2024-03-10", as_json=True)
        assert result["summary"]["totalRecords"] == 1

    def test_no_data(self, tmp_path):
        assert do_records(file=str(tmp_path / "missing.json")) == {"ok": False, "reason": "no_data"}


# ── do_compare ────────────────────────────────────────────────────────────────


@pytest.fixture
def friends_dir(tmp_path, activities_file):
    directory = tmp_path / "friends"
    directory.mkdir()
    (directory / "alex.json").write_text(activities_file.read_text(encoding="utf-8"), encoding="utf-8")
    sam = [{
        "id": 9, "type": "Run", "distance": 21000, "moving_time": 7200,
        "start_date": "2024-03-02T06:00:00Z", "start_date_local": "2024-03-02T07:00:00Z",
    }]
    (directory / "sam.json").write_text(json.dumps(sam), encoding="utf-8")
    return directory


class TestDoCompare:
    def test_leaderboard(self, friends_dir):
        result = do_compare(directory=str(friends_dir), period="monthly", today="2024-03-15")
        assert result["ok"] is True
        assert result["period"] == "2024-03-01 to 2024-03-31"
        assert [e["athlete"] for e in result["leaderboard"]] == ["alex", "sam"]

    def test_sort_by_time(self, friends_dir):
        result = do_compare(directory=str(friends_dir), period="all", sort_by="total_time")
        assert result["period"] == "All time"
        assert [e["athlete"] for e in result["leaderboard"]] == ["alex", "sam"]

    def test_head_to_head(self, friends_dir):
        result = do_compare(directory=str(friends_dir), period="all", versus=["sam", "alex"], types="Run")
        assert result["first"] == "sam"
        assert result["comparison"]["distance"]["winner"] == "sam"

    def test_unknown_athlete(self, friends_dir):
        with pytest.raises(ValueError):
            do_compare(directory=str(friends_dir), period="all", versus=["alex", "kim"])

    def test_configured_dir(self, friends_dir):
        main(["config", "set-friends-dir", str(friends_dir)])
        result = do_compare(period="all", as_json=True)
        assert len(result["leaderboard"]) == 2

    def test_no_exports(self, tmp_path):
        assert do_compare(directory=str(tmp_path / "none"), period="all") == {"ok": False, "reason": "no_data"}


# ── config commands ───────────────────────────────────────────────────────────


class TestConfigCommands:
    def test_set_weight(self, isolated_config):
        result = do_config_set_weight("speedBonusMultiplier", 3)
        assert result["key"] == "speed_bonus_multiplier"
        assert json.loads(isolated_config.read_text())["intensity"]["speed_bonus_multiplier"] == 3

    def test_set_unknown_weight(self):
        with pytest.raises(ValueError):
            do_config_set_weight("cadence", 3)

    def test_set_file_and_show(self, tmp_path):
        do_config_set_file(str(tmp_path / "export.json"))
        data = do_config_show()
        assert data["activities_file"] == str((tmp_path / "export.json").resolve())
        assert data["intensity"]["distance_multiplier"] == 10


# ── main ──────────────────────────────────────────────────────────────────────


class TestMain:
    def test_domain_error_exits_2(self):
        with pytest.raises(SystemExit) as excinfo:
            main(["range", "--period", "custom", "--start", "2024-03-05", "--end", "2024-03-01"])
        assert excinfo.value.code == 2

    def test_range_command(self, capsys):
        main(["range", "--period", "yearly", "--today", "2024-06-01", "--json"])
        assert "2024-12-31" in capsys.readouterr().out

    def test_dispatches_heatmap(self, activities_file):
        with patch("strava_dash.cli.do_heatmap") as mock_heatmap:
            main(["heatmap", "-f", str(activities_file), "-m", "count"])
        mock_heatmap.assert_called_once()
        assert mock_heatmap.call_args.kwargs["metric"] == "count"

    def test_unreadable_export_reports_no_data(self, tmp_path, capsys):
        main(["heatmap", "--file", str(tmp_path), "--period", "weekly", "--today", "2024-03-01"])
        assert "No activities found" in capsys.readouterr().out

    def test_unknown_athlete_exits_2(self, friends_dir):
        with pytest.raises(SystemExit) as excinfo:
            main(["compare", "--dir", str(friends_dir), "--period", "all", "--vs", "alex", "kim"])
        assert excinfo.value.code == 2
