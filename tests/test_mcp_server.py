"""Tests for the MCP server tool functions."""
import json
from unittest.mock import patch

import pytest

from strava_dash.mcp_server import (
    compare_athletes,
    compute_range_tool,
    get_goal_progress,
    get_heatmap,
    get_personal_records,
)


@pytest.fixture(autouse=True)
def isolated_config(tmp_path):
    with patch("strava_dash.config.DEFAULT_CONFIG_PATH", tmp_path / "config.json"):
        yield


@pytest.fixture
def activities_file(tmp_path):
    path = tmp_path / "activities.jsonl"
    rows = [
        {"id": 1, "type": "Run", "distance": 8000, "moving_time": 2700,
         "start_date": "2024-02-05T06:00:00Z", "start_date_local": "2024-02-05T07:00:00Z"},
        {"id": 2, "type": "Hike", "distance": 12000, "moving_time": 14400, "total_elevation_gain": 900,
         "start_date": "2024-02-06T08:00:00Z", "start_date_local": "2024-02-06T09:00:00Z"},
    ]
    path.write_text("\n".join(json.dumps(r) for r in rows), encoding="utf-8")
    return str(path)


class TestComputeRange:
    def test_monthly(self):
        result = compute_range_tool("monthly", today="2024-02-10")
        assert result == {"start": "2024-02-01", "end": "2024-02-29", "days": 29}

    def test_custom_missing_bound(self):
        result = compute_range_tool("custom", start="2024-02-01")
        assert "error" in result

    def test_unknown_period(self):
        assert "error" in compute_range_tool("daily")


class TestGetHeatmap:
    def test_weekly_distance(self, activities_file):
        result = get_heatmap(metric="distance", period="weekly", today="2024-02-07", file=activities_file)
        assert result["dateRange"] == {"start": "2024-02-05", "end": "2024-02-11"}
        assert len(result["buckets"]) == 7
        assert result["stats"]["totalValue"] == 20000
        assert result["stats"]["streak"] == 2
        assert result["stats"]["peak"] == {"date": "2024-02-06", "value": 12000}

    def test_type_filter(self, activities_file):
        result = get_heatmap(metric="count", period="weekly", today="2024-02-07", types="hike", file=activities_file)
        assert result["stats"]["totalActivities"] == 1

    def test_invalid_metric(self, activities_file):
        result = get_heatmap(metric="watts", file=activities_file)
        assert "error" in result

    def test_no_activities(self, tmp_path):
        result = get_heatmap(file=str(tmp_path / "missing.json"))
        assert "error" in result


class TestGetGoalProgress:
    def test_elevation_goal(self, activities_file):
        result = get_goal_progress("elevation", 1000, period="monthly", today="2024-02-20", file=activities_file)
        assert result["progress"]["current"] == 900
        assert result["progress"]["percentage"] == 90
        assert result["goal"]["endDate"] == "2024-02-29"

    def test_invalid_goal_type(self, activities_file):
        result = get_goal_progress("power", 100, file=activities_file)
        assert "error" in result

    def test_unreadable_file(self, tmp_path):
        result = get_goal_progress("distance", 1000, file=str(tmp_path))
        assert "error" in result


class TestGetPersonalRecords:
    def test_running_and_hiking(self, activities_file):
        result = get_personal_records(today="2024-02-20", file=activities_file)
        names = [r["distance"]["name"] for r in result["personalRecords"]]
        assert names == ["1K", "5K"]
        assert result["summary"]["recentRecords"] == 2

    def test_bad_today(self, activities_file):
        assert "error" in get_personal_records(today="soon", file=activities_file)


class TestCompareAthletes:
    @pytest.fixture
    def friends(self, tmp_path, activities_file):
        directory = tmp_path / "friends"
        directory.mkdir()
        (directory / "me.jsonl").write_text((tmp_path / "activities.jsonl").read_text(), encoding="utf-8")
        (directory / "kim.json").write_text(json.dumps([
            {"id": 5, "type": "Run", "distance": 30000, "moving_time": 9000,
             "start_date": "2024-02-07T06:00:00Z", "start_date_local": "2024-02-07T07:00:00Z"},
        ]), encoding="utf-8")
        return str(directory)

    def test_leaderboard(self, friends):
        result = compare_athletes(period="weekly", today="2024-02-07", directory=friends)
        assert [e["athlete"] for e in result["leaderboard"]] == ["kim", "me"]
        assert result["leaderboard"][0]["rank"] == 1

    def test_head_to_head(self, friends):
        result = compare_athletes(period="all", first="me", second="kim", directory=friends)
        assert result["comparison"]["activities"]["winner"] == "me"

    def test_unknown_sort(self, friends):
        assert "error" in compare_athletes(sort_by="kudos", period="all", directory=friends)

    def test_unknown_athlete(self, friends):
        assert "error" in compare_athletes(period="all", first="me", second="zed", directory=friends)

    def test_no_exports(self, tmp_path):
        assert "error" in compare_athletes(period="all", directory=str(tmp_path / "empty"))
