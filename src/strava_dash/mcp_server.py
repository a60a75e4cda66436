"""MCP server for strava-dash.

Exposes period ranges, heatmaps, goal progress, personal records and
friend comparisons as MCP tools so an assistant can query training data mid-conversation.
Run via: python3 -m strava_dash.mcp_server
"""
from __future__ import annotations

from datetime import date
from pathlib import Path
from typing import Any

from mcp.server.fastmcp import FastMCP

from strava_dash.compare import head_to_head, leaderboard, load_athletes
from strava_dash.config import get_activities_file, get_friends_dir, get_intensity_weights, get_timezone
from strava_dash.goals import create_goal, goal_progress
from strava_dash.heatmap import aggregate, parse_metric
from strava_dash.parser import ActivityDataParser, ActivityRecord
from strava_dash.periods import compute_range, view_range
from strava_dash.records import personal_records


mcp = FastMCP(name="strava-dash")


def _load_records(file: str) -> list[ActivityRecord]:
    path = Path(file).expanduser() if file else get_activities_file()
    return ActivityDataParser(path).load_activities()


def _reference(today: str) -> date | None:
    return date.fromisoformat(today) if today else None


def _split_types(types: str) -> list[str]:
    return [t.strip() for t in types.split(",") if t.strip()]


@mcp.tool(name="compute_range")
def compute_range_tool(period: str = "weekly", today: str = "", start: str = "", end: str = "") -> dict[str, Any]:
    """Get the calendar range for a period (weekly, monthly, yearly, or custom with start/end)."""
    try:
        date_range = compute_range(period, _reference(today), start or None, end or None, tz=get_timezone())
    except ValueError as exc:
        return {"error": str(exc)}
    return {**date_range.to_dict(), "days": date_range.day_count}


@mcp.tool()
def get_heatmap(
    metric: str = "intensity",
    period: str = "",
    view: str = "year",
    types: str = "",
    today: str = "",
    start: str = "",
    end: str = "",
    file: str = "",
) -> dict[str, Any]:
    """Get per-day activity buckets and stats.

    metric: count | distance (meters) | time (seconds) | intensity
    period: weekly | monthly | yearly | custom; when empty the trailing view is used
    view: year | 6months | 3months
    types: comma-separated activity types, e.g. "Run,Ride"
    """
    try:
        selected = parse_metric(metric)
        tz = get_timezone()
        reference = _reference(today)
        if period:
            date_range = compute_range(period, reference, start or None, end or None, tz=tz)
        else:
            date_range = view_range(view, reference, tz=tz)
    except ValueError as exc:
        return {"error": str(exc)}

    records = _load_records(file)
    if not records:
        return {"error": "No activities found. Configure the export with: strava-dash config set-file <path>"}

    result = aggregate(
        records, selected, date_range,
        type_filter=_split_types(types),
        weights=get_intensity_weights(),
    )
    return result.to_dict()


@mcp.tool()
def get_goal_progress(
    goal_type: str,
    target: float,
    period: str = "monthly",
    types: str = "",
    today: str = "",
    start: str = "",
    end: str = "",
    file: str = "",
) -> dict[str, Any]:
    """Get progress toward a distance (meters), time (seconds) or elevation (meters) goal."""
    try:
        goal = create_goal(
            f"{period.capitalize()} {goal_type}", goal_type, target, period,
            reference=_reference(today),
            custom_start=start or None,
            custom_end=end or None,
            activity_types=_split_types(types),
            tz=get_timezone(),
        )
    except ValueError as exc:
        return {"error": str(exc)}

    records = _load_records(file)
    if not records:
        return {"error": "No activities found. Configure the export with: strava-dash config set-file <path>"}

    progress = goal_progress(goal, records)
    return {"goal": goal.to_dict(), "progress": progress.to_dict()}


@mcp.tool()
def get_personal_records(types: str = "", today: str = "", file: str = "") -> dict[str, Any]:
    """Get estimated personal records at standard running and cycling distances.

    Times are seconds; running pace is seconds per km, cycling pace is km/h.
    """
    try:
        reference = _reference(today)
    except ValueError as exc:
        return {"error": str(exc)}

    records = _load_records(file)
    if not records:
        return {"error": "No activities found. Configure the export with: strava-dash config set-file <path>"}
    return personal_records(records, reference=reference, type_filter=_split_types(types)).to_dict()


@mcp.tool()
def compare_athletes(
    period: str = "monthly",
    sort_by: str = "total_distance",
    first: str = "",
    second: str = "",
    types: str = "",
    today: str = "",
    start: str = "",
    end: str = "",
    directory: str = "",
) -> dict[str, Any]:
    """Rank athletes from a directory of exports, or compare two head-to-head.

    period: weekly | monthly | yearly | custom | all
    sort_by: total_distance | total_time | total_elevation | activity_count | average_speed | total_calories
    Pass both first and second for a head-to-head instead of a leaderboard.
    """
    try:
        date_range = None
        if period != "all":
            date_range = compute_range(period, _reference(today), start or None, end or None, tz=get_timezone())
        friends_dir = Path(directory).expanduser() if directory else get_friends_dir()
        athletes = load_athletes(friends_dir)
        if not athletes:
            return {"error": f"No athlete exports found in {friends_dir}"}

        type_list = _split_types(types)
        if first and second:
            for name in (first, second):
                if name not in athletes:
                    return {"error": f"Unknown athlete {name!r}. Available: {', '.join(athletes)}"}
            return head_to_head(first, athletes[first], second, athletes[second], date_range, type_list).to_dict()

        entries = leaderboard(athletes, date_range, type_list, sort_by=sort_by)
    except ValueError as exc:
        return {"error": str(exc)}
    return {"leaderboard": [e.to_dict() for e in entries]}


def main() -> None:
    mcp.run()


if __name__ == "__main__":
    main()
