"""Friend comparison: per-athlete totals, leaderboards and head-to-heads.

Each athlete is one activity export. A directory of exports is read the same
way as the single activities file, one athlete per file named after it.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Mapping

from strava_dash.heatmap import filter_by_type
from strava_dash.parser import ActivityDataParser, ActivityRecord
from strava_dash.periods import DateRange

logger = logging.getLogger(__name__)

EXPORT_SUFFIXES = (".json", ".jsonl")

LEADERBOARD_METRICS = (
    "total_distance",
    "total_time",
    "total_elevation",
    "activity_count",
    "average_speed",
    "total_calories",
)

# Metric name in a head-to-head -> AthleteStats field
HEAD_TO_HEAD_METRICS = {
    "distance": "total_distance",
    "time": "total_time",
    "elevation": "total_elevation",
    "activities": "activity_count",
    "avgSpeed": "average_speed",
}


@dataclass(frozen=True)
class AthleteStats:
    activity_count: int = 0
    total_distance: float = 0.0  # meters
    total_time: float = 0.0  # moving seconds
    total_elevation: float = 0.0
    total_calories: float = 0.0
    average_speed: float = 0.0  # m/s over moving time
    average_heartrate: float | None = None
    best_distance: float = 0.0
    best_time: float = 0.0
    best_speed: float = 0.0

    def to_dict(self) -> dict:
        return {
            "activityCount": self.activity_count,
            "totalDistance": self.total_distance,
            "totalTime": self.total_time,
            "totalElevation": self.total_elevation,
            "totalCalories": self.total_calories,
            "averageSpeed": self.average_speed,
            "averageHeartRate": self.average_heartrate,
            "bestDistance": self.best_distance,
            "bestTime": self.best_time,
            "bestSpeed": self.best_speed,
        }


@dataclass(frozen=True)
class LeaderboardEntry:
    athlete: str
    stats: AthleteStats
    rank: int
    percentile: int

    def to_dict(self) -> dict:
        return {
            "athlete": self.athlete,
            "stats": self.stats.to_dict(),
            "rank": self.rank,
            "percentile": self.percentile,
        }


@dataclass(frozen=True)
class MetricComparison:
    first: float
    second: float
    winner: str | None  # None on a tie
    difference: float
    percent_difference: int  # relative to the second athlete

    def to_dict(self) -> dict:
        return {
            "first": self.first,
            "second": self.second,
            "winner": self.winner,
            "difference": self.difference,
            "percentDifference": self.percent_difference,
        }


@dataclass(frozen=True)
class HeadToHead:
    first: str
    second: str
    comparisons: dict[str, MetricComparison]
    first_wins: int
    second_wins: int
    overall_winner: str | None

    def to_dict(self) -> dict:
        return {
            "first": self.first,
            "second": self.second,
            "comparison": {k: c.to_dict() for k, c in self.comparisons.items()},
            "winScore": {"first": self.first_wins, "second": self.second_wins},
            "overallWinner": self.overall_winner,
        }


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def select_activities(
    records: Iterable[ActivityRecord],
    date_range: DateRange | None = None,
    types: Iterable[str] | None = None,
) -> list[ActivityRecord]:
    """Type-filtered records whose local start date falls in date_range (None = all time)."""
    typed = filter_by_type(records, types)
    if date_range is None:
        return typed
    return [r for r in typed if date_range.contains(r.local_date)]


def athlete_stats(
    records: Iterable[ActivityRecord],
    date_range: DateRange | None = None,
    types: Iterable[str] | None = None,
) -> AthleteStats:
    selected = select_activities(records, date_range, types)
    if not selected:
        return AthleteStats()

    total_distance = sum(r.distance for r in selected)
    total_time = sum(r.moving_time for r in selected)
    heart_rates = [r.average_heartrate for r in selected if r.average_heartrate]
    return AthleteStats(
        activity_count=len(selected),
        total_distance=total_distance,
        total_time=total_time,
        total_elevation=sum(r.total_elevation_gain for r in selected),
        total_calories=sum(r.calories or 0 for r in selected),
        average_speed=total_distance / total_time if total_time > 0 else 0.0,
        average_heartrate=sum(heart_rates) / len(heart_rates) if heart_rates else None,
        best_distance=max(r.distance for r in selected),
        best_time=max(r.moving_time for r in selected),
        best_speed=max(r.average_speed or 0 for r in selected),
    )


def leaderboard(
    athletes: Mapping[str, Iterable[ActivityRecord]],
    date_range: DateRange | None = None,
    types: Iterable[str] | None = None,
    sort_by: str = "total_distance",
) -> list[LeaderboardEntry]:
    """Rank athletes by sort_by descending. Rank is 1-based.

    Tie-break: activity count desc, then athlete name. Raises ValueError for an
    unknown sort_by.
    """
    if sort_by not in LEADERBOARD_METRICS:
        raise ValueError(f"Unknown leaderboard metric {sort_by!r}. Must be one of: {', '.join(LEADERBOARD_METRICS)}")

    types = list(types or ())
    stats = {name: athlete_stats(records, date_range, types) for name, records in athletes.items()}
    ordered = sorted(
        stats.items(),
        key=lambda item: (-getattr(item[1], sort_by), -item[1].activity_count, item[0]),
    )
    total = len(ordered)
    return [
        LeaderboardEntry(
            athlete=name,
            stats=athlete,
            rank=i + 1,
            percentile=_round_half_up((total - i) / total * 100),
        )
        for i, (name, athlete) in enumerate(ordered)
    ]


def _compare(first_name: str, first: float, second_name: str, second: float) -> MetricComparison:
    if first > second:
        winner = first_name
    elif second > first:
        winner = second_name
    else:
        winner = None
    difference = abs(first - second)
    percent = _round_half_up(difference / second * 100) if second > 0 else 0
    return MetricComparison(first, second, winner, difference, percent)


def head_to_head(
    first_name: str,
    first_records: Iterable[ActivityRecord],
    second_name: str,
    second_records: Iterable[ActivityRecord],
    date_range: DateRange | None = None,
    types: Iterable[str] | None = None,
) -> HeadToHead:
    """Compare two athletes metric by metric; most metric wins takes it."""
    types = list(types or ())
    first_stats = athlete_stats(first_records, date_range, types)
    second_stats = athlete_stats(second_records, date_range, types)

    comparisons = {
        key: _compare(first_name, getattr(first_stats, field), second_name, getattr(second_stats, field))
        for key, field in HEAD_TO_HEAD_METRICS.items()
    }
    first_wins = sum(1 for c in comparisons.values() if c.winner == first_name)
    second_wins = sum(1 for c in comparisons.values() if c.winner == second_name)
    if first_wins > second_wins:
        overall = first_name
    elif second_wins > first_wins:
        overall = second_name
    else:
        overall = None
    return HeadToHead(first_name, second_name, comparisons, first_wins, second_wins, overall)


def athlete_name(path: Path) -> str:
    """Athlete name from an export filename: 'alex.jsonl' -> 'alex'."""
    return path.name[: -len(path.suffix)] if path.suffix in EXPORT_SUFFIXES else path.name


def load_athletes(directory: Path) -> dict[str, list[ActivityRecord]]:
    """Read every *.json / *.jsonl export in directory, keyed by athlete name.

    Files with no usable activities are skipped.
    """
    if not directory.is_dir():
        return {}
    athletes: dict[str, list[ActivityRecord]] = {}
    for path in sorted(directory.iterdir()):
        if not path.is_file() or path.suffix not in EXPORT_SUFFIXES:
            continue
        records = ActivityDataParser(path).load_activities()
        if not records:
            logger.warning("No activities in %s, skipping", path)
            continue
        athletes[athlete_name(path)] = records
    return athletes
