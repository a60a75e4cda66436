"""Per-day activity aggregation for the heatmap.

Pure functions that bucket activity records into a dense day series over a
DateRange and derive summary stats. No I/O; records come already parsed.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Callable, Iterable, Sequence

from strava_dash.intensity import DEFAULT_WEIGHTS, IntensityWeights, activity_intensity
from strava_dash.parser import ActivityRecord
from strava_dash.periods import DateRange
from strava_dash.streaks import current_streak, longest_streak

logger = logging.getLogger(__name__)


class Metric(str, Enum):
    COUNT = "count"
    DISTANCE = "distance"  # meters
    TIME = "time"  # moving seconds
    INTENSITY = "intensity"


class InvalidMetricError(ValueError):
    """Unsupported metric selector."""


MetricFunc = Callable[[ActivityRecord, IntensityWeights], float]

METRIC_FUNCS: dict[Metric, MetricFunc] = {
    Metric.COUNT: lambda record, weights: 1,
    Metric.DISTANCE: lambda record, weights: record.distance,
    Metric.TIME: lambda record, weights: record.moving_time,
    Metric.INTENSITY: activity_intensity,
}


@dataclass(frozen=True)
class DayBucket:
    date: date
    value: float
    count: int

    def to_dict(self) -> dict:
        return {"date": self.date.isoformat(), "value": self.value, "count": self.count}


@dataclass(frozen=True)
class HeatmapStats:
    total_activities: int
    total_value: float
    average: float  # per active day
    streak: int  # longest run of active days
    peak_date: date | None
    peak_value: float
    active_days: int
    total_days: int
    current_streak: int
    total_distance: float = 0.0  # meters, regardless of metric
    total_time: float = 0.0  # moving seconds, regardless of metric

    def to_dict(self) -> dict:
        return {
            "totalActivities": self.total_activities,
            "totalValue": self.total_value,
            "average": self.average,
            "streak": self.streak,
            "peak": {
                "date": self.peak_date.isoformat() if self.peak_date else None,
                "value": self.peak_value,
            },
            "activeDays": self.active_days,
            "totalDays": self.total_days,
            "currentStreak": self.current_streak,
            "totalDistance": self.total_distance,
            "totalTime": self.total_time,
        }


@dataclass(frozen=True)
class HeatmapResult:
    buckets: tuple[DayBucket, ...]
    stats: HeatmapStats
    date_range: DateRange
    metric: Metric

    def to_dict(self) -> dict:
        return {
            "buckets": [b.to_dict() for b in self.buckets],
            "stats": self.stats.to_dict(),
            "dateRange": self.date_range.to_dict(),
            "metric": self.metric.value,
        }


def parse_metric(metric: Metric | str) -> Metric:
    """Resolve a metric selector, raising InvalidMetricError if unknown."""
    if isinstance(metric, Metric):
        return metric
    try:
        return Metric(str(metric).lower())
    except ValueError:
        valid = ", ".join(m.value for m in Metric)
        raise InvalidMetricError(f"Invalid metric {metric!r}. Must be one of: {valid}") from None


def filter_by_type(
    records: Iterable[ActivityRecord], types: Iterable[str] | None = None
) -> list[ActivityRecord]:
    """Keep records whose type or sport_type is in the allow-list (case-insensitive).

    An empty or missing allow-list keeps everything.
    """
    allowed = {t.strip().lower() for t in types or () if t and t.strip()}
    if not allowed:
        return list(records)
    return [
        r for r in records
        if r.type.lower() in allowed or (r.sport_type and r.sport_type.lower() in allowed)
    ]


def group_by_day(records: Iterable[ActivityRecord]) -> dict[date, list[ActivityRecord]]:
    """Group records by local civil start date."""
    grouped: dict[date, list[ActivityRecord]] = defaultdict(list)
    for record in records:
        grouped[record.local_date].append(record)
    return dict(grouped)


def compute_stats(
    buckets: Sequence[DayBucket],
    total_distance: float = 0.0,
    total_time: float = 0.0,
) -> HeatmapStats:
    """Summarize an ascending bucket sequence.

    Distance and time totals are passed through since buckets only carry
    the selected metric.
    """
    total_activities = sum(b.count for b in buckets)
    total_value = sum(b.value for b in buckets)
    active_days = sum(1 for b in buckets if b.count > 0)
    average = total_value / active_days if active_days > 0 else 0

    # max() keeps the first bucket on ties, i.e. the earliest date
    peak = max(buckets, key=lambda b: b.value, default=None)

    return HeatmapStats(
        total_activities=total_activities,
        total_value=total_value,
        average=average,
        streak=longest_streak(buckets),
        peak_date=peak.date if peak else None,
        peak_value=peak.value if peak else 0,
        active_days=active_days,
        total_days=len(buckets),
        current_streak=current_streak(buckets),
        total_distance=total_distance,
        total_time=total_time,
    )


def aggregate(
    records: Iterable[ActivityRecord],
    metric: Metric | str,
    date_range: DateRange,
    type_filter: Iterable[str] | None = None,
    weights: IntensityWeights | None = None,
) -> HeatmapResult:
    """Bucket records into a dense per-day series over date_range.

    Every day of the range gets a bucket (zero-activity days included),
    ordered by date ascending. Raises InvalidMetricError for an unknown metric.
    """
    selected = parse_metric(metric)
    value_of = METRIC_FUNCS[selected]
    weights = weights or DEFAULT_WEIGHTS

    typed = filter_by_type(records, type_filter)
    in_range = [r for r in typed if date_range.contains(r.local_date)]
    grouped = group_by_day(in_range)

    buckets: list[DayBucket] = []
    for day in date_range.days():
        day_records = grouped.get(day, [])
        value = sum(value_of(r, weights) for r in day_records)
        buckets.append(DayBucket(date=day, value=value, count=len(day_records)))

    stats = compute_stats(
        buckets,
        total_distance=sum(r.distance for r in in_range),
        total_time=sum(r.moving_time for r in in_range),
    )
    logger.debug(
        "Aggregated %d of %d typed activities into %d days (%s)",
        len(in_range), len(typed), len(buckets), selected.value,
    )
    return HeatmapResult(
        buckets=tuple(buckets),
        stats=stats,
        date_range=date_range,
        metric=selected,
    )
