"""Goal tracking: distance, time, or elevation targets over a period."""

from __future__ import annotations

import math
import secrets
from dataclasses import dataclass, field
from datetime import date, datetime, timezone, tzinfo
from typing import Iterable

from strava_dash.heatmap import filter_by_type
from strava_dash.parser import ActivityRecord
from strava_dash.periods import DateRange, compute_range

GOAL_TYPES = ("distance", "time", "elevation")

# Unit conversions used for display
METERS_TO_MILES = 0.000621371
METERS_TO_FEET = 3.28084


@dataclass(frozen=True)
class Goal:
    id: str
    name: str
    type: str  # distance/elevation in meters, time in seconds
    target: float
    period: str
    date_range: DateRange
    activity_types: tuple[str, ...] = ()
    created_at: str = field(default_factory=lambda: datetime.now(tz=timezone.utc).isoformat())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "target": self.target,
            "period": self.period,
            "startDate": self.date_range.start.isoformat(),
            "endDate": self.date_range.end.isoformat(),
            "createdAt": self.created_at,
            "activityTypes": list(self.activity_types),
        }


@dataclass(frozen=True)
class GoalProgress:
    goal_id: str
    current: float
    target: float
    percentage: int  # capped at 100
    remaining: float
    is_completed: bool

    def to_dict(self) -> dict:
        return {
            "goalId": self.goal_id,
            "current": self.current,
            "target": self.target,
            "percentage": self.percentage,
            "remaining": self.remaining,
            "isCompleted": self.is_completed,
        }


def create_goal(
    name: str,
    goal_type: str,
    target: float,
    period: str,
    reference: date | datetime | None = None,
    custom_start: date | str | None = None,
    custom_end: date | str | None = None,
    activity_types: Iterable[str] | None = None,
    tz: tzinfo | None = None,
) -> Goal:
    """Create a goal, resolving its period to a concrete DateRange.

    Raises ValueError for an unknown goal type or non-positive target, and
    InvalidPeriodError for a bad period.
    """
    if goal_type not in GOAL_TYPES:
        raise ValueError(f"Unknown goal type {goal_type!r}. Must be one of: {', '.join(GOAL_TYPES)}")
    if target <= 0:
        raise ValueError("Goal target must be positive")

    date_range = compute_range(period, reference, custom_start, custom_end, tz=tz)
    return Goal(
        id=f"goal-{secrets.token_hex(6)}",
        name=name,
        type=goal_type,
        target=float(target),
        period=period,
        date_range=date_range,
        activity_types=tuple(activity_types or ()),
    )


def _goal_value(record: ActivityRecord, goal_type: str) -> float:
    if goal_type == "distance":
        return record.distance
    if goal_type == "time":
        return record.moving_time
    return record.total_elevation_gain


def goal_progress(goal: Goal, records: Iterable[ActivityRecord]) -> GoalProgress:
    """Sum the goal metric over in-range, type-matching activities."""
    relevant = [
        r for r in filter_by_type(records, goal.activity_types)
        if goal.date_range.contains(r.local_date)
    ]
    current = sum(_goal_value(r, goal.type) for r in relevant)
    # half-up, not banker's rounding
    percentage = min(100, math.floor(current / goal.target * 100 + 0.5))
    return GoalProgress(
        goal_id=goal.id,
        current=current,
        target=goal.target,
        percentage=percentage,
        remaining=max(0.0, goal.target - current),
        is_completed=percentage >= 100,
    )


def format_goal_value(value: float, goal_type: str, unit: str = "metric") -> str:
    """Format a goal amount: 12500 distance -> '12.5km', 3900 time -> '1h 5m'."""
    if goal_type == "distance":
        if unit == "imperial":
            return f"{value * METERS_TO_MILES:.1f}mi"
        return f"{value / 1000:.1f}km" if value >= 1000 else f"{value:.0f}m"

    if goal_type == "time":
        total = int(value)
        hours, rest = divmod(total, 3600)
        minutes, seconds = divmod(rest, 60)
        if hours > 0:
            return f"{hours}h {minutes}m"
        if minutes > 0:
            return f"{minutes}m {seconds}s"
        return f"{seconds}s"

    if goal_type == "elevation":
        if unit == "imperial":
            return f"{round(value * METERS_TO_FEET)}ft"
        return f"{value:.0f}m"

    return str(value)
