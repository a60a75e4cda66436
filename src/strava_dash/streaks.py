"""Streak tracking over day buckets.

Both helpers take buckets in ascending date order (DayBucket or anything
with ``date`` and ``count`` attributes). A day is active when its count is
> 0. Missing dates between buckets break a run, so sparse input works too.
"""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from strava_dash.heatmap import DayBucket


def longest_streak(buckets: Sequence[DayBucket]) -> int:
    """Longest run of consecutive active days, single ascending pass."""
    longest = 0
    current = 0
    prev_date = None
    for bucket in buckets:
        if bucket.count > 0:
            if current and prev_date is not None and bucket.date - prev_date == timedelta(days=1):
                current += 1
            else:
                current = 1
            longest = max(longest, current)
        else:
            current = 0
        prev_date = bucket.date
    return longest


def current_streak(buckets: Sequence[DayBucket]) -> int:
    """Active run ending at the last bucket.

    Rules:
    - Last day counts if active
    - If the last day is inactive, a run ending the day before still counts
      (the day isn't over yet)
    """
    if not buckets:
        return 0

    days = list(buckets)
    if days[-1].count == 0:
        days.pop()

    streak = 0
    expected = None
    for bucket in reversed(days):
        if bucket.count == 0:
            break
        if expected is not None and bucket.date != expected:
            break
        streak += 1
        expected = bucket.date - timedelta(days=1)
    return streak
