"""Calendar period ranges for goals and heatmap views.

Pure functions: every call returns a fresh DateRange, nothing is mutated.
All boundary arithmetic happens on ``date`` values so DST transitions
never move the reported calendar days.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Iterator

PERIOD_KINDS = ("weekly", "monthly", "yearly", "custom")

# Trailing windows used by the heatmap view (months back from reference)
VIEW_MODES: dict[str, int] = {
    "year": 12,
    "6months": 6,
    "3months": 3,
}

_END_OF_DAY = time(23, 59, 59, 999000)


class InvalidPeriodError(ValueError):
    """Unsupported period kind, or a custom range with missing/inverted bounds."""


@dataclass(frozen=True)
class DateRange:
    """Inclusive range of calendar dates."""

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise InvalidPeriodError(
                f"Range start {self.start.isoformat()} is after end {self.end.isoformat()}"
            )

    def start_instant(self, tz: tzinfo | None = None) -> datetime:
        """00:00:00.000 on the first day."""
        return datetime.combine(self.start, time.min, tzinfo=tz)

    def end_instant(self, tz: tzinfo | None = None) -> datetime:
        """23:59:59.999 on the last day."""
        return datetime.combine(self.end, _END_OF_DAY, tzinfo=tz)

    @property
    def day_count(self) -> int:
        return (self.end - self.start).days + 1

    def days(self) -> Iterator[date]:
        current = self.start
        while current <= self.end:
            yield current
            current += timedelta(days=1)

    def contains(self, d: date) -> bool:
        return self.start <= d <= self.end

    def to_dict(self) -> dict[str, str]:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}


def reference_date(reference: date | datetime | None = None, tz: tzinfo | None = None) -> date:
    """Resolve a reference instant to a civil date.

    Aware datetimes are converted to ``tz`` first (host local time when tz
    is None). Naive datetimes are already civil time.
    """
    if reference is None:
        return datetime.now(tz).date() if tz else date.today()
    if isinstance(reference, datetime):
        if reference.tzinfo is not None:
            return reference.astimezone(tz).date()
        return reference.date()
    return reference


def _coerce_bound(value: date | datetime | str | None, label: str) -> date:
    if value is None or value == "":
        raise InvalidPeriodError(f"Custom period requires a {label} date")
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError as exc:
        raise InvalidPeriodError(f"Invalid {label} date: {value!r}") from exc


def week_range(ref: date) -> DateRange:
    """Monday..Sunday of the ISO week containing ref."""
    start = ref - timedelta(days=ref.weekday())
    return DateRange(start, start + timedelta(days=6))


def month_range(ref: date) -> DateRange:
    last_day = calendar.monthrange(ref.year, ref.month)[1]
    return DateRange(ref.replace(day=1), ref.replace(day=last_day))


def year_range(ref: date) -> DateRange:
    return DateRange(date(ref.year, 1, 1), date(ref.year, 12, 31))


def compute_range(
    period: str,
    reference: date | datetime | None = None,
    custom_start: date | datetime | str | None = None,
    custom_end: date | datetime | str | None = None,
    tz: tzinfo | None = None,
) -> DateRange:
    """Return the inclusive DateRange for a period kind.

    period: "weekly" | "monthly" | "yearly" | "custom"
    """
    if period == "custom":
        start = _coerce_bound(custom_start, "start")
        end = _coerce_bound(custom_end, "end")
        return DateRange(start, end)

    if period not in PERIOD_KINDS:
        raise InvalidPeriodError(
            f"Unknown period {period!r}. Must be one of: {', '.join(PERIOD_KINDS)}"
        )

    ref = reference_date(reference, tz)
    if period == "weekly":
        return week_range(ref)
    if period == "monthly":
        return month_range(ref)
    return year_range(ref)


def _shift_months(d: date, months: int) -> date:
    """Move d back by a number of months, clamping the day to the target month."""
    index = d.year * 12 + (d.month - 1) - months
    year, month = divmod(index, 12)
    month += 1
    day = min(d.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def view_range(
    view: str,
    reference: date | datetime | None = None,
    tz: tzinfo | None = None,
) -> DateRange:
    """Trailing heatmap window ending on the reference date.

    view: "year" | "6months" | "3months"
    """
    if view not in VIEW_MODES:
        raise InvalidPeriodError(
            f"Unknown view {view!r}. Must be one of: {', '.join(VIEW_MODES)}"
        )
    ref = reference_date(reference, tz)
    return DateRange(_shift_months(ref, VIEW_MODES[view]), ref)
