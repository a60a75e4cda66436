"""Personal records at standard running and cycling distances.

Activity exports carry no GPS streams, so the best effort at a distance is
estimated from each activity's moving pace. Pure functions, no I/O.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable

from strava_dash.heatmap import filter_by_type
from strava_dash.parser import ActivityRecord

logger = logging.getLogger(__name__)

RUNNING_TYPES = frozenset({"Run", "TrailRun", "Treadmill"})
CYCLING_TYPES = frozenset({"Ride", "MountainBikeRide", "GravelRide", "EBikeRide", "VirtualRide"})

# An activity qualifies for a distance once it covers this share of it
QUALIFYING_RATIO = 0.95

RECENT_DAYS = 30
TREND_DAYS = 90
ATTEMPTS_KEPT = 5

# Riegel-style exponents for predicting unraced distances
PREDICTION_EXPONENTS = {"running": 1.06, "cycling": 0.98}


@dataclass(frozen=True)
class StandardDistance:
    name: str
    meters: float
    category: str  # running | cycling

    def to_dict(self) -> dict:
        return {"name": self.name, "meters": self.meters, "category": self.category}


STANDARD_DISTANCES: tuple[StandardDistance, ...] = (
    StandardDistance("1K", 1000, "running"),
    StandardDistance("5K", 5000, "running"),
    StandardDistance("10K", 10000, "running"),
    StandardDistance("Half Marathon", 21097.5, "running"),
    StandardDistance("Marathon", 42195, "running"),
    StandardDistance("10K", 10000, "cycling"),
    StandardDistance("20K", 20000, "cycling"),
    StandardDistance("40K", 40000, "cycling"),
    StandardDistance("100K Century", 100000, "cycling"),
    StandardDistance("100 Miles", 160934, "cycling"),
)


@dataclass(frozen=True)
class Attempt:
    activity_id: str
    activity_name: str
    date: date
    time: float  # seconds
    pace: float  # sec/km running, km/h cycling
    is_record: bool
    improvement: float | None = None  # % faster than the previous record

    def to_dict(self) -> dict:
        return {
            "activityId": self.activity_id,
            "activityName": self.activity_name,
            "date": self.date.isoformat(),
            "time": self.time,
            "pace": self.pace,
            "isPersonalRecord": self.is_record,
            "improvementPercentage": self.improvement,
        }


@dataclass(frozen=True)
class PersonalRecord:
    distance: StandardDistance
    best_time: float
    best_pace: float
    activity_id: str
    activity_name: str
    achieved_date: date
    improvement_from_previous: float | None
    attempts: tuple[Attempt, ...]  # most recent, oldest first

    def to_dict(self) -> dict:
        return {
            "distance": self.distance.to_dict(),
            "bestTime": self.best_time,
            "bestPace": self.best_pace,
            "activityId": self.activity_id,
            "activityName": self.activity_name,
            "achievedDate": self.achieved_date.isoformat(),
            "improvementFromPrevious": self.improvement_from_previous,
            "recentAttempts": [a.to_dict() for a in self.attempts],
        }


@dataclass(frozen=True)
class RecordPrediction:
    distance: StandardDistance
    estimated_time: float
    confidence: str  # high | medium | low
    based_on: float  # meters of the record used

    def to_dict(self) -> dict:
        return {
            "distance": self.distance.to_dict(),
            "estimatedTime": self.estimated_time,
            "confidenceLevel": self.confidence,
            "basedOnDistance": self.based_on,
        }


@dataclass(frozen=True)
class RecordsReport:
    records: tuple[PersonalRecord, ...]
    recent: tuple[PersonalRecord, ...]
    predictions: tuple[RecordPrediction, ...]
    improving: tuple[StandardDistance, ...]
    stagnant: tuple[StandardDistance, ...]
    average_improvement: float

    def to_dict(self) -> dict:
        return {
            "personalRecords": [r.to_dict() for r in self.records],
            "recentImprovements": [r.to_dict() for r in self.recent],
            "potentialRecords": [p.to_dict() for p in self.predictions],
            "summary": {
                "totalRecords": len(self.records),
                "recentRecords": len(self.recent),
                "improvingDistances": [d.to_dict() for d in self.improving],
                "stagnantDistances": [d.to_dict() for d in self.stagnant],
                "averageImprovement": self.average_improvement,
            },
        }


def activity_category(record: ActivityRecord) -> str | None:
    """'running', 'cycling', or None for anything else."""
    kinds = {record.type, record.sport_type}
    if kinds & RUNNING_TYPES:
        return "running"
    if kinds & CYCLING_TYPES:
        return "cycling"
    return None


def running_pace(seconds: float, meters: float) -> float:
    """Seconds per kilometer. 0 when there is no distance."""
    if meters <= 0:
        return 0.0
    return seconds / (meters / 1000)


def cycling_speed(seconds: float, meters: float) -> float:
    """Kilometers per hour. 0 when there is no time."""
    if seconds <= 0:
        return 0.0
    return (meters / 1000) / (seconds / 3600)


def _pace_for(category: str, seconds: float, meters: float) -> float:
    if category == "running":
        return running_pace(seconds, meters)
    return cycling_speed(seconds, meters)


def format_time(seconds: float) -> str:
    """1500 -> '25:00', 3723 -> '1:02:03'."""
    total = math.floor(seconds + 0.5)
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def format_pace(seconds_per_km: float) -> str:
    """300 -> '5:00/km'."""
    minutes, secs = divmod(math.floor(seconds_per_km + 0.5), 60)
    return f"{minutes}:{secs:02d}/km"


def format_speed(kmh: float) -> str:
    return f"{kmh:.1f} km/h"


def format_record_pace(record: PersonalRecord) -> str:
    if record.distance.category == "running":
        return format_pace(record.best_pace)
    return format_speed(record.best_pace)


def improvement(old_time: float, new_time: float) -> float:
    """Percent by which new_time beats old_time (negative if slower)."""
    if old_time <= 0:
        return 0.0
    return (old_time - new_time) / old_time * 100


def estimate_effort(record: ActivityRecord, meters: float) -> float | None:
    """Estimated best time in seconds over `meters` within one activity.

    Longer activities are assumed to hold a slightly faster pace over the
    shorter distance (2%, or 5% when over 1.5x the distance). Activities
    between 95% and 100% of the distance are extrapolated at average pace.
    Returns None when the activity doesn't qualify.
    """
    if record.moving_time <= 0 or record.distance <= 0:
        return None
    if record.distance < meters * QUALIFYING_RATIO:
        return None
    proportional = meters / record.distance * record.moving_time
    if record.distance < meters:
        return proportional
    factor = 1.05 if record.distance > meters * 1.5 else 1.02
    return proportional / factor


def _attempts_for(distance: StandardDistance, records: list[ActivityRecord]) -> list[Attempt]:
    attempts: list[Attempt] = []
    best = math.inf
    for record in records:
        if activity_category(record) != distance.category:
            continue
        time = estimate_effort(record, distance.meters)
        if time is None:
            continue
        is_record = time < best
        gain = None
        if is_record:
            if best != math.inf:
                gain = improvement(best, time)
            best = time
        attempts.append(Attempt(
            activity_id=record.id,
            activity_name=record.name,
            date=record.local_date,
            time=time,
            pace=_pace_for(distance.category, time, distance.meters),
            is_record=is_record,
            improvement=gain,
        ))
    return attempts


def _record_from_attempts(distance: StandardDistance, attempts: list[Attempt]) -> PersonalRecord:
    record_attempts = [a for a in attempts if a.is_record]
    best = record_attempts[-1]
    previous = None
    if len(record_attempts) >= 2:
        previous = improvement(record_attempts[-2].time, best.time)
    return PersonalRecord(
        distance=distance,
        best_time=best.time,
        best_pace=_pace_for(distance.category, best.time, distance.meters),
        activity_id=best.activity_id,
        activity_name=best.activity_name,
        achieved_date=best.date,
        improvement_from_previous=previous,
        attempts=tuple(attempts[-ATTEMPTS_KEPT:]),
    )


def predict_records(records: Iterable[PersonalRecord]) -> list[RecordPrediction]:
    """Estimate times for standard distances with no record yet.

    Each prediction scales the closest record in the same category.
    """
    records = list(records)
    have = {(r.distance.category, r.distance.meters) for r in records}
    predictions: list[RecordPrediction] = []
    for distance in STANDARD_DISTANCES:
        if (distance.category, distance.meters) in have:
            continue
        same = [r for r in records if r.distance.category == distance.category]
        if not same:
            continue
        closest = min(same, key=lambda r: abs(r.distance.meters - distance.meters))
        ratio = distance.meters / closest.distance.meters
        estimated = closest.best_time * ratio ** PREDICTION_EXPONENTS[distance.category]
        spread = max(ratio, 1 / ratio)
        if spread <= 2:
            confidence = "high"
        elif spread <= 4:
            confidence = "medium"
        else:
            confidence = "low"
        predictions.append(RecordPrediction(distance, estimated, confidence, closest.distance.meters))
    return sorted(predictions, key=lambda p: p.distance.meters)


def _trend(records: list[PersonalRecord], since: date) -> tuple[list, list, float]:
    improving: list[StandardDistance] = []
    stagnant: list[StandardDistance] = []
    gains: list[float] = []
    for record in records:
        window = [a for a in record.attempts if a.date >= since]
        if len(window) >= 2 and window[-1].time < window[0].time:
            improving.append(record.distance)
            gains.append(improvement(window[0].time, window[-1].time))
        else:
            stagnant.append(record.distance)
    average = sum(gains) / len(gains) if gains else 0.0
    return improving, stagnant, average


def personal_records(
    records: Iterable[ActivityRecord],
    reference: date | None = None,
    type_filter: Iterable[str] | None = None,
) -> RecordsReport:
    """Best estimated effort per standard distance, with history and predictions.

    Attempts are evaluated oldest first, so an attempt is a record when it
    beats every earlier attempt at that distance.
    """
    today = reference or date.today()
    ordered = sorted(
        filter_by_type(records, type_filter),
        key=lambda r: (r.start_date_local, r.id),
    )

    found: list[PersonalRecord] = []
    for distance in STANDARD_DISTANCES:
        attempts = _attempts_for(distance, ordered)
        if attempts:
            found.append(_record_from_attempts(distance, attempts))

    recent_since = today - timedelta(days=RECENT_DAYS)
    recent = [r for r in found if r.achieved_date >= recent_since]
    improving, stagnant, average = _trend(found, today - timedelta(days=TREND_DAYS))
    logger.debug("Found %d personal records from %d activities", len(found), len(ordered))

    return RecordsReport(
        records=tuple(found),
        recent=tuple(recent),
        predictions=tuple(predict_records(found)),
        improving=tuple(improving),
        stagnant=tuple(stagnant),
        average_improvement=average,
    )
