"""Intensity score for activities.

A weighted effort measure combining distance, moving time, elevation, and
speed/heart-rate bonuses. Weights come from config so scoring can be
retuned without code changes.
"""

from __future__ import annotations

from dataclasses import dataclass, fields

from strava_dash.parser import ActivityRecord

MS_TO_KMH = 3.6

# Fraction of the day maximum -> heatmap level (1-5). Level 0 is reserved for empty days.
LEVEL_BREAKPOINTS: tuple[float, ...] = (0.2, 0.4, 0.6, 0.8)

_CAMEL_KEYS: dict[str, str] = {
    "distanceMultiplier": "distance_multiplier",
    "timeMultiplier": "time_multiplier",
    "elevationMultiplier": "elevation_multiplier",
    "speedBonusThreshold": "speed_bonus_threshold",
    "speedBonusMultiplier": "speed_bonus_multiplier",
    "heartRateThreshold": "heart_rate_threshold",
    "heartRateBonusMultiplier": "heart_rate_bonus_multiplier",
}


@dataclass(frozen=True)
class IntensityWeights:
    distance_multiplier: float = 10.0  # per km
    time_multiplier: float = 20.0  # per hour
    elevation_multiplier: float = 0.1  # per meter
    speed_bonus_threshold: float = 15.0  # km/h
    speed_bonus_multiplier: float = 2.0
    heart_rate_threshold: float = 120.0  # bpm
    heart_rate_bonus_multiplier: float = 0.5

    @classmethod
    def from_dict(cls, data: dict) -> IntensityWeights:
        """Build weights from a config dict, camelCase or snake_case keys.

        Unknown keys are ignored; missing keys keep their defaults.
        """
        known = {f.name for f in fields(cls)}
        values: dict[str, float] = {}
        for key, value in data.items():
            name = _CAMEL_KEYS.get(key, key)
            if name in known:
                values[name] = float(value)
        return cls(**values)

    def to_dict(self) -> dict[str, float]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


DEFAULT_WEIGHTS = IntensityWeights()


def normalize_weight_key(key: str) -> str:
    """Map a camelCase or snake_case weight name to the field name.

    Raises KeyError for names that aren't weights.
    """
    name = _CAMEL_KEYS.get(key, key)
    if name not in {f.name for f in fields(IntensityWeights)}:
        raise KeyError(key)
    return name


def activity_intensity(record: ActivityRecord, weights: IntensityWeights = DEFAULT_WEIGHTS) -> float:
    """Score a single activity. Always >= 0."""
    score = (record.distance / 1000) * weights.distance_multiplier
    score += (record.moving_time / 3600) * weights.time_multiplier
    score += record.total_elevation_gain * weights.elevation_multiplier

    if record.average_speed:
        speed_kmh = record.average_speed * MS_TO_KMH
        if speed_kmh > weights.speed_bonus_threshold:
            score += (speed_kmh - weights.speed_bonus_threshold) * weights.speed_bonus_multiplier

    if record.average_heartrate and record.average_heartrate > weights.heart_rate_threshold:
        score += (record.average_heartrate - weights.heart_rate_threshold) * weights.heart_rate_bonus_multiplier

    return score


def intensity_level(value: float, max_value: float) -> int:
    """Bucket a day value into a heatmap shade 0-5 relative to the busiest day."""
    if value <= 0:
        return 0
    ratio = value / max_value if max_value > 0 else 0.0
    for level, breakpoint in enumerate(LEVEL_BREAKPOINTS, start=1):
        if ratio <= breakpoint:
            return level
    return 5
