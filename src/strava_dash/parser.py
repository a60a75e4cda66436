"""Parse Strava activity exports into ActivityRecord values.

The fetcher that talks to the Strava API lives elsewhere; this module only
reads what it wrote: a JSON array of raw activities (the shape returned by
GET /athlete/activities), an object with an "activities" key, or JSON Lines.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass
from datetime import date, datetime, timezone
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ActivityRecord:
    id: str
    name: str
    type: str
    sport_type: str | None
    start_date: datetime  # absolute, UTC
    start_date_local: datetime  # naive civil time
    distance: float = 0.0  # meters
    moving_time: float = 0.0  # seconds
    elapsed_time: float = 0.0  # seconds
    total_elevation_gain: float = 0.0  # meters
    average_speed: float | None = None  # m/s
    max_speed: float | None = None
    average_heartrate: float | None = None
    max_heartrate: float | None = None
    calories: float | None = None

    @property
    def local_date(self) -> date:
        """Calendar day the activity belongs to (local start time)."""
        return self.start_date_local.date()


def _metric(raw: dict, key: str) -> float:
    """Required metric: missing, negative or garbage values become 0."""
    value = _optional_metric(raw, key)
    if value is None or value < 0:
        return 0.0
    return value


def _optional_metric(raw: dict, key: str) -> float | None:
    value = raw.get(key)
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def _parse_timestamp(value: object) -> datetime | None:
    if not isinstance(value, str) or not value:
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def parse_activity(raw: dict) -> ActivityRecord | None:
    """Normalize one raw activity dict.

    Returns None only when neither start_date_local nor start_date can be
    parsed, since the activity cannot be placed on a calendar day.
    """
    absolute = _parse_timestamp(raw.get("start_date"))
    local = _parse_timestamp(raw.get("start_date_local"))

    if local is None and absolute is None:
        logger.warning("Skipping activity %s: no usable start date", raw.get("id"))
        return None

    if local is None:
        # Without a local timestamp the absolute instant is the best guess
        local = absolute
    # start_date_local is civil time; Strava tags it with a bogus "Z"
    local = local.replace(tzinfo=None)

    if absolute is None:
        absolute = local.replace(tzinfo=timezone.utc)
    elif absolute.tzinfo is None:
        absolute = absolute.replace(tzinfo=timezone.utc)
    else:
        absolute = absolute.astimezone(timezone.utc)

    sport_type = raw.get("sport_type")
    return ActivityRecord(
        id=str(raw.get("id", "")),
        name=str(raw.get("name") or ""),
        type=str(raw.get("type") or ""),
        sport_type=str(sport_type) if sport_type else None,
        start_date=absolute,
        start_date_local=local,
        distance=_metric(raw, "distance"),
        moving_time=_metric(raw, "moving_time"),
        elapsed_time=_metric(raw, "elapsed_time"),
        total_elevation_gain=_metric(raw, "total_elevation_gain"),
        average_speed=_optional_metric(raw, "average_speed"),
        max_speed=_optional_metric(raw, "max_speed"),
        average_heartrate=_optional_metric(raw, "average_heartrate"),
        max_heartrate=_optional_metric(raw, "max_heartrate"),
        calories=_optional_metric(raw, "calories"),
    )


def parse_activities(raw_activities: list[dict]) -> list[ActivityRecord]:
    """Parse a list of raw activities, dropping the ones without a date."""
    records: list[ActivityRecord] = []
    for raw in raw_activities:
        if not isinstance(raw, dict):
            logger.warning("Skipping non-object activity entry: %r", raw)
            continue
        record = parse_activity(raw)
        if record is not None:
            records.append(record)
    return records


class ActivityDataParser:
    def __init__(self, path: Path):
        self.path = path

    def load_raw(self) -> list[dict]:
        """Read raw activity dicts from the export file.

        Accepts a JSON array, an object with an "activities" list, or JSON
        Lines. Returns [] if the file is missing or unreadable. Malformed JSON Lines
        entries are skipped.
        """
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.warning("Activities file not found: %s", self.path)
            return []
        except OSError as exc:
            logger.warning("Cannot read activities file %s: %s", self.path, exc)
            return []

        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            return self._parse_json_lines(text)

        if isinstance(data, dict):
            data = data.get("activities", [])
        if not isinstance(data, list):
            logger.warning("Unexpected activities payload in %s", self.path)
            return []
        return data

    def _parse_json_lines(self, text: str) -> list[dict]:
        entries: list[dict] = []
        for lineno, line in enumerate(text.splitlines(), start=1):
            line = line.strip()
            if not line:
                continue
            try:
                entries.append(json.loads(line))
            except json.JSONDecodeError:
                logger.debug("Skipping malformed line %d in %s", lineno, self.path)
                continue
        return entries

    def load_activities(self) -> list[ActivityRecord]:
        records = parse_activities(self.load_raw())
        logger.debug("Loaded %d activities from %s", len(records), self.path)
        return records
