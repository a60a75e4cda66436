"""Configuration file management for strava-dash.

Reads and writes ~/.strava-dash/config.json: intensity weights, the local
timezone used for "now", the default activities export file, and the
directory of friends' exports used for comparisons.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from strava_dash.intensity import IntensityWeights, normalize_weight_key

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH: Path = Path.home() / ".strava-dash" / "config.json"
DEFAULT_ACTIVITIES_PATH: Path = Path.home() / ".strava-dash" / "activities.json"
DEFAULT_FRIENDS_DIR: Path = Path.home() / ".strava-dash" / "friends"


def load_config(config_path: Path | None = None) -> dict:
    """Load config from JSON file. Returns {} if file missing or invalid."""
    path = config_path or DEFAULT_CONFIG_PATH
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError):
        logger.warning("Ignoring unreadable config file %s", path)
        return {}
    return data if isinstance(data, dict) else {}


def save_config(data: dict, config_path: Path | None = None) -> None:
    """Write config dict to JSON file. Creates parent dirs if needed."""
    path = config_path or DEFAULT_CONFIG_PATH
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")


def get_intensity_weights(config_path: Path | None = None) -> IntensityWeights:
    """Intensity weights from config, defaults for anything not set."""
    raw = load_config(config_path).get("intensity") or {}
    if not isinstance(raw, dict):
        return IntensityWeights()
    try:
        return IntensityWeights.from_dict(raw)
    except (TypeError, ValueError):
        logger.warning("Invalid intensity weights in config, using defaults")
        return IntensityWeights()


def set_intensity_weight(key: str, value: float, config_path: Path | None = None) -> str:
    """Persist one intensity weight. Returns the normalized key.

    Raises KeyError if key isn't a known weight.
    """
    name = normalize_weight_key(key)
    config = load_config(config_path)
    weights = config.get("intensity")
    if not isinstance(weights, dict):
        weights = {}
    weights[name] = float(value)
    config["intensity"] = weights
    save_config(config, config_path)
    return name


def get_timezone(config_path: Path | None = None) -> ZoneInfo | None:
    """Configured IANA timezone, or None for host local time."""
    name = load_config(config_path).get("timezone")
    if not name:
        return None
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone %r in config, using local time", name)
        return None


def set_timezone(name: str, config_path: Path | None = None) -> None:
    """Persist the timezone. Raises ValueError for an unknown zone."""
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown timezone: {name!r}") from exc
    config = load_config(config_path)
    config["timezone"] = name
    save_config(config, config_path)


def get_activities_file(config_path: Path | None = None) -> Path:
    """Return the configured activities export, or the default location."""
    raw = load_config(config_path).get("activities_file")
    if raw:
        return Path(raw)
    return DEFAULT_ACTIVITIES_PATH


def set_activities_file(path: Path, config_path: Path | None = None) -> None:
    """Persist the activities export path to config."""
    config = load_config(config_path)
    config["activities_file"] = str(path)
    save_config(config, config_path)


def get_friends_dir(config_path: Path | None = None) -> Path:
    """Return the configured friends export directory, or the default location."""
    raw = load_config(config_path).get("friends_dir")
    if raw:
        return Path(raw)
    return DEFAULT_FRIENDS_DIR


def set_friends_dir(path: Path, config_path: Path | None = None) -> None:
    """Persist the friends export directory to config."""
    config = load_config(config_path)
    config["friends_dir"] = str(path)
    save_config(config, config_path)
