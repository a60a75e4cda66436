"""CLI commands for strava-dash."""

from __future__ import annotations

import argparse
import json
import logging
from datetime import date
from pathlib import Path

from strava_dash.compare import LEADERBOARD_METRICS, head_to_head, leaderboard, load_athletes
from strava_dash.config import (
    get_activities_file,
    get_friends_dir,
    get_intensity_weights,
    get_timezone,
    load_config,
    set_activities_file,
    set_friends_dir,
    set_intensity_weight,
    set_timezone,
)
from strava_dash.display import (
    console,
    print_error,
    print_goal_progress,
    print_head_to_head,
    print_heatmap,
    print_leaderboard,
    print_no_data_message,
    print_range,
    print_records,
)
from strava_dash.goals import GOAL_TYPES, create_goal, goal_progress
from strava_dash.heatmap import Metric, aggregate, parse_metric
from strava_dash.parser import ActivityDataParser, ActivityRecord
from strava_dash.periods import PERIOD_KINDS, VIEW_MODES, InvalidPeriodError, compute_range, view_range
from strava_dash.records import personal_records

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser."""
    parser = argparse.ArgumentParser(
        prog="strava-dash",
        description="Heatmaps, streaks and goals from your Strava activities",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command")

    range_parser = subparsers.add_parser("range", help="Show the date range for a goal period")
    range_parser.add_argument("--period", "-p", choices=PERIOD_KINDS, default="weekly")
    _add_date_args(range_parser)
    range_parser.add_argument("--json", action="store_true", help="Print JSON instead of a panel")

    hm_parser = subparsers.add_parser("heatmap", help="Show the activity heatmap")
    hm_parser.add_argument("--file", "-f", default=None, help="Activities export (JSON or JSONL)")
    hm_parser.add_argument("--metric", "-m", default=Metric.INTENSITY.value, help="count, distance, time or intensity")
    window = hm_parser.add_mutually_exclusive_group()
    window.add_argument("--period", "-p", choices=PERIOD_KINDS, default=None)
    window.add_argument("--view", choices=list(VIEW_MODES), default=None)
    hm_parser.add_argument("--types", "-t", default=None, help="Comma-separated activity types, e.g. Run,Ride")
    _add_date_args(hm_parser)
    hm_parser.add_argument("--json", action="store_true", help="Print JSON instead of a heatmap")

    goal_parser = subparsers.add_parser("goal", help="Show progress toward a goal")
    goal_parser.add_argument("--type", dest="goal_type", choices=GOAL_TYPES, required=True)
    goal_parser.add_argument("--target", type=float, required=True, help="Meters for distance/elevation, seconds for time")
    goal_parser.add_argument("--period", "-p", choices=PERIOD_KINDS, default="monthly")
    goal_parser.add_argument("--name", default=None)
    goal_parser.add_argument("--file", "-f", default=None, help="Activities export (JSON or JSONL)")
    goal_parser.add_argument("--types", "-t", default=None, help="Comma-separated activity types")
    _add_date_args(goal_parser)
    goal_parser.add_argument("--json", action="store_true")

    rec_parser = subparsers.add_parser("records", help="Show personal records at standard distances")
    rec_parser.add_argument("--file", "-f", default=None, help="Activities export (JSON or JSONL)")
    rec_parser.add_argument("--types", "-t", default=None, help="Comma-separated activity types")
    rec_parser.add_argument("--today", default=None, help="Reference date (YYYY-MM-DD), defaults to now")
    rec_parser.add_argument("--json", action="store_true")

    cmp_parser = subparsers.add_parser("compare", help="Compare athletes from a directory of exports")
    cmp_parser.add_argument("--dir", "-d", default=None, help="Directory with one export per athlete")
    cmp_parser.add_argument("--period", "-p", choices=(*PERIOD_KINDS, "all"), default="monthly")
    cmp_parser.add_argument("--sort-by", choices=LEADERBOARD_METRICS, default="total_distance")
    cmp_parser.add_argument("--vs", nargs=2, metavar=("ATHLETE", "ATHLETE"), default=None, help="Head-to-head between two athletes")
    cmp_parser.add_argument("--types", "-t", default=None, help="Comma-separated activity types")
    _add_date_args(cmp_parser)
    cmp_parser.add_argument("--json", action="store_true")

    cfg_parser = subparsers.add_parser("config", help="Show or change settings")
    cfg_sub = cfg_parser.add_subparsers(dest="cfg_command")
    cfg_sub.add_parser("show", help="Print current config")
    weight_p = cfg_sub.add_parser("set-weight", help="Set an intensity weight")
    weight_p.add_argument("key")
    weight_p.add_argument("value", type=float)
    tz_p = cfg_sub.add_parser("set-timezone", help="Set the IANA timezone used for 'today'")
    tz_p.add_argument("name")
    file_p = cfg_sub.add_parser("set-file", help="Set the default activities export")
    file_p.add_argument("path")
    friends_p = cfg_sub.add_parser("set-friends-dir", help="Set the directory of friends' exports")
    friends_p.add_argument("path")
    return parser


def _add_date_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--start", default=None, help="Custom period start (YYYY-MM-DD)")
    parser.add_argument("--end", default=None, help="Custom period end (YYYY-MM-DD)")
    parser.add_argument("--today", default=None, help="Reference date (YYYY-MM-DD), defaults to now")


def _split_types(raw: str | None) -> list[str]:
    if not raw:
        return []
    return [t.strip() for t in raw.split(",") if t.strip()]


def _reference(today: str | None) -> date | None:
    if not today:
        return None
    try:
        return date.fromisoformat(today)
    except ValueError as exc:
        raise InvalidPeriodError(f"Invalid --today date: {today!r}") from exc


def _load_records(file: str | None) -> tuple[Path, list[ActivityRecord]]:
    path = Path(file).expanduser() if file else get_activities_file()
    return path, ActivityDataParser(path).load_activities()


def main(argv: list[str] | None = None) -> None:
    """Entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    command = args.command or "heatmap"

    try:
        if command == "range":
            do_range(args.period, today=args.today, start=args.start, end=args.end, as_json=args.json)
        elif command == "heatmap":
            do_heatmap(
                file=getattr(args, "file", None),
                metric=getattr(args, "metric", Metric.INTENSITY.value),
                period=getattr(args, "period", None),
                view=getattr(args, "view", None),
                types=getattr(args, "types", None),
                today=getattr(args, "today", None),
                start=getattr(args, "start", None),
                end=getattr(args, "end", None),
                as_json=getattr(args, "json", False),
            )
        elif command == "goal":
            do_goal(
                goal_type=args.goal_type,
                target=args.target,
                period=args.period,
                name=args.name,
                file=args.file,
                types=args.types,
                today=args.today,
                start=args.start,
                end=args.end,
                as_json=args.json,
            )
        elif command == "records":
            do_records(file=args.file, types=args.types, today=args.today, as_json=args.json)
        elif command == "compare":
            do_compare(
                directory=args.dir,
                period=args.period,
                sort_by=args.sort_by,
                versus=args.vs,
                types=args.types,
                today=args.today,
                start=args.start,
                end=args.end,
                as_json=args.json,
            )
        elif command == "config":
            cfg_cmd = getattr(args, "cfg_command", None)
            if cfg_cmd == "set-weight":
                do_config_set_weight(args.key, args.value)
            elif cfg_cmd == "set-timezone":
                do_config_set_timezone(args.name)
            elif cfg_cmd == "set-file":
                do_config_set_file(args.path)
            elif cfg_cmd == "set-friends-dir":
                do_config_set_friends_dir(args.path)
            else:
                do_config_show()
    except ValueError as exc:  # InvalidPeriodError, InvalidMetricError, bad goal or athlete
        logger.debug("Command %s failed", command, exc_info=True)
        print_error(str(exc))
        raise SystemExit(2) from exc


def do_range(
    period: str,
    today: str | None = None,
    start: str | None = None,
    end: str | None = None,
    as_json: bool = False,
) -> dict:
    """Compute and print the range for a period."""
    date_range = compute_range(period, _reference(today), start, end, tz=get_timezone())
    result = date_range.to_dict()
    if as_json:
        console.print_json(json.dumps(result))
    else:
        print_range(date_range, period)
    return result


def do_heatmap(
    file: str | None = None,
    metric: str = Metric.INTENSITY.value,
    period: str | None = None,
    view: str | None = None,
    types: str | None = None,
    today: str | None = None,
    start: str | None = None,
    end: str | None = None,
    as_json: bool = False,
) -> dict:
    """Aggregate activities into a heatmap for a goal period or trailing view."""
    selected = parse_metric(metric)
    tz = get_timezone()
    reference = _reference(today)
    if period:
        date_range = compute_range(period, reference, start, end, tz=tz)
    else:
        date_range = view_range(view or "year", reference, tz=tz)

    path, records = _load_records(file)
    if not records:
        print_no_data_message(str(path))
        return {"ok": False, "reason": "no_data"}

    result = aggregate(
        records,
        selected,
        date_range,
        type_filter=_split_types(types),
        weights=get_intensity_weights(),
    )
    data = result.to_dict()
    if as_json:
        console.print_json(json.dumps(data))
    else:
        print_heatmap(result)
    return {"ok": True, **data}


def do_goal(
    goal_type: str,
    target: float,
    period: str = "monthly",
    name: str | None = None,
    file: str | None = None,
    types: str | None = None,
    today: str | None = None,
    start: str | None = None,
    end: str | None = None,
    as_json: bool = False,
) -> dict:
    """Create an ad-hoc goal and report progress against the activity export."""
    goal = create_goal(
        name or f"{period.capitalize()} {goal_type}",
        goal_type,
        target,
        period,
        reference=_reference(today),
        custom_start=start,
        custom_end=end,
        activity_types=_split_types(types),
        tz=get_timezone(),
    )

    path, records = _load_records(file)
    if not records:
        print_no_data_message(str(path))
        return {"ok": False, "reason": "no_data"}

    progress = goal_progress(goal, records)
    data = {"goal": goal.to_dict(), "progress": progress.to_dict()}
    if as_json:
        console.print_json(json.dumps(data))
    else:
        print_goal_progress(goal, progress)
    return {"ok": True, **data}


def do_records(
    file: str | None = None,
    types: str | None = None,
    today: str | None = None,
    as_json: bool = False,
) -> dict:
    """Report personal records across the whole export."""
    reference = _reference(today)
    path, records = _load_records(file)
    if not records:
        print_no_data_message(str(path))
        return {"ok": False, "reason": "no_data"}

    report = personal_records(records, reference=reference, type_filter=_split_types(types))
    data = report.to_dict()
    if as_json:
        console.print_json(json.dumps(data))
    else:
        print_records(report)
    return {"ok": True, **data}


def do_compare(
    directory: str | None = None,
    period: str = "monthly",
    sort_by: str = "total_distance",
    versus: list[str] | None = None,
    types: str | None = None,
    today: str | None = None,
    start: str | None = None,
    end: str | None = None,
    as_json: bool = False,
) -> dict:
    """Rank athletes over a period, or compare two of them head-to-head."""
    if period == "all":
        date_range = None
    else:
        date_range = compute_range(period, _reference(today), start, end, tz=get_timezone())
    type_list = _split_types(types)

    friends_dir = Path(directory).expanduser() if directory else get_friends_dir()
    athletes = load_athletes(friends_dir)
    if not athletes:
        print_error(f"No athlete exports found in {friends_dir}")
        return {"ok": False, "reason": "no_data"}

    label = "All time" if date_range is None else f"{date_range.start} to {date_range.end}"
    if versus:
        first, second = versus
        for name in versus:
            if name not in athletes:
                raise ValueError(f"Unknown athlete {name!r}. Available: {', '.join(athletes)}")
        result = head_to_head(first, athletes[first], second, athletes[second], date_range, type_list)
        data = {"period": label, **result.to_dict()}
        if as_json:
            console.print_json(json.dumps(data))
        else:
            print_head_to_head(result)
        return {"ok": True, **data}

    entries = leaderboard(athletes, date_range, type_list, sort_by=sort_by)
    data = {"period": label, "leaderboard": [e.to_dict() for e in entries]}
    if as_json:
        console.print_json(json.dumps(data))
    else:
        print_leaderboard(entries, f"Leaderboard ({label})")
    return {"ok": True, **data}


def do_config_show() -> dict:
    config = load_config()
    data = {
        "activities_file": str(get_activities_file()),
        "friends_dir": str(get_friends_dir()),
        "timezone": config.get("timezone"),
        "intensity": get_intensity_weights().to_dict(),
    }
    console.print_json(json.dumps(data))
    return data


def do_config_set_weight(key: str, value: float) -> dict:
    try:
        name = set_intensity_weight(key, value)
    except KeyError as exc:
        raise ValueError(f"Unknown intensity weight: {key!r}") from exc
    console.print(f"[green]Set {name} = {value}[/]")
    return {"ok": True, "key": name, "value": value}


def do_config_set_timezone(name: str) -> dict:
    set_timezone(name)
    console.print(f"[green]Timezone set to {name}[/]")
    return {"ok": True, "timezone": name}


def do_config_set_file(path: str) -> dict:
    expanded = Path(path).expanduser().resolve()
    set_activities_file(expanded)
    console.print(f"[green]Activities file set to {expanded}[/]")
    return {"ok": True, "activities_file": str(expanded)}


def do_config_set_friends_dir(path: str) -> dict:
    expanded = Path(path).expanduser().resolve()
    set_friends_dir(expanded)
    console.print(f"[green]Friends directory set to {expanded}[/]")
    return {"ok": True, "friends_dir": str(expanded)}
