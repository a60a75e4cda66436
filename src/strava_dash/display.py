"""Rich terminal display for strava-dash."""

from __future__ import annotations

from datetime import timedelta

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from strava_dash.compare import HeadToHead, LeaderboardEntry
from strava_dash.goals import Goal, GoalProgress, format_goal_value
from strava_dash.heatmap import HeatmapResult, Metric
from strava_dash.intensity import intensity_level
from strava_dash.periods import DateRange
from strava_dash.records import RecordsReport, format_record_pace, format_time

console = Console()

# Heatmap shade per intensity level (0 = no activity)
_LEVEL_COLORS: dict[int, str] = {
    0: "grey23",
    1: "navajo_white1",
    2: "light_salmon1",
    3: "dark_orange",
    4: "orange_red1",
    5: "red3",
}

_WEEKDAY_LABELS = ("Mon", "", "Wed", "", "Fri", "", "Sun")

_CELL = "■"


def format_number(n: float) -> str:
    """Format large numbers: 421543 -> '421.5K', 1200 -> '1,200', 1234567 -> '1.2M'."""
    if n >= 1_000_000:
        value = n / 1_000_000
        if value >= 100:
            return f"{value:.0f}M"
        return f"{value:.1f}M"
    if n >= 10_000:
        return f"{n / 1_000:.1f}K"
    return f"{round(n):,}"


def format_distance(meters: float) -> str:
    """1500 -> '1.5 km', 640 -> '640 m'."""
    if meters < 1000:
        return f"{round(meters)} m"
    return f"{meters / 1000:.1f} km"


def format_duration(seconds: float) -> str:
    """3900 -> '1h 5m', 125 -> '2m 5s', 45 -> '45s'."""
    total = int(seconds)
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    if hours > 0:
        return f"{hours}h {minutes}m"
    if minutes > 0:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


def format_metric_value(value: float, metric: Metric) -> str:
    """Human-readable value for a heatmap metric."""
    if metric == Metric.DISTANCE:
        return format_distance(value)
    if metric == Metric.TIME:
        return format_duration(value)
    if metric == Metric.COUNT:
        count = int(value)
        return f"{count} {'activity' if count == 1 else 'activities'}"
    return f"{value:.1f} intensity"


def _progress_bar(current: float, total: float, width: int = 20) -> str:
    """Render a progress bar as text: [████████░░░░░░░░░░░░]."""
    if total <= 0:
        return "[" + "█" * width + "]"
    ratio = min(current / total, 1.0)
    filled = int(ratio * width)
    return "[" + "█" * filled + "░" * (width - filled) + "]"


def print_range(date_range: DateRange, period: str) -> None:
    """Print a computed period range."""
    lines = [
        "",
        f"  Start:  [bold]{date_range.start.isoformat()}[/] ({date_range.start.strftime('%A')})",
        f"  End:    [bold]{date_range.end.isoformat()}[/] ({date_range.end.strftime('%A')})",
        f"  Days:   {date_range.day_count}",
        "",
    ]
    panel = Panel(
        "\n".join(lines),
        title=f"[bold]{period.capitalize()} Period[/]",
        box=box.ROUNDED,
        border_style="cyan",
        width=50,
    )
    console.print(panel)


def _heatmap_grid(result: HeatmapResult) -> list[str]:
    """One text row per weekday, one column per ISO week."""
    buckets = result.buckets
    if not buckets:
        return []
    max_value = max(b.value for b in buckets)
    by_date = {b.date: b for b in buckets}

    first_monday = buckets[0].date - timedelta(days=buckets[0].date.weekday())
    weeks = (buckets[-1].date - first_monday).days // 7 + 1

    rows: list[str] = []
    for weekday in range(7):
        cells: list[str] = []
        for week in range(weeks):
            day = first_monday + timedelta(days=week * 7 + weekday)
            bucket = by_date.get(day)
            if bucket is None:
                cells.append(" ")
                continue
            color = _LEVEL_COLORS[intensity_level(bucket.value, max_value)]
            cells.append(f"[{color}]{_CELL}[/]")
        rows.append(f"  {_WEEKDAY_LABELS[weekday]:<4}" + "".join(cells))
    return rows


def print_heatmap(result: HeatmapResult) -> None:
    """Print the calendar heatmap followed by a stats panel."""
    date_range = result.date_range
    metric = result.metric
    stats = result.stats

    grid = _heatmap_grid(result)
    legend = "  Less " + "".join(f"[{c}]{_CELL}[/]" for c in _LEVEL_COLORS.values()) + " More"
    console.print(
        Panel(
            "\n".join(["", *grid, "", legend, ""]),
            title=f"[bold]Activity Heatmap ({metric.value}: {date_range.start} to {date_range.end})[/]",
            box=box.ROUNDED,
            border_style="dark_orange",
        )
    )

    table = Table(
        title="Summary",
        box=box.ROUNDED,
        border_style="dark_orange",
        show_header=True,
        header_style="bold",
    )
    table.add_column("Stat", style="bold")
    table.add_column("Value", justify="right")

    table.add_row("Activities", format_number(stats.total_activities))
    table.add_row("Total", format_metric_value(stats.total_value, metric))
    table.add_row("Distance", format_distance(stats.total_distance))
    table.add_row("Moving Time", format_duration(stats.total_time))
    table.add_row("Avg / Active Day", format_metric_value(stats.average, metric))
    table.add_row("Active Days", f"{stats.active_days}/{stats.total_days}")
    table.add_row("Longest Streak", f"{stats.streak} days")
    table.add_row("Current Streak", f"{stats.current_streak} days")
    if stats.peak_date and stats.peak_value > 0:
        table.add_row("Peak Day", f"{stats.peak_date} ({format_metric_value(stats.peak_value, metric)})")

    console.print(table)


def print_goal_progress(goal: Goal, progress: GoalProgress) -> None:
    """Print a goal with its progress bar."""
    color = "green" if progress.is_completed else "yellow"
    bar = _progress_bar(progress.current, progress.target)
    lines = [
        "",
        f"  [bold]{goal.name}[/]",
        f"  {goal.date_range.start} to {goal.date_range.end}",
        "",
        f"  {bar} {progress.percentage}%",
        f"  {format_goal_value(progress.current, goal.type)} / {format_goal_value(progress.target, goal.type)}",
    ]
    if progress.is_completed:
        lines.append("  ✅ Goal complete!")
    else:
        lines.append(f"  Remaining: {format_goal_value(progress.remaining, goal.type)}")
    if goal.activity_types:
        lines.append(f"  Types: {', '.join(goal.activity_types)}")
    lines.append("")

    panel = Panel(
        "\n".join(lines),
        title=f"[bold]{goal.period.capitalize()} {goal.type} goal[/]",
        box=box.ROUNDED,
        border_style=color,
        width=50,
    )
    console.print(panel)


def print_records(report: RecordsReport) -> None:
    """Print personal records per standard distance, then predictions."""
    table = Table(
        title="Personal Records",
        box=box.ROUNDED,
        border_style="dark_orange",
        show_header=True,
        header_style="bold",
    )
    table.add_column("", width=2)
    table.add_column("Distance", min_width=14)
    table.add_column("Time", justify="right")
    table.add_column("Pace", justify="right")
    table.add_column("Activity", min_width=16)
    table.add_column("Date", width=12)

    recent_keys = {(r.distance.category, r.distance.meters) for r in report.recent}
    for record in report.records:
        icon = "\U0001f3c3" if record.distance.category == "running" else "\U0001f6b4"
        name = f"[bold]{record.distance.name}[/]"
        if (record.distance.category, record.distance.meters) in recent_keys:
            name += " [green]NEW[/]"
        table.add_row(
            icon,
            name,
            format_time(record.best_time),
            format_record_pace(record),
            record.activity_name,
            record.achieved_date.isoformat(),
        )
    console.print(table)

    if report.predictions:
        lines = [""]
        for prediction in report.predictions:
            lines.append(
                f"  {prediction.distance.name} ({prediction.distance.category}): "
                f"~{format_time(prediction.estimated_time)} ({prediction.confidence} confidence)"
            )
        lines.append("")
        console.print(
            Panel(
                "\n".join(lines),
                title="[bold]Potential Records[/]",
                box=box.ROUNDED,
                border_style="grey50",
                width=60,
            )
        )


_MEDALS = {1: "\U0001f947", 2: "\U0001f948", 3: "\U0001f949"}


def print_leaderboard(entries: list[LeaderboardEntry], title: str) -> None:
    """Print ranked athletes with their period totals."""
    table = Table(
        title=title,
        box=box.ROUNDED,
        border_style="cyan",
        show_header=True,
        header_style="bold",
    )
    table.add_column("#", justify="right", width=4)
    table.add_column("Athlete", min_width=14)
    table.add_column("Distance", justify="right")
    table.add_column("Time", justify="right")
    table.add_column("Elevation", justify="right")
    table.add_column("Activities", justify="right")

    for entry in entries:
        stats = entry.stats
        rank = _MEDALS.get(entry.rank, str(entry.rank))
        table.add_row(
            rank,
            f"[bold]{entry.athlete}[/]",
            format_distance(stats.total_distance),
            format_duration(stats.total_time),
            f"{round(stats.total_elevation):,} m",
            str(stats.activity_count),
        )
    console.print(table)


def print_head_to_head(result: HeadToHead) -> None:
    """Print a metric-by-metric comparison of two athletes."""
    table = Table(
        title=f"{result.first} vs {result.second}",
        box=box.ROUNDED,
        border_style="cyan",
        show_header=True,
        header_style="bold",
    )
    table.add_column("Metric", style="bold")
    table.add_column(result.first, justify="right")
    table.add_column(result.second, justify="right")
    table.add_column("Winner")

    formatters = {
        "distance": format_distance,
        "time": format_duration,
        "elevation": lambda v: f"{round(v):,} m",
        "activities": lambda v: str(int(v)),
        "avgSpeed": lambda v: f"{v * 3.6:.1f} km/h",
    }
    for key, comparison in result.comparisons.items():
        fmt = formatters.get(key, str)
        table.add_row(key, fmt(comparison.first), fmt(comparison.second), comparison.winner or "tie")
    console.print(table)

    winner = result.overall_winner or "Tie"
    console.print(f"  [bold]{winner}[/] ({result.first_wins}-{result.second_wins})")


def print_no_data_message(path: str) -> None:
    """Print message when no activities are available."""
    panel = Panel(
        f"\n  No activities found in [bold]{path}[/].\n"
        "  Export your Strava activities to JSON and point\n"
        "  [bold]strava-dash config set-file[/] at it.\n",
        title="[bold]STRAVA DASH[/]",
        box=box.ROUNDED,
        border_style="grey50",
        width=60,
    )
    console.print(panel)


def print_error(message: str) -> None:
    console.print(f"[red]{message}[/]")
