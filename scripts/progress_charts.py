#!/usr/bin/env python3
"""Exercise progress CLI — period series, progress charts, goal gauges, goal editing.

Usage:
    progress_charts.py <command> <records_file> [args...] [--json]

Commands:
    series       <records> <exercise>             Chart points for one metric and period
    chart        <records> <exercise> <output>    Progress chart (line + goal line) for a period
    gauges       <records> <exercise>             All-time best vs goal, per metric
    chart-gauges <records> <exercise> <output>    Circular goal gauges
    goals        show|set <exercise>              Show or edit an exercise's goals

<exercise> is an exercise id or display name as it appears in the records.
"""

import argparse
import json
import os
import sys
from datetime import datetime
from pathlib import Path

from goal_store import GoalStore, default_store_path
from progress_series import (
    METRICS,
    PERIODS,
    goal_progress,
    parse_timestamp,
    period_series,
    record_exercise,
)


# ---- Constants ----

METRIC_LABELS = {
    "weight": ("Weight Progress (lbs)", "lbs"),
    "reps": ("Reps Progress", "reps"),
    "duration": ("Duration Progress (min)", "min"),
}

METRIC_COLORS = {
    "weight": "#EF5350",
    "reps": "#FFCA28",
    "duration": "#66BB6A",
}

# strftime format for x tick labels per period
TICK_FORMATS = {
    "day": "%H:%M",
    "week": "%a",
    "month": "%d",
    "six_months": "%b",
    "year": "%b",
}


# ---- Helpers ----

def err_exit(msg):
    print(f"Error: {msg}", file=sys.stderr)
    sys.exit(1)


def load_records(path):
    """Load records from a JSON list or {"records": [...]}. Warn on bad entries."""
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Records file not found: {path}")
    data = json.loads(p.read_text())
    if isinstance(data, dict):
        data = data.get("records", [])
    if not isinstance(data, list):
        raise ValueError("records must be a list")
    records = []
    for i, r in enumerate(data):
        if not isinstance(r, dict):
            print(f"Warning: skipping record {i}: not an object", file=sys.stderr)
            continue
        records.append(r)
    return records


def resolve_exercise(records, query):
    """Find the exercise {id, name} for query: id match first, then display name.

    A name that is not text is dropped from the result with a warning.
    """
    by_id = by_name = None
    for r in records:
        ex = record_exercise(r)
        if not ex:
            continue
        if ex.get("id") is not None and str(ex.get("id")) == query:
            by_id = ex
            break
        name = ex.get("name")
        if by_name is None and isinstance(name, str) and name.lower() == query.lower():
            by_name = ex
    ex = by_id or by_name
    if ex is not None and ex.get("name") is not None and not isinstance(ex["name"], str):
        print(f"Warning: ignoring exercise name {ex['name']!r}: not text", file=sys.stderr)
        ex = {k: v for k, v in ex.items() if k != "name"}
    return ex


def parse_now(value):
    if not value:
        return datetime.now()
    now = parse_timestamp(value)
    if now is None:
        raise ValueError(f"Invalid --now timestamp: {value}")
    return now


def format_value(v):
    return f"{v:g}" if isinstance(v, float) else str(v)


def tick_label(dt, period):
    if period == "month":
        return str(dt.day)
    label = dt.strftime(TICK_FORMATS[period])
    if period == "year":
        return label[:1]
    return label


def _store(args):
    return GoalStore.at(args.store or default_store_path(args.records))


def _load(args):
    try:
        records = load_records(args.records)
    except (OSError, ValueError) as e:
        err_exit(str(e))
    exercise = resolve_exercise(records, args.exercise)
    if exercise is None:
        err_exit(f"Exercise '{args.exercise}' not found in records")
    return records, exercise


def _series_for(args):
    records, exercise = _load(args)
    try:
        now = parse_now(args.now)
    except ValueError as e:
        err_exit(str(e))
    return period_series(records, exercise, args.metric, args.period, now,
                         goal_store=_store(args), match_key=args.match)


def _is_empty(series):
    points = series["points"]
    if not points:
        return True
    # the duration chart treats an all-zero series as no data
    return series["metric"] == "duration" and all(v == 0 for _, v in points)


# ---- Commands ----

def cmd_series(args):
    s = _series_for(args)

    if args.json:
        out = {
            "exercise": s["exercise"],
            "metric": s["metric"],
            "period": s["period"],
            "points": [{"date": d.isoformat(), "value": v} for d, v in s["points"]],
            "ticks": [t.isoformat() for t in s["ticks"]],
            "goal": s["goal"],
            "upper_bound": s["upper_bound"],
        }
        print(json.dumps(out, indent=2))
        return

    name = s["exercise"].get("name") or s["exercise"].get("id")
    print(f"{name}: {s['metric']} ({s['period']})")
    if not s["points"]:
        print("No data for this time period.")
    else:
        print(f"{'Date':<20} {'Value':>10}")
        print("-" * 31)
        for d, v in s["points"]:
            print(f"{d.strftime('%Y-%m-%d %H:%M'):<20} {format_value(v):>10}")
    print(f"Goal: {format_value(s['goal'])}  Upper bound: {format_value(s['upper_bound'])}")


def cmd_chart(args):
    try:
        import matplotlib
        matplotlib.use("Agg")
        import matplotlib.pyplot as plt
    except ImportError:
        err_exit("matplotlib not installed")

    s = _series_for(args)
    metric, period = s["metric"], s["period"]
    title, unit = METRIC_LABELS[metric]
    color = METRIC_COLORS[metric]

    if args.horizontal:
        fig, ax = plt.subplots(figsize=(12, 6))
    else:
        fig, ax = plt.subplots(figsize=(8, 4))

    ax.set_title(title, loc="left", fontweight="bold")

    if _is_empty(s):
        ax.text(0.5, 0.55, f"No {metric} data for this time period.", transform=ax.transAxes,
                ha="center", va="center", fontsize=13, fontweight="bold")
        ax.text(0.5, 0.42, "Try another time period.", transform=ax.transAxes,
                ha="center", va="center", fontsize=11, color="#888888")
        ax.set_xticks([])
        ax.set_yticks([])
        for spine in ax.spines.values():
            spine.set_visible(False)
    else:
        dates = [d for d, _ in s["points"]]
        values = [v for _, v in s["points"]]
        ax.plot(dates, values, "o-", color=color, linewidth=2, markersize=6, zorder=3)
        ax.fill_between(dates, values, 0, color=color, alpha=0.15, zorder=2)

        goal = s["goal"]
        if goal > 0:
            ax.axhline(goal, linestyle="--", color="#888888", linewidth=2, zorder=1)
            ax.annotate(f"Goal: {format_value(goal)} {unit}", (1, goal), xycoords=("axes fraction", "data"),
                        textcoords="offset points", xytext=(0, 4), ha="right", va="bottom",
                        fontsize=10, color="#555555")

        ax.set_ylim(0, s["upper_bound"])
        ticks = s["ticks"]
        if ticks:
            ax.set_xticks(ticks)
            ax.set_xticklabels([tick_label(t, period) for t in ticks])
        ax.grid(True, alpha=0.3)

    if getattr(args, "_return_fig", False):
        return fig, ax

    plt.savefig(args.output, dpi=150, bbox_inches="tight")
    plt.close(fig)
    print(f"Chart saved to {args.output}")


def cmd_gauges(args):
    records, exercise = _load(args)
    name = exercise.get("name")
    goals = _store(args).goals_for(name)
    progress = goal_progress(records, exercise, goals, match_key=args.match)

    if args.json:
        print(json.dumps({"exercise": exercise, "progress": progress}, indent=2))
        return

    print(f"Performance goals: {name or exercise.get('id')}")
    print(f"{'Metric':<10} {'Best':>10} {'Goal':>10} {'Progress':>10}")
    print("-" * 43)
    for metric in METRICS:
        p = progress[metric]
        print(f"{metric:<10} {format_value(p['current']):>10} {format_value(p['goal']):>10} {p['percent']:>9}%")


def cmd_chart_gauges(args):
    try:
        import matplotlib
        matplotlib.use("Agg")
        import matplotlib.pyplot as plt
        import numpy as np
    except ImportError:
        err_exit("matplotlib not installed")

    records, exercise = _load(args)
    goals = _store(args).goals_for(exercise.get("name"))
    progress = goal_progress(records, exercise, goals, match_key=args.match)

    fig, axes = plt.subplots(1, len(METRICS), figsize=(9, 3.4))
    fig.suptitle("PERFORMANCE GOALS", fontweight="bold")

    for ax, metric in zip(axes, METRICS):
        p = progress[metric]
        color = METRIC_COLORS[metric]
        # track: full circle; fill: clockwise from 12 o'clock, capped at one turn
        track = np.linspace(0, 2 * np.pi, 200)
        ax.plot(np.cos(track), np.sin(track), color="#DDDDDD", linewidth=8, solid_capstyle="round")
        frac = min(p["percent"], 100) / 100
        if frac > 0:
            theta = np.pi / 2 - np.linspace(0, 2 * np.pi * frac, max(int(200 * frac), 2))
            ax.plot(np.cos(theta), np.sin(theta), color=color, linewidth=8, solid_capstyle="round")
        ax.text(0, 0.05, f"{p['percent']}%", ha="center", va="center", fontsize=16, fontweight="bold")
        ax.text(0, -0.35, f"0 – {format_value(p['goal'])}", ha="center", va="center",
                fontsize=9, color="#888888")
        _, unit = METRIC_LABELS[metric]
        ax.set_title(f"{metric.capitalize()} ({unit})", y=-0.2)
        ax.set_xlim(-1.3, 1.3)
        ax.set_ylim(-1.3, 1.3)
        ax.set_aspect("equal")
        ax.axis("off")

    if getattr(args, "_return_fig", False):
        return fig, axes

    plt.savefig(args.output, dpi=150, bbox_inches="tight")
    plt.close(fig)
    print(f"Chart saved to {args.output}")


def cmd_goals(args):
    """Show or edit the goals of one exercise."""
    store = _store(args)
    records, exercise = _load(args)
    name = exercise.get("name")
    if not name:
        err_exit(f"Exercise '{args.exercise}' has no display name; goals are stored by name")

    if args.goals_command == "show":
        goals = store.goals_for(name)
    else:
        current = store.goals_for(name)
        updates = {f: getattr(args, f) for f in ("weight", "reps", "duration") if getattr(args, f) is not None}
        if not updates:
            err_exit("Nothing to set: pass --weight, --reps and/or --duration")
        current.update(updates)
        try:
            goals = store.put(name, current)
        except ValueError as e:
            err_exit(str(e))

    if args.json:
        print(json.dumps({"exercise": name, "goals": goals}, indent=2))
        return
    if args.goals_command == "set":
        print(f"Goals saved for {name}")
    print(f"Weight goal (lbs):   {format_value(goals['weight'])}")
    print(f"Reps goal:           {goals['reps']}")
    print(f"Duration goal (min): {goals['duration']}")


# ---- CLI ----

def _add_common(p):
    p.add_argument("--json", action="store_true", help="JSON output")
    p.add_argument("--store", type=str, default=None,
                   help="Path to the goals key-value file (default: prefs.json next to records)")
    p.add_argument("--match", type=str, default="id", choices=["id", "name"],
                   help="Match records to the exercise by id or by display name")


def _add_series(p):
    p.add_argument("--metric", type=str, default="weight", choices=list(METRICS))
    p.add_argument("--period", type=str, default="week", choices=list(PERIODS))
    p.add_argument("--now", type=str, default=None, help="ISO timestamp to use as 'now'")


def main():
    parser = argparse.ArgumentParser(description="Exercise progress charts")
    sub = parser.add_subparsers(dest="command")

    p = sub.add_parser("series")
    p.add_argument("records")
    p.add_argument("exercise")
    _add_common(p)
    _add_series(p)

    p = sub.add_parser("chart")
    p.add_argument("records")
    p.add_argument("exercise")
    p.add_argument("output")
    p.add_argument("--horizontal", action="store_true", help="Wide (landscape) chart")
    _add_common(p)
    _add_series(p)

    p = sub.add_parser("gauges")
    p.add_argument("records")
    p.add_argument("exercise")
    _add_common(p)

    p = sub.add_parser("chart-gauges")
    p.add_argument("records")
    p.add_argument("exercise")
    p.add_argument("output")
    _add_common(p)

    p = sub.add_parser("goals")
    p.add_argument("goals_command", choices=["show", "set"], help="Goals subcommand")
    p.add_argument("records")
    p.add_argument("exercise")
    p.add_argument("--weight", type=float, default=None)
    p.add_argument("--reps", type=int, default=None)
    p.add_argument("--duration", type=int, default=None)
    _add_common(p)

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(2)

    if not os.path.isfile(args.records):
        err_exit(f"Records file not found: {args.records}")

    dispatch = {
        "series": cmd_series,
        "chart": cmd_chart,
        "gauges": cmd_gauges,
        "chart-gauges": cmd_chart_gauges,
        "goals": cmd_goals,
    }

    dispatch[args.command](args)


if __name__ == "__main__":
    main()
