"""Exercise progress series — period windows, chart points, axis ticks, goal progress.

Pure functions over record dicts. A record looks like:

    {"started_at": "2026-02-03T18:00:00", "completed_at": "2026-02-03T18:40:00",
     "active_duration": 40, "weight_used": 60, "reps_completed": 10,
     "exercise": {"id": "ex1", "name": "Bench Press"},
     "exercise_set": {"weight": 55, "reps": 10, "duration": 45}}

Every field is optional. Nothing here reads the clock: callers pass `now`.
"""

import calendar
import math
from datetime import datetime, timedelta


# ---- Constants ----

PERIODS = ("day", "week", "month", "six_months", "year")
METRICS = ("weight", "reps", "duration")
MATCH_KEYS = ("id", "name")

# metric -> (recorded field on the record, planned field on its exercise_set)
METRIC_FIELDS = {
    "weight": ("weight_used", "weight"),
    "reps": ("reps_completed", "reps"),
    "duration": ("active_duration", "duration"),
}

# Headroom above the goal line / highest point, and the empty-chart ceiling.
CHART_MARGIN = 10
EMPTY_CHART_CEILING = 100

DAY_TICK_HOURS = 3


# ---- Dates ----

def parse_timestamp(value):
    """Parse an ISO-8601 string (or pass a datetime through). Returns None if unusable."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None


def _align(dt, now):
    """Put dt in now's timezone so calendar comparisons happen in one zone."""
    if now.tzinfo is None:
        if dt.tzinfo is None:
            return dt
        return dt.astimezone().replace(tzinfo=None)
    if dt.tzinfo is None:
        return dt.replace(tzinfo=now.tzinfo)
    return dt.astimezone(now.tzinfo)


def effective_date(record):
    """completed_at if present, else started_at, else None."""
    completed = parse_timestamp(record.get("completed_at"))
    if completed is not None:
        return completed
    return parse_timestamp(record.get("started_at"))


def add_months(dt, months):
    """Shift dt by whole calendar months, clamping the day to the target month."""
    index = dt.month - 1 + months
    year = dt.year + index // 12
    month = index % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return dt.replace(year=year, month=month, day=day)


def start_of_day(dt):
    return dt.replace(hour=0, minute=0, second=0, microsecond=0)


def start_of_week(dt):
    """Monday 00:00 of dt's ISO week."""
    return start_of_day(dt) - timedelta(days=dt.weekday())


def start_of_month(dt):
    return start_of_day(dt).replace(day=1)


def _check_period(period):
    if period not in PERIODS:
        raise ValueError(f"Unknown time period: {period!r} (expected one of {', '.join(PERIODS)})")


def _check_metric(metric):
    if metric not in METRICS:
        raise ValueError(f"Unknown metric: {metric!r} (expected one of {', '.join(METRICS)})")


def period_window(period, now):
    """Return (start, end, end_inclusive) of the period window ending at now.

    day/week/month are calendar buckets containing now (half-open);
    six_months/year reach back from now and include both ends.
    """
    _check_period(period)
    if period == "day":
        start = start_of_day(now)
        return start, start + timedelta(days=1), False
    if period == "week":
        start = start_of_week(now)
        return start, start + timedelta(days=7), False
    if period == "month":
        start = start_of_month(now)
        return start, add_months(start, 1), False
    if period == "six_months":
        return add_months(now, -6), now, True
    return add_months(now, -12), now, True


def in_window(dt, window):
    start, end, inclusive = window
    if dt < start:
        return False
    return dt <= end if inclusive else dt < end


# ---- TimeSeriesReducer ----

def filter_by_period(records, period, now):
    """Keep records whose effective date falls inside the period window ending at now."""
    window = period_window(period, now)
    kept = []
    for r in records:
        d = effective_date(r)
        if d is None:
            continue
        if in_window(_align(d, now), window):
            kept.append(r)
    return kept


def record_exercise(record):
    """The exercise a record belongs to: its own back-reference, else its planned set's."""
    ex = record.get("exercise")
    if isinstance(ex, dict):
        return ex
    planned = record.get("exercise_set")
    if isinstance(planned, dict) and isinstance(planned.get("exercise"), dict):
        return planned["exercise"]
    return None


def record_matches(record, exercise, match_key="id"):
    """True if the record belongs to exercise, compared on match_key ("id" or "name")."""
    if match_key not in MATCH_KEYS:
        raise ValueError(f"Unknown match key: {match_key!r}")
    target = exercise.get(match_key) if exercise else None
    if target is None:
        return False
    ex = record_exercise(record)
    return ex is not None and ex.get(match_key) == target


def metric_value(record, metric):
    """Recorded value for metric, falling back to the planned set's value."""
    _check_metric(metric)
    recorded, planned = METRIC_FIELDS[metric]
    value = _number(record.get(recorded))
    if value is None:
        es = record.get("exercise_set")
        if isinstance(es, dict):
            value = _number(es.get(planned))
    return value


def _number(value):
    # bool is an int subclass; a flag is not a measurement
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value


def extract_series(records, exercise, metric, match_key="id"):
    """[(date, value)] for one exercise and metric, sorted by date (stable)."""
    _check_metric(metric)
    points = []
    for r in records:
        if not record_matches(r, exercise, match_key):
            continue
        d = effective_date(r)
        v = metric_value(r, metric)
        if d is None or v is None:
            continue
        points.append((d, v))
    # timestamp() orders naive (local) and offset-aware dates together
    points.sort(key=lambda p: p[0].timestamp())
    return points


def axis_ticks(period, now):
    """Tick positions for the x axis of a period chart. Depends only on now."""
    _check_period(period)
    if period == "day":
        start = start_of_day(now)
        return [start + timedelta(hours=h) for h in range(0, 25, DAY_TICK_HOURS)]
    if period == "week":
        monday = start_of_week(now)
        return [monday + timedelta(days=i) for i in range(8)]
    if period == "month":
        first = start_of_month(now)
        days = calendar.monthrange(first.year, first.month)[1]
        return [first + timedelta(days=i) for i in range(days)
                if (first + timedelta(days=i)).weekday() == 0]
    count = 6 if period == "six_months" else 12
    first = start_of_month(now)
    return [add_months(first, -n) for n in reversed(range(count))]


def goal_line_value(exercise_name, metric, goal_store):
    """Goal for exercise_name/metric from goal_store, or 0 when there is none."""
    _check_metric(metric)
    if goal_store is None or not exercise_name:
        return 0
    goals = goal_store.get(exercise_name)
    if not goals:
        return 0
    return _number(goals.get(metric)) or 0


def chart_upper_bound(series, goal_value):
    """Top of the y axis: goal + margin, else highest value + margin, else 110.

    series may hold (date, value) points, {"value": v} dicts or bare numbers.
    """
    if _finite_positive(goal_value):
        return goal_value + CHART_MARGIN
    values = [_point_value(p) for p in series]
    if not values:
        return EMPTY_CHART_CEILING + CHART_MARGIN
    return max(values) + CHART_MARGIN


def _point_value(point):
    if isinstance(point, dict):
        return point["value"]
    if isinstance(point, (tuple, list)):
        return point[1]
    return point


def _finite_positive(value):
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return (isinstance(value, int) or math.isfinite(value)) and value > 0


def period_series(records, exercise, metric, period, now, goal_store=None, match_key="id"):
    """Everything a period chart needs: points, ticks, goal line and y bound."""
    filtered = filter_by_period(records, period, now)
    points = [(_align(d, now), v) for d, v in extract_series(filtered, exercise, metric, match_key)]
    goal = goal_line_value((exercise or {}).get("name"), metric, goal_store)
    return {
        "period": period,
        "metric": metric,
        "exercise": exercise,
        "points": points,
        "ticks": axis_ticks(period, now),
        "goal": goal,
        "upper_bound": chart_upper_bound(points, goal),
    }


# ---- GoalProgress ----

def current_max(records, exercise, metric, match_key="id"):
    """All-time best of metric for exercise, or None if nothing was recorded."""
    best = None
    for r in records:
        if not record_matches(r, exercise, match_key):
            continue
        v = metric_value(r, metric)
        if v is not None and (best is None or v > best):
            best = v
    return best


def progress_percent(current, goal):
    """Percent of goal reached, halves rounded up. 0 when there is no goal. Not capped at 100."""
    if not _finite_positive(goal):
        return 0
    current = current if _number(current) is not None else 0
    return int(math.floor(current / goal * 100 + 0.5))


def goal_progress(records, exercise, goals, match_key="id"):
    """{metric: {"current", "goal", "percent"}} for the three gauges."""
    result = {}
    for metric in METRICS:
        current = current_max(records, exercise, metric, match_key)
        goal = _number((goals or {}).get(metric)) or 0
        result[metric] = {
            "current": current or 0,
            "goal": goal,
            "percent": progress_percent(current, goal),
        }
    return result
