"""Per-exercise goals (weight, reps, duration) kept in a local key-value file.

The goals live as one JSON blob under GOALS_KEY:

    {"Bench Press": {"weight": 100.0, "reps": 10, "duration": 60}, ...}

A blob that fails to decode means "no goals yet".
"""

import json
import math
import sys
from pathlib import Path


GOALS_KEY = "exerciseGoals"
GOAL_FIELDS = ("weight", "reps", "duration")
DEFAULT_GOALS = {"weight": 0.0, "reps": 0, "duration": 0}


# ---- Blob codec ----

def _is_number(value):
    """True for finite ints and floats. NaN and infinity are not goals."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return isinstance(value, int) or math.isfinite(value)


def _valid_entry(entry):
    if not isinstance(entry, dict):
        return False
    if not all(f in entry for f in GOAL_FIELDS):
        return False
    if not all(_is_number(entry[f]) for f in GOAL_FIELDS):
        return False
    # reps and duration are whole numbers
    return all(isinstance(entry[f], int) or entry[f].is_integer() for f in ("reps", "duration"))


def normalize_goals(goals):
    """Fill missing fields with 0 and coerce types: weight float, reps/duration int."""
    goals = goals or {}
    result = {}
    for field in GOAL_FIELDS:
        value = goals.get(field, 0)
        if value is None:
            value = 0
        if not _is_number(value):
            raise ValueError(f"Goal {field} must be a finite number, got {value!r}")
        if value < 0:
            raise ValueError(f"Goal {field} must not be negative, got {value}")
        result[field] = float(value) if field == "weight" else int(value)
    return result


def encode_goals(mapping):
    """Serialize {name: goals} to the stored blob."""
    return json.dumps({name: normalize_goals(g) for name, g in mapping.items()}, sort_keys=True)


def decode_goals(blob):
    """Parse the stored blob. Any malformed content yields {} for the whole blob."""
    if not blob:
        return {}
    if isinstance(blob, bytes):
        try:
            blob = blob.decode("utf-8")
        except UnicodeDecodeError:
            return {}
    if not isinstance(blob, str):
        return {}
    try:
        data = json.loads(blob)
    except (json.JSONDecodeError, ValueError):
        return {}
    if not isinstance(data, dict):
        return {}
    if not all(isinstance(k, str) and _valid_entry(v) for k, v in data.items()):
        return {}
    return {name: normalize_goals(entry) for name, entry in data.items()}


# ---- Storage ----

class KeyValueFile:
    """A JSON object on disk used as a small key-value store. Last write wins."""

    def __init__(self, path):
        self.path = Path(path)

    def _read(self):
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text())
        except (json.JSONDecodeError, ValueError, OSError) as e:
            print(f"Warning: ignoring unreadable store {self.path.name}: {e}", file=sys.stderr)
            return {}
        if not isinstance(data, dict):
            print(f"Warning: ignoring store {self.path.name}: not a JSON object", file=sys.stderr)
            return {}
        return data

    def get(self, key, default=None):
        return self._read().get(key, default)

    def set(self, key, value):
        data = self._read()
        data[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, indent=2, ensure_ascii=False))


class GoalStore:
    """Goal repository: get(name) / put(name, goals) over the goals blob."""

    def __init__(self, kv, key=GOALS_KEY):
        self.kv = kv
        self.key = key

    @classmethod
    def at(cls, path):
        return cls(KeyValueFile(path))

    def all(self):
        return decode_goals(self.kv.get(self.key))

    def get(self, name):
        """Goals for name, or None if none were saved."""
        return self.all().get(name)

    def goals_for(self, name):
        return self.get(name) or dict(DEFAULT_GOALS)

    def put(self, name, goals):
        if not name:
            raise ValueError("Exercise name is required to save goals")
        entry = normalize_goals(goals)
        mapping = self.all()
        mapping[name] = entry
        self.kv.set(self.key, encode_goals(mapping))
        return entry


def default_store_path(records_path):
    """Derive default store path from the records file (sibling prefs.json)."""
    return str(Path(records_path).parent / "prefs.json")
