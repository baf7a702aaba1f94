#!/usr/bin/env python3
"""Tests for goal_store.py."""

import json
import os
import sys
import tempfile
import unittest
from contextlib import redirect_stderr
from io import StringIO
from pathlib import Path

sys.path.insert(0, os.path.dirname(__file__))
import goal_store as gs
import progress_series as ps


BENCH_GOALS = {"weight": 100.0, "reps": 10, "duration": 60}


class TestCodec(unittest.TestCase):
    def test_round_trip(self):
        mapping = {"Bench Press": BENCH_GOALS, "Squat": {"weight": 140.5, "reps": 5, "duration": 0}}
        self.assertEqual(gs.decode_goals(gs.encode_goals(mapping)), mapping)

    def test_round_trip_empty(self):
        self.assertEqual(gs.decode_goals(gs.encode_goals({})), {})

    def test_decode_bytes(self):
        blob = gs.encode_goals({"Bench Press": BENCH_GOALS}).encode("utf-8")
        self.assertEqual(gs.decode_goals(blob), {"Bench Press": BENCH_GOALS})

    def test_decode_absent(self):
        self.assertEqual(gs.decode_goals(None), {})
        self.assertEqual(gs.decode_goals(""), {})
        self.assertEqual(gs.decode_goals(b""), {})

    def test_decode_corrupt(self):
        self.assertEqual(gs.decode_goals("{bad json"), {})
        self.assertEqual(gs.decode_goals(b"\xff\xfe"), {})
        self.assertEqual(gs.decode_goals(42), {})

    def test_decode_wrong_shape(self):
        self.assertEqual(gs.decode_goals("[1, 2, 3]"), {})
        self.assertEqual(gs.decode_goals('{"Bench Press": 100}'), {})

    def test_one_bad_entry_discards_all(self):
        blob = json.dumps({
            "Bench Press": BENCH_GOALS,
            "Squat": {"weight": 140, "reps": 5},
        })
        self.assertEqual(gs.decode_goals(blob), {})

    def test_wrong_types_rejected(self):
        self.assertEqual(gs.decode_goals(json.dumps({"Bench Press": {"weight": "100", "reps": 10, "duration": 60}})), {})
        self.assertEqual(gs.decode_goals(json.dumps({"Bench Press": {"weight": 100, "reps": 10.5, "duration": 60}})), {})
        self.assertEqual(gs.decode_goals(json.dumps({"Bench Press": {"weight": True, "reps": 10, "duration": 60}})), {})

    def test_decode_normalizes_types(self):
        blob = json.dumps({"Bench Press": {"weight": 100, "reps": 10.0, "duration": 60}})
        goals = gs.decode_goals(blob)["Bench Press"]
        self.assertIsInstance(goals["weight"], float)
        self.assertIsInstance(goals["reps"], int)

    def test_normalize_defaults(self):
        self.assertEqual(gs.normalize_goals({"reps": 8}), {"weight": 0.0, "reps": 8, "duration": 0})
        self.assertEqual(gs.normalize_goals(None), gs.DEFAULT_GOALS)

    def test_normalize_rejects_negative(self):
        with self.assertRaises(ValueError):
            gs.normalize_goals({"weight": -5})

    def test_normalize_rejects_text(self):
        with self.assertRaises(ValueError):
            gs.normalize_goals({"weight": "heavy"})

    def test_normalize_rejects_non_finite(self):
        for bad in (float("nan"), float("inf"), float("-inf")):
            with self.assertRaises(ValueError) as cm:
                gs.normalize_goals({"weight": bad})
            self.assertIn("finite", str(cm.exception))

    def test_decode_non_finite_is_malformed(self):
        for token in ("NaN", "Infinity", "-Infinity"):
            blob = '{"Bench Press": {"weight": %s, "reps": 1, "duration": 1}}' % token
            self.assertEqual(gs.decode_goals(blob), {})
        blob = '{"Bench Press": {"weight": 100, "reps": NaN, "duration": 1}}'
        self.assertEqual(gs.decode_goals(blob), {})


class TestKeyValueFile(unittest.TestCase):
    def test_missing_file_is_empty(self):
        with tempfile.TemporaryDirectory() as d:
            kv = gs.KeyValueFile(os.path.join(d, "prefs.json"))
            self.assertIsNone(kv.get("exerciseGoals"))
            self.assertEqual(kv.get("x", "fallback"), "fallback")

    def test_set_then_get(self):
        with tempfile.TemporaryDirectory() as d:
            path = os.path.join(d, "nested", "prefs.json")
            kv = gs.KeyValueFile(path)
            kv.set("theme", "dark")
            kv.set("units", "lbs")
            self.assertEqual(gs.KeyValueFile(path).get("theme"), "dark")
            self.assertEqual(json.loads(Path(path).read_text()), {"theme": "dark", "units": "lbs"})

    def test_corrupt_file_warns_and_reads_empty(self):
        with tempfile.TemporaryDirectory() as d:
            path = os.path.join(d, "prefs.json")
            Path(path).write_text("{bad json")
            err = StringIO()
            with redirect_stderr(err):
                self.assertIsNone(gs.KeyValueFile(path).get("exerciseGoals"))
            self.assertIn("Warning", err.getvalue())

    def test_non_object_file(self):
        with tempfile.TemporaryDirectory() as d:
            path = os.path.join(d, "prefs.json")
            Path(path).write_text("[1, 2]")
            with redirect_stderr(StringIO()):
                self.assertIsNone(gs.KeyValueFile(path).get("exerciseGoals"))


class TestGoalStore(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.path = os.path.join(self.tmp.name, "prefs.json")
        self.store = gs.GoalStore.at(self.path)

    def tearDown(self):
        self.tmp.cleanup()

    def test_empty_store(self):
        self.assertEqual(self.store.all(), {})
        self.assertIsNone(self.store.get("Bench Press"))
        self.assertEqual(self.store.goals_for("Bench Press"), gs.DEFAULT_GOALS)

    def test_put_then_get(self):
        self.store.put("Bench Press", BENCH_GOALS)
        self.assertEqual(gs.GoalStore.at(self.path).get("Bench Press"), BENCH_GOALS)

    def test_put_keeps_other_exercises(self):
        self.store.put("Bench Press", BENCH_GOALS)
        self.store.put("Squat", {"weight": 140, "reps": 5, "duration": 0})
        self.assertEqual(set(self.store.all()), {"Bench Press", "Squat"})

    def test_put_overwrites(self):
        self.store.put("Bench Press", BENCH_GOALS)
        self.store.put("Bench Press", {"weight": 110, "reps": 8, "duration": 45})
        self.assertEqual(self.store.get("Bench Press"), {"weight": 110.0, "reps": 8, "duration": 45})

    def test_stored_under_fixed_key_as_blob(self):
        self.store.put("Bench Press", BENCH_GOALS)
        data = json.loads(Path(self.path).read_text())
        self.assertIn(gs.GOALS_KEY, data)
        self.assertIsInstance(data[gs.GOALS_KEY], str)

    def test_put_requires_name(self):
        with self.assertRaises(ValueError):
            self.store.put("", BENCH_GOALS)

    def test_put_rejects_non_finite(self):
        with self.assertRaises(ValueError):
            self.store.put("Bench Press", {"weight": float("nan"), "reps": 1, "duration": 1})
        self.assertEqual(self.store.all(), {})

    def test_non_finite_blob_means_no_goals(self):
        gs.KeyValueFile(self.path).set(
            gs.GOALS_KEY, '{"Bench Press": {"weight": NaN, "reps": 1, "duration": 1}}')
        self.assertEqual(self.store.goals_for("Bench Press"), gs.DEFAULT_GOALS)
        self.assertEqual(ps.goal_line_value("Bench Press", "weight", self.store), 0)

    def test_corrupt_blob_means_no_goals(self):
        gs.KeyValueFile(self.path).set(gs.GOALS_KEY, "{not json")
        self.assertEqual(self.store.all(), {})
        self.assertEqual(self.store.goals_for("Bench Press"), gs.DEFAULT_GOALS)

    def test_put_over_corrupt_blob_starts_fresh(self):
        gs.KeyValueFile(self.path).set(gs.GOALS_KEY, "{not json")
        self.store.put("Bench Press", BENCH_GOALS)
        self.assertEqual(self.store.all(), {"Bench Press": BENCH_GOALS})

    def test_goal_line_value_through_store(self):
        self.store.put("Bench Press", BENCH_GOALS)
        self.assertEqual(ps.goal_line_value("Bench Press", "weight", self.store), 100.0)
        self.assertEqual(ps.goal_line_value("Squat", "weight", self.store), 0)

    def test_goal_line_value_corrupt_store(self):
        gs.KeyValueFile(self.path).set(gs.GOALS_KEY, "garbage")
        self.assertEqual(ps.goal_line_value("Bench Press", "reps", self.store), 0)


class TestDefaultStorePath(unittest.TestCase):
    def test_sibling_of_records(self):
        result = gs.default_store_path("/home/user/workout/records.json")
        self.assertEqual(result, os.path.join("/home/user/workout", "prefs.json"))


if __name__ == "__main__":
    unittest.main()
