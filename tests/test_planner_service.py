import os
import sys
import unittest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from db import (
    UserProfileRepository,
    ExerciseCatalogRepository,
    RoutineRepository,
    RoutineDayRepository,
    RoutineExerciseRepository,
    PlannerLogRepository,
    SettingsRepository,
)
from errors import ConfigurationError, PersistenceError, ProfileValidationError
from planner_service import PlannerService
from routine_templates import ARCHETYPE_LOOKUP, WEEKDAYS, PUSH_PULL_LEGS


PROFILE = {
    "objective": "gain_muscle",
    "session_duration": "1h",
    "days_per_week": 6,
    "experience": "beginner",
    "weight": 80,
}


class FlakyRoutineExerciseRepository(RoutineExerciseRepository):
    """Fails the first ``failures`` assignment writes."""

    def __init__(self, db_path: str, failures: int = 1) -> None:
        super().__init__(db_path)
        self.failures = failures

    def create(self, *args, **kwargs) -> int:
        if self.failures > 0:
            self.failures -= 1
            raise PersistenceError("disk I/O error")
        return super().create(*args, **kwargs)


class FlakyRoutineDayRepository(RoutineDayRepository):
    """Fails the write of one weekday."""

    def __init__(self, db_path: str, exercises: RoutineExerciseRepository, weekday: str) -> None:
        super().__init__(db_path, exercises)
        self.weekday = weekday

    def create(self, routine_id, weekday, *args, **kwargs) -> int:
        if weekday == self.weekday:
            raise PersistenceError("database is locked")
        return super().create(routine_id, weekday, *args, **kwargs)


class PlannerServiceTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.db_path = "test_planner.db"
        self.yaml_path = "test_planner.yaml"
        self._cleanup()
        self.settings = SettingsRepository(self.db_path, self.yaml_path)
        self.profiles = UserProfileRepository(self.db_path)
        self.catalog = ExerciseCatalogRepository(self.db_path)
        self.catalog.seed_basic()
        self.logs = PlannerLogRepository(self.db_path)
        self.planner = self._planner(RoutineExerciseRepository(self.db_path))

    def tearDown(self) -> None:
        self._cleanup()

    def _cleanup(self) -> None:
        for path in (self.db_path, self.yaml_path):
            if os.path.exists(path):
                os.remove(path)

    def _planner(
        self,
        routine_exercises: RoutineExerciseRepository,
        days: RoutineDayRepository | None = None,
    ) -> PlannerService:
        days = days or RoutineDayRepository(self.db_path, routine_exercises)
        return PlannerService(
            RoutineRepository(self.db_path, days),
            days,
            routine_exercises,
            self.catalog,
            profile_repo=self.profiles,
            log_repo=self.logs,
            settings_repo=self.settings,
        )

    def test_every_lookup_entry_produces_a_full_week(self) -> None:
        for objective, durations in ARCHETYPE_LOOKUP.items():
            for duration, days in durations.items():
                for count, archetype in days.items():
                    user = f"{objective}-{duration}-{count}"
                    rid = self.planner.generate(
                        user,
                        {
                            "objective": objective,
                            "session_duration": duration,
                            "days_per_week": count,
                        },
                    )
                    routine = self.planner.routines.fetch_active(user)
                    self.assertEqual(routine["id"], rid)
                    self.assertEqual(routine["days_per_week"], count)
                    self.assertEqual(routine["routine_type"], archetype)
                    self.assertEqual(len(routine["days"]), 7)
                    self.assertEqual(
                        [d["position"] for d in routine["days"]], list(range(1, 8))
                    )
                    self.assertEqual([d["weekday"] for d in routine["days"]], list(WEEKDAYS))

    def test_generate_uses_stored_profile(self) -> None:
        self.profiles.save("alice", PROFILE)
        rid = self.planner.generate("alice")
        routine = self.planner.routines.fetch_active("alice")
        self.assertEqual(routine["id"], rid)
        self.assertEqual(routine["routine_type"], PUSH_PULL_LEGS)
        self.assertEqual(routine["name"], "My Routine")

        monday = routine["days"][0]
        self.assertEqual(monday["day_name"], "Chest, Shoulders, Arms")
        self.assertFalse(monday["is_rest"])
        names = [ex["name"] for ex in monday["exercises"]]
        self.assertEqual(
            names,
            [
                "Bench Press",
                "Push-Ups",
                "Military Press",
                "Lateral Raises",
                "Biceps Curl",
                "Triceps Extensions",
            ],
        )
        self.assertEqual([ex["position"] for ex in monday["exercises"]], list(range(1, 7)))
        first = monday["exercises"][0]
        self.assertEqual(first["suggested_weight"], 48)
        self.assertEqual((first["series"], first["reps_min"], first["reps_max"]), (3, 8, 12))
        self.assertEqual(first["rest_seconds"], 60)

        sunday = routine["days"][6]
        self.assertTrue(sunday["is_rest"])
        self.assertEqual(sunday["day_name"], "Rest")
        self.assertEqual(sunday["exercises"], [])
        self.assertIsNotNone(self.logs.last_success())

    def test_regenerate_updates_routine_in_place(self) -> None:
        rid = self.planner.generate("bob", PROFILE)
        old_days = {d["id"] for d in self.planner.days.fetch_for_routine(rid, nested=False)}

        changed = dict(PROFILE, days_per_week=4)
        again = self.planner.generate("bob", changed)
        self.assertEqual(again, rid)

        routines = self.planner.routines.fetch_all_for_user("bob")
        self.assertEqual(len(routines), 1)
        self.assertEqual(routines[0]["days_per_week"], 4)
        new_days = self.planner.days.fetch_for_routine(rid, nested=False)
        self.assertEqual(len(new_days), 7)
        self.assertFalse(old_days & {d["id"] for d in new_days})

    def test_invalid_profile_writes_nothing(self) -> None:
        with self.assertRaises(ProfileValidationError):
            self.planner.generate("carol", {"session_duration": "1h", "days_per_week": 3})
        with self.assertRaises(ProfileValidationError):
            self.planner.generate("carol")
        with self.assertRaises(ProfileValidationError):
            self.planner.generate("carol", dict(PROFILE, days_per_week=5))
        self.assertEqual(self.planner.routines.fetch_all_for_user("carol"), [])

    def test_missing_archetype_is_configuration_error(self) -> None:
        original = ARCHETYPE_LOOKUP["maintain"]["1h"][3]
        ARCHETYPE_LOOKUP["maintain"]["1h"][3] = ""
        try:
            with self.assertRaises(ConfigurationError):
                self.planner.generate(
                    "dave",
                    {"objective": "maintain", "session_duration": "1h", "days_per_week": 3},
                )
        finally:
            ARCHETYPE_LOOKUP["maintain"]["1h"][3] = original
        self.assertEqual(self.planner.routines.fetch_all_for_user("dave"), [])

    def test_failed_exercise_write_is_skipped(self) -> None:
        planner = self._planner(FlakyRoutineExerciseRepository(self.db_path, failures=1))
        rid = planner.generate("erin", PROFILE)
        days = planner.days.fetch_for_routine(rid)
        self.assertEqual(len(days), 7)
        self.assertEqual(len(days[0]["exercises"]), 5)
        self.assertEqual(len(days[1]["exercises"]), 6)
        errors = self.logs.last_errors()
        self.assertEqual(len(errors), 1)
        self.assertIn("Bench Press", errors[0][1])
        self.assertIsNone(self.logs.last_success())

    def test_failed_day_write_is_skipped(self) -> None:
        exercises = RoutineExerciseRepository(self.db_path)
        days = FlakyRoutineDayRepository(self.db_path, exercises, "Tuesday")
        planner = self._planner(exercises, days)
        rid = planner.generate("fred", PROFILE)
        stored = planner.days.fetch_for_routine(rid)
        self.assertEqual(len(stored), 6)
        self.assertNotIn("Tuesday", [d["weekday"] for d in stored])
        self.assertEqual([d["position"] for d in stored], [1, 3, 4, 5, 6, 7])
        for day in stored:
            if not day["is_rest"]:
                self.assertTrue(day["exercises"], day["weekday"])
        errors = self.logs.last_errors()
        self.assertEqual(len(errors), 1)
        self.assertIn("Tuesday", errors[0][1])
        self.assertIsNone(self.logs.last_success())

    def test_single_active_routine(self) -> None:
        first = self.planner.generate("frank", PROFILE)
        second = self.planner.routines.create("frank", "Other", PUSH_PULL_LEGS, 6)
        self.planner.set_active("frank", second)
        active = [r for r in self.planner.routines.fetch_all_for_user("frank") if r["is_active"]]
        self.assertEqual([r["id"] for r in active], [second])

        self.planner.set_active("frank", first)
        active = [r for r in self.planner.routines.fetch_all_for_user("frank") if r["is_active"]]
        self.assertEqual([r["id"] for r in active], [first])

    def test_activate_other_users_routine_rejected(self) -> None:
        rid = self.planner.generate("gina", PROFILE)
        with self.assertRaises(ValueError):
            self.planner.set_active("henry", rid)

    def test_active_routine_cannot_be_deleted(self) -> None:
        rid = self.planner.generate("ian", PROFILE)
        with self.assertRaises(ValueError):
            self.planner.delete_routine("ian", rid)
        other = self.planner.routines.create("ian", "Old", PUSH_PULL_LEGS, 6)
        self.planner.delete_routine("ian", other)
        self.assertEqual(len(self.planner.routines.fetch_all_for_user("ian")), 1)

    def test_regenerate_after_manual_activation_keeps_one_row_active(self) -> None:
        first = self.planner.generate("jane", PROFILE)
        second = self.planner.routines.create("jane", "Other", PUSH_PULL_LEGS, 6)
        self.planner.set_active("jane", second)
        rid = self.planner.generate("jane", PROFILE)
        self.assertEqual(rid, second)
        self.assertFalse(self.planner.routines.fetch_detail(first)["is_active"])

    def test_custom_routine(self) -> None:
        bench = [e for e in self.catalog.fetch_all() if e["name"] == "Bench Press"][0]
        squat = [e for e in self.catalog.fetch_all() if e["name"] == "Squats"][0]
        rid = self.planner.create_custom_routine(
            "kate",
            "Strength",
            {
                "Monday": [{"exercise_id": bench["id"], "series": 5, "reps_min": 5, "reps_max": 5}],
                "Thursday": [{"exercise_id": squat["id"]}],
            },
        )
        routine = self.planner.routines.fetch_active("kate")
        self.assertEqual(routine["id"], rid)
        self.assertEqual(routine["name"], "Custom - Strength")
        self.assertEqual(routine["days_per_week"], 2)
        self.assertEqual(routine["routine_type"], "FULL_BODY")
        monday, tuesday = routine["days"][0], routine["days"][1]
        self.assertEqual(monday["day_name"], "Chest")
        self.assertEqual(monday["exercises"][0]["series"], 5)
        self.assertTrue(tuesday["is_rest"])
        self.assertEqual(routine["days"][3]["exercises"][0]["name"], "Squats")

        with self.assertRaises(ValueError):
            self.planner.create_custom_routine("kate", "Empty", {})
        with self.assertRaises(ValueError):
            self.planner.create_custom_routine("kate", "Bad", {"Funday": [{"exercise_id": 1}]})

    def test_replace_day_exercises(self) -> None:
        rid = self.planner.generate("liam", PROFILE)
        monday = self.planner.days.fetch_for_routine(rid)[0]
        plank = [e for e in self.catalog.fetch_all() if e["name"] == "Plank"][0]
        squat = [e for e in self.catalog.fetch_all() if e["name"] == "Squats"][0]
        result = self.planner.replace_day_exercises(
            "liam",
            monday["id"],
            [{"exercise_id": plank["id"]}, {"exercise_id": squat["id"], "series": 4}],
        )
        self.assertEqual([r["name"] for r in result], ["Plank", "Squats"])
        self.assertEqual([r["position"] for r in result], [1, 2])
        self.assertEqual(result[1]["series"], 4)
        with self.assertRaises(ValueError):
            self.planner.replace_day_exercises("someone-else", monday["id"], [])

    def test_seeded_shuffle_is_reproducible(self) -> None:
        self.settings.set_text("shuffle_seed", "42")
        profile = {"objective": "maintain", "session_duration": "1h", "days_per_week": 3}
        first = self.planner.generate("mia", profile)
        a = [ex["exercise_id"] for d in self.planner.days.fetch_for_routine(first) for ex in d["exercises"]]
        self.planner.generate("mia", profile)
        b = [ex["exercise_id"] for d in self.planner.days.fetch_for_routine(first) for ex in d["exercises"]]
        self.assertEqual(a, b)


if __name__ == "__main__":
    unittest.main()
