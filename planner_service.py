from __future__ import annotations

import logging
import random

from db import (
    RoutineRepository,
    RoutineDayRepository,
    RoutineExerciseRepository,
    ExerciseCatalogRepository,
    UserProfileRepository,
    PlannerLogRepository,
    SettingsRepository,
)
from errors import PersistenceError
from profile_schema import validate_profile
from algorithms import MuscleGroupResolver, ExerciseAllocator, LoadSuggestion
import routine_templates
from routine_templates import WEEKDAYS

logger = logging.getLogger(__name__)


class PlannerService:
    """Builds weekly routines from user profiles and persists them day by day."""

    def __init__(
        self,
        routine_repo: RoutineRepository,
        day_repo: RoutineDayRepository,
        routine_exercise_repo: RoutineExerciseRepository,
        catalog_repo: ExerciseCatalogRepository,
        profile_repo: UserProfileRepository | None = None,
        log_repo: PlannerLogRepository | None = None,
        settings_repo: SettingsRepository | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.routines = routine_repo
        self.days = day_repo
        self.routine_exercises = routine_exercise_repo
        self.catalog = catalog_repo
        self.profiles = profile_repo
        self.log_repo = log_repo
        self.settings = settings_repo
        self._rng = rng

    def _shuffle_rng(self) -> random.Random:
        if self._rng is not None:
            return self._rng
        seed = self.settings.get_text("shuffle_seed", "") if self.settings else ""
        return random.Random(seed) if seed else random.Random()

    def _routine_name(self) -> str:
        if self.settings is None:
            return "My Routine"
        return self.settings.get_text("routine_name", "My Routine") or "My Routine"

    def _log_error(self, message: str) -> None:
        logger.warning(message)
        if self.log_repo is not None:
            self.log_repo.log_error(message)

    @staticmethod
    def recommended_archetype(objective: str, duration: str, days: int) -> str | None:
        return routine_templates.recommended_archetype(objective, duration, days)

    @staticmethod
    def possible_archetypes(objective: str, duration: str, days: int) -> list[str]:
        return routine_templates.possible_archetypes(objective, duration, days)

    def generate(self, user_id: str, profile: dict | None = None) -> int:
        """Create or regenerate the user's active routine and return its id.

        The profile is validated before anything is written. Day and exercise
        writes are independent: a failed write is logged and skipped so the
        rest of the week is still produced.
        """
        if profile is None and self.profiles is not None:
            profile = self.profiles.fetch(user_id)
        data = validate_profile(profile)
        archetype = routine_templates.require_archetype(
            data.objective, data.session_duration, data.days_per_week
        )
        template = routine_templates.template_for(archetype)
        config = routine_templates.exercise_config(
            data.session_duration, data.experience
        )
        name = self._routine_name()

        current = self.routines.fetch_active(user_id, nested=False)
        if current is not None:
            routine_id = current["id"]
            self.routines.update(routine_id, name, archetype, data.days_per_week)
            self.days.delete_for_routine(routine_id)
        else:
            routine_id = self.routines.create(
                user_id, name, archetype, data.days_per_week, is_active=True
            )
        self.routines.set_active(user_id, routine_id)

        catalog = self.catalog.fetch_all(user_id)
        rng = self._shuffle_rng()
        failures = 0
        for position, weekday in enumerate(WEEKDAYS, start=1):
            descriptor = template.get(weekday, "")
            is_rest = MuscleGroupResolver.is_rest_day(descriptor)
            day_name = MuscleGroupResolver.short_name(descriptor, weekday)
            try:
                day_id = self.days.create(
                    routine_id, weekday, day_name, descriptor, is_rest, position
                )
            except PersistenceError as e:
                failures += 1
                self._log_error(f"routine {routine_id}: could not save {weekday}: {e}")
                continue
            if is_rest:
                continue
            groups = MuscleGroupResolver.resolve(descriptor)
            if not groups:
                continue
            selected = ExerciseAllocator.allocate(
                groups,
                config["exercises_per_day"],
                data.objective,
                catalog,
                rng,
            )
            for order, exercise in enumerate(selected, start=1):
                try:
                    self.routine_exercises.create(
                        day_id,
                        exercise["id"],
                        config["series"],
                        config["reps_min"],
                        config["reps_max"],
                        LoadSuggestion.suggest_load(exercise, data.weight),
                        config["rest_seconds"],
                        order,
                    )
                except PersistenceError as e:
                    failures += 1
                    self._log_error(
                        f"routine {routine_id}: could not save {exercise['name']} on {weekday}: {e}"
                    )

        if failures == 0 and self.log_repo is not None:
            self.log_repo.log_success(f"routine {routine_id} generated ({archetype})")
        logger.info(
            "generated routine %s for %s with %d failed writes", routine_id, user_id, failures
        )
        return routine_id

    def set_active(self, user_id: str, routine_id: int) -> None:
        self.routines.set_active(user_id, routine_id)

    def delete_routine(self, user_id: str, routine_id: int) -> None:
        self.routines.delete(user_id, routine_id)

    def create_custom_routine(
        self, user_id: str, name: str, days: dict[str, list[dict]]
    ) -> int:
        """Persist a manually built plan and make it the active routine.

        ``days`` maps weekday names to the exercises chosen for that day.
        Weekdays left out become rest days.
        """
        unknown = [d for d in days if d not in WEEKDAYS]
        if unknown:
            raise ValueError(f"unknown weekday: {unknown[0]}")
        training_days = [d for d in WEEKDAYS if days.get(d)]
        if not training_days:
            raise ValueError("at least one training day required")
        name = (name or "").strip() or self._routine_name()
        if not name.lower().startswith("custom"):
            name = f"Custom - {name}"
        archetype = routine_templates.archetype_for_day_count(len(training_days))
        try:
            routine_id = self.routines.create(
                user_id, name, archetype, len(training_days), is_active=False
            )
            for position, weekday in enumerate(WEEKDAYS, start=1):
                items = days.get(weekday) or []
                if items:
                    groups = []
                    for item in items:
                        group = self.catalog.fetch_detail(item["exercise_id"])["muscle_group"]
                        if group not in groups:
                            groups.append(group)
                    day_name = ", ".join(groups)
                else:
                    day_name = "Rest"
                day_id = self.days.create(
                    routine_id, weekday, day_name, day_name, not items, position
                )
                self._write_items(day_id, items)
            self.routines.set_active(user_id, routine_id)
        except Exception as e:
            self._log_error(f"custom routine for {user_id} failed: {e}")
            raise
        if self.log_repo is not None:
            self.log_repo.log_success(f"routine {routine_id} created manually")
        return routine_id

    def replace_day_exercises(
        self, user_id: str, day_id: int, items: list[dict]
    ) -> list[dict]:
        """Replace every assignment of a day with ``items`` in the given order."""
        day = self.days.fetch_detail(day_id)
        self.routines.fetch_detail(day["routine_id"], user_id)
        self.routine_exercises.delete_for_day(day_id)
        self._write_items(day_id, items)
        return self.routine_exercises.fetch_for_day(day_id)

    def _write_items(self, day_id: int, items: list[dict]) -> None:
        for order, item in enumerate(items, start=1):
            self.routine_exercises.create(
                day_id,
                int(item["exercise_id"]),
                int(item.get("series") or 3),
                int(item.get("reps_min") or 8),
                int(item.get("reps_max") or item.get("reps_min") or 12),
                item.get("suggested_weight"),
                int(item.get("rest_seconds") or 60),
                order,
            )
