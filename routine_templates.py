"""Predefined weekly routines and the tables used to pick and size them."""

from __future__ import annotations

from typing import Dict, List, Optional

from errors import ConfigurationError

WEEKDAYS: tuple[str, ...] = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)

FULL_BODY = "FULL_BODY"
UPPER_LOWER = "UPPER_LOWER"
PUSH_PULL_LEGS = "PUSH_PULL_LEGS"
ARNOLD_SPLIT = "ARNOLD_SPLIT"

ROUTINE_TEMPLATES: Dict[str, Dict[str, str]] = {
    PUSH_PULL_LEGS: {
        "Monday": "Push: Chest, Shoulders, Triceps",
        "Tuesday": "Pull: Back, Biceps, Core",
        "Wednesday": "Legs: Quadriceps, Hamstrings, Calves",
        "Thursday": "Push: Chest, Shoulders, Triceps",
        "Friday": "Pull: Back, Biceps, Core",
        "Saturday": "Legs: Quadriceps, Hamstrings, Calves",
        "Sunday": "Active rest (light cardio or yoga)",
    },
    ARNOLD_SPLIT: {
        "Monday": "Chest and Back",
        "Tuesday": "Shoulders and Arms",
        "Wednesday": "Legs: Quadriceps, Hamstrings, Calves and Core",
        "Thursday": "Chest and Back",
        "Friday": "Shoulders and Arms",
        "Saturday": "Legs: Quadriceps, Hamstrings, Calves and Core",
        "Sunday": "Rest",
    },
    UPPER_LOWER: {
        "Monday": "Upper: Chest, Back, Shoulders, Arms",
        "Tuesday": "Lower: Quadriceps, Hamstrings, Calves, Core",
        "Wednesday": "Rest or Cardio",
        "Thursday": "Upper: Chest, Back, Shoulders, Arms",
        "Friday": "Lower: Quadriceps, Hamstrings, Calves, Core",
        "Saturday": "Rest or Cardio",
        "Sunday": "Rest",
    },
    FULL_BODY: {
        "Monday": "Full Body: Compound (Chest, Back, Quadriceps)",
        "Tuesday": "Cardio or Rest",
        "Wednesday": "Full Body: Isolation (Shoulders, Arms, Core)",
        "Thursday": "Cardio or Rest",
        "Friday": "Full Body: Compound (Chest, Back, Quadriceps)",
        "Saturday": "Cardio or Rest",
        "Sunday": "Active rest",
    },
}

# objective -> session duration -> days per week
ARCHETYPE_LOOKUP: Dict[str, Dict[str, Dict[int, str]]] = {
    "gain_muscle": {
        "30min": {3: FULL_BODY, 4: UPPER_LOWER, 6: FULL_BODY},
        "1h": {3: FULL_BODY, 4: UPPER_LOWER, 6: PUSH_PULL_LEGS},
        "2h": {3: PUSH_PULL_LEGS, 4: UPPER_LOWER, 6: ARNOLD_SPLIT},
    },
    "lose_fat": {
        "30min": {3: FULL_BODY, 4: UPPER_LOWER, 6: FULL_BODY},
        "1h": {3: FULL_BODY, 4: UPPER_LOWER, 6: PUSH_PULL_LEGS},
        "2h": {3: UPPER_LOWER, 4: PUSH_PULL_LEGS, 6: ARNOLD_SPLIT},
    },
    "maintain": {
        "30min": {3: FULL_BODY, 4: UPPER_LOWER, 6: FULL_BODY},
        "1h": {3: FULL_BODY, 4: UPPER_LOWER, 6: FULL_BODY},
        "2h": {3: FULL_BODY, 4: UPPER_LOWER, 6: UPPER_LOWER},
    },
}

EXERCISE_CONFIG: Dict[str, dict] = {
    "30min": {
        "exercises_per_day": 4,
        "series": {"beginner": 2, "intermediate": 3, "advanced": 3},
        "reps": {"beginner": "8-10", "intermediate": "10-12", "advanced": "12-15"},
        "rest_seconds": {"beginner": 45, "intermediate": 60, "advanced": 90},
    },
    "1h": {
        "exercises_per_day": 6,
        "series": {"beginner": 3, "intermediate": 4, "advanced": 4},
        "reps": {"beginner": "8-12", "intermediate": "10-15", "advanced": "12-20"},
        "rest_seconds": {"beginner": 60, "intermediate": 90, "advanced": 120},
    },
    "2h": {
        "exercises_per_day": 8,
        "series": {"beginner": 3, "intermediate": 4, "advanced": 5},
        "reps": {"beginner": "8-12", "intermediate": "10-15", "advanced": "12-20"},
        "rest_seconds": {"beginner": 90, "intermediate": 120, "advanced": 180},
    },
}

DEFAULT_EXERCISE_CONFIG = {
    "exercises_per_day": 6,
    "series": 3,
    "reps": "8-12",
    "rest_seconds": 60,
}


def recommended_archetype(objective: str, duration: str, days: int) -> Optional[str]:
    """Return the archetype for the triple, or ``None`` if there is none."""
    try:
        days = int(days)
    except (TypeError, ValueError):
        return None
    name = ARCHETYPE_LOOKUP.get(objective, {}).get(duration, {}).get(days)
    return name or None


def possible_archetypes(objective: str, duration: str, days: int) -> List[str]:
    name = recommended_archetype(objective, duration, days)
    return [name] if name else []


def require_archetype(objective: str, duration: str, days: int) -> str:
    name = recommended_archetype(objective, duration, days)
    if name is None:
        raise ConfigurationError(
            f"no archetype available for these parameters: {objective}, {duration}, {days} days"
        )
    return name


def template_for(archetype: str) -> Dict[str, str]:
    try:
        return ROUTINE_TEMPLATES[archetype]
    except KeyError:
        raise ConfigurationError(f"unknown routine archetype: {archetype}")


def archetype_for_day_count(days: int) -> str:
    """Archetype recorded for a manually built plan with ``days`` training days."""
    if days <= 3:
        return FULL_BODY
    if days == 4:
        return UPPER_LOWER
    if days >= 6:
        return PUSH_PULL_LEGS
    return ARNOLD_SPLIT


def parse_rep_range(text: str) -> tuple[int, int]:
    low, _, high = str(text).partition("-")
    low_val = int(low)
    return low_val, int(high) if high else low_val


def exercise_config(duration: str, experience: str) -> dict:
    """Return the per-day quota, series, rep range and rest for a profile."""
    config = EXERCISE_CONFIG.get(duration)
    if config is None:
        result = dict(DEFAULT_EXERCISE_CONFIG)
    else:
        result = {
            "exercises_per_day": config["exercises_per_day"],
            "series": config["series"].get(experience, 3),
            "reps": config["reps"].get(experience, "8-12"),
            "rest_seconds": config["rest_seconds"].get(experience, 60),
        }
    result["reps_min"], result["reps_max"] = parse_rep_range(result["reps"])
    return result
