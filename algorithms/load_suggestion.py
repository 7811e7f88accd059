import math
from typing import Optional


class LoadSuggestion:
    """Estimates a starting load as a fraction of body weight."""

    BODY_WEIGHT_FRACTIONS = {
        "Chest": 0.6,
        "Back": 0.5,
        "Legs": 0.8,
        "Shoulders": 0.3,
        "Arms": 0.2,
        "Core": 0.1,
    }
    LEG_GROUPS = {"Quadriceps", "Hamstrings", "Calves"}
    DEFAULT_FRACTION = 0.3

    @classmethod
    def fraction_for(cls, muscle_group: Optional[str]) -> float:
        if muscle_group in cls.LEG_GROUPS:
            muscle_group = "Legs"
        return cls.BODY_WEIGHT_FRACTIONS.get(muscle_group, cls.DEFAULT_FRACTION)

    @classmethod
    def suggest_load(cls, exercise: dict, body_weight: Optional[float]) -> int:
        """Return the suggested load rounded half-up to a whole unit."""
        if not body_weight or body_weight <= 0:
            return 0
        load = body_weight * cls.fraction_for(exercise.get("muscle_group"))
        return int(math.floor(load + 0.5))
