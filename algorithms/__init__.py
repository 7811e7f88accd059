from .muscle_groups import MuscleGroupResolver, MUSCLE_GROUPS
from .exercise_allocator import ExerciseAllocator
from .load_suggestion import LoadSuggestion
from . import exercise_progress

__all__ = [
    "MuscleGroupResolver",
    "MUSCLE_GROUPS",
    "ExerciseAllocator",
    "LoadSuggestion",
    "exercise_progress",
]
