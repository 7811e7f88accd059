"""Derived exercise and session progress.

Nothing here is stored: progress is recomputed from the logged sets of a
session every time it is needed.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Dict, Iterable, List, Optional, Sequence

PENDING = "pending"
IN_PROGRESS = "in_progress"
COMPLETED = "completed"
SKIPPED = "skipped"

DEFAULT_SERIES = 3
FINISH_MIN_PERCENT = 30


@dataclass
class ExerciseProgress:
    state: str
    completed_series: int
    total_series: int
    last_update: Optional[str] = None
    volume: float = 0.0

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass
class SessionStats:
    total_exercises: int = 0
    completed_exercises: int = 0
    total_series: int = 0
    completed_series: int = 0

    def to_dict(self) -> Dict:
        return asdict(self)


def exercise_state(completed_series: int, total_series: int) -> str:
    if completed_series == 0:
        return PENDING
    if completed_series < total_series:
        return IN_PROGRESS
    return COMPLETED


def compute_progress(
    exercise: dict, logs: Iterable[dict], skipped: bool = False
) -> ExerciseProgress:
    """Derive progress for ``exercise`` from the session's logs."""
    own = [log for log in logs if log.get("exercise_id") == exercise["id"]]
    series = exercise.get("series")
    total = DEFAULT_SERIES if series is None else int(series)
    completed = len(own)
    volume = sum(float(l.get("weight") or 0) * int(l.get("reps") or 0) for l in own)
    state = SKIPPED if skipped else exercise_state(completed, total)
    return ExerciseProgress(
        state=state,
        completed_series=completed,
        total_series=total,
        last_update=own[-1].get("created_at") if own else None,
        volume=volume,
    )


def compute_all_progress(
    exercises: Sequence[dict],
    logs: Sequence[dict],
    skipped_ids: Iterable[int] = (),
) -> Dict[int, ExerciseProgress]:
    skipped = set(skipped_ids)
    return {
        ex["id"]: compute_progress(ex, logs, ex["id"] in skipped) for ex in exercises
    }


def compute_session_stats(
    exercises: Sequence[dict], progress: Dict[int, ExerciseProgress]
) -> SessionStats:
    stats = SessionStats()
    for ex in exercises:
        item = progress.get(ex["id"])
        if item is None:
            series = ex.get("series")
            item = ExerciseProgress(
                PENDING, 0, DEFAULT_SERIES if series is None else int(series)
            )
        stats.total_exercises += 1
        stats.total_series += item.total_series
        stats.completed_series += item.completed_series
        if exercise_state(item.completed_series, item.total_series) == COMPLETED:
            stats.completed_exercises += 1
    return stats


def progress_percent(stats: SessionStats) -> int:
    if stats.total_exercises == 0:
        return 0
    return int(stats.completed_exercises * 100 / stats.total_exercises + 0.5)


def required_series(total_series: int, min_percent: int = FINISH_MIN_PERCENT) -> int:
    """Smallest series count reaching ``min_percent`` of ``total_series``."""
    return -(-total_series * min_percent // 100)


def can_finish(stats: SessionStats, min_percent: int = FINISH_MIN_PERCENT) -> bool:
    if stats.completed_exercises <= 0 or stats.total_series <= 0:
        return False
    return stats.completed_series >= required_series(stats.total_series, min_percent)


def next_recommended(
    exercises: Sequence[dict], progress: Dict[int, ExerciseProgress]
) -> Optional[dict]:
    """First in-progress exercise, else the first pending one."""
    for wanted in (IN_PROGRESS, PENDING):
        for ex in exercises:
            item = progress.get(ex["id"])
            if item is not None and item.state == wanted:
                return ex
    return None


__all__: List[str] = [
    "PENDING",
    "IN_PROGRESS",
    "COMPLETED",
    "SKIPPED",
    "ExerciseProgress",
    "SessionStats",
    "exercise_state",
    "compute_progress",
    "compute_all_progress",
    "compute_session_stats",
    "progress_percent",
    "required_series",
    "can_finish",
    "next_recommended",
]
