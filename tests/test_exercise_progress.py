import os
import sys

import pytest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from algorithms import exercise_progress as ep


def _logs(exercise_id: int, count: int, weight: float = 50.0, reps: int = 10):
    return [
        {
            "exercise_id": exercise_id,
            "reps": reps,
            "weight": weight,
            "created_at": f"2024-01-01T10:0{i}:00",
        }
        for i in range(count)
    ]


@pytest.mark.parametrize(
    "count,state",
    [(0, ep.PENDING), (1, ep.IN_PROGRESS), (2, ep.IN_PROGRESS), (3, ep.COMPLETED), (5, ep.COMPLETED)],
)
def test_state_follows_log_count(count, state):
    progress = ep.compute_progress({"id": 1, "series": 3}, _logs(1, count))
    assert progress.state == state
    assert progress.completed_series == count
    assert progress.total_series == 3


def test_missing_series_defaults_to_three():
    progress = ep.compute_progress({"id": 1, "series": None}, _logs(1, 2))
    assert progress.total_series == 3
    assert progress.state == ep.IN_PROGRESS


def test_only_matching_logs_count():
    logs = _logs(1, 1) + _logs(2, 3)
    progress = ep.compute_progress({"id": 1, "series": 3}, logs)
    assert progress.completed_series == 1
    assert progress.volume == 500.0
    assert progress.last_update == "2024-01-01T10:00:00"


def test_skipped_is_preserved():
    progress = ep.compute_progress({"id": 1, "series": 3}, _logs(1, 3), skipped=True)
    assert progress.state == ep.SKIPPED
    assert progress.completed_series == 3


def test_session_stats_and_percent():
    exercises = [{"id": 1, "series": 3}, {"id": 2, "series": 4}, {"id": 3, "series": 3}]
    logs = _logs(1, 3) + _logs(2, 1)
    progress = ep.compute_all_progress(exercises, logs)
    stats = ep.compute_session_stats(exercises, progress)
    assert stats.to_dict() == {
        "total_exercises": 3,
        "completed_exercises": 1,
        "total_series": 10,
        "completed_series": 4,
    }
    assert ep.progress_percent(stats) == 33
    assert ep.progress_percent(ep.SessionStats()) == 0


def test_finish_threshold_uses_exact_ceiling():
    stats = ep.SessionStats(
        total_exercises=4, completed_exercises=1, total_series=10, completed_series=3
    )
    assert ep.required_series(10) == 3
    assert ep.can_finish(stats)
    stats.completed_series = 2
    assert not ep.can_finish(stats)


def test_cannot_finish_without_a_completed_exercise():
    stats = ep.SessionStats(
        total_exercises=2, completed_exercises=0, total_series=6, completed_series=5
    )
    assert not ep.can_finish(stats)
    assert not ep.can_finish(ep.SessionStats())


def test_finish_threshold_is_configurable():
    stats = ep.SessionStats(
        total_exercises=2, completed_exercises=1, total_series=6, completed_series=3
    )
    assert ep.can_finish(stats, 50)
    assert not ep.can_finish(stats, 51)


def test_next_recommended_prefers_in_progress():
    exercises = [{"id": 1, "series": 3}, {"id": 2, "series": 3}, {"id": 3, "series": 3}]
    progress = ep.compute_all_progress(exercises, _logs(1, 3) + _logs(3, 1))
    assert ep.next_recommended(exercises, progress)["id"] == 3
    progress = ep.compute_all_progress(exercises, _logs(1, 3))
    assert ep.next_recommended(exercises, progress)["id"] == 2
    progress = ep.compute_all_progress(exercises, _logs(1, 3) + _logs(2, 3), skipped_ids=[3])
    assert ep.next_recommended(exercises, progress) is None
