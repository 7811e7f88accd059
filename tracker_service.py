from __future__ import annotations

import datetime
import logging
from typing import Dict, List, Optional

from db import (
    RoutineRepository,
    RoutineDayRepository,
    RoutineExerciseRepository,
    WorkoutSessionRepository,
    ExerciseLogRepository,
    SessionSkipRepository,
    SettingsRepository,
)
from errors import ConfigurationError, PersistenceError
from algorithms import exercise_progress
from algorithms.exercise_progress import ExerciseProgress, SessionStats
from routine_templates import WEEKDAYS

logger = logging.getLogger(__name__)

IDLE = "idle"
LOADING = "loading"
ACTIVE = "active"
PAUSED = "paused"
COMPLETED = "completed"
ERROR = "error"


class SessionProgressTracker:
    """Tracks set-by-set execution of one workout session.

    Exercise and session progress are never stored; they are derived from
    the session's logged sets every time the tracker loads or refreshes.
    """

    def __init__(
        self,
        session_repo: WorkoutSessionRepository,
        log_repo: ExerciseLogRepository,
        routine_exercise_repo: RoutineExerciseRepository,
        skip_repo: SessionSkipRepository,
        routine_repo: RoutineRepository | None = None,
        day_repo: RoutineDayRepository | None = None,
        settings_repo: SettingsRepository | None = None,
    ) -> None:
        self.sessions = session_repo
        self.logs = log_repo
        self.routine_exercises = routine_exercise_repo
        self.skips = skip_repo
        self.routines = routine_repo
        self.days = day_repo
        self.settings = settings_repo
        self.state = IDLE
        self.user_id: Optional[str] = None
        self.session: Optional[dict] = None
        self.exercises: List[dict] = []
        self.session_logs: List[dict] = []
        self.skipped: set[int] = set()
        self._progress: Dict[int, ExerciseProgress] = {}
        self._stats = SessionStats()

    # ------------------------------------------------------------------
    # session lookup
    # ------------------------------------------------------------------
    def _lookup_limit(self) -> int:
        if self.settings is None:
            return 30
        return self.settings.get_int("session_lookup_limit", 30)

    def _min_percent(self) -> int:
        if self.settings is None:
            return exercise_progress.FINISH_MIN_PERCENT
        return self.settings.get_int(
            "finish_min_percent", exercise_progress.FINISH_MIN_PERCENT
        )

    def ensure_session(
        self, user_id: str, routine_id: int, routine_day_id: int, date: str
    ) -> dict:
        """Return the session for the day and date, creating it on first use."""
        session = self.sessions.find(user_id, routine_id, routine_day_id, date)
        if session is not None:
            return session
        for recent in self.sessions.fetch_for_user(user_id, self._lookup_limit()):
            if recent["routine_id"] == routine_id and recent["date"] == date:
                if self._day_exists(recent["routine_day_id"]):
                    return recent
                # the routine was regenerated and its days recreated
                return self.sessions.move_to_day(recent["id"], routine_day_id)
        return self.sessions.create_or_get(user_id, routine_id, routine_day_id, date)

    def _day_exists(self, routine_day_id: int) -> bool:
        if self.days is None:
            return bool(self.routine_exercises.fetch_for_day(routine_day_id))
        try:
            self.days.fetch_detail(routine_day_id)
        except ValueError:
            return False
        return True

    def open_today(self, user_id: str, date: datetime.date | None = None) -> dict:
        """Open the session for the active routine's day matching ``date``."""
        if self.routines is None or self.days is None:
            raise ConfigurationError("routine repositories not configured")
        date = date or datetime.date.today()
        routine = self.routines.fetch_active(user_id, nested=False)
        if routine is None:
            raise ConfigurationError("no active routine")
        weekday = WEEKDAYS[date.weekday()]
        day = self.days.find_for_weekday(routine["id"], weekday)
        if day is None:
            raise ConfigurationError(f"routine has no day for {weekday}")
        session = self.ensure_session(
            user_id, routine["id"], day["id"], date.isoformat()
        )
        return self.open(user_id, session["id"])

    # ------------------------------------------------------------------
    # loading and derivation
    # ------------------------------------------------------------------
    def _load_exercises(self, routine_day_id: int) -> List[dict]:
        return [
            {
                "id": a["exercise_id"],
                "routine_exercise_id": a["id"],
                "name": a["name"],
                "muscle_group": a["muscle_group"],
                "series": a["series"],
                "reps_min": a["reps_min"],
                "reps_max": a["reps_max"],
                "suggested_weight": a["suggested_weight"],
                "rest_seconds": a["rest_seconds"],
                "position": a["position"],
            }
            for a in self.routine_exercises.fetch_for_day(routine_day_id)
        ]

    def _recompute(self) -> None:
        self._progress = exercise_progress.compute_all_progress(
            self.exercises, self.session_logs, self.skipped
        )
        self._stats = exercise_progress.compute_session_stats(
            self.exercises, self._progress
        )

    def open(self, user_id: str, session_id: int) -> dict:
        previous = self.state
        self.state = LOADING
        try:
            session = self.sessions.fetch_detail(session_id, user_id)
            exercises = self._load_exercises(session["routine_day_id"])
            logs = self.logs.fetch_for_session(session_id)
            skipped = self.skips.fetch_for_session(session_id)
        except PersistenceError:
            self.state = ERROR
            logger.exception("could not load session %s", session_id)
            raise
        except ValueError:
            self.state = previous
            raise
        self.user_id = user_id
        self.session = session
        self.exercises = exercises
        self.session_logs = logs
        self.skipped = skipped
        self._recompute()
        self.state = COMPLETED if session["completed"] else ACTIVE
        return session

    def refresh(self) -> None:
        """Reload logs and skip marks and recompute progress."""
        self._require_open()
        try:
            self.session_logs = self.logs.fetch_for_session(self.session["id"])
            self.skipped = self.skips.fetch_for_session(self.session["id"])
        except PersistenceError:
            self.state = ERROR
            logger.exception("could not refresh session %s", self.session["id"])
            raise
        self._recompute()
        if self.state == COMPLETED:
            self.state = ACTIVE

    def _require_open(self) -> None:
        if self.session is None or self.state in (IDLE, LOADING):
            raise ValueError("no session open")

    def _require_editable(self) -> None:
        self._require_open()
        if self.state not in (ACTIVE, COMPLETED):
            raise ValueError(f"session is {self.state}")

    def _exercise(self, exercise_id: int) -> dict:
        for ex in self.exercises:
            if ex["id"] == exercise_id:
                return ex
        raise ValueError("exercise not part of this session")

    @staticmethod
    def _validate_set(reps: int, weight: float, rpe: Optional[int]) -> None:
        if reps is None or int(reps) <= 0:
            raise ValueError("reps must be positive")
        if weight is None or float(weight) < 0:
            raise ValueError("weight must be zero or positive")
        if rpe is not None and not 1 <= int(rpe) <= 10:
            raise ValueError("rpe must be between 1 and 10")

    # ------------------------------------------------------------------
    # user actions
    # ------------------------------------------------------------------
    def log_set(
        self, exercise_id: int, reps: int, weight: float, rpe: Optional[int] = None
    ) -> int:
        self._require_editable()
        self._exercise(exercise_id)
        if exercise_id in self.skipped:
            raise ValueError("exercise was skipped")
        self._validate_set(reps, weight, rpe)
        set_number = self._progress[exercise_id].completed_series + 1
        try:
            log_id = self.logs.create(
                self.session["id"], exercise_id, set_number, int(reps), float(weight), rpe
            )
        except PersistenceError:
            self.state = ERROR
            raise
        self.refresh()
        return log_id

    def update_log(
        self, log_id: int, reps: int, weight: float, rpe: Optional[int] = None
    ) -> None:
        self._require_editable()
        self._validate_set(reps, weight, rpe)
        log = self.logs.fetch_detail(log_id)
        if log["session_id"] != self.session["id"]:
            raise ValueError("exercise log not found")
        self.logs.update(log_id, int(reps), float(weight), rpe)
        self.refresh()

    def skip_exercise(self, exercise_id: int) -> None:
        self._require_editable()
        self._exercise(exercise_id)
        self.skips.skip(self.session["id"], exercise_id)
        self.refresh()

    def unskip_exercise(self, exercise_id: int) -> None:
        self._require_editable()
        self._exercise(exercise_id)
        self.skips.unskip(self.session["id"], exercise_id)
        self.refresh()

    def pause(self) -> None:
        if self.state != ACTIVE:
            raise ValueError(f"cannot pause a session that is {self.state}")
        self.state = PAUSED

    def resume(self) -> None:
        if self.state != PAUSED:
            raise ValueError(f"cannot resume a session that is {self.state}")
        self.state = ACTIVE

    def can_finish(self) -> bool:
        return exercise_progress.can_finish(self._stats, self._min_percent())

    def finish(self, notes: str = "", rating: Optional[int] = None) -> bool:
        """Mark the session completed if enough work was logged.

        Returns ``False`` without touching the session when it cannot be
        finished yet.
        """
        if rating is not None and not 1 <= int(rating) <= 5:
            raise ValueError("rating must be between 1 and 5")
        if self.session is None or self.state in (IDLE, LOADING, ERROR):
            return False
        if not self.can_finish():
            return False
        try:
            self.sessions.finish(self.session["id"], notes or "", rating)
        except PersistenceError:
            self.state = ERROR
            raise
        self.session = self.sessions.fetch_detail(self.session["id"])
        self.state = COMPLETED
        return True

    # ------------------------------------------------------------------
    # derived views
    # ------------------------------------------------------------------
    def next_recommended(self) -> Optional[dict]:
        return exercise_progress.next_recommended(self.exercises, self._progress)

    @property
    def stats(self) -> SessionStats:
        return self._stats

    @property
    def progress(self) -> Dict[int, ExerciseProgress]:
        return dict(self._progress)

    def progress_percent(self) -> int:
        return exercise_progress.progress_percent(self._stats)

    def summary(self) -> dict:
        """Serializable snapshot of the open session."""
        return {
            "state": self.state,
            "session": self.session,
            "exercises": [
                dict(ex, progress=self._progress[ex["id"]].to_dict())
                for ex in self.exercises
            ],
            "stats": self._stats.to_dict(),
            "progress_percent": self.progress_percent(),
            "can_finish": self.can_finish(),
            "next_recommended": self.next_recommended(),
        }
