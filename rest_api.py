import datetime
from typing import Optional

from fastapi import FastAPI, HTTPException, Body, APIRouter

from config import APP_VERSION, default_db_path
from db import (
    UserProfileRepository,
    ExerciseCatalogRepository,
    RoutineRepository,
    RoutineDayRepository,
    RoutineExerciseRepository,
    WorkoutSessionRepository,
    ExerciseLogRepository,
    SessionSkipRepository,
    PlannerLogRepository,
    SettingsRepository,
)
from errors import ConfigurationError, ProfileValidationError
from planner_service import PlannerService
from profile_schema import validate_profile
from tracker_service import SessionProgressTracker


def _http_error(e: ValueError) -> HTTPException:
    if isinstance(e, ConfigurationError):
        return HTTPException(status_code=422, detail=str(e))
    if isinstance(e, ProfileValidationError):
        return HTTPException(status_code=400, detail=str(e))
    if "not found" in str(e):
        return HTTPException(status_code=404, detail=str(e))
    return HTTPException(status_code=400, detail=str(e))


class RoutineAPI:
    """Provides REST endpoints for routine planning and session tracking."""

    def __init__(
        self,
        db_path: str = "routines.db",
        yaml_path: str = "settings.yaml",
    ) -> None:
        self.db_path = db_path
        self.settings = SettingsRepository(db_path, yaml_path)
        self.profiles = UserProfileRepository(db_path)
        self.catalog = ExerciseCatalogRepository(db_path)
        self.routine_exercises = RoutineExerciseRepository(db_path)
        self.days = RoutineDayRepository(db_path, self.routine_exercises)
        self.routines = RoutineRepository(db_path, self.days)
        self.sessions = WorkoutSessionRepository(db_path)
        self.logs = ExerciseLogRepository(db_path)
        self.skips = SessionSkipRepository(db_path)
        self.planner_logs = PlannerLogRepository(db_path)
        self.catalog.seed_basic()
        self.planner = PlannerService(
            self.routines,
            self.days,
            self.routine_exercises,
            self.catalog,
            profile_repo=self.profiles,
            log_repo=self.planner_logs,
            settings_repo=self.settings,
        )
        self.app = FastAPI(
            title="Routine Planner API",
            description="REST API for weekly routine generation and workout tracking",
            version=APP_VERSION,
        )
        self._setup_routes()

    def tracker(self) -> SessionProgressTracker:
        return SessionProgressTracker(
            self.sessions,
            self.logs,
            self.routine_exercises,
            self.skips,
            routine_repo=self.routines,
            day_repo=self.days,
            settings_repo=self.settings,
        )

    def _open(self, user_id: str, session_id: int) -> SessionProgressTracker:
        tracker = self.tracker()
        try:
            tracker.open(user_id, session_id)
        except ValueError as e:
            raise _http_error(e)
        return tracker

    def _check_day(self, user_id: str, day_id: int) -> dict:
        day = self.days.fetch_detail(day_id)
        self.routines.fetch_detail(day["routine_id"], user_id)
        return day

    def _check_assignment(self, user_id: str, assignment_id: int) -> dict:
        assignment = self.routine_exercises.fetch_detail(assignment_id)
        self._check_day(user_id, assignment["routine_day_id"])
        return assignment

    def _setup_routes(self) -> None:
        users_router = APIRouter(prefix="/users/{user_id}", tags=["Users"])
        catalog_router = APIRouter(prefix="/catalog", tags=["Catalog"])

        @self.app.get(
            "/health",
            summary="Health check",
            description="Verify API and database connectivity.",
        )
        def health():
            """Return API and database connection status."""
            self.catalog.has_basic_seed()
            return {"status": "ok", "version": APP_VERSION}

        @self.app.get("/planner/logs")
        def planner_logs(limit: int = 5):
            return {
                "last_success": self.planner_logs.last_success(),
                "errors": [
                    {"timestamp": ts, "message": msg}
                    for ts, msg in self.planner_logs.last_errors(limit)
                ],
            }

        @self.app.get("/settings")
        def get_settings():
            return self.settings.all_settings()

        @users_router.put("/profile")
        def save_profile(user_id: str, profile: dict = Body(...)):
            try:
                data = validate_profile(profile)
            except ValueError as e:
                raise _http_error(e)
            values = data.model_dump()
            self.profiles.save(user_id, values)
            return self.profiles.fetch(user_id)

        @users_router.get("/profile")
        def get_profile(user_id: str):
            profile = self.profiles.fetch(user_id)
            if profile is None:
                raise HTTPException(status_code=404, detail="profile not found")
            return profile

        @users_router.get("/archetype")
        def recommended_archetype(user_id: str):
            profile = self.profiles.fetch(user_id)
            if profile is None:
                raise HTTPException(status_code=404, detail="profile not found")
            return {
                "recommended": self.planner.recommended_archetype(
                    profile["objective"],
                    profile["session_duration"],
                    profile["days_per_week"],
                ),
            }

        @users_router.post("/routines/generate")
        def generate_routine(user_id: str):
            try:
                rid = self.planner.generate(user_id)
            except ValueError as e:
                raise _http_error(e)
            return {"id": rid}

        @users_router.get("/routines")
        def list_routines(user_id: str):
            return self.routines.fetch_all_for_user(user_id)

        @users_router.get("/routines/active")
        def active_routine(user_id: str):
            routine = self.routines.fetch_active(user_id)
            if routine is None:
                raise HTTPException(status_code=404, detail="no active routine")
            return routine

        @users_router.post("/routines/custom")
        def create_custom_routine(
            user_id: str, name: str = Body(...), days: dict = Body(...)
        ):
            try:
                rid = self.planner.create_custom_routine(user_id, name, days)
            except ValueError as e:
                raise _http_error(e)
            return {"id": rid}

        @users_router.get("/routines/{routine_id}")
        def get_routine(user_id: str, routine_id: int):
            try:
                routine = self.routines.fetch_detail(routine_id, user_id)
            except ValueError as e:
                raise _http_error(e)
            routine["days"] = self.days.fetch_for_routine(routine_id)
            return routine

        @users_router.post("/routines/{routine_id}/activate")
        def activate_routine(user_id: str, routine_id: int):
            try:
                self.planner.set_active(user_id, routine_id)
            except ValueError as e:
                raise _http_error(e)
            return {"status": "activated"}

        @users_router.delete("/routines/{routine_id}")
        def delete_routine(user_id: str, routine_id: int):
            try:
                self.planner.delete_routine(user_id, routine_id)
            except ValueError as e:
                raise _http_error(e)
            return {"status": "deleted"}

        @users_router.get("/days/{day_id}/exercises")
        def list_day_exercises(user_id: str, day_id: int):
            try:
                self._check_day(user_id, day_id)
            except ValueError as e:
                raise _http_error(e)
            return self.routine_exercises.fetch_for_day(day_id)

        @users_router.put("/days/{day_id}/exercises")
        def replace_day_exercises(
            user_id: str, day_id: int, items: list[dict] = Body(...)
        ):
            try:
                return self.planner.replace_day_exercises(user_id, day_id, items)
            except (KeyError, TypeError):
                raise HTTPException(status_code=400, detail="invalid exercise item")
            except ValueError as e:
                raise _http_error(e)

        @users_router.post("/days/{day_id}/exercises")
        def add_day_exercise(
            user_id: str,
            day_id: int,
            exercise_id: int,
            series: int = 3,
            reps_min: int = 8,
            reps_max: int = 12,
            suggested_weight: Optional[float] = None,
            rest_seconds: int = 60,
        ):
            try:
                self._check_day(user_id, day_id)
                self.catalog.fetch_detail(exercise_id)
                position = len(self.routine_exercises.fetch_for_day(day_id)) + 1
                aid = self.routine_exercises.create(
                    day_id,
                    exercise_id,
                    series,
                    reps_min,
                    reps_max,
                    suggested_weight,
                    rest_seconds,
                    position,
                )
            except ValueError as e:
                raise _http_error(e)
            return {"id": aid}

        @users_router.put("/routine_exercises/{assignment_id}")
        def update_assignment(
            user_id: str,
            assignment_id: int,
            series: Optional[int] = None,
            reps_min: Optional[int] = None,
            reps_max: Optional[int] = None,
            suggested_weight: Optional[float] = None,
            rest_seconds: Optional[int] = None,
        ):
            try:
                self._check_assignment(user_id, assignment_id)
                self.routine_exercises.update(
                    assignment_id,
                    series,
                    reps_min,
                    reps_max,
                    suggested_weight,
                    rest_seconds,
                )
            except ValueError as e:
                raise _http_error(e)
            return self.routine_exercises.fetch_detail(assignment_id)

        @users_router.delete("/routine_exercises/{assignment_id}")
        def delete_assignment(user_id: str, assignment_id: int):
            try:
                self._check_assignment(user_id, assignment_id)
                self.routine_exercises.delete(assignment_id)
            except ValueError as e:
                raise _http_error(e)
            return {"status": "deleted"}

        @users_router.post("/catalog")
        def add_custom_exercise(
            user_id: str,
            name: str,
            muscle_group: str,
            is_compound: bool = False,
            description: Optional[str] = None,
        ):
            try:
                eid = self.catalog.add_custom(
                    user_id, name, muscle_group, is_compound, description
                )
            except ValueError as e:
                raise _http_error(e)
            return {"id": eid}

        @users_router.post("/sessions/today")
        def open_today(user_id: str, date: Optional[str] = None):
            tracker = self.tracker()
            try:
                day = datetime.date.fromisoformat(date) if date else None
                tracker.open_today(user_id, day)
            except ValueError as e:
                raise _http_error(e)
            return tracker.summary()

        @users_router.get("/sessions")
        def list_sessions(user_id: str, limit: Optional[int] = None):
            if limit is None:
                limit = self.settings.get_int("sessions_page_size", 50)
            return self.sessions.fetch_for_user(user_id, limit)

        @users_router.get("/sessions/{session_id}")
        def get_session(user_id: str, session_id: int):
            return self._open(user_id, session_id).summary()

        @users_router.post("/sessions/{session_id}/logs")
        def log_set(
            user_id: str,
            session_id: int,
            exercise_id: int,
            reps: int,
            weight: float,
            rpe: Optional[int] = None,
        ):
            tracker = self._open(user_id, session_id)
            try:
                log_id = tracker.log_set(exercise_id, reps, weight, rpe)
            except ValueError as e:
                raise _http_error(e)
            return {"id": log_id, "session": tracker.summary()}

        @users_router.put("/sessions/{session_id}/logs/{log_id}")
        def update_log(
            user_id: str,
            session_id: int,
            log_id: int,
            reps: int,
            weight: float,
            rpe: Optional[int] = None,
        ):
            tracker = self._open(user_id, session_id)
            try:
                tracker.update_log(log_id, reps, weight, rpe)
            except ValueError as e:
                raise _http_error(e)
            return tracker.summary()

        @users_router.post("/sessions/{session_id}/skip")
        def skip_exercise(user_id: str, session_id: int, exercise_id: int):
            tracker = self._open(user_id, session_id)
            try:
                tracker.skip_exercise(exercise_id)
            except ValueError as e:
                raise _http_error(e)
            return tracker.summary()

        @users_router.post("/sessions/{session_id}/finish")
        def finish_session(
            user_id: str,
            session_id: int,
            notes: str = "",
            rating: Optional[int] = None,
        ):
            tracker = self._open(user_id, session_id)
            try:
                finished = tracker.finish(notes, rating)
            except ValueError as e:
                raise _http_error(e)
            return {"finished": finished, "session": tracker.summary()}

        @catalog_router.get("")
        def list_catalog(
            user_id: Optional[str] = None, muscle_group: Optional[str] = None
        ):
            if muscle_group:
                return self.catalog.fetch_by_muscle_group(muscle_group, user_id)
            return self.catalog.fetch_all(user_id)

        @catalog_router.get("/basic")
        def list_basic():
            return self.catalog.fetch_basic()

        @catalog_router.post("/seed")
        def seed_catalog(force: bool = False):
            return {"inserted": self.catalog.seed_basic(force=force)}

        @catalog_router.get("/{exercise_id}")
        def get_catalog_entry(exercise_id: int):
            try:
                return self.catalog.fetch_detail(exercise_id)
            except ValueError as e:
                raise _http_error(e)

        self.app.include_router(users_router)
        self.app.include_router(catalog_router)


api = RoutineAPI(default_db_path())
app = api.app

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app)
