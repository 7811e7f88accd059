import argparse
import datetime
import json
import os
import shutil

from config import default_db_path
from db import (
    Database,
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
from planner_service import PlannerService
from profile_schema import validate_profile
from tracker_service import SessionProgressTracker


def backup_db(db_path: str, backup_path: str) -> None:
    shutil.copy(db_path, backup_path)


def restore_db(backup_path: str, db_path: str) -> None:
    shutil.copy(backup_path, db_path)


def vacuum_db(db_path: str) -> int:
    """Compact the database file and return its size in bytes."""
    Database(db_path).vacuum()
    return os.path.getsize(db_path)


def seed_catalog(db_path: str, force: bool = False) -> int:
    return ExerciseCatalogRepository(db_path).seed_basic(force=force)


def save_profile(db_path: str, user_id: str, profile: dict) -> dict:
    data = validate_profile(profile)
    repo = UserProfileRepository(db_path)
    repo.save(user_id, data.model_dump())
    return repo.fetch(user_id)


def _planner(db_path: str, yaml_path: str) -> PlannerService:
    routine_exercises = RoutineExerciseRepository(db_path)
    days = RoutineDayRepository(db_path, routine_exercises)
    return PlannerService(
        RoutineRepository(db_path, days),
        days,
        routine_exercises,
        ExerciseCatalogRepository(db_path),
        profile_repo=UserProfileRepository(db_path),
        log_repo=PlannerLogRepository(db_path),
        settings_repo=SettingsRepository(db_path, yaml_path),
    )


def generate_routine(db_path: str, yaml_path: str, user_id: str) -> dict:
    planner = _planner(db_path, yaml_path)
    planner.catalog.seed_basic()
    planner.generate(user_id)
    return planner.routines.fetch_active(user_id)


def open_today(
    db_path: str, yaml_path: str, user_id: str, date: str | None = None
) -> dict:
    routine_exercises = RoutineExerciseRepository(db_path)
    days = RoutineDayRepository(db_path, routine_exercises)
    tracker = SessionProgressTracker(
        WorkoutSessionRepository(db_path),
        ExerciseLogRepository(db_path),
        routine_exercises,
        SessionSkipRepository(db_path),
        routine_repo=RoutineRepository(db_path, days),
        day_repo=days,
        settings_repo=SettingsRepository(db_path, yaml_path),
    )
    day = datetime.date.fromisoformat(date) if date else None
    tracker.open_today(user_id, day)
    return tracker.summary()


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Routine planner commands")
    sub = parser.add_subparsers(dest="cmd", required=True)

    seed = sub.add_parser("seed")
    seed.add_argument("--db", default=default_db_path())
    seed.add_argument("--force", action="store_true")

    prof = sub.add_parser("profile")
    prof.add_argument("--db", default=default_db_path())
    prof.add_argument("--user", required=True)
    prof.add_argument(
        "--objective", choices=["gain_muscle", "lose_fat", "maintain"], required=True
    )
    prof.add_argument("--duration", choices=["30min", "1h", "2h"], required=True)
    prof.add_argument("--days", type=int, choices=[3, 4, 6], required=True)
    prof.add_argument(
        "--experience",
        choices=["beginner", "intermediate", "advanced"],
        default="beginner",
    )
    prof.add_argument("--weight", type=float)
    prof.add_argument("--height", type=float)
    prof.add_argument("--age", type=int)
    prof.add_argument("--sex", choices=["male", "female", "other"])

    gen = sub.add_parser("generate")
    gen.add_argument("--db", default=default_db_path())
    gen.add_argument("--yaml", default="settings.yaml")
    gen.add_argument("--user", required=True)

    today = sub.add_parser("today")
    today.add_argument("--db", default=default_db_path())
    today.add_argument("--yaml", default="settings.yaml")
    today.add_argument("--user", required=True)
    today.add_argument("--date")

    sess = sub.add_parser("sessions")
    sess.add_argument("--db", default=default_db_path())
    sess.add_argument("--user", required=True)
    sess.add_argument("--limit", type=int, default=50)

    bkp = sub.add_parser("backup")
    bkp.add_argument("--db", default=default_db_path())
    bkp.add_argument("--out", default="backup.db")

    rst = sub.add_parser("restore")
    rst.add_argument("--in", dest="src", default="backup.db")
    rst.add_argument("--db", default=default_db_path())

    vac = sub.add_parser("vacuum")
    vac.add_argument("--db", default=default_db_path())

    args = parser.parse_args(argv)

    if args.cmd == "seed":
        print(f"Inserted {seed_catalog(args.db, args.force)} exercises")
    elif args.cmd == "profile":
        profile = {
            "objective": args.objective,
            "session_duration": args.duration,
            "days_per_week": args.days,
            "experience": args.experience,
            "weight": args.weight,
            "height": args.height,
            "age": args.age,
            "sex": args.sex,
        }
        print(json.dumps(save_profile(args.db, args.user, profile), indent=2))
    elif args.cmd == "generate":
        print(json.dumps(generate_routine(args.db, args.yaml, args.user), indent=2))
    elif args.cmd == "today":
        print(json.dumps(open_today(args.db, args.yaml, args.user, args.date), indent=2))
    elif args.cmd == "sessions":
        sessions = WorkoutSessionRepository(args.db).fetch_for_user(args.user, args.limit)
        print(json.dumps(sessions, indent=2))
    elif args.cmd == "backup":
        backup_db(args.db, args.out)
    elif args.cmd == "restore":
        restore_db(args.src, args.db)
    elif args.cmd == "vacuum":
        print(f"Database vacuumed ({vacuum_db(args.db)} bytes)")


if __name__ == "__main__":
    main()
