import sqlite3
import csv
import os
import datetime
from contextlib import contextmanager
from typing import List, Tuple, Optional, Iterable, Set

from config import YamlConfig
from settings_schema import validate_settings
from errors import PersistenceError
from algorithms.muscle_groups import MUSCLE_GROUPS
from routine_templates import WEEKDAYS


class Database:
    """Provides SQLite connection management and schema initialization."""

    _TABLE_DEFINITIONS = {
        "user_profiles": (
            """CREATE TABLE user_profiles (
                    user_id TEXT PRIMARY KEY,
                    height REAL,
                    weight REAL,
                    age INTEGER,
                    sex TEXT,
                    objective TEXT,
                    experience TEXT,
                    session_duration TEXT,
                    days_per_week INTEGER
                );""",
            [
                "user_id",
                "height",
                "weight",
                "age",
                "sex",
                "objective",
                "experience",
                "session_duration",
                "days_per_week",
            ],
        ),
        "exercise_catalog": (
            """CREATE TABLE exercise_catalog (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    muscle_group TEXT NOT NULL,
                    is_compound INTEGER NOT NULL DEFAULT 0,
                    description TEXT,
                    instructions TEXT,
                    is_basic INTEGER NOT NULL DEFAULT 0,
                    user_id TEXT
                );""",
            [
                "id",
                "name",
                "muscle_group",
                "is_compound",
                "description",
                "instructions",
                "is_basic",
                "user_id",
            ],
        ),
        "routines": (
            """CREATE TABLE routines (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    name TEXT NOT NULL,
                    routine_type TEXT NOT NULL,
                    days_per_week INTEGER NOT NULL,
                    is_active INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL
                );""",
            [
                "id",
                "user_id",
                "name",
                "routine_type",
                "days_per_week",
                "is_active",
                "created_at",
            ],
        ),
        "routine_days": (
            """CREATE TABLE routine_days (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    routine_id INTEGER NOT NULL,
                    weekday TEXT NOT NULL,
                    day_name TEXT NOT NULL,
                    description TEXT,
                    is_rest INTEGER NOT NULL DEFAULT 0,
                    position INTEGER NOT NULL,
                    UNIQUE (routine_id, position),
                    FOREIGN KEY(routine_id) REFERENCES routines(id) ON DELETE CASCADE
                );""",
            [
                "id",
                "routine_id",
                "weekday",
                "day_name",
                "description",
                "is_rest",
                "position",
            ],
        ),
        "routine_exercises": (
            """CREATE TABLE routine_exercises (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    routine_day_id INTEGER NOT NULL,
                    exercise_id INTEGER NOT NULL,
                    series INTEGER NOT NULL,
                    reps_min INTEGER NOT NULL,
                    reps_max INTEGER NOT NULL,
                    suggested_weight REAL,
                    rest_seconds INTEGER NOT NULL DEFAULT 60,
                    position INTEGER NOT NULL,
                    UNIQUE (routine_day_id, position),
                    FOREIGN KEY(routine_day_id) REFERENCES routine_days(id) ON DELETE CASCADE,
                    FOREIGN KEY(exercise_id) REFERENCES exercise_catalog(id)
                );""",
            [
                "id",
                "routine_day_id",
                "exercise_id",
                "series",
                "reps_min",
                "reps_max",
                "suggested_weight",
                "rest_seconds",
                "position",
            ],
        ),
        "workout_sessions": (
            """CREATE TABLE workout_sessions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    routine_id INTEGER NOT NULL,
                    routine_day_id INTEGER NOT NULL,
                    date TEXT NOT NULL,
                    completed INTEGER NOT NULL DEFAULT 0,
                    notes TEXT,
                    rating INTEGER,
                    start_time TEXT,
                    end_time TEXT,
                    UNIQUE (user_id, routine_id, routine_day_id, date)
                );""",
            [
                "id",
                "user_id",
                "routine_id",
                "routine_day_id",
                "date",
                "completed",
                "notes",
                "rating",
                "start_time",
                "end_time",
            ],
        ),
        "exercise_logs": (
            """CREATE TABLE exercise_logs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    session_id INTEGER NOT NULL,
                    exercise_id INTEGER NOT NULL,
                    set_number INTEGER NOT NULL,
                    reps INTEGER NOT NULL,
                    weight REAL NOT NULL,
                    rpe INTEGER,
                    created_at TEXT NOT NULL,
                    FOREIGN KEY(session_id) REFERENCES workout_sessions(id) ON DELETE CASCADE
                );""",
            [
                "id",
                "session_id",
                "exercise_id",
                "set_number",
                "reps",
                "weight",
                "rpe",
                "created_at",
            ],
        ),
        "session_skips": (
            """CREATE TABLE session_skips (
                    session_id INTEGER NOT NULL,
                    exercise_id INTEGER NOT NULL,
                    PRIMARY KEY (session_id, exercise_id),
                    FOREIGN KEY(session_id) REFERENCES workout_sessions(id) ON DELETE CASCADE
                );""",
            ["session_id", "exercise_id"],
        ),
        "planner_logs": (
            """CREATE TABLE planner_logs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    timestamp TEXT NOT NULL,
                    status TEXT NOT NULL,
                    message TEXT
                );""",
            ["id", "timestamp", "status", "message"],
        ),
        "settings": (
            """CREATE TABLE settings (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                );""",
            ["key", "value"],
        ),
    }

    def __init__(self, db_path: str = "routines.db") -> None:
        self._db_path = db_path
        self._ensure_schema()
        self._init_settings()

    @contextmanager
    def _connection(self):
        connection = sqlite3.connect(self._db_path)
        connection.execute("PRAGMA foreign_keys=ON;")
        try:
            yield connection
            connection.commit()
        finally:
            connection.close()

    def _ensure_schema(self) -> None:
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute("PRAGMA foreign_keys=off;")
            # keep child foreign keys pointing at the rebuilt table, not *_old
            cursor.execute("PRAGMA legacy_alter_table=ON;")
            for table, (sql, columns) in self._TABLE_DEFINITIONS.items():
                self._ensure_table(conn, table, sql, columns)
            cursor.execute("PRAGMA foreign_keys=on;")

    def _ensure_table(
        self, conn: sqlite3.Connection, table: str, sql: str, columns: List[str]
    ) -> None:
        cur = conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?;", (table,)
        )
        if cur.fetchone() is None:
            conn.execute(sql)
            return

        cur = conn.execute(f"PRAGMA table_info({table});")
        existing_cols = [row[1] for row in cur.fetchall()]
        if existing_cols == columns:
            return

        conn.execute(f"DROP TABLE IF EXISTS {table}_old;")
        conn.execute(f"ALTER TABLE {table} RENAME TO {table}_old;")
        conn.execute(sql)

        common = [c for c in existing_cols if c in columns]
        if common:
            cols = ", ".join(common)
            missing = [c for c in columns if c not in existing_cols]
            if missing:
                def default_val(col: str) -> str:
                    if col in ("is_active", "is_rest", "is_compound", "is_basic", "completed"):
                        return "0"
                    if col in ("position", "set_number"):
                        return "0"
                    if col == "rest_seconds":
                        return "60"
                    if col == "created_at":
                        return "''"
                    return "NULL"

                defaults = ", ".join(default_val(c) for c in missing)
                conn.execute(
                    f"INSERT INTO {table} ({cols}, {', '.join(missing)}) SELECT {cols}, {defaults} FROM {table}_old;"
                )
            else:
                conn.execute(
                    f"INSERT INTO {table} ({cols}) SELECT {cols} FROM {table}_old;"
                )
        conn.execute(f"DROP TABLE {table}_old;")

    def _init_settings(self) -> None:
        defaults = {
            "routine_name": "My Routine",
            "session_lookup_limit": "30",
            "sessions_page_size": "50",
            "finish_min_percent": "30",
            "shuffle_seed": "",
            "app_version": "1.0.0",
        }
        with self._connection() as conn:
            for key, value in defaults.items():
                conn.execute(
                    "INSERT OR IGNORE INTO settings (key, value) VALUES (?, ?);",
                    (key, value),
                )

    def vacuum(self) -> None:
        """Run SQLite VACUUM to reduce database size."""
        with self._connection() as conn:
            conn.execute("VACUUM;")


class BaseRepository(Database):
    """Base repository providing helper methods."""

    def execute(self, query: str, params: Tuple = ()) -> int:
        try:
            with self._connection() as conn:
                cursor = conn.cursor()
                cursor.execute(query, params)
                return cursor.lastrowid
        except sqlite3.Error as e:
            raise PersistenceError(str(e)) from e

    def execute_many(self, statements: Iterable[Tuple[str, Tuple]]) -> None:
        """Run several statements on one connection and commit them together."""
        try:
            with self._connection() as conn:
                for query, params in statements:
                    conn.execute(query, params)
        except sqlite3.Error as e:
            raise PersistenceError(str(e)) from e

    def fetch_all(self, query: str, params: Tuple = ()) -> List[Tuple]:
        try:
            with self._connection() as conn:
                cursor = conn.cursor()
                cursor.execute(query, params)
                return cursor.fetchall()
        except sqlite3.Error as e:
            raise PersistenceError(str(e)) from e

    @staticmethod
    def _now() -> str:
        return datetime.datetime.now().isoformat()


class UserProfileRepository(BaseRepository):
    """Repository for per-user training profiles."""

    _FIELDS = (
        "height",
        "weight",
        "age",
        "sex",
        "objective",
        "experience",
        "session_duration",
        "days_per_week",
    )

    def save(self, user_id: str, profile: dict) -> None:
        values = tuple(profile.get(f) for f in self._FIELDS)
        self.execute(
            "INSERT INTO user_profiles (user_id, height, weight, age, sex, objective, experience, session_duration, days_per_week) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?) "
            "ON CONFLICT(user_id) DO UPDATE SET height=excluded.height, weight=excluded.weight, age=excluded.age, "
            "sex=excluded.sex, objective=excluded.objective, experience=excluded.experience, "
            "session_duration=excluded.session_duration, days_per_week=excluded.days_per_week;",
            (user_id, *values),
        )

    def fetch(self, user_id: str) -> Optional[dict]:
        rows = self.fetch_all(
            "SELECT user_id, height, weight, age, sex, objective, experience, session_duration, days_per_week "
            "FROM user_profiles WHERE user_id = ?;",
            (user_id,),
        )
        if not rows:
            return None
        return dict(zip(("user_id",) + self._FIELDS, rows[0]))


class ExerciseCatalogRepository(BaseRepository):
    """Repository for the global exercise catalog and user custom entries."""

    _COLUMNS = "id, name, muscle_group, is_compound, description, instructions, is_basic, user_id"

    @staticmethod
    def _to_dict(row: Tuple) -> dict:
        return {
            "id": row[0],
            "name": row[1],
            "muscle_group": row[2],
            "is_compound": bool(row[3]),
            "description": row[4],
            "instructions": [i for i in (row[5] or "").split("|") if i],
            "is_basic": bool(row[6]),
            "user_id": row[7],
        }

    def fetch_all(self, user_id: Optional[str] = None) -> List[dict]:
        """Return global entries plus the custom entries of ``user_id``."""
        if user_id is None:
            rows = super().fetch_all(
                f"SELECT {self._COLUMNS} FROM exercise_catalog WHERE user_id IS NULL ORDER BY id;"
            )
        else:
            rows = super().fetch_all(
                f"SELECT {self._COLUMNS} FROM exercise_catalog WHERE user_id IS NULL OR user_id = ? ORDER BY id;",
                (user_id,),
            )
        return [self._to_dict(r) for r in rows]

    def fetch_for_user(self, user_id: str) -> List[dict]:
        """Return only the custom entries authored by ``user_id``."""
        rows = super().fetch_all(
            f"SELECT {self._COLUMNS} FROM exercise_catalog WHERE user_id = ? ORDER BY id;",
            (user_id,),
        )
        return [self._to_dict(r) for r in rows]

    def fetch_by_muscle_group(
        self, muscle_group: str, user_id: Optional[str] = None
    ) -> List[dict]:
        return [
            ex for ex in self.fetch_all(user_id) if ex["muscle_group"] == muscle_group
        ]

    def fetch_basic(self) -> List[dict]:
        rows = super().fetch_all(
            f"SELECT {self._COLUMNS} FROM exercise_catalog WHERE is_basic = 1 ORDER BY id;"
        )
        return [self._to_dict(r) for r in rows]

    def fetch_detail(self, exercise_id: int) -> dict:
        rows = super().fetch_all(
            f"SELECT {self._COLUMNS} FROM exercise_catalog WHERE id = ?;",
            (exercise_id,),
        )
        if not rows:
            raise ValueError("exercise not found")
        return self._to_dict(rows[0])

    def add_custom(
        self,
        user_id: str,
        name: str,
        muscle_group: str,
        is_compound: bool = False,
        description: Optional[str] = None,
        instructions: Optional[List[str]] = None,
    ) -> int:
        name = (name or "").strip()
        if not name:
            raise ValueError("exercise name required")
        if muscle_group not in MUSCLE_GROUPS:
            raise ValueError(f"unknown muscle group: {muscle_group}")
        return self.execute(
            "INSERT INTO exercise_catalog (name, muscle_group, is_compound, description, instructions, is_basic, user_id) "
            "VALUES (?, ?, ?, ?, ?, 0, ?);",
            (
                name,
                muscle_group,
                int(bool(is_compound)),
                description,
                "|".join(instructions or []),
                user_id,
            ),
        )

    def has_basic_seed(self) -> bool:
        rows = super().fetch_all(
            "SELECT 1 FROM exercise_catalog WHERE is_basic = 1 LIMIT 1;"
        )
        return bool(rows)

    @staticmethod
    def _read_seed_file(csv_path: str) -> List[Tuple[str, str, int, str, str]]:
        with open(csv_path, newline="", encoding="utf-8") as csvfile:
            reader = csv.DictReader(csvfile)
            return [
                (
                    row["Exercise Name"],
                    row["Muscle Group"],
                    int(row.get("Compound") or 0),
                    row.get("Description", ""),
                    row.get("Instructions", ""),
                )
                for row in reader
            ]

    def seed_basic(self, force: bool = False, csv_path: Optional[str] = None) -> int:
        """Insert the bundled basic exercises.

        Without ``force`` nothing happens once a basic seed exists. With
        ``force`` existing basic rows are refreshed in place so routines that
        reference them stay valid.
        """
        if self.has_basic_seed() and not force:
            return 0
        csv_path = csv_path or os.path.join(
            os.path.dirname(__file__), "basic_exercises.csv"
        )
        if not os.path.exists(csv_path):
            return 0
        records = self._read_seed_file(csv_path)
        inserted = 0
        try:
            with self._connection() as conn:
                for name, group, compound, description, instructions in records:
                    cur = conn.execute(
                        "SELECT id FROM exercise_catalog WHERE name = ? AND is_basic = 1;",
                        (name,),
                    )
                    row = cur.fetchone()
                    if row is None:
                        conn.execute(
                            "INSERT INTO exercise_catalog (name, muscle_group, is_compound, description, instructions, is_basic, user_id) "
                            "VALUES (?, ?, ?, ?, ?, 1, NULL);",
                            (name, group, compound, description, instructions),
                        )
                        inserted += 1
                    else:
                        conn.execute(
                            "UPDATE exercise_catalog SET muscle_group = ?, is_compound = ?, description = ?, instructions = ? WHERE id = ?;",
                            (group, compound, description, instructions, row[0]),
                        )
        except sqlite3.Error as e:
            raise PersistenceError(str(e)) from e
        return inserted


class RoutineExerciseRepository(BaseRepository):
    """Repository for exercises assigned to a routine day."""

    def create(
        self,
        routine_day_id: int,
        exercise_id: int,
        series: int,
        reps_min: int,
        reps_max: int,
        suggested_weight: Optional[float],
        rest_seconds: int,
        position: int,
    ) -> int:
        if series < 1:
            raise ValueError("series must be at least 1")
        if reps_min < 1 or reps_max < reps_min:
            raise ValueError("invalid rep range")
        return self.execute(
            "INSERT INTO routine_exercises (routine_day_id, exercise_id, series, reps_min, reps_max, suggested_weight, rest_seconds, position) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?);",
            (
                routine_day_id,
                exercise_id,
                series,
                reps_min,
                reps_max,
                suggested_weight,
                rest_seconds,
                position,
            ),
        )

    def update(
        self,
        assignment_id: int,
        series: Optional[int] = None,
        reps_min: Optional[int] = None,
        reps_max: Optional[int] = None,
        suggested_weight: Optional[float] = None,
        rest_seconds: Optional[int] = None,
    ) -> None:
        current = self.fetch_detail(assignment_id)
        series = current["series"] if series is None else series
        reps_min = current["reps_min"] if reps_min is None else reps_min
        reps_max = current["reps_max"] if reps_max is None else reps_max
        if suggested_weight is None:
            suggested_weight = current["suggested_weight"]
        rest_seconds = current["rest_seconds"] if rest_seconds is None else rest_seconds
        if series < 1:
            raise ValueError("series must be at least 1")
        if reps_min < 1 or reps_max < reps_min:
            raise ValueError("invalid rep range")
        self.execute(
            "UPDATE routine_exercises SET series = ?, reps_min = ?, reps_max = ?, suggested_weight = ?, rest_seconds = ? WHERE id = ?;",
            (series, reps_min, reps_max, suggested_weight, rest_seconds, assignment_id),
        )

    def delete(self, assignment_id: int) -> None:
        self.fetch_detail(assignment_id)
        self.execute("DELETE FROM routine_exercises WHERE id = ?;", (assignment_id,))

    def delete_for_day(self, routine_day_id: int) -> None:
        self.execute(
            "DELETE FROM routine_exercises WHERE routine_day_id = ?;",
            (routine_day_id,),
        )

    _SELECT = (
        "SELECT re.id, re.routine_day_id, re.exercise_id, re.series, re.reps_min, re.reps_max, "
        "re.suggested_weight, re.rest_seconds, re.position, ec.name, ec.muscle_group, ec.is_compound "
        "FROM routine_exercises re JOIN exercise_catalog ec ON ec.id = re.exercise_id"
    )

    @staticmethod
    def _to_dict(row: Tuple) -> dict:
        return {
            "id": row[0],
            "routine_day_id": row[1],
            "exercise_id": row[2],
            "series": row[3],
            "reps_min": row[4],
            "reps_max": row[5],
            "suggested_weight": row[6],
            "rest_seconds": row[7],
            "position": row[8],
            "name": row[9],
            "muscle_group": row[10],
            "is_compound": bool(row[11]),
        }

    def fetch_detail(self, assignment_id: int) -> dict:
        rows = self.fetch_all(f"{self._SELECT} WHERE re.id = ?;", (assignment_id,))
        if not rows:
            raise ValueError("routine exercise not found")
        return self._to_dict(rows[0])

    def fetch_for_day(self, routine_day_id: int) -> List[dict]:
        rows = self.fetch_all(
            f"{self._SELECT} WHERE re.routine_day_id = ? ORDER BY re.position;",
            (routine_day_id,),
        )
        return [self._to_dict(r) for r in rows]


class RoutineDayRepository(BaseRepository):
    """Repository for the seven days of a routine."""

    def __init__(
        self,
        db_path: str = "routines.db",
        exercises: Optional[RoutineExerciseRepository] = None,
    ) -> None:
        super().__init__(db_path)
        self.exercises = exercises or RoutineExerciseRepository(db_path)

    def create(
        self,
        routine_id: int,
        weekday: str,
        day_name: str,
        description: Optional[str],
        is_rest: bool,
        position: int,
    ) -> int:
        if weekday not in WEEKDAYS:
            raise ValueError(f"unknown weekday: {weekday}")
        if not 1 <= position <= 7:
            raise ValueError("position must be between 1 and 7")
        return self.execute(
            "INSERT INTO routine_days (routine_id, weekday, day_name, description, is_rest, position) "
            "VALUES (?, ?, ?, ?, ?, ?);",
            (routine_id, weekday, day_name, description, int(bool(is_rest)), position),
        )

    @staticmethod
    def _to_dict(row: Tuple) -> dict:
        return {
            "id": row[0],
            "routine_id": row[1],
            "weekday": row[2],
            "day_name": row[3],
            "description": row[4],
            "is_rest": bool(row[5]),
            "position": row[6],
        }

    _SELECT = "SELECT id, routine_id, weekday, day_name, description, is_rest, position FROM routine_days"

    def fetch_detail(self, day_id: int) -> dict:
        rows = self.fetch_all(f"{self._SELECT} WHERE id = ?;", (day_id,))
        if not rows:
            raise ValueError("routine day not found")
        return self._to_dict(rows[0])

    def fetch_for_routine(self, routine_id: int, nested: bool = True) -> List[dict]:
        rows = self.fetch_all(
            f"{self._SELECT} WHERE routine_id = ? ORDER BY position;", (routine_id,)
        )
        days = [self._to_dict(r) for r in rows]
        if nested:
            for day in days:
                day["exercises"] = self.exercises.fetch_for_day(day["id"])
        return days

    def find_for_weekday(self, routine_id: int, weekday: str) -> Optional[dict]:
        rows = self.fetch_all(
            f"{self._SELECT} WHERE routine_id = ? AND weekday = ? ORDER BY position LIMIT 1;",
            (routine_id, weekday),
        )
        return self._to_dict(rows[0]) if rows else None

    def delete_for_routine(self, routine_id: int) -> None:
        self.execute("DELETE FROM routine_days WHERE routine_id = ?;", (routine_id,))


class RoutineRepository(BaseRepository):
    """Repository for user routines and the active-routine flag."""

    def __init__(
        self,
        db_path: str = "routines.db",
        days: Optional[RoutineDayRepository] = None,
    ) -> None:
        super().__init__(db_path)
        self.days = days or RoutineDayRepository(db_path)

    _SELECT = "SELECT id, user_id, name, routine_type, days_per_week, is_active, created_at FROM routines"

    @staticmethod
    def _to_dict(row: Tuple) -> dict:
        return {
            "id": row[0],
            "user_id": row[1],
            "name": row[2],
            "routine_type": row[3],
            "days_per_week": row[4],
            "is_active": bool(row[5]),
            "created_at": row[6],
        }

    def create(
        self,
        user_id: str,
        name: str,
        routine_type: str,
        days_per_week: int,
        is_active: bool = False,
    ) -> int:
        return self.execute(
            "INSERT INTO routines (user_id, name, routine_type, days_per_week, is_active, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?);",
            (user_id, name, routine_type, days_per_week, int(bool(is_active)), self._now()),
        )

    def update(
        self, routine_id: int, name: str, routine_type: str, days_per_week: int
    ) -> None:
        self.execute(
            "UPDATE routines SET name = ?, routine_type = ?, days_per_week = ? WHERE id = ?;",
            (name, routine_type, days_per_week, routine_id),
        )

    def fetch_detail(self, routine_id: int, user_id: Optional[str] = None) -> dict:
        rows = self.fetch_all(f"{self._SELECT} WHERE id = ?;", (routine_id,))
        if not rows or (user_id is not None and rows[0][1] != user_id):
            raise ValueError("routine not found")
        return self._to_dict(rows[0])

    def fetch_all_for_user(self, user_id: str) -> List[dict]:
        rows = self.fetch_all(
            f"{self._SELECT} WHERE user_id = ? ORDER BY created_at DESC, id DESC;",
            (user_id,),
        )
        return [self._to_dict(r) for r in rows]

    def fetch_active(self, user_id: str, nested: bool = True) -> Optional[dict]:
        """Return the user's active routine, newest first if several are flagged."""
        rows = self.fetch_all(
            f"{self._SELECT} WHERE user_id = ? AND is_active = 1 ORDER BY id DESC LIMIT 1;",
            (user_id,),
        )
        if not rows:
            return None
        routine = self._to_dict(rows[0])
        if nested:
            routine["days"] = self.days.fetch_for_routine(routine["id"])
        return routine

    def set_active(self, user_id: str, routine_id: int) -> None:
        self.fetch_detail(routine_id, user_id)
        self.execute_many(
            [
                (
                    "UPDATE routines SET is_active = 0 WHERE user_id = ? AND id != ?;",
                    (user_id, routine_id),
                ),
                ("UPDATE routines SET is_active = 1 WHERE id = ?;", (routine_id,)),
            ]
        )

    def delete(self, user_id: str, routine_id: int) -> None:
        routine = self.fetch_detail(routine_id, user_id)
        if routine["is_active"]:
            raise ValueError("cannot delete the active routine; activate another one first")
        self.execute("DELETE FROM routines WHERE id = ?;", (routine_id,))


class WorkoutSessionRepository(BaseRepository):
    """Repository for dated executions of a routine day."""

    _SELECT = (
        "SELECT id, user_id, routine_id, routine_day_id, date, completed, notes, rating, start_time, end_time "
        "FROM workout_sessions"
    )

    @staticmethod
    def _to_dict(row: Tuple) -> dict:
        return {
            "id": row[0],
            "user_id": row[1],
            "routine_id": row[2],
            "routine_day_id": row[3],
            "date": row[4],
            "completed": bool(row[5]),
            "notes": row[6],
            "rating": row[7],
            "start_time": row[8],
            "end_time": row[9],
        }

    def create(
        self, user_id: str, routine_id: int, routine_day_id: int, date: str
    ) -> int:
        return self.execute(
            "INSERT INTO workout_sessions (user_id, routine_id, routine_day_id, date, completed, start_time) "
            "VALUES (?, ?, ?, ?, 0, ?);",
            (user_id, routine_id, routine_day_id, date, self._now()),
        )

    def create_or_get(
        self, user_id: str, routine_id: int, routine_day_id: int, date: str
    ) -> dict:
        """Insert the session unless the unique key already exists, then read it."""
        self.execute(
            "INSERT OR IGNORE INTO workout_sessions (user_id, routine_id, routine_day_id, date, completed, start_time) "
            "VALUES (?, ?, ?, ?, 0, ?);",
            (user_id, routine_id, routine_day_id, date, self._now()),
        )
        session = self.find(user_id, routine_id, routine_day_id, date)
        if session is None:
            raise PersistenceError("could not create workout session")
        return session

    def find(
        self, user_id: str, routine_id: int, routine_day_id: int, date: str
    ) -> Optional[dict]:
        rows = self.fetch_all(
            f"{self._SELECT} WHERE user_id = ? AND routine_id = ? AND routine_day_id = ? AND date = ?;",
            (user_id, routine_id, routine_day_id, date),
        )
        return self._to_dict(rows[0]) if rows else None

    def fetch_for_user(self, user_id: str, limit: int = 50) -> List[dict]:
        rows = self.fetch_all(
            f"{self._SELECT} WHERE user_id = ? ORDER BY date DESC, id DESC LIMIT ?;",
            (user_id, limit),
        )
        return [self._to_dict(r) for r in rows]

    def fetch_detail(self, session_id: int, user_id: Optional[str] = None) -> dict:
        rows = self.fetch_all(f"{self._SELECT} WHERE id = ?;", (session_id,))
        if not rows or (user_id is not None and rows[0][1] != user_id):
            raise ValueError("session not found")
        return self._to_dict(rows[0])

    def move_to_day(self, session_id: int, routine_day_id: int) -> dict:
        """Point a session at another day of its routine and return it."""
        self.execute(
            "UPDATE workout_sessions SET routine_day_id = ? WHERE id = ?;",
            (routine_day_id, session_id),
        )
        return self.fetch_detail(session_id)

    def finish(self, session_id: int, notes: str = "", rating: Optional[int] = None) -> None:
        self.execute(
            "UPDATE workout_sessions SET completed = 1, notes = ?, rating = ?, end_time = ? WHERE id = ?;",
            (notes, rating, self._now(), session_id),
        )


class ExerciseLogRepository(BaseRepository):
    """Repository for logged sets."""

    _SELECT = "SELECT id, session_id, exercise_id, set_number, reps, weight, rpe, created_at FROM exercise_logs"

    @staticmethod
    def _to_dict(row: Tuple) -> dict:
        return {
            "id": row[0],
            "session_id": row[1],
            "exercise_id": row[2],
            "set_number": row[3],
            "reps": row[4],
            "weight": row[5],
            "rpe": row[6],
            "created_at": row[7],
        }

    def create(
        self,
        session_id: int,
        exercise_id: int,
        set_number: int,
        reps: int,
        weight: float,
        rpe: Optional[int] = None,
    ) -> int:
        return self.execute(
            "INSERT INTO exercise_logs (session_id, exercise_id, set_number, reps, weight, rpe, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?);",
            (session_id, exercise_id, set_number, reps, weight, rpe, self._now()),
        )

    def fetch_for_session(self, session_id: int) -> List[dict]:
        rows = self.fetch_all(
            f"{self._SELECT} WHERE session_id = ? ORDER BY id;", (session_id,)
        )
        return [self._to_dict(r) for r in rows]

    def fetch_detail(self, log_id: int) -> dict:
        rows = self.fetch_all(f"{self._SELECT} WHERE id = ?;", (log_id,))
        if not rows:
            raise ValueError("exercise log not found")
        return self._to_dict(rows[0])

    def update(self, log_id: int, reps: int, weight: float, rpe: Optional[int]) -> None:
        self.fetch_detail(log_id)
        self.execute(
            "UPDATE exercise_logs SET reps = ?, weight = ?, rpe = ? WHERE id = ?;",
            (reps, weight, rpe, log_id),
        )


class SessionSkipRepository(BaseRepository):
    """Repository for exercises the user chose to skip in a session."""

    def skip(self, session_id: int, exercise_id: int) -> None:
        self.execute(
            "INSERT OR IGNORE INTO session_skips (session_id, exercise_id) VALUES (?, ?);",
            (session_id, exercise_id),
        )

    def unskip(self, session_id: int, exercise_id: int) -> None:
        self.execute(
            "DELETE FROM session_skips WHERE session_id = ? AND exercise_id = ?;",
            (session_id, exercise_id),
        )

    def fetch_for_session(self, session_id: int) -> Set[int]:
        rows = self.fetch_all(
            "SELECT exercise_id FROM session_skips WHERE session_id = ?;",
            (session_id,),
        )
        return {r[0] for r in rows}


class PlannerLogRepository(BaseRepository):
    """Repository for routine generation run logs."""

    def log_success(self, message: Optional[str] = None) -> int:
        return self.execute(
            "INSERT INTO planner_logs (timestamp, status, message) VALUES (?, 'success', ?);",
            (self._now(), message),
        )

    def log_error(self, message: str) -> int:
        return self.execute(
            "INSERT INTO planner_logs (timestamp, status, message) VALUES (?, 'error', ?);",
            (self._now(), message),
        )

    def last_success(self) -> Optional[str]:
        rows = self.fetch_all(
            "SELECT timestamp FROM planner_logs WHERE status='success' ORDER BY id DESC LIMIT 1;"
        )
        return rows[0][0] if rows else None

    def last_errors(self, limit: int = 5) -> list[tuple[str, str]]:
        rows = self.fetch_all(
            "SELECT timestamp, message FROM planner_logs WHERE status='error' ORDER BY id DESC LIMIT ?;",
            (limit,),
        )
        return [(r[0], r[1]) for r in rows]


class SettingsRepository(BaseRepository):
    """Repository for general application settings synchronized with YAML."""

    INT_KEYS = {"session_lookup_limit", "sessions_page_size", "finish_min_percent"}

    def __init__(
        self, db_path: str = "routines.db", yaml_path: str = "settings.yaml"
    ) -> None:
        super().__init__(db_path)
        self._yaml = YamlConfig(yaml_path)
        self._sync_from_yaml()
        self._sync_to_yaml()

    def _raw_all_settings(self) -> dict:
        rows = self.fetch_all("SELECT key, value FROM settings ORDER BY key;")
        result: dict[str, int | str] = {}
        for k, v in rows:
            if k in self.INT_KEYS:
                try:
                    result[k] = int(float(v))
                    continue
                except ValueError:
                    pass
            result[k] = v
        return result

    def _sync_from_yaml(self) -> None:
        data = self._yaml.load()
        if not data:
            return
        validate_settings(data)
        with self._connection() as conn:
            for key, value in data.items():
                conn.execute(
                    "INSERT INTO settings (key, value) VALUES (?, ?) "
                    "ON CONFLICT(key) DO UPDATE SET value=excluded.value;",
                    (key, "" if value is None else str(value)),
                )

    def _sync_to_yaml(self) -> None:
        self._yaml.save(self._raw_all_settings())

    def get_text(self, key: str, default: str) -> str:
        self._sync_from_yaml()
        rows = self.fetch_all("SELECT value FROM settings WHERE key = ?;", (key,))
        return rows[0][0] if rows else default

    def get_int(self, key: str, default: int) -> int:
        try:
            return int(float(self.get_text(key, str(default))))
        except ValueError:
            return default

    def set_text(self, key: str, value: str) -> None:
        self.execute(
            "INSERT INTO settings (key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value=excluded.value;",
            (key, value),
        )
        self._sync_to_yaml()

    def set_int(self, key: str, value: int) -> None:
        self.set_text(key, str(value))

    def all_settings(self) -> dict:
        self._sync_from_yaml()
        return self._raw_all_settings()
