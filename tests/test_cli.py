import os
import sys
import json
import unittest
from contextlib import redirect_stdout
from io import StringIO

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from cli import main, backup_db, restore_db, vacuum_db
from db import WorkoutSessionRepository


class CLITest(unittest.TestCase):
    def setUp(self) -> None:
        self.db_path = "test_cli.db"
        self.yaml_path = "test_cli.yaml"
        self.backup = "test_cli_backup.db"
        self._cleanup()

    def tearDown(self) -> None:
        self._cleanup()

    def _cleanup(self) -> None:
        for path in (self.db_path, self.yaml_path, self.backup):
            if os.path.exists(path):
                os.remove(path)

    def _run(self, *args: str) -> str:
        out = StringIO()
        with redirect_stdout(out):
            main(list(args))
        return out.getvalue()

    def test_seed(self) -> None:
        self.assertIn("Inserted 19", self._run("seed", "--db", self.db_path))
        self.assertIn("Inserted 0", self._run("seed", "--db", self.db_path))

    def test_profile_generate_today(self) -> None:
        output = self._run(
            "profile", "--db", self.db_path, "--user", "alice",
            "--objective", "gain_muscle", "--duration", "2h", "--days", "6",
            "--weight", "70",
        )
        self.assertEqual(json.loads(output)["days_per_week"], 6)

        routine = json.loads(
            self._run("generate", "--db", self.db_path, "--yaml", self.yaml_path, "--user", "alice")
        )
        self.assertEqual(routine["routine_type"], "ARNOLD_SPLIT")
        self.assertEqual(len(routine["days"]), 7)

        summary = json.loads(
            self._run(
                "today", "--db", self.db_path, "--yaml", self.yaml_path,
                "--user", "alice", "--date", "2024-01-02",
            )
        )
        self.assertEqual(summary["state"], "active")
        self.assertEqual(summary["session"]["date"], "2024-01-02")

        sessions = json.loads(self._run("sessions", "--db", self.db_path, "--user", "alice"))
        self.assertEqual(len(sessions), 1)

    def test_backup_restore(self) -> None:
        sessions = WorkoutSessionRepository(self.db_path)
        sessions.create("alice", 1, 1, "2024-01-01")
        backup_db(self.db_path, self.backup)
        os.remove(self.db_path)
        restore_db(self.backup, self.db_path)
        self.assertEqual(len(WorkoutSessionRepository(self.db_path).fetch_for_user("alice")), 1)

    def test_vacuum_keeps_data(self) -> None:
        self._run("seed", "--db", self.db_path)
        sessions = WorkoutSessionRepository(self.db_path)
        for day in range(1, 21):
            sessions.create("alice", 1, 1, f"2024-01-{day:02d}")
        output = self._run("vacuum", "--db", self.db_path)
        self.assertIn("Database vacuumed", output)
        self.assertEqual(vacuum_db(self.db_path), os.path.getsize(self.db_path))
        self.assertEqual(len(sessions.fetch_for_user("alice")), 20)


if __name__ == "__main__":
    unittest.main()
