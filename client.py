import requests
from typing import Optional


class PlannerClient:
    """Simple REST client for the routine planner API."""

    def __init__(self, base_url: str = "http://localhost:8000") -> None:
        self.base_url = base_url.rstrip("/")

    def _user(self, user_id: str) -> str:
        return f"{self.base_url}/users/{user_id}"

    def save_profile(self, user_id: str, profile: dict) -> dict:
        resp = requests.put(f"{self._user(user_id)}/profile", json=profile)
        resp.raise_for_status()
        return resp.json()

    def generate_routine(self, user_id: str) -> int:
        resp = requests.post(f"{self._user(user_id)}/routines/generate")
        resp.raise_for_status()
        return resp.json()["id"]

    def active_routine(self, user_id: str) -> dict:
        resp = requests.get(f"{self._user(user_id)}/routines/active")
        resp.raise_for_status()
        return resp.json()

    def activate_routine(self, user_id: str, routine_id: int) -> None:
        resp = requests.post(f"{self._user(user_id)}/routines/{routine_id}/activate")
        resp.raise_for_status()

    def open_today(self, user_id: str, date: Optional[str] = None) -> dict:
        params = {"date": date} if date else {}
        resp = requests.post(f"{self._user(user_id)}/sessions/today", params=params)
        resp.raise_for_status()
        return resp.json()

    def log_set(
        self,
        user_id: str,
        session_id: int,
        exercise_id: int,
        reps: int,
        weight: float,
        rpe: Optional[int] = None,
    ) -> int:
        params = {"exercise_id": exercise_id, "reps": reps, "weight": weight}
        if rpe is not None:
            params["rpe"] = rpe
        resp = requests.post(
            f"{self._user(user_id)}/sessions/{session_id}/logs", params=params
        )
        resp.raise_for_status()
        return resp.json()["id"]

    def finish_session(
        self,
        user_id: str,
        session_id: int,
        notes: str = "",
        rating: Optional[int] = None,
    ) -> bool:
        params = {"notes": notes}
        if rating is not None:
            params["rating"] = rating
        resp = requests.post(
            f"{self._user(user_id)}/sessions/{session_id}/finish", params=params
        )
        resp.raise_for_status()
        return resp.json()["finished"]

    def list_sessions(self, user_id: str, limit: Optional[int] = None):
        params = {"limit": limit} if limit else {}
        resp = requests.get(f"{self._user(user_id)}/sessions", params=params)
        resp.raise_for_status()
        return resp.json()
