import requests
from typing import List, Optional


class TrackerClient:
    """Simple REST client for the tracker API."""

    def __init__(self, base_url: str = "http://localhost:8000") -> None:
        self.base_url = base_url.rstrip("/")

    def list_routines(self) -> List[dict]:
        resp = requests.get(f"{self.base_url}/routines")
        resp.raise_for_status()
        return resp.json()

    def create_routine(
        self, name: str, description: Optional[str] = None, days: Optional[list] = None
    ) -> str:
        resp = requests.post(
            f"{self.base_url}/routines",
            json={"name": name, "description": description, "days": days or []},
        )
        resp.raise_for_status()
        return resp.json()["id"]

    def start_session(self, routine_id: str, day_id: str) -> str:
        resp = requests.post(
            f"{self.base_url}/sessions/start",
            json={"routineId": routine_id, "dayId": day_id},
        )
        resp.raise_for_status()
        return resp.json()["id"]

    def record_set(self, rep_groups: List[dict], exercise_id: Optional[str] = None) -> str:
        resp = requests.post(
            f"{self.base_url}/sessions/sets",
            json={"repGroups": rep_groups, "exerciseId": exercise_id},
        )
        resp.raise_for_status()
        return resp.json()["id"]

    def next_set(self) -> int:
        resp = requests.post(f"{self.base_url}/sessions/next")
        resp.raise_for_status()
        return resp.json()["currentSetIndex"]

    def complete_session(self, notes: Optional[str] = None) -> dict:
        resp = requests.post(f"{self.base_url}/sessions/complete", json={"notes": notes})
        resp.raise_for_status()
        return resp.json()

    def export_csv(self) -> str:
        resp = requests.get(f"{self.base_url}/history/export_csv")
        resp.raise_for_status()
        return resp.text

    def import_csv(self, text: str, mode: str = "merge") -> int:
        resp = requests.post(
            f"{self.base_url}/history/import_csv",
            params={"mode": mode},
            data=text.encode("utf-8"),
            headers={"Content-Type": "text/csv"},
        )
        resp.raise_for_status()
        return resp.json()["imported"]
