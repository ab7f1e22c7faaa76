import os
import sys
import datetime
import inspect
import unittest
from fastapi.testclient import TestClient

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from csv_codec import HEADER_LINE
from rest_api import TrackerAPI

DAYS = [
    {
        "name": "A",
        "plannedSets": [
            {"exerciseId": "back_squat", "targetReps": 5},
            {"exerciseId": "bench_press", "targetReps": 5},
        ],
    },
    {"name": "B", "plannedSets": [{"exerciseId": "deadlift", "targetReps": 5}]},
]


class APITestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.db_path = "test_tracker.db"
        self.yaml_path = "test_settings.yaml"
        for path in (self.db_path, self.yaml_path):
            if os.path.exists(path):
                os.remove(path)
        self.api = TrackerAPI(db_path=self.db_path, yaml_path=self.yaml_path)
        self.client = TestClient(self.api.app)

    def tearDown(self) -> None:
        for path in (self.db_path, self.yaml_path):
            if os.path.exists(path):
                os.remove(path)

    def _create_routine(self) -> dict:
        resp = self.client.post("/routines", json={"name": "AB", "days": DAYS})
        self.assertEqual(resp.status_code, 200)
        return resp.json()

    def test_health(self) -> None:
        resp = self.client.get("/health")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["status"], "ok")

    def test_catalog(self) -> None:
        self.assertEqual(len(self.client.get("/exercises").json()), 42)
        groups = self.client.get("/muscle_groups").json()
        self.assertEqual(len(groups), 19)
        self.assertIn("category", groups[0])

    def test_full_workflow(self) -> None:
        routine = self._create_routine()
        self.assertEqual(len(routine["days"]), 2)
        day_a = routine["days"][0]

        resp = self.client.put("/routines/active", json={"routineId": routine["id"]})
        self.assertEqual(resp.status_code, 200)

        resp = self.client.post(
            "/sessions/start", json={"routineId": routine["id"], "dayId": day_a["id"]}
        )
        self.assertEqual(resp.status_code, 200)
        session_id = resp.json()["id"]

        resp = self.client.post(
            "/sessions/sets", json={"repGroups": [{"reps": 5, "weight": 100}]}
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["plannedSetId"], day_a["plannedSets"][0]["id"])

        self.assertEqual(self.client.post("/sessions/next").json(), {"currentSetIndex": 1})
        progress = self.client.get("/sessions/progress").json()
        self.assertEqual(progress["currentExercise"]["id"], "bench_press")
        self.assertEqual(progress["exerciseTotals"]["back_squat"], {"total": 1, "completed": 1})

        resp = self.client.post("/sessions/complete", json={"notes": "done"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["id"], session_id)
        self.assertIsNotNone(resp.json()["completedAt"])

        sessions = self.client.get("/sessions").json()
        self.assertEqual(len(sessions), 1)

        volume = self.client.get("/stats/volume", params={"days_back": 7}).json()
        self.assertEqual(volume["total_volume"], 500)
        muscles = self.client.get("/stats/muscle_groups").json()
        self.assertEqual(muscles["total_volume"], 500)
        self.assertEqual(muscles["chart_data"][0]["label"], "Quadriceps")

    def test_error_mapping(self) -> None:
        self.assertEqual(self.client.get("/routines/missing").status_code, 404)
        self.assertEqual(
            self.client.post("/sessions/complete", json={}).status_code, 409
        )
        self.assertEqual(
            self.client.post(
                "/sessions/start", json={"routineId": "missing", "dayId": "x"}
            ).status_code,
            404,
        )
        routine = self._create_routine()
        day_id = routine["days"][0]["id"]
        self.client.post("/sessions/start", json={"routineId": routine["id"], "dayId": day_id})
        resp = self.client.post(
            "/sessions/start", json={"routineId": routine["id"], "dayId": day_id}
        )
        self.assertEqual(resp.status_code, 409)
        resp = self.client.post(
            "/sessions/sets", json={"repGroups": [{"reps": -1, "weight": 10}]}
        )
        self.assertEqual(resp.status_code, 400)

    def test_cancel_is_safe_when_idle(self) -> None:
        resp = self.client.post("/sessions/cancel")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"status": "cancelled"})

    def test_routine_editing(self) -> None:
        routine = self._create_routine()
        rid = routine["id"]
        resp = self.client.put(f"/routines/{rid}", json={"description": "two day"})
        self.assertEqual(resp.json()["description"], "two day")

        resp = self.client.post(f"/routines/{rid}/days", json={"name": "C"})
        day_id = resp.json()["id"]
        resp = self.client.post(
            f"/routines/{rid}/days/{day_id}/sets",
            json={"exerciseId": "pull_up", "targetReps": 8},
        )
        first = resp.json()["id"]
        resp = self.client.post(
            f"/routines/{rid}/days/{day_id}/sets",
            json={"exerciseId": "barbell_curl", "targetReps": 10, "targetWeight": 30},
        )
        second = resp.json()["id"]
        resp = self.client.put(
            f"/routines/{rid}/days/{day_id}/reorder", json={"orderedIds": [second, first]}
        )
        self.assertEqual([p["id"] for p in resp.json()["plannedSets"]], [second, first])

        self.assertEqual(self.client.delete(f"/routines/{rid}").status_code, 200)
        self.assertEqual(self.client.get("/routines").json(), [])

    def test_routine_update_body_cannot_corrupt_state(self) -> None:
        rid = self._create_routine()["id"]
        resp = self.client.put(f"/routines/{rid}", json={"now": "garbage", "name": "AB2"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["name"], "AB2")
        resp = self.client.put(f"/routines/{rid}", json={"routine_id": "x"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["id"], rid)
        resp = self.client.put(f"/routines/{rid}", json={"updatedAt": "garbage"})
        self.assertEqual(resp.status_code, 400)
        resp = self.client.put(f"/routines/{rid}", json={"days": [{"name": "no id"}]})
        self.assertEqual(resp.status_code, 400)
        resp = self.client.put("/settings", json={"state": 1, "fields": {}})
        self.assertEqual(resp.status_code, 200)

        reloaded = TrackerAPI(db_path=self.db_path, yaml_path=self.yaml_path)
        routine = reloaded.planner.get_routine(rid)
        self.assertEqual(routine.name, "AB2")
        self.assertIsInstance(routine.updated_at, datetime.datetime)

    def test_share_and_import(self) -> None:
        routine = self._create_routine()
        shared = self.client.get(f"/routines/{routine['id']}/share").json()
        self.assertNotIn("id", shared)
        resp = self.client.post("/routines/import_shared", json=shared)
        self.assertEqual(resp.status_code, 200)
        self.assertNotEqual(resp.json()["id"], routine["id"])
        resp = self.client.post("/routines/import_shared", json={"days": "bad"})
        self.assertEqual(resp.status_code, 400)

    def test_csv_export_and_import(self) -> None:
        routine = self._create_routine()
        self.client.post(
            "/sessions/start",
            json={"routineId": routine["id"], "dayId": routine["days"][0]["id"]},
        )
        self.client.post("/sessions/sets", json={"repGroups": [{"reps": 5, "weight": 100}]})
        self.client.post("/sessions/complete", json={})

        resp = self.client.get("/history/export_csv")
        self.assertEqual(resp.status_code, 200)
        self.assertTrue(resp.headers["content-type"].startswith("text/csv"))
        today = datetime.date.today().isoformat()
        self.assertIn(f"workout-history-{today}.csv", resp.headers["content-disposition"])
        text = resp.text
        self.assertTrue(text.startswith(HEADER_LINE))

        resp = self.client.post(
            "/history/import_csv",
            params={"mode": "merge"},
            content=text.encode("utf-8"),
            headers={"Content-Type": "text/csv"},
        )
        self.assertEqual(resp.json(), {"imported": 1, "mode": "merge"})
        self.assertEqual(len(self.client.get("/completed_sets").json()), 2)

        resp = self.client.post(
            "/history/import_csv",
            params={"mode": "replace"},
            content=b"bad,header\n",
            headers={"Content-Type": "text/csv"},
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(len(self.client.get("/completed_sets").json()), 2)

        resp = self.client.post(
            "/history/import_csv",
            params={"mode": "replace"},
            content=HEADER_LINE.encode("utf-8"),
            headers={"Content-Type": "text/csv"},
        )
        self.assertEqual(resp.json()["imported"], 0)
        self.assertEqual(self.client.get("/completed_sets").json(), [])

    def test_csv_import_runs_in_threadpool(self) -> None:
        route = next(r for r in self.api.app.routes if getattr(r, "path", "") == "/history/import_csv")
        self.assertFalse(inspect.iscoroutinefunction(route.endpoint))

    def test_delete_completed_set(self) -> None:
        self.assertEqual(self.client.delete("/completed_sets/missing").status_code, 404)

    def test_settings(self) -> None:
        self.assertEqual(self.client.get("/settings").json()["units"], "metric")
        resp = self.client.put("/settings", json={"units": "imperial"})
        self.assertEqual(resp.json()["units"], "imperial")
        self.assertEqual(self.client.put("/settings", json={"units": "cubits"}).status_code, 400)
        reloaded = TrackerAPI(db_path=self.db_path, yaml_path=self.yaml_path)
        self.assertEqual(reloaded.store.state.settings.units.value, "imperial")


if __name__ == "__main__":
    unittest.main()
