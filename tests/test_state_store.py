import os
import sys
import datetime
import sqlite3
import unittest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from config import YamlConfig
from db import STATE_KEY, KeyValueRepository, StateRepository
from errors import FormatError, NotFoundError
from models import PlannedSet, RepGroup, Units, WorkoutDay, WorkoutRoutine
from session_service import TrainingSessionController
from state import (
    AppState,
    StateStore,
    UNKNOWN_EXERCISE,
    active_day,
    exercise_display_name,
    find_routine,
)

UTC = datetime.timezone.utc
NOW = datetime.datetime(2024, 6, 1, 9, 0, tzinfo=UTC)


def routine() -> WorkoutRoutine:
    return WorkoutRoutine(
        id="r1",
        name="Solo",
        days=[
            WorkoutDay(
                id="d1",
                name="Only",
                planned_sets=[
                    PlannedSet(id="p1", exercise_id="bench_press", target_reps=5),
                    PlannedSet(id="p2", exercise_id="bench_press", target_reps=5),
                ],
            )
        ],
        created_at=NOW,
        updated_at=NOW,
    )


class StateLookupTest(unittest.TestCase):
    def test_fresh_state_is_seeded(self) -> None:
        state = AppState()
        self.assertEqual(len(state.muscle_groups), 19)
        self.assertEqual(len(state.exercises), 42)
        self.assertEqual(state.routines, [])
        self.assertEqual(state.settings.units, Units.METRIC)

    def test_lookups_return_none(self) -> None:
        state = AppState()
        self.assertIsNone(find_routine(state, "missing"))
        self.assertIsNone(active_day(state))
        self.assertEqual(exercise_display_name(state, "gone"), UNKNOWN_EXERCISE)
        self.assertEqual(exercise_display_name(state, "back_squat"), "Back Squat")


class PersistenceTest(unittest.TestCase):
    def setUp(self) -> None:
        self.db_path = "test_state.db"
        self.yaml_path = "test_state.yaml"
        for path in (self.db_path, self.yaml_path):
            if os.path.exists(path):
                os.remove(path)
        self.repo = StateRepository(self.db_path)

    def tearDown(self) -> None:
        for path in (self.db_path, self.yaml_path):
            if os.path.exists(path):
                os.remove(path)

    def test_blob_written_under_storage_key(self) -> None:
        store = StateStore(self.repo, AppState(routines=[routine()]))
        store.dispatch(lambda s: s.model_copy(update={"active_routine_id": "r1"}))
        self.assertEqual(KeyValueRepository(self.db_path).keys(), [STATE_KEY])
        raw = KeyValueRepository(self.db_path).get(STATE_KEY)
        self.assertIn('"activeRoutineId":"r1"', raw)
        self.assertIn('"createdAt":"2024-06-01T09:00:00Z"', raw)

    def test_resume_in_progress_workout(self) -> None:
        store = StateStore(self.repo, AppState(routines=[routine()]))
        controller = TrainingSessionController(store)
        controller.start_session("r1", "d1", "s1", NOW)
        controller.record_set([RepGroup(reps=5, weight=80)], now=NOW)
        controller.advance_set()

        revived = StateStore.load(StateRepository(self.db_path))
        state = revived.state
        self.assertTrue(state.is_workout_in_progress)
        self.assertEqual(state.active_session_id, "s1")
        self.assertEqual(state.current_set_index, 1)
        self.assertEqual(state.completed_sets[0].completed_at, NOW)
        self.assertEqual(state.completed_sets[0].completed_at.tzinfo, UTC)
        self.assertEqual(state, store.state)

    def test_empty_database_gives_default_state(self) -> None:
        store = StateStore.load(self.repo)
        self.assertEqual(store.state, AppState())

    def test_corrupt_blob_refused(self) -> None:
        KeyValueRepository(self.db_path).set(STATE_KEY, '{"routines": "nope"}')
        with self.assertRaises(FormatError):
            StateStore.load(self.repo)

    def test_failed_dispatch_does_not_persist(self) -> None:
        store = StateStore(self.repo)

        def broken(state):
            raise NotFoundError("nothing here")

        with self.assertRaises(NotFoundError):
            store.dispatch(broken)
        self.assertIsNone(self.repo.load())

    def test_clear(self) -> None:
        self.repo.save(AppState())
        self.repo.clear()
        self.assertIsNone(self.repo.load())

    def test_settings_round_trip_through_yaml(self) -> None:
        config = YamlConfig(self.yaml_path)
        store = StateStore.load(self.repo, config)
        store.update_settings({"units": "imperial", "name": "Sam"})
        self.assertTrue(os.path.exists(self.yaml_path))
        revived = StateStore.load(StateRepository(self.db_path), YamlConfig(self.yaml_path))
        self.assertEqual(revived.state.settings.units, Units.IMPERIAL)
        self.assertEqual(revived.state.settings.name, "Sam")

    def test_old_table_layout_migrated(self) -> None:
        os.remove(self.db_path)
        conn = sqlite3.connect(self.db_path)
        conn.execute("CREATE TABLE kv_store (key TEXT PRIMARY KEY, value TEXT, extra TEXT);")
        conn.execute("INSERT INTO kv_store VALUES ('other', 'v', 'x');")
        conn.commit()
        conn.close()
        repo = KeyValueRepository(self.db_path)
        self.assertEqual(repo.get("other"), "v")


if __name__ == "__main__":
    unittest.main()
