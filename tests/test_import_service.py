import os
import sys
import datetime
import unittest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from csv_codec import HEADER_LINE, export_completed_sets
from db import StateRepository
from errors import FormatError, ValidationError
from import_service import HistoryService, ImportMode, apply_import, clear_history, import_csv
from models import CompletedSet, RepGroup
from state import AppState, StateStore

UTC = datetime.timezone.utc


def make_set(set_id: str) -> CompletedSet:
    return CompletedSet(
        id=set_id,
        session_id="sess",
        exercise_id="deadlift",
        rep_groups=[RepGroup(reps=5, weight=140)],
        completed_at=datetime.datetime(2024, 4, 2, 18, 0, tzinfo=UTC),
    )


class ApplyImportTest(unittest.TestCase):
    def setUp(self) -> None:
        self.state = AppState(completed_sets=[make_set("a"), make_set("b")])

    def test_replace_discards_history(self) -> None:
        state = apply_import(self.state, [make_set("c")], ImportMode.REPLACE)
        self.assertEqual([cs.id for cs in state.completed_sets], ["c"])

    def test_replace_with_nothing_clears(self) -> None:
        state = apply_import(self.state, [], "replace")
        self.assertEqual(state.completed_sets, [])

    def test_merge_appends_and_keeps_duplicates(self) -> None:
        state = apply_import(self.state, [make_set("a"), make_set("c")], ImportMode.MERGE)
        self.assertEqual([cs.id for cs in state.completed_sets], ["a", "b", "a", "c"])

    def test_unknown_mode_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            apply_import(self.state, [], "append")

    def test_other_collections_untouched(self) -> None:
        state = apply_import(self.state, [], "replace")
        self.assertEqual(state.exercises, self.state.exercises)
        self.assertEqual(state.sessions, self.state.sessions)

    def test_clear_history(self) -> None:
        self.assertEqual(clear_history(self.state).completed_sets, [])


class ImportCsvTest(unittest.TestCase):
    def setUp(self) -> None:
        self.db_path = "test_import.db"
        if os.path.exists(self.db_path):
            os.remove(self.db_path)
        self.repo = StateRepository(self.db_path)
        self.store = StateStore(self.repo, AppState(completed_sets=[make_set("a")]))

    def tearDown(self) -> None:
        if os.path.exists(self.db_path):
            os.remove(self.db_path)

    def test_merge_twice_doubles_history(self) -> None:
        text = export_completed_sets([make_set("x")])
        self.assertEqual(import_csv(self.store, text, "merge"), 1)
        import_csv(self.store, text, "merge")
        self.assertEqual(
            [cs.id for cs in self.store.state.completed_sets], ["a", "x", "x"]
        )

    def test_import_is_persisted(self) -> None:
        import_csv(self.store, export_completed_sets([make_set("x")]), "replace")
        saved = self.repo.load()
        self.assertEqual([cs.id for cs in saved.completed_sets], ["x"])

    def test_bad_file_leaves_store_untouched(self) -> None:
        before = self.store.state
        with self.assertRaises(FormatError):
            import_csv(self.store, "not,a,header\n", "replace")
        self.assertIs(self.store.state, before)
        self.assertIsNone(self.repo.load())

    def test_bad_mode_checked_before_parsing(self) -> None:
        with self.assertRaises(ValidationError):
            import_csv(self.store, HEADER_LINE, "overwrite")

    def test_history_service_round_trip(self) -> None:
        history = HistoryService(self.store)
        text = history.export_csv()
        history.clear_history()
        self.assertEqual(self.store.state.completed_sets, [])
        history.import_csv(text, ImportMode.MERGE)
        self.assertEqual(self.store.state.completed_sets, [make_set("a")])


if __name__ == "__main__":
    unittest.main()
