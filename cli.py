import argparse
import logging
import shutil
import sys
from typing import Optional

from config import DEFAULT_DB_PATH, DEFAULT_SETTINGS_PATH, YamlConfig
from db import StateRepository
from errors import TrackerError
from import_service import HistoryService, ImportMode
from planner_service import PlannerService
from session_service import TrainingSessionController
from state import StateStore


def open_store(db_path: str, yaml_path: Optional[str] = None) -> StateStore:
    config = YamlConfig(yaml_path) if yaml_path else None
    return StateStore.load(StateRepository(db_path), config)


def export_history(db_path: str, out_path: Optional[str] = None) -> str:
    history = HistoryService(open_store(db_path))
    path = out_path or history.export_filename()
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(history.export_csv())
    return path


def import_history(db_path: str, csv_path: str, mode: str) -> int:
    with open(csv_path, "r", encoding="utf-8", newline="") as f:
        text = f.read()
    return HistoryService(open_store(db_path)).import_csv(text, mode)


def backup_db(db_path: str, backup_path: str) -> None:
    shutil.copy(db_path, backup_path)


def restore_db(backup_path: str, db_path: str) -> None:
    shutil.copy(backup_path, db_path)


def demo_data(db_path: str, yaml_path: str) -> None:
    """Install the starter routines and log one finished session if empty."""
    store = open_store(db_path, yaml_path)
    if store.state.routines:
        print("Database already contains routines")
        return
    planner = PlannerService(store)
    controller = TrainingSessionController(store)
    routines = planner.add_starter_routines()
    routine = routines[0]
    day = routine.days[0]
    planner.set_active_routine(routine.id)
    controller.start_session(routine.id, day.id)
    for planned in day.planned_sets:
        controller.record_set(
            [{"reps": planned.target_reps, "weight": 60.0, "order": 0}]
        )
        controller.advance_set()
    controller.complete_session("Demo session")
    print("Demo data inserted")


def main(argv: Optional[list] = None) -> int:
    parser = argparse.ArgumentParser(description="Utility commands")
    parser.add_argument("--verbose", action="store_true")
    sub = parser.add_subparsers(dest="cmd", required=True)

    exp = sub.add_parser("export")
    exp.add_argument("--db", default=DEFAULT_DB_PATH)
    exp.add_argument("--out", default=None)

    imp = sub.add_parser("import")
    imp.add_argument("--csv", required=True)
    imp.add_argument("--db", default=DEFAULT_DB_PATH)
    imp.add_argument(
        "--mode", choices=[m.value for m in ImportMode], default=ImportMode.MERGE.value
    )

    bkp = sub.add_parser("backup")
    bkp.add_argument("--db", default=DEFAULT_DB_PATH)
    bkp.add_argument("--out", default="backup.db")

    rst = sub.add_parser("restore")
    rst.add_argument("--in", dest="src", default="backup.db")
    rst.add_argument("--db", default=DEFAULT_DB_PATH)

    demo = sub.add_parser("demo")
    demo.add_argument("--db", default=DEFAULT_DB_PATH)
    demo.add_argument("--yaml", default=DEFAULT_SETTINGS_PATH)

    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    try:
        if args.cmd == "export":
            print(f"Exported history to {export_history(args.db, args.out)}")
        elif args.cmd == "import":
            count = import_history(args.db, args.csv, args.mode)
            print(f"Imported {count} sets ({args.mode})")
        elif args.cmd == "backup":
            backup_db(args.db, args.out)
        elif args.cmd == "restore":
            restore_db(args.src, args.db)
        elif args.cmd == "demo":
            demo_data(args.db, args.yaml)
    except TrackerError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
