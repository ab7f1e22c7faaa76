import datetime
import logging
from enum import Enum
from typing import Iterable, List, Optional, Union

from csv_codec import export_completed_sets, export_filename, parse_completed_sets
from errors import ValidationError
from models import CompletedSet
from state import AppState, StateStore

logger = logging.getLogger(__name__)


class ImportMode(str, Enum):
    MERGE = "merge"
    REPLACE = "replace"


def parse_mode(mode: Union[ImportMode, str]) -> ImportMode:
    try:
        return ImportMode(mode)
    except ValueError:
        raise ValidationError(f"unknown import mode: {mode!r}")


def apply_import(
    state: AppState, imported: Iterable[CompletedSet], mode: Union[ImportMode, str]
) -> AppState:
    """Fold imported sets into the history.

    ``replace`` discards the current history, ``merge`` appends after it.
    Ids are kept as they are, so merging the same file twice duplicates it.
    """
    mode = parse_mode(mode)
    incoming = list(imported)
    if mode is ImportMode.REPLACE:
        completed = incoming
    else:
        completed = [*state.completed_sets, *incoming]
    return state.model_copy(update={"completed_sets": completed})


def clear_history(state: AppState) -> AppState:
    return state.model_copy(update={"completed_sets": []})


class HistoryService:
    """CSV export and import of the completed-set history."""

    def __init__(self, store: StateStore) -> None:
        self.store = store

    def export_csv(self) -> str:
        return export_completed_sets(self.store.state.completed_sets)

    def export_filename(self, today: Optional[datetime.date] = None) -> str:
        return export_filename(today)

    def import_csv(self, text: str, mode: Union[ImportMode, str] = ImportMode.MERGE) -> int:
        return import_csv(self.store, text, mode)

    def clear_history(self) -> None:
        self.store.dispatch(clear_history)
        logger.info("Workout history cleared")


def import_csv(
    store: StateStore, text: str, mode: Union[ImportMode, str] = ImportMode.MERGE
) -> int:
    """Parse ``text`` and apply it to ``store``; return the number of sets read.

    Parsing happens before anything is dispatched, so a malformed file leaves
    the store as it was.
    """
    mode = parse_mode(mode)
    sets: List[CompletedSet] = parse_completed_sets(text)
    before = len(store.state.completed_sets)
    store.dispatch(apply_import, sets, mode)
    logger.info(
        "Imported %d sets (%s); history went from %d to %d",
        len(sets),
        mode.value,
        before,
        len(store.state.completed_sets),
    )
    return len(sets)
