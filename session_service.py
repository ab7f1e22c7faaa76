from __future__ import annotations
import datetime
import logging
from typing import Dict, Iterable, List, Optional, Union

from pydantic import Field

from default_data import new_id
from errors import InvalidStateError, NotFoundError, ValidationError
from models import (
    CompletedSet,
    DomainModel,
    Exercise,
    PlannedSet,
    RepGroup,
    WorkoutSession,
    utc_now,
)
from state import (
    AppState,
    StateStore,
    active_day,
    active_session,
    find_completed_set,
    find_day,
    find_exercise,
    find_routine,
)

logger = logging.getLogger(__name__)

RepGroupInput = Union[RepGroup, dict]


class ExerciseProgress(DomainModel):
    total: int = 0
    completed: int = 0


class SessionProgress(DomainModel):
    """Everything the training screen derives from the session pointers."""

    is_workout_in_progress: bool
    active_session_id: Optional[str] = None
    active_day_id: Optional[str] = None
    current_set_index: int = 0
    planned_sets: List[PlannedSet] = Field(default_factory=list)
    current_planned_set: Optional[PlannedSet] = None
    current_exercise: Optional[Exercise] = None
    current_set_for_exercise: int = 1
    current_exercise_progress: ExerciseProgress = Field(default_factory=ExerciseProgress)
    exercise_totals: Dict[str, ExerciseProgress] = Field(default_factory=dict)
    all_sets_done: bool = False
    is_complete: bool = False


def _rep_groups(groups: Iterable[RepGroupInput]) -> List[RepGroup]:
    result = [g if isinstance(g, RepGroup) else RepGroup(**g) for g in groups]
    if not result:
        raise ValidationError("a completed set needs at least one rep group")
    return result


def _require_active(state: AppState) -> WorkoutSession:
    session = active_session(state)
    if not state.is_workout_in_progress or session is None:
        raise InvalidStateError("no workout in progress")
    return session


# Reducers

def start_session(
    state: AppState,
    routine_id: str,
    day_id: str,
    session_id: Optional[str] = None,
    now: Optional[datetime.datetime] = None,
) -> AppState:
    if state.is_workout_in_progress:
        raise InvalidStateError("a workout is already in progress")
    if find_routine(state, routine_id) is None:
        raise NotFoundError(f"routine {routine_id} not found")
    if find_day(state, routine_id, day_id) is None:
        raise NotFoundError(f"day {day_id} not found in routine {routine_id}")
    session = WorkoutSession(
        id=session_id or new_id(),
        routine_id=routine_id,
        day_id=day_id,
        started_at=now or utc_now(),
    )
    return state.model_copy(
        update={
            "sessions": [*state.sessions, session],
            "active_session_id": session.id,
            "is_workout_in_progress": True,
            "current_set_index": 0,
        }
    )


def record_set(
    state: AppState,
    rep_groups: Iterable[RepGroupInput],
    exercise_id: Optional[str] = None,
    planned_set_id: Optional[str] = None,
    notes: Optional[str] = None,
    set_id: Optional[str] = None,
    now: Optional[datetime.datetime] = None,
) -> AppState:
    """Append a completed set to the active session without moving the index.

    The exercise defaults to the current planned set's exercise, and the set
    is linked to the current planned set when both name the same exercise.
    """
    session = _require_active(state)
    groups = _rep_groups(rep_groups)
    current = current_planned_set(state)
    if exercise_id is None:
        if current is None:
            raise ValidationError("exercise_id is required once the day is finished")
        exercise_id = current.exercise_id
    if planned_set_id is None and current is not None and current.exercise_id == exercise_id:
        planned_set_id = current.id
    completed = CompletedSet(
        id=set_id or new_id(),
        session_id=session.id,
        exercise_id=exercise_id,
        planned_set_id=planned_set_id,
        rep_groups=groups,
        completed_at=now or utc_now(),
        notes=notes,
    )
    return state.model_copy(
        update={"completed_sets": [*state.completed_sets, completed]}
    )


def update_completed_set(state: AppState, set_id: str, fields: dict) -> AppState:
    existing = find_completed_set(state, set_id)
    if existing is None:
        raise NotFoundError(f"completed set {set_id} not found")
    if "id" in fields and fields["id"] != set_id:
        raise ValidationError("the id of a completed set cannot change")
    fields = dict(fields)
    if "rep_groups" in fields:
        fields["rep_groups"] = _rep_groups(fields["rep_groups"])
    updated = CompletedSet.model_validate({**existing.model_dump(), **fields})
    return state.model_copy(
        update={
            "completed_sets": [
                updated if cs.id == set_id else cs for cs in state.completed_sets
            ]
        }
    )


def remove_completed_set(state: AppState, set_id: str) -> AppState:
    if find_completed_set(state, set_id) is None:
        raise NotFoundError(f"completed set {set_id} not found")
    return state.model_copy(
        update={
            "completed_sets": [cs for cs in state.completed_sets if cs.id != set_id]
        }
    )


def advance_set(state: AppState) -> AppState:
    return state.model_copy(update={"current_set_index": state.current_set_index + 1})


def retreat_set(state: AppState) -> AppState:
    return state.model_copy(
        update={"current_set_index": max(0, state.current_set_index - 1)}
    )


def set_current_set_index(state: AppState, index: int) -> AppState:
    return state.model_copy(update={"current_set_index": max(0, index)})


def set_current_day_index(state: AppState, index: int) -> AppState:
    if index < 0:
        raise ValidationError("day index must be non-negative")
    return state.model_copy(update={"current_day_index": index})


def complete_session(
    state: AppState,
    notes: Optional[str] = None,
    now: Optional[datetime.datetime] = None,
) -> AppState:
    """Close the active session and rotate to the routine's next day.

    The day pointer wraps to 0 after the last day; it is left alone when the
    routine is gone or has no days.
    """
    session = _require_active(state)
    finished = session.model_copy(
        update={
            "completed_at": now or utc_now(),
            "notes": notes if notes is not None else session.notes,
        }
    )
    day_index = state.current_day_index
    routine = find_routine(state, session.routine_id)
    if routine is not None and routine.days:
        day_index = (state.current_day_index + 1) % len(routine.days)
    return state.model_copy(
        update={
            "sessions": [finished if s.id == session.id else s for s in state.sessions],
            "active_session_id": None,
            "is_workout_in_progress": False,
            "current_set_index": 0,
            "current_day_index": day_index,
        }
    )


def cancel_session(state: AppState) -> AppState:
    """Drop the active session and every set recorded in it."""
    session_id = state.active_session_id
    if session_id is None and not state.is_workout_in_progress:
        return state
    return state.model_copy(
        update={
            "sessions": [s for s in state.sessions if s.id != session_id],
            "completed_sets": [
                cs for cs in state.completed_sets if cs.session_id != session_id
            ],
            "active_session_id": None,
            "is_workout_in_progress": False,
            "current_set_index": 0,
        }
    )


# Queries

def active_planned_sets(state: AppState) -> List[PlannedSet]:
    day = active_day(state)
    return list(day.planned_sets) if day is not None else []


def current_planned_set(state: AppState) -> Optional[PlannedSet]:
    planned = active_planned_sets(state)
    if 0 <= state.current_set_index < len(planned):
        return planned[state.current_set_index]
    return None


def current_exercise(state: AppState) -> Optional[Exercise]:
    current = current_planned_set(state)
    if current is None:
        return None
    return find_exercise(state, current.exercise_id)


def session_sets(state: AppState) -> List[CompletedSet]:
    if state.active_session_id is None:
        return []
    return [cs for cs in state.completed_sets if cs.session_id == state.active_session_id]


def _fulfilled_ids(state: AppState) -> set:
    return {cs.planned_set_id for cs in session_sets(state) if cs.planned_set_id}


def exercise_totals(state: AppState) -> Dict[str, ExerciseProgress]:
    """Planned and fulfilled set counts per exercise of the active day."""
    done = _fulfilled_ids(state)
    counts: Dict[str, Dict[str, int]] = {}
    for planned in active_planned_sets(state):
        item = counts.setdefault(planned.exercise_id, {"total": 0, "completed": 0})
        item["total"] += 1
        if planned.id in done:
            item["completed"] += 1
    return {eid: ExerciseProgress(**c) for eid, c in counts.items()}


def set_number_for_exercise(state: AppState) -> int:
    current = current_planned_set(state)
    if current is None:
        return 1
    planned = active_planned_sets(state)
    return sum(
        1
        for ps in planned[: state.current_set_index + 1]
        if ps.exercise_id == current.exercise_id
    )


def is_session_complete(state: AppState) -> bool:
    done = _fulfilled_ids(state)
    return all(ps.id in done for ps in active_planned_sets(state))


def session_progress(state: AppState) -> SessionProgress:
    planned = active_planned_sets(state)
    current = current_planned_set(state)
    exercise = current_exercise(state)
    totals = exercise_totals(state)
    session = active_session(state)
    progress = ExerciseProgress()
    if exercise is not None:
        progress = totals.get(exercise.id, ExerciseProgress())
    return SessionProgress(
        is_workout_in_progress=state.is_workout_in_progress,
        active_session_id=state.active_session_id,
        active_day_id=session.day_id if session is not None else None,
        current_set_index=state.current_set_index,
        planned_sets=planned,
        current_planned_set=current,
        current_exercise=exercise,
        current_set_for_exercise=set_number_for_exercise(state),
        current_exercise_progress=progress,
        exercise_totals=totals,
        all_sets_done=current is None,
        is_complete=is_session_complete(state),
    )


def exercise_history(state: AppState, exercise_id: str) -> List[List[RepGroup]]:
    return [
        list(cs.rep_groups)
        for cs in state.completed_sets
        if cs.exercise_id == exercise_id
    ]


class TrainingSessionController:
    """Drives one workout at a time through the store."""

    def __init__(self, store: StateStore) -> None:
        self.store = store

    @property
    def state(self) -> AppState:
        return self.store.state

    def start_session(
        self,
        routine_id: str,
        day_id: str,
        session_id: Optional[str] = None,
        now: Optional[datetime.datetime] = None,
    ) -> WorkoutSession:
        state = self.store.dispatch(start_session, routine_id, day_id, session_id, now)
        session = active_session(state)
        logger.info("Started session %s (routine %s, day %s)", session.id, routine_id, day_id)
        return session

    def record_set(
        self,
        rep_groups: Iterable[RepGroupInput],
        exercise_id: Optional[str] = None,
        planned_set_id: Optional[str] = None,
        notes: Optional[str] = None,
        set_id: Optional[str] = None,
        now: Optional[datetime.datetime] = None,
    ) -> CompletedSet:
        state = self.store.dispatch(
            record_set, rep_groups, exercise_id, planned_set_id, notes, set_id, now
        )
        return state.completed_sets[-1]

    def update_completed_set(self, set_id: str, fields: dict) -> CompletedSet:
        state = self.store.dispatch(update_completed_set, set_id, fields)
        return find_completed_set(state, set_id)

    def remove_completed_set(self, set_id: str) -> None:
        self.store.dispatch(remove_completed_set, set_id)

    def advance_set(self) -> int:
        return self.store.dispatch(advance_set).current_set_index

    def retreat_set(self) -> int:
        return self.store.dispatch(retreat_set).current_set_index

    def set_current_set_index(self, index: int) -> int:
        return self.store.dispatch(set_current_set_index, index).current_set_index

    def set_current_day_index(self, index: int) -> int:
        return self.store.dispatch(set_current_day_index, index).current_day_index

    def complete_session(
        self, notes: Optional[str] = None, now: Optional[datetime.datetime] = None
    ) -> WorkoutSession:
        session_id = self.state.active_session_id
        state = self.store.dispatch(complete_session, notes, now)
        logger.info(
            "Completed session %s, next day index %d", session_id, state.current_day_index
        )
        return next(s for s in state.sessions if s.id == session_id)

    def cancel_session(self) -> None:
        session_id = self.state.active_session_id
        self.store.dispatch(cancel_session)
        if session_id is not None:
            logger.info("Cancelled session %s", session_id)

    def progress(self) -> SessionProgress:
        return session_progress(self.state)

    def exercise_history(self, exercise_id: str) -> List[List[RepGroup]]:
        return exercise_history(self.state, exercise_id)
