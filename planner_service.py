from __future__ import annotations
import datetime
import logging
from typing import Iterable, List, Optional, TypeVar

from pydantic import Field
from pydantic import ValidationError as SchemaError

from default_data import default_routines, new_id
from errors import NotFoundError, ValidationError
from models import (
    DomainModel,
    Exercise,
    MuscleGroup,
    PlannedSet,
    WorkoutDay,
    WorkoutRoutine,
    utc_now,
)
from state import (
    AppState,
    StateStore,
    find_day,
    find_exercise,
    find_muscle_group,
    find_routine,
)

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=DomainModel)


class SharedPlannedSet(DomainModel):
    exercise_id: str
    target_reps: int
    target_weight: Optional[float] = None
    rest_seconds: Optional[int] = None
    order: Optional[int] = None


class SharedDay(DomainModel):
    name: str
    order: Optional[int] = None
    planned_sets: List[SharedPlannedSet] = Field(default_factory=list)


class SharedRoutine(DomainModel):
    """Id-less routine layout exchanged between users."""

    name: str
    description: Optional[str] = None
    days: List[SharedDay] = Field(default_factory=list)


def _updated(model: M, fields: dict) -> M:
    if "id" in fields and fields["id"] != model.id:
        raise ValidationError("ids cannot be changed")
    try:
        return type(model).model_validate({**model.model_dump(), **fields})
    except SchemaError as e:
        raise ValidationError(str(e))


def _require_routine(state: AppState, routine_id: str) -> WorkoutRoutine:
    routine = find_routine(state, routine_id)
    if routine is None:
        raise NotFoundError(f"routine {routine_id} not found")
    return routine


def _require_day(state: AppState, routine_id: str, day_id: str) -> WorkoutDay:
    _require_routine(state, routine_id)
    day = find_day(state, routine_id, day_id)
    if day is None:
        raise NotFoundError(f"day {day_id} not found in routine {routine_id}")
    return day


def _put_routine(
    state: AppState, routine: WorkoutRoutine, now: Optional[datetime.datetime]
) -> AppState:
    routine = _updated(routine, {"updated_at": now or utc_now()})
    return state.model_copy(
        update={
            "routines": [routine if r.id == routine.id else r for r in state.routines]
        }
    )


def _put_day(
    state: AppState,
    routine_id: str,
    day: WorkoutDay,
    now: Optional[datetime.datetime],
) -> AppState:
    routine = _require_routine(state, routine_id)
    days = [day if d.id == day.id else d for d in routine.days]
    return _put_routine(state, routine.model_copy(update={"days": days}), now)


# Routines

def create_routine(
    name: str,
    description: Optional[str] = None,
    days: Optional[Iterable[dict]] = None,
    now: Optional[datetime.datetime] = None,
) -> WorkoutRoutine:
    """Build a routine from id-less day layouts, assigning fresh ids."""
    try:
        shape = SharedRoutine.model_validate(
            {"name": name, "description": description, "days": list(days or [])}
        )
    except SchemaError as e:
        raise ValidationError(str(e))
    return _from_shape(shape, now)


def _from_shape(shape: SharedRoutine, now: Optional[datetime.datetime]) -> WorkoutRoutine:
    stamp = now or utc_now()
    return WorkoutRoutine(
        id=new_id(),
        name=shape.name,
        description=shape.description,
        created_at=stamp,
        updated_at=stamp,
        days=[
            WorkoutDay(
                id=new_id(),
                name=day.name,
                order=day.order,
                planned_sets=[
                    PlannedSet(id=new_id(), **ps.model_dump())
                    for ps in day.planned_sets
                ],
            )
            for day in shape.days
        ],
    )


def add_routine(state: AppState, routine: WorkoutRoutine) -> AppState:
    if find_routine(state, routine.id) is not None:
        raise ValidationError(f"routine {routine.id} already exists")
    return state.model_copy(update={"routines": [*state.routines, routine]})


def update_routine(
    state: AppState,
    routine_id: str,
    fields: dict,
    now: Optional[datetime.datetime] = None,
) -> AppState:
    routine = _updated(_require_routine(state, routine_id), fields)
    return _put_routine(state, routine, now)


def remove_routine(state: AppState, routine_id: str) -> AppState:
    _require_routine(state, routine_id)
    update = {"routines": [r for r in state.routines if r.id != routine_id]}
    if state.active_routine_id == routine_id:
        update["active_routine_id"] = None
    return state.model_copy(update=update)


def set_active_routine(state: AppState, routine_id: Optional[str]) -> AppState:
    if routine_id is not None:
        _require_routine(state, routine_id)
    return state.model_copy(update={"active_routine_id": routine_id})


def add_starter_routines(
    state: AppState, now: Optional[datetime.datetime] = None
) -> AppState:
    return state.model_copy(
        update={"routines": [*state.routines, *default_routines(now)]}
    )


# Days

def add_day(
    state: AppState,
    routine_id: str,
    day: WorkoutDay,
    now: Optional[datetime.datetime] = None,
) -> AppState:
    routine = _require_routine(state, routine_id)
    if any(d.id == day.id for d in routine.days):
        raise ValidationError(f"day {day.id} already exists")
    return _put_routine(
        state, routine.model_copy(update={"days": [*routine.days, day]}), now
    )


def update_day(
    state: AppState,
    routine_id: str,
    day_id: str,
    fields: dict,
    now: Optional[datetime.datetime] = None,
) -> AppState:
    day = _updated(_require_day(state, routine_id, day_id), fields)
    return _put_day(state, routine_id, day, now)


def remove_day(
    state: AppState,
    routine_id: str,
    day_id: str,
    now: Optional[datetime.datetime] = None,
) -> AppState:
    _require_day(state, routine_id, day_id)
    routine = find_routine(state, routine_id)
    days = [d for d in routine.days if d.id != day_id]
    return _put_routine(state, routine.model_copy(update={"days": days}), now)


# Planned sets

def add_planned_set(
    state: AppState,
    routine_id: str,
    day_id: str,
    planned_set: PlannedSet,
    now: Optional[datetime.datetime] = None,
) -> AppState:
    day = _require_day(state, routine_id, day_id)
    if any(ps.id == planned_set.id for ps in day.planned_sets):
        raise ValidationError(f"planned set {planned_set.id} already exists")
    day = day.model_copy(update={"planned_sets": [*day.planned_sets, planned_set]})
    return _put_day(state, routine_id, day, now)


def _require_planned_set(day: WorkoutDay, set_id: str) -> PlannedSet:
    for ps in day.planned_sets:
        if ps.id == set_id:
            return ps
    raise NotFoundError(f"planned set {set_id} not found in day {day.id}")


def update_planned_set(
    state: AppState,
    routine_id: str,
    day_id: str,
    set_id: str,
    fields: dict,
    now: Optional[datetime.datetime] = None,
) -> AppState:
    day = _require_day(state, routine_id, day_id)
    updated = _updated(_require_planned_set(day, set_id), fields)
    sets = [updated if ps.id == set_id else ps for ps in day.planned_sets]
    return _put_day(state, routine_id, day.model_copy(update={"planned_sets": sets}), now)


def remove_planned_set(
    state: AppState,
    routine_id: str,
    day_id: str,
    set_id: str,
    now: Optional[datetime.datetime] = None,
) -> AppState:
    day = _require_day(state, routine_id, day_id)
    _require_planned_set(day, set_id)
    sets = [ps for ps in day.planned_sets if ps.id != set_id]
    return _put_day(state, routine_id, day.model_copy(update={"planned_sets": sets}), now)


def reorder_planned_sets(
    state: AppState,
    routine_id: str,
    day_id: str,
    ordered_ids: Iterable[str],
    now: Optional[datetime.datetime] = None,
) -> AppState:
    """Lay the day's sets out in ``ordered_ids`` order.

    Unknown ids are ignored and sets missing from the list are dropped. Each
    kept set gets its new 0-based position as ``order``.
    """
    day = _require_day(state, routine_id, day_id)
    by_id = {ps.id: ps for ps in day.planned_sets}
    kept = [by_id[i] for i in ordered_ids if i in by_id]
    sets = [ps.model_copy(update={"order": pos}) for pos, ps in enumerate(kept)]
    return _put_day(state, routine_id, day.model_copy(update={"planned_sets": sets}), now)


# Catalog

def add_exercise(state: AppState, exercise: Exercise) -> AppState:
    if find_exercise(state, exercise.id) is not None:
        raise ValidationError(f"exercise {exercise.id} already exists")
    return state.model_copy(update={"exercises": [*state.exercises, exercise]})


def update_exercise(state: AppState, exercise_id: str, fields: dict) -> AppState:
    existing = find_exercise(state, exercise_id)
    if existing is None:
        raise NotFoundError(f"exercise {exercise_id} not found")
    updated = _updated(existing, fields)
    return state.model_copy(
        update={
            "exercises": [updated if e.id == exercise_id else e for e in state.exercises]
        }
    )


def remove_exercise(state: AppState, exercise_id: str) -> AppState:
    # completed sets keep their now dangling exercise ids
    if find_exercise(state, exercise_id) is None:
        raise NotFoundError(f"exercise {exercise_id} not found")
    return state.model_copy(
        update={"exercises": [e for e in state.exercises if e.id != exercise_id]}
    )


def add_muscle_group(state: AppState, group: MuscleGroup) -> AppState:
    if find_muscle_group(state, group.id) is not None:
        raise ValidationError(f"muscle group {group.id} already exists")
    return state.model_copy(update={"muscle_groups": [*state.muscle_groups, group]})


def update_muscle_group(state: AppState, group_id: str, fields: dict) -> AppState:
    existing = find_muscle_group(state, group_id)
    if existing is None:
        raise NotFoundError(f"muscle group {group_id} not found")
    updated = _updated(existing, fields)
    return state.model_copy(
        update={
            "muscle_groups": [
                updated if g.id == group_id else g for g in state.muscle_groups
            ]
        }
    )


def remove_muscle_group(state: AppState, group_id: str) -> AppState:
    if find_muscle_group(state, group_id) is None:
        raise NotFoundError(f"muscle group {group_id} not found")
    return state.model_copy(
        update={"muscle_groups": [g for g in state.muscle_groups if g.id != group_id]}
    )


# Share shape

def routine_to_shareable(routine: WorkoutRoutine) -> dict:
    shape = SharedRoutine(
        name=routine.name,
        description=routine.description,
        days=[
            SharedDay(
                name=day.name,
                order=day.order,
                planned_sets=[
                    SharedPlannedSet(**ps.model_dump(exclude={"id"}))
                    for ps in day.planned_sets
                ],
            )
            for day in routine.days
        ],
    )
    return shape.model_dump(by_alias=True, exclude_none=True)


def routine_from_shareable(
    data: dict, now: Optional[datetime.datetime] = None
) -> WorkoutRoutine:
    try:
        shape = SharedRoutine.model_validate(data)
    except SchemaError as e:
        raise ValidationError(f"invalid shared routine: {e}")
    return _from_shape(shape, now)


class PlannerService:
    """Routine and catalog editing on top of a :class:`StateStore`."""

    def __init__(self, store: StateStore) -> None:
        self.store = store

    def routines(self) -> List[WorkoutRoutine]:
        return list(self.store.state.routines)

    def get_routine(self, routine_id: str) -> WorkoutRoutine:
        return _require_routine(self.store.state, routine_id)

    def create_routine(
        self,
        name: str,
        description: Optional[str] = None,
        days: Optional[Iterable[dict]] = None,
        now: Optional[datetime.datetime] = None,
    ) -> WorkoutRoutine:
        routine = create_routine(name, description, days, now)
        self.store.dispatch(add_routine, routine)
        logger.info("Created routine %s (%s)", routine.id, routine.name)
        return routine

    def update_routine(self, routine_id: str, fields: dict) -> WorkoutRoutine:
        state = self.store.dispatch(update_routine, routine_id, dict(fields))
        return find_routine(state, routine_id)

    def delete_routine(self, routine_id: str) -> None:
        self.store.dispatch(remove_routine, routine_id)
        logger.info("Deleted routine %s", routine_id)

    def set_active_routine(self, routine_id: Optional[str]) -> None:
        self.store.dispatch(set_active_routine, routine_id)

    def add_starter_routines(
        self, now: Optional[datetime.datetime] = None
    ) -> List[WorkoutRoutine]:
        before = {r.id for r in self.store.state.routines}
        state = self.store.dispatch(add_starter_routines, now)
        return [r for r in state.routines if r.id not in before]

    def add_day(
        self, routine_id: str, name: str, order: Optional[int] = None
    ) -> WorkoutDay:
        day = WorkoutDay(id=new_id(), name=name, order=order)
        self.store.dispatch(add_day, routine_id, day)
        return day

    def add_planned_set(
        self,
        routine_id: str,
        day_id: str,
        exercise_id: str,
        target_reps: int,
        target_weight: Optional[float] = None,
        rest_seconds: Optional[int] = None,
        order: Optional[int] = None,
    ) -> PlannedSet:
        planned = PlannedSet(
            id=new_id(),
            exercise_id=exercise_id,
            target_reps=target_reps,
            target_weight=target_weight,
            rest_seconds=rest_seconds,
            order=order,
        )
        self.store.dispatch(add_planned_set, routine_id, day_id, planned)
        return planned

    def reorder_planned_sets(
        self, routine_id: str, day_id: str, ordered_ids: Iterable[str]
    ) -> WorkoutDay:
        state = self.store.dispatch(
            reorder_planned_sets, routine_id, day_id, list(ordered_ids)
        )
        return find_day(state, routine_id, day_id)

    def share_routine(self, routine_id: str) -> dict:
        return routine_to_shareable(self.get_routine(routine_id))

    def import_shared(
        self, data: dict, now: Optional[datetime.datetime] = None
    ) -> WorkoutRoutine:
        routine = routine_from_shareable(data, now)
        self.store.dispatch(add_routine, routine)
        logger.info("Imported shared routine %s as %s", routine.name, routine.id)
        return routine

    def exercises(self) -> List[Exercise]:
        return list(self.store.state.exercises)

    def muscle_groups(self) -> List[MuscleGroup]:
        return list(self.store.state.muscle_groups)
